"""
Metadata models for the wishlist metadata service.
UrlMetadata is the single contract handed back to callers, whichever
source (Amazon PA-API or HTML scraping) produced it.
"""
from typing import List, Optional
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class SourceType(str, Enum):
    """Source type indicating how metadata was obtained."""
    AMAZON_API = "amazon_api"
    HTML_SCRAPER = "html_scraper"
    NONE = "none"


class VendorProductInfo(BaseModel):
    """Product data mapped from a vendor API response. Never stored."""
    title: Optional[str] = None
    image_url: Optional[str] = None
    price: Optional[str] = None  # Vendor's display string, kept verbatim
    canonical_url: str


class UrlMetadata(BaseModel):
    """
    Best-effort metadata for a wishlist link.

    Every content field is independently optional; partial results are
    normal. `url` is always set and may differ from the input URL when
    it was rewritten (e.g. to a canonical affiliate link).

    Serialized with camelCase aliases (siteName, imageUrl) over HTTP.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: str
    title: Optional[str] = None
    site_name: Optional[str] = Field(default=None, alias="siteName")
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    price: Optional[str] = None

    @classmethod
    def empty(cls, url: str) -> "UrlMetadata":
        """Result with no content fields, used on every failure path."""
        return cls(url=url)

    @classmethod
    def from_vendor(cls, info: VendorProductInfo, site_name: str) -> "UrlMetadata":
        """Build the result for a successful vendor API lookup."""
        return cls(
            url=info.canonical_url,
            title=info.title,
            site_name=site_name,
            image_url=info.image_url,
            price=info.price,
        )

    def get_present_fields(self) -> List[str]:
        """Return list of content fields that were extracted."""
        present = []
        if self.title:
            present.append("title")
        if self.site_name:
            present.append("site_name")
        if self.image_url:
            present.append("image_url")
        if self.price:
            present.append("price")
        return present

    def get_missing_fields(self) -> List[str]:
        """Return list of content fields that are absent."""
        present = self.get_present_fields()
        return [f for f in ["title", "site_name", "image_url", "price"] if f not in present]
