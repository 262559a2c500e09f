"""
Entity Resolver for the wishlist metadata service.
Decides whether a link belongs to the Amazon integration, pulls the
ASIN out of it and expands amzn.to short links.
"""
import re
from enum import Enum
from typing import List, Optional, Pattern
from dataclasses import dataclass

import httpx

from wishmeta.adapters.amazon import AmazonClient
from wishmeta.config import AmazonCredentials, config
from wishmeta.utils.logger import LayerLogger


class VendorType(str, Enum):
    """Vendor recognized from the link."""
    AMAZON = "amazon"
    UNKNOWN = "unknown"


AMAZON_URL_RE = re.compile(r"amazon\.(com|co\.uk|ca|de|fr|it|es|co\.jp)|amzn\.to", re.IGNORECASE)
SHORT_LINK_MARKER = "amzn.to"

# Most specific first. The bare 10-character segment pattern can match
# any path segment of that shape; kept for compatibility with old links.
PRODUCT_ID_PATTERNS: List[Pattern] = [
    re.compile(r"/dp/([A-Z0-9]{10})", re.IGNORECASE),
    re.compile(r"/gp/product/([A-Z0-9]{10})", re.IGNORECASE),
    re.compile(r"/product/([A-Z0-9]{10})", re.IGNORECASE),
    re.compile(r"/([A-Z0-9]{10})(?:/|\?|$)", re.IGNORECASE),
    re.compile(r"amazon\.com.*?/([A-Z0-9]{10})(?:/|\?|$)", re.IGNORECASE),
    # Unresolved short link code
    re.compile(r"amzn\.to/([A-Za-z0-9]+)", re.IGNORECASE),
]


@dataclass
class VendorResolution:
    """Outcome of resolving a link against the Amazon integration."""
    vendor: VendorType
    url: str
    product_id: Optional[str]
    short_link: bool
    short_link_resolved: bool


class EntityResolver:
    """
    Entity Resolver - classifies links and normalizes Amazon links.

    Nothing here raises for an unrecognized or malformed link: absence
    of a match is reported as False/None.
    """

    def __init__(
        self,
        timeout: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self.transport = transport
        self.logger = LayerLogger("entity_resolver")

    def is_recognized_vendor(self, url: str) -> bool:
        """Check if the URL is an Amazon URL (regional sites and amzn.to included)."""
        return bool(AMAZON_URL_RE.search(url))

    def is_short_link(self, url: str) -> bool:
        """Check if the URL is an amzn.to short link."""
        return SHORT_LINK_MARKER in url.lower()

    def detect_vendor(self, url: str) -> VendorType:
        """Classify the link's vendor."""
        if self.is_recognized_vendor(url):
            return VendorType.AMAZON
        return VendorType.UNKNOWN

    def extract_product_id(self, url: str) -> Optional[str]:
        """Extract the ASIN from an Amazon URL, upper-cased."""
        for pattern in PRODUCT_ID_PATTERNS:
            match = pattern.search(url)
            if match and match.group(1):
                return match.group(1).upper()
        return None

    async def resolve_short_link(self, url: str) -> Optional[str]:
        """
        Follow redirects with a HEAD request and return the final URL.

        Returns None on any network failure.
        """
        self.logger.log_action("resolve_short_link", "started", url=url)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                response = await client.head(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self.logger.log_error(
                f"Failed to resolve short link: {str(e)}",
                error_type="http_error",
                url=url
            )
            return None

        resolved = str(response.url)
        self.logger.log_http_request(
            url=url,
            method="HEAD",
            status_code=response.status_code,
            result="resolved",
            resolved_url=resolved
        )
        return resolved

    async def resolve(self, url: str) -> VendorResolution:
        """
        Resolve a link: detect the vendor, expand short links and
        extract the product id.

        A failed short link expansion keeps the original URL.
        """
        vendor = self.detect_vendor(url)
        if vendor != VendorType.AMAZON:
            self.logger.log_decision(
                decision="generic_url",
                reason="No vendor domain matched",
                url=url
            )
            return VendorResolution(
                vendor=vendor,
                url=url,
                product_id=None,
                short_link=False,
                short_link_resolved=False,
            )

        short_link = self.is_short_link(url)
        resolved = False
        if short_link:
            resolved_url = await self.resolve_short_link(url)
            if resolved_url:
                url = resolved_url
                resolved = True
            else:
                self.logger.log_fallback(
                    from_source="resolved_short_link",
                    to_source="original_short_link",
                    reason="Short link resolution failed",
                    url=url
                )

        product_id = self.extract_product_id(url)

        self.logger.log_decision(
            decision="amazon_url",
            reason="Amazon domain matched",
            url=url,
            product_id=product_id,
            short_link=short_link,
            short_link_resolved=resolved
        )

        return VendorResolution(
            vendor=vendor,
            url=url,
            product_id=product_id,
            short_link=short_link,
            short_link_resolved=resolved,
        )

    def vendor_client_for(
        self,
        resolution: VendorResolution,
        credentials: Optional[AmazonCredentials] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> Optional[AmazonClient]:
        """Return the specialized client for a resolved link, if any."""
        if resolution.vendor == VendorType.AMAZON:
            return AmazonClient(credentials=credentials, transport=transport)
        return None
