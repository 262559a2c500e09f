"""Models package initialization."""
from wishmeta.models.metadata import UrlMetadata, VendorProductInfo, SourceType

__all__ = ["UrlMetadata", "VendorProductInfo", "SourceType"]
