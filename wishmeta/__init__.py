"""Link metadata extraction for gift wishlists."""
from wishmeta.layers.metadata import MetadataOrchestrator, fetch_url_metadata
from wishmeta.models.metadata import UrlMetadata

__all__ = ["MetadataOrchestrator", "fetch_url_metadata", "UrlMetadata"]
