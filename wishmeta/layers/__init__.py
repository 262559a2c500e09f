"""Layers package initialization."""
from wishmeta.layers.entity_resolver import EntityResolver, VendorType, VendorResolution
from wishmeta.layers.metadata import MetadataOrchestrator, fetch_url_metadata

__all__ = [
    "EntityResolver",
    "VendorType",
    "VendorResolution",
    "MetadataOrchestrator",
    "fetch_url_metadata",
]
