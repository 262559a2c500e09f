"""
Metadata Orchestrator for the wishlist metadata service.
The single entry point: picks the Amazon PA-API path or generic HTML
scraping, falls back between them and always returns a UrlMetadata.
"""
from typing import Optional

import httpx

from wishmeta.adapters.amazon import AmazonClient
from wishmeta.adapters.html_scraper import HTMLScraper
from wishmeta.config import AmazonCredentials
from wishmeta.layers.entity_resolver import EntityResolver, VendorResolution
from wishmeta.models.metadata import UrlMetadata, SourceType
from wishmeta.utils.logger import LayerLogger


class MetadataOrchestrator:
    """
    Metadata Orchestrator - source-agnostic link enrichment.

    This layer:
    - Routes Amazon links to the PA-API and everything else to the scraper
    - Rewrites Amazon links to a clean affiliate URL even when the API fails
    - Never raises; every failure degrades to a partial or empty result

    Each call is independent, so calls can run concurrently.
    """

    def __init__(
        self,
        credentials: Optional[AmazonCredentials] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        resolver: Optional[EntityResolver] = None,
        scraper: Optional[HTMLScraper] = None,
    ):
        self.logger = LayerLogger("metadata_orchestrator")
        self.credentials = credentials
        self.transport = transport
        self.resolver = resolver or EntityResolver(transport=transport)
        self.scraper = scraper or HTMLScraper(transport=transport)

    async def fetch_url_metadata(self, url: str) -> UrlMetadata:
        """
        Fetch metadata for a link.

        Args:
            url: The link as the user sent it

        Returns:
            UrlMetadata; `url` may be rewritten (e.g. with an affiliate tag)
        """
        self.logger.log_action("fetch_url_metadata", "started", url=url)

        try:
            return await self._fetch(url)
        except Exception as e:
            self.logger.log_error(
                f"Unexpected error fetching metadata: {str(e)}",
                error_type="unexpected",
                url=url,
                exception_class=type(e).__name__
            )
            empty = UrlMetadata.empty(url)
            self.logger.log_extraction(
                source=SourceType.NONE.value,
                fields_present=[],
                fields_missing=empty.get_missing_fields(),
                url=url
            )
            return empty

    async def _fetch(self, url: str) -> UrlMetadata:
        resolution = await self.resolver.resolve(url)
        url = resolution.url

        client = self.resolver.vendor_client_for(
            resolution, credentials=self.credentials, transport=self.transport
        )

        if client is not None and resolution.product_id:
            vendor_result = await self._fetch_from_vendor(client, resolution)
            if vendor_result is not None:
                return vendor_result

            # Still hand back a clean affiliate link, scraped generically
            url = client.build_canonical_url(resolution.product_id)
            self.logger.log_fallback(
                from_source=SourceType.AMAZON_API.value,
                to_source=SourceType.HTML_SCRAPER.value,
                reason="Amazon PA-API lookup failed",
                url=url,
                product_id=resolution.product_id
            )
            return await self.scraper.fetch_and_parse(url, reason="amazon_api_fallback")

        return await self.scraper.fetch_and_parse(url, reason="generic_url")

    async def _fetch_from_vendor(
        self,
        client: AmazonClient,
        resolution: VendorResolution,
    ) -> Optional[UrlMetadata]:
        """Look the product up through the vendor API."""
        self.logger.log_decision(
            decision="use_amazon_api",
            reason="Amazon product id found",
            url=resolution.url,
            product_id=resolution.product_id
        )

        info = await client.fetch_product_info(resolution.product_id)
        if info is None:
            return None

        metadata = UrlMetadata.from_vendor(info, site_name=AmazonClient.SITE_NAME)

        self.logger.log_extraction(
            source=SourceType.AMAZON_API.value,
            fields_present=metadata.get_present_fields(),
            fields_missing=metadata.get_missing_fields(),
            url=metadata.url
        )
        return metadata


async def fetch_url_metadata(
    url: str,
    credentials: Optional[AmazonCredentials] = None,
) -> UrlMetadata:
    """Fetch metadata for a link with a default orchestrator. Never raises."""
    return await MetadataOrchestrator(credentials=credentials).fetch_url_metadata(url)
