"""
Amazon Product Advertising API adapter for the wishlist metadata service.
Fetches title, image and price for an ASIN through signed PA-API 5.0
GetItems requests, and builds clean affiliate-tagged product URLs.
"""
import hashlib
import hmac
import json
from datetime import datetime, timezone
from typing import Optional, Dict, Any

import httpx

from wishmeta.config import AmazonCredentials, config
from wishmeta.models.metadata import VendorProductInfo
from wishmeta.utils.logger import LayerLogger


AMAZON_HOST = "webservices.amazon.com"
AMAZON_REGION = "us-east-1"
AMAZON_SERVICE = "ProductAdvertisingAPI"
AMAZON_TARGET = "com.amazon.paapi5.v1.ProductAdvertisingAPIv1.GetItems"
GET_ITEMS_PATH = "/paapi5/getitems"

DEFAULT_ASSOCIATE_TAG = "giftwishlist-20"
SIGNING_ALGORITHM = "AWS4-HMAC-SHA256"
SIGNED_HEADERS = "content-encoding;content-type;host;x-amz-date;x-amz-target"

GET_ITEMS_RESOURCES = [
    "ItemInfo.Title",
    "Images.Primary.Large",
    "Offers.Listings.Price",
]


def _hmac_sha256(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()


def _sha256_hex(message: str) -> str:
    return hashlib.sha256(message.encode("utf-8")).hexdigest()


def derive_signing_key(secret_key: str, date_stamp: str, region: str, service: str) -> bytes:
    """
    Derive the SigV4 signing key.

    Chain: HMAC("AWS4" + secret, date) -> region -> service -> "aws4_request".
    """
    k_date = _hmac_sha256(f"AWS4{secret_key}".encode("utf-8"), date_stamp)
    k_region = _hmac_sha256(k_date, region)
    k_service = _hmac_sha256(k_region, service)
    return _hmac_sha256(k_service, "aws4_request")


class AmazonClient:
    """
    Amazon PA-API client.

    Credentials are passed in explicitly; when any of them is missing the
    client reports the vendor path as unavailable instead of failing.
    """

    SITE_NAME = "Amazon"

    def __init__(
        self,
        credentials: Optional[AmazonCredentials] = None,
        timeout: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.credentials = credentials or config.amazon_credentials()
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self.transport = transport
        self.logger = LayerLogger("amazon_client")

    def is_configured(self) -> bool:
        """Check if all PA-API credentials are present."""
        configured = self.credentials.is_complete()

        self.logger.log_decision(
            decision="api_configuration_check",
            reason="checking_credentials",
            api_configured=configured
        )

        return configured

    def build_canonical_url(self, asin: str) -> str:
        """Build a clean product URL carrying the affiliate tag."""
        tag = self.credentials.associate_tag or DEFAULT_ASSOCIATE_TAG
        return f"https://www.amazon.com/dp/{asin}?tag={tag}"

    def build_payload(self, asin: str) -> str:
        """Build the GetItems request body for a single ASIN."""
        return json.dumps({
            "ItemIds": [asin],
            "PartnerTag": self.credentials.associate_tag,
            "PartnerType": "Associates",
            "Resources": GET_ITEMS_RESOURCES,
        })

    def sign_request(
        self,
        method: str,
        path: str,
        payload: str,
        timestamp: datetime,
    ) -> Dict[str, str]:
        """
        Sign a PA-API request with AWS Signature Version 4.

        Args:
            method: HTTP method
            path: Request path (no query string)
            payload: Exact request body that will be sent
            timestamp: UTC time of the request, truncated to the second

        Returns:
            Request headers including the Authorization header
        """
        if not self.credentials.access_key or not self.credentials.secret_key:
            raise ValueError("Amazon credentials not configured")

        date_stamp = timestamp.strftime("%Y%m%d")
        amz_date = timestamp.strftime("%Y%m%dT%H%M%SZ")

        canonical_headers = "\n".join([
            "content-encoding:amz-1.0",
            "content-type:application/json; charset=utf-8",
            f"host:{AMAZON_HOST}",
            f"x-amz-date:{amz_date}",
            f"x-amz-target:{AMAZON_TARGET}",
        ])

        canonical_request = "\n".join([
            method,
            path,
            "",  # empty query string
            canonical_headers,
            "",
            SIGNED_HEADERS,
            _sha256_hex(payload),
        ])

        credential_scope = f"{date_stamp}/{AMAZON_REGION}/{AMAZON_SERVICE}/aws4_request"
        string_to_sign = "\n".join([
            SIGNING_ALGORITHM,
            amz_date,
            credential_scope,
            _sha256_hex(canonical_request),
        ])

        signing_key = derive_signing_key(
            self.credentials.secret_key, date_stamp, AMAZON_REGION, AMAZON_SERVICE
        )
        signature = hmac.new(
            signing_key, string_to_sign.encode("utf-8"), hashlib.sha256
        ).hexdigest()

        authorization = (
            f"{SIGNING_ALGORITHM} Credential={self.credentials.access_key}/{credential_scope}, "
            f"SignedHeaders={SIGNED_HEADERS}, Signature={signature}"
        )

        return {
            "content-encoding": "amz-1.0",
            "content-type": "application/json; charset=utf-8",
            "host": AMAZON_HOST,
            "x-amz-date": amz_date,
            "x-amz-target": AMAZON_TARGET,
            "authorization": authorization,
        }

    async def fetch_product_info(self, asin: str) -> Optional[VendorProductInfo]:
        """
        Fetch product info for an ASIN from PA-API.

        Returns None when credentials are missing, the API answers with a
        non-2xx status or no items, or anything fails along the way.
        """
        if not self.is_configured():
            self.logger.log_decision(
                decision="skip_amazon_api",
                reason="PA-API credentials not configured",
                asin=asin
            )
            return None

        self.logger.log_action("fetch_product_info", "started", asin=asin)

        payload = self.build_payload(asin)
        # Signature is only valid for this timestamp, recompute per call
        timestamp = datetime.now(timezone.utc).replace(microsecond=0)
        endpoint = f"https://{AMAZON_HOST}{GET_ITEMS_PATH}"

        try:
            headers = self.sign_request("POST", GET_ITEMS_PATH, payload, timestamp)

            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    endpoint,
                    headers=headers,
                    content=payload.encode("utf-8"),
                )

            self.logger.log_http_request(
                url=endpoint,
                method="POST",
                status_code=response.status_code,
                result="ok" if response.is_success else "error",
                asin=asin
            )

            if not response.is_success:
                self.logger.log_error(
                    f"Amazon PA-API error: {response.status_code} - {response.text}",
                    error_type="http_error",
                    asin=asin
                )
                return None

            info = self._parse_get_items(response.json(), asin)

        except (httpx.HTTPError, ValueError) as e:
            self.logger.log_error(
                f"Error fetching Amazon product info: {str(e)}",
                error_type=type(e).__name__,
                asin=asin
            )
            return None

        if info is None:
            self.logger.log_error(
                "No items returned from Amazon PA-API",
                error_type="empty_response",
                asin=asin
            )
            return None

        self.logger.log_action(
            "fetch_product_info",
            "completed",
            asin=asin,
            has_title=info.title is not None,
            has_image=info.image_url is not None,
            has_price=info.price is not None
        )
        return info

    def _parse_get_items(self, data: Any, asin: str) -> Optional[VendorProductInfo]:
        """Map the first GetItems result into VendorProductInfo."""
        items = self._dig(data, "ItemsResult", "Items")
        if not isinstance(items, list) or not items or not isinstance(items[0], dict):
            return None

        item = items[0]

        listings = self._dig(item, "Offers", "Listings")
        listing = listings[0] if isinstance(listings, list) and listings else None

        return VendorProductInfo(
            title=self._dig(item, "ItemInfo", "Title", "DisplayValue") or None,
            image_url=self._dig(item, "Images", "Primary", "Large", "URL") or None,
            price=self._dig(listing, "Price", "DisplayAmount") or None,
            canonical_url=self.build_canonical_url(asin),
        )

    @staticmethod
    def _dig(data: Any, *keys: str) -> Any:
        """Walk nested dicts, returning None at the first missing key."""
        for key in keys:
            if not isinstance(data, dict):
                return None
            data = data.get(key)
        return data
