"""
Shared pytest fixtures for wishlist metadata tests.
"""

import json

import httpx
import pytest

from wishmeta.config import AmazonCredentials


# ============================================================================
# Credentials
# ============================================================================

@pytest.fixture
def amazon_credentials():
    """Complete PA-API credentials."""
    return AmazonCredentials(
        access_key="AKIDEXAMPLE",
        secret_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
        associate_tag="familygifts-20",
    )


@pytest.fixture
def missing_credentials():
    """No PA-API credentials at all."""
    return AmazonCredentials()


# ============================================================================
# Network stubbing
# ============================================================================

class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler):
        self.requests = []

        def recording_handler(request):
            self.requests.append(request)
            return handler(request)

        super().__init__(recording_handler)

    def requests_to(self, host):
        return [r for r in self.requests if r.url.host == host]


@pytest.fixture
def make_transport():
    """Returns a factory building a RecordingTransport from a handler."""
    return RecordingTransport


def html_response(html, status_code=200):
    return httpx.Response(
        status_code,
        content=html.encode("utf-8"),
        headers={"content-type": "text/html; charset=utf-8"},
    )


def paapi_response(title="Echo Dot (5th Gen)", image="https://m.media-amazon.com/images/I/echo.jpg", price="$49.99"):
    item = {"ASIN": "B09B8V1LZ3", "ItemInfo": {}, "Images": {}, "Offers": {}}
    if title is not None:
        item["ItemInfo"]["Title"] = {"DisplayValue": title}
    if image is not None:
        item["Images"]["Primary"] = {"Large": {"URL": image}}
    if price is not None:
        item["Offers"]["Listings"] = [{"Price": {"DisplayAmount": price, "Amount": 49.99}}]
    return httpx.Response(200, content=json.dumps({"ItemsResult": {"Items": [item]}}).encode("utf-8"))


# ============================================================================
# Sample pages
# ============================================================================

@pytest.fixture
def sample_product_html():
    """A typical store product page with JSON-LD and Open Graph tags."""
    return """
    <!DOCTYPE html>
    <html>
    <head>
        <title>Cozy Knit Blanket | Home Goods Co</title>
        <meta property="og:title" content="Cozy Knit Blanket &amp; Pillow Set">
        <meta property="og:image" content="/media/blanket.jpg">
        <meta property="og:site_name" content="Home Goods Co">
        <script type="application/ld+json">
        {
            "@context": "https://schema.org",
            "@type": "Product",
            "name": "Cozy Knit Blanket",
            "offers": {"@type": "Offer", "price": "59.5", "priceCurrency": "USD"}
        }
        </script>
    </head>
    <body>
        <span class="product-price">$64.00</span>
    </body>
    </html>
    """


@pytest.fixture
def amazon_page_html():
    """An Amazon product page without social meta tags."""
    return """
    <html>
    <head><title>Amazon.com: Kindle Paperwhite</title></head>
    <body>
        <span id="productTitle" class="a-size-large">
            Kindle Paperwhite (16 GB)
        </span>
        <img alt="Kindle" id="landingImage" src="https://m.media-amazon.com/images/I/kindle.jpg">
        <span class="a-price-whole">149.</span>
    </body>
    </html>
    """


@pytest.fixture
def bare_html():
    """A page with none of the recognized meta tags."""
    return "<html><head></head><body><p>Hello</p></body></html>"


@pytest.fixture
def make_html_response():
    """Returns html_response(html, status_code=200)."""
    return html_response


@pytest.fixture
def make_paapi_response():
    """Returns paapi_response(title=..., image=..., price=...)."""
    return paapi_response
