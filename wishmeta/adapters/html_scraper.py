"""
HTML Scraper Adapter for the wishlist metadata service.
Used for every non-Amazon link, and as the fallback when the Amazon
PA-API lookup is unavailable.

Extraction is driven by ordered pattern tables: for each field the
patterns are tried top to bottom against the raw HTML and the first
non-empty capture wins. Order encodes authority: structured data, then
social meta tags, then Amazon page markup, then generic fallbacks.
"""
import asyncio
import json
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, List, Optional, Pattern
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from wishmeta.config import config
from wishmeta.models.metadata import UrlMetadata, SourceType
from wishmeta.utils.logger import LayerLogger


def _meta(attr: str, value: str) -> List[Pattern]:
    """Both attribute orderings of <meta {attr}="{value}" content="...">."""
    return [
        re.compile(
            rf"""<meta[^>]*{attr}=["']{value}["'][^>]*content=["']([^"']+)["']""",
            re.IGNORECASE,
        ),
        re.compile(
            rf"""<meta[^>]*content=["']([^"']+)["'][^>]*{attr}=["']{value}["']""",
            re.IGNORECASE,
        ),
    ]


def _pattern(expr: str) -> Pattern:
    return re.compile(expr, re.IGNORECASE)


TITLE_PATTERNS: List[Pattern] = [
    # Open Graph
    *_meta("property", "og:title"),
    # Twitter
    _pattern(r"""<meta[^>]*name=["']twitter:title["'][^>]*content=["']([^"']+)["']"""),
    # Amazon product title
    _pattern(r"""<span[^>]*id=["']productTitle["'][^>]*>([^<]+)<"""),
    # Generic <title>
    _pattern(r"""<title[^>]*>([^<]+)</title>"""),
]

IMAGE_PATTERNS: List[Pattern] = [
    *_meta("property", "og:image"),
    _pattern(r"""<meta[^>]*name=["']twitter:image["'][^>]*content=["']([^"']+)["']"""),
    # Amazon main image
    _pattern(r"""<img[^>]*id=["']landingImage["'][^>]*src=["']([^"']+)["']"""),
    _pattern(r"""<img[^>]*data-old-hires=["']([^"']+)["']"""),
    # Schema.org microdata
    _pattern(r"""<meta[^>]*itemprop=["']image["'][^>]*content=["']([^"']+)["']"""),
]

PRICE_PATTERNS: List[Pattern] = [
    # Schema.org microdata
    _pattern(r"""<meta[^>]*itemprop=["']price["'][^>]*content=["']([^"']+)["']"""),
    # Open Graph / product meta
    _pattern(r"""<meta[^>]*property=["']og:price:amount["'][^>]*content=["']([^"']+)["']"""),
    _pattern(r"""<meta[^>]*property=["']product:price:amount["'][^>]*content=["']([^"']+)["']"""),
    # Amazon apex price
    _pattern(r"""<span[^>]*class=["'][^"']*a-price-whole[^"']*["'][^>]*>([^<]+)"""),
    # Amazon legacy price blocks
    _pattern(r"""<span[^>]*id=["']priceblock_ourprice["'][^>]*>([^<]+)"""),
    _pattern(r"""<span[^>]*id=["']priceblock_dealprice["'][^>]*>([^<]+)"""),
    _pattern(r"""<span[^>]*id=["']priceblock_saleprice["'][^>]*>([^<]+)"""),
    # Any element with a price-ish class and $-prefixed text
    _pattern(r"""<[^>]*class=["'][^"']*price[^"']*["'][^>]*>\s*(\$[\d,]+\.?\d*)"""),
    _pattern(r"""data-price=["'](\$?[\d,]+\.?\d*)["']"""),
]

SITE_NAME_PATTERNS: List[Pattern] = [
    *_meta("property", "og:site_name"),
    # Twitter handle without the leading @
    _pattern(r"""<meta[^>]*name=["']twitter:site["'][^>]*content=["']@?([^"']+)["']"""),
    _pattern(r"""<meta[^>]*name=["']application-name["'][^>]*content=["']([^"']+)["']"""),
]

BARE_PRICE_RE = re.compile(r"^[\d,]+\.?\d*$")
VALID_PRICE_RE = re.compile(r"\$[\d,]+\.?\d*")
LEADING_NUMBER_RE = re.compile(r"\d+(?:\.\d*)?|\.\d+")
CENTS = Decimal("0.01")
JSON_LD_TYPE_RE = re.compile(r"application/ld\+json", re.IGNORECASE)

# Replaced one after another in a single pass; order matters
NAMED_ENTITIES = [
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&#x27;", "'"),
    ("&#x2F;", "/"),
    ("&nbsp;", " "),
]
DECIMAL_ENTITY_RE = re.compile(r"&#(\d+);")
HEX_ENTITY_RE = re.compile(r"&#x([a-fA-F0-9]+);")

UNKNOWN_SITE_NAME = "Unknown"


def _first_match(html: str, patterns: List[Pattern]) -> Optional[str]:
    """Return the first non-empty stripped capture from an ordered table."""
    for pattern in patterns:
        match = pattern.search(html)
        if match and match.group(1):
            value = match.group(1).strip()
            if value:
                return value
    return None


def _is_high_surrogate(code: int) -> bool:
    return 0xD800 <= code <= 0xDBFF


def _is_low_surrogate(code: int) -> bool:
    return 0xDC00 <= code <= 0xDFFF


def _char_ref(code: int, original: str) -> str:
    # Lone surrogates cannot be encoded, leave the reference as written
    if code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
        return original
    return chr(code)


def _decode_char_refs(text: str, pattern: Pattern, base: int) -> str:
    """
    Replace numeric character references matched by pattern.

    Adjacent UTF-16 surrogate references (e.g. "&#55357;&#56832;") are
    joined into the single character they encode.
    """
    parts = []
    pos = 0
    matches = list(pattern.finditer(text))
    i = 0
    while i < len(matches):
        match = matches[i]
        code = int(match.group(1), base)
        parts.append(text[pos:match.start()])
        pos = match.end()
        i += 1

        if _is_high_surrogate(code) and i < len(matches) and matches[i].start() == match.end():
            low = int(matches[i].group(1), base)
            if _is_low_surrogate(low):
                parts.append(chr(0x10000 + ((code - 0xD800) << 10) + (low - 0xDC00)))
                pos = matches[i].end()
                i += 1
                continue

        parts.append(_char_ref(code, match.group(0)))

    parts.append(text[pos:])
    return "".join(parts)


def decode_html_entities(text: str) -> str:
    """
    Decode the common named entities plus decimal and hex references.

    This is a single pass: "&amp;" is decoded first, so entities it
    exposes are decoded by the later steps, but nothing is revisited.
    """
    for entity, char in NAMED_ENTITIES:
        text = text.replace(entity, char)
    text = _decode_char_refs(text, DECIMAL_ENTITY_RE, 10)
    text = _decode_char_refs(text, HEX_ENTITY_RE, 16)
    return text


def extract_title(html: str) -> Optional[str]:
    """Extract the product/page title."""
    title = _first_match(html, TITLE_PATTERNS)
    if title is None:
        return None
    return decode_html_entities(title)


def _absolute_image_url(image_url: str, base_url: str) -> str:
    """Resolve protocol-relative and root-relative image URLs."""
    if image_url.startswith("//"):
        return "https:" + image_url
    if image_url.startswith("/"):
        parsed = urlparse(base_url)
        if parsed.scheme and parsed.netloc:
            host = parsed.netloc.rsplit("@", 1)[-1]
            return f"{parsed.scheme}://{host}{image_url}"
    return image_url


def extract_image(html: str, base_url: str) -> Optional[str]:
    """Extract the representative image URL, made absolute against base_url."""
    image_url = _first_match(html, IMAGE_PATTERNS)
    if image_url is None:
        return None
    return _absolute_image_url(image_url, base_url)


def _scalar_to_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (str, int, float)):
        return str(value)
    return None


def find_price_in_object(obj: Any) -> Optional[str]:
    """
    Recursively search a JSON-LD node for a price.

    Looks at `price` (plain value, or an object with `price`/`value`),
    then nested `offers`, then `lowPrice` of an AggregateOffer. Arrays
    are searched in order.
    """
    if isinstance(obj, list):
        for item in obj:
            price = find_price_in_object(item)
            if price:
                return price
        return None

    if not isinstance(obj, dict):
        return None

    raw_price = obj.get("price")
    if raw_price is not None:
        if isinstance(raw_price, dict):
            for key in ("price", "value"):
                if raw_price.get(key):
                    nested = _scalar_to_str(raw_price[key])
                    if nested is not None:
                        return nested
        else:
            price = _scalar_to_str(raw_price)
            if price is not None:
                return price

    if obj.get("offers"):
        price = find_price_in_object(obj["offers"])
        if price:
            return price

    low_price = obj.get("lowPrice")
    if low_price is not None:
        return _scalar_to_str(low_price)

    return None


def _format_dollars(raw: str) -> Optional[str]:
    """Format a raw price as $X.XX using its leading numeric part."""
    cleaned = re.sub(r"[^0-9.]", "", raw)
    match = LEADING_NUMBER_RE.match(cleaned)
    if not match:
        return None

    amount = float(match.group())
    try:
        # Exact ties round up: 19.125 -> 19.13
        rounded = Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # Too large for the decimal context (or inf)
        return f"${amount:.2f}"
    return f"${rounded}"


def _iter_json_ld(html: str):
    """Yield the text of every JSON-LD script block in document order."""
    soup = BeautifulSoup(html, "lxml")
    for script in soup.find_all("script", attrs={"type": JSON_LD_TYPE_RE}):
        text = script.get_text().strip()
        if text:
            yield text


def extract_price_from_json_ld(html: str) -> Optional[str]:
    """Find the first JSON-LD price and format it as $X.XX."""
    for block in _iter_json_ld(html):
        try:
            data = json.loads(block)
        except ValueError:
            # Malformed JSON-LD, try the next block
            continue

        price = find_price_in_object(data)
        if price:
            formatted = _format_dollars(price)
            if formatted:
                return formatted

    return None


def extract_price(html: str) -> Optional[str]:
    """Extract a display price. JSON-LD wins over any markup pattern."""
    json_ld_price = extract_price_from_json_ld(html)
    if json_ld_price:
        return json_ld_price

    for pattern in PRICE_PATTERNS:
        match = pattern.search(html)
        if not match or not match.group(1):
            continue

        price = re.sub(r"\s+", "", match.group(1))
        if BARE_PRICE_RE.match(price):
            price = f"${price}"
        if VALID_PRICE_RE.search(price):
            return price

    return None


def extract_site_name(html: str, url: str) -> str:
    """Extract the site name, falling back to the URL's hostname. Never None."""
    site_name = _first_match(html, SITE_NAME_PATTERNS)
    if site_name is not None:
        return decode_html_entities(site_name)

    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return UNKNOWN_SITE_NAME

    if not hostname:
        return UNKNOWN_SITE_NAME

    if hostname.startswith("www."):
        hostname = hostname[4:]

    return hostname


class HTMLScraper:
    """
    HTML scraping adapter for link metadata.
    Fetches a page like a browser would and runs the extractors over it.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout or config.FETCH_TIMEOUT
        self.transport = transport
        self.logger = LayerLogger("html_scraper")

    async def fetch_html(self, url: str) -> Optional[str]:
        """
        Fetch the HTML for a URL.

        Returns None on timeout, non-2xx status or any transport error.
        The timeout bounds the whole exchange, body included, not just
        each individual read.
        """
        self.logger.log_action("fetch_html", "started", url=url)

        try:
            response = await asyncio.wait_for(self._get(url), self.timeout)
            html = response.text

        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            self.logger.log_error(
                f"Timed out fetching URL after {self.timeout}s: {str(e)}",
                error_type="timeout",
                url=url
            )
            return None
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self.logger.log_error(
                f"Failed to fetch URL: {str(e)}",
                error_type="http_error",
                url=url
            )
            return None

        self.logger.log_http_request(
            url=url,
            method="GET",
            status_code=response.status_code,
            result="ok" if response.is_success else "error"
        )

        if not response.is_success:
            self.logger.log_error(
                f"Failed to fetch URL: {response.status_code} {response.reason_phrase}",
                error_type="http_status",
                url=url
            )
            return None

        self.logger.log_action(
            "fetch_html",
            "completed",
            url=url,
            status_code=response.status_code,
            content_length=len(html)
        )
        return html

    async def _get(self, url: str) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self.transport,
        ) as client:
            return await client.get(url, headers=self._get_headers())

    def _get_headers(self) -> dict:
        """Get request headers mimicking a browser."""
        return {
            "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "Cache-Control": "no-cache",
        }

    def parse_html(self, url: str, html: str) -> UrlMetadata:
        """Run all extractors over a fetched page."""
        metadata = UrlMetadata(
            url=url,
            title=extract_title(html),
            site_name=extract_site_name(html, url),
            image_url=extract_image(html, url),
            price=extract_price(html),
        )

        self.logger.log_extraction(
            source=SourceType.HTML_SCRAPER.value,
            fields_present=metadata.get_present_fields(),
            fields_missing=metadata.get_missing_fields(),
            url=url
        )

        return metadata

    async def fetch_and_parse(self, url: str, reason: str = "generic_url") -> UrlMetadata:
        """
        Fetch a page and extract its metadata.

        Args:
            url: The URL to fetch
            reason: Why scraping is being used (for logging)

        Returns:
            UrlMetadata; all content fields are None if the fetch failed
        """
        self.logger.log_action("scrape", "started", url=url, reason=reason)

        html = await self.fetch_html(url)
        if html is None:
            return UrlMetadata.empty(url)

        return self.parse_html(url, html)
