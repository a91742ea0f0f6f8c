"""Extraction engine: selector cascades over a fetched product page.

Each field is an ordered list of selector functions ``(soup) -> Optional[str]``.
The list is evaluated top to bottom and the first non-empty value wins, so
the most specific, most reliable selector goes first and the generic
fallbacks go last. Adding support for a layout change means adding an
entry, not a branch.
"""

import re
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

import structlog
from bs4 import BeautifulSoup

from pricewatch.core.exceptions import ExtractionError
from pricewatch.scrapers.base import RawContent, ScrapedProduct
from pricewatch.scrapers.utils.normalizer import ZERO, PriceNormalizer

logger = structlog.get_logger(__name__)

Selector = Callable[[BeautifulSoup], Optional[str]]


def _clean_text(text: Optional[str]) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def css_text(selector: str) -> Selector:
    """Text of the first element matching ``selector``."""

    def select(soup: BeautifulSoup) -> Optional[str]:
        element = soup.select_one(selector)
        if element is None:
            return None
        return _clean_text(element.get_text(" ")) or None

    select.__name__ = f"css_text({selector})"
    return select


def css_attr(selector: str, attribute: str) -> Selector:
    """Attribute of the first element matching ``selector``."""

    def select(soup: BeautifulSoup) -> Optional[str]:
        element = soup.select_one(selector)
        if element is None:
            return None
        value = element.get(attribute)
        if isinstance(value, list):
            value = " ".join(value)
        return _clean_text(value) or None

    select.__name__ = f"css_attr({selector}, {attribute})"
    return select


def meta_content(name: str) -> Selector:
    """``content`` of a <meta property=...> or <meta name=...> tag."""
    return css_attr(f'meta[property="{name}"], meta[name="{name}"]', "content")


def first_match(cascade: List[Selector], soup: BeautifulSoup) -> Tuple[Optional[str], Optional[str]]:
    """Run a cascade and return (value, selector name) of the first hit."""
    for selector in cascade:
        value = selector(soup)
        if value:
            return value, selector.__name__
    return None, None


TITLE_SELECTORS: List[Selector] = [
    css_text("#productTitle"),
    css_text("h1.product-title"),
    css_text('[data-feature-name="title"]'),
    css_text("h1.a-size-large"),
    meta_content("og:title"),
    css_text("h1"),
]

PRICE_SELECTORS: List[Selector] = [
    css_text("#corePrice_feature_div .a-price .a-offscreen"),
    css_text(".a-section.a-spacing-none.aok-align-center .a-price .a-offscreen"),
    css_text(".a-price .a-offscreen"),
    css_text("#priceblock_dealprice"),
    css_text("#priceblock_ourprice"),
    css_text("span#price_inside_buybox"),
    css_text("span.priceToPay"),
    css_text("span.a-price-whole"),
    meta_content("product:price:amount"),
    css_attr('[itemprop="price"]', "content"),
    css_text('[itemprop="price"]'),
]

IMAGE_SELECTORS: List[Selector] = [
    css_attr("#landingImage", "src"),
    css_attr("#landingImage", "data-old-hires"),
    css_attr("#imgBlkFront", "src"),
    css_attr("#main-image", "src"),
    css_attr("img.a-dynamic-image", "src"),
    css_attr("img[data-old-hires]", "data-old-hires"),
    css_attr("#landingImage", "data-src"),
    meta_content("og:image"),
]

AVAILABILITY_SELECTORS: List[Selector] = [
    css_text("#availability span"),
    css_text("#availability"),
    css_text("#outOfStock"),
]

UNAVAILABLE_MARKERS = ("unavailable", "out of stock")

# Bot-challenge pages. Full phrases only, "robot" alone appears in meta tags.
CAPTCHA_MARKERS = (
    "enter the characters you see below",
    "type the characters you see",
    "sorry, we just need to make sure you're not a robot",
    "to discuss automated access to amazon data",
)


def extract_product(content: RawContent) -> ScrapedProduct:
    """Extract a ScrapedProduct from fetched page content.

    Args:
        content: RawContent from either fetch strategy

    Returns:
        ScrapedProduct with a non-empty title and a positive price

    Raises:
        ExtractionError: On a bot-challenge page, or if no title or no
            positive price can be found
    """
    log = logger.bind(target_id=content.target.target_id)

    html_lower = content.html.lower()
    marker = next((m for m in CAPTCHA_MARKERS if m in html_lower), None)
    if marker:
        log.warning("captcha_detected", marker=marker)
        raise ExtractionError("captcha challenge detected")

    soup = BeautifulSoup(content.html, "html.parser")

    title, title_selector = first_match(TITLE_SELECTORS, soup)
    if not title:
        log.warning("title_not_found", final_url=content.final_url)
        raise ExtractionError("title not found")

    price, price_text = _extract_price(soup)
    if price <= ZERO:
        log.warning("price_not_found", title=title[:50])
        raise ExtractionError("price not found")

    currency = PriceNormalizer.detect_currency(price_text, content.target.url)
    image_url, _ = first_match(IMAGE_SELECTORS, soup)
    availability = _extract_availability(soup, content.rendered)

    log.debug(
        "product_extracted",
        title_selector=title_selector,
        price=str(price),
        currency=currency,
        has_image=bool(image_url),
        availability=availability,
    )

    return ScrapedProduct(
        title=title,
        price=price,
        currency=currency,
        image_url=image_url,
        availability=availability,
    )


def _extract_price(soup: BeautifulSoup) -> Tuple[Decimal, str]:
    """Walk the price cascade until a candidate normalizes above zero.

    Zero is the "not yet found" sentinel and never leaves this module.
    """
    for selector in PRICE_SELECTORS:
        text = selector(soup)
        if not text:
            continue
        price = PriceNormalizer.normalize_price(text)
        if price > ZERO:
            return price, text
    return ZERO, ""


def _extract_availability(soup: BeautifulSoup, rendered: bool) -> bool:
    """Availability defaults to True when it cannot be resolved.

    Static markup is not trusted for this field, stock widgets are
    usually filled in by scripts.
    """
    if not rendered:
        return True
    text, _ = first_match(AVAILABILITY_SELECTORS, soup)
    if not text:
        return True
    text = text.lower()
    return not any(marker in text for marker in UNAVAILABLE_MARKERS)
