"""Price parsing, currency inference and URL clean-up."""

import re
from decimal import Decimal, InvalidOperation
from typing import List, Tuple
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

import structlog

logger = structlog.get_logger(__name__)


ZERO = Decimal("0")

# Checked in order; the first glyph present in the price text wins.
CURRENCY_SYMBOLS: List[Tuple[str, str]] = [
    ("₹", "INR"),
    ("$", "USD"),
    ("£", "GBP"),
    ("€", "EUR"),
    ("¥", "JPY"),
]

# Host suffix -> currency, most specific suffix first.
DOMAIN_CURRENCIES: List[Tuple[str, str]] = [
    (".co.uk", "GBP"),
    (".uk", "GBP"),
    (".com.au", "AUD"),
    (".co.jp", "JPY"),
    (".jp", "JPY"),
    (".in", "INR"),
    (".ca", "CAD"),
    (".de", "EUR"),
    (".fr", "EUR"),
    (".it", "EUR"),
    (".es", "EUR"),
    (".nl", "EUR"),
]

DEFAULT_CURRENCY = "USD"

_LEADING_NUMBER = re.compile(r"\d+(?:\.\d*)?|\.\d+")


class PriceNormalizer:
    """Turns raw price text into a number and a currency code.

    Display formatting (symbol placement, rounding per locale) is left to
    whoever renders the price.
    """

    @staticmethod
    def normalize_price(raw: str) -> Decimal:
        """Parse a price string into a non-negative Decimal.

        Everything except digits and the decimal point is discarded, so
        thousands separators, currency glyphs and whitespace vanish:
        - "$1,234.56" -> 1234.56
        - "₹1,299" -> 1299
        - "1,299." -> 1299

        Args:
            raw: Raw price text from the page

        Returns:
            Parsed price, or Decimal("0") when nothing numeric is found.
            Zero means "no price" and is never a valid scraped price.
        """
        if not raw:
            return ZERO

        cleaned = re.sub(r"[^\d.]", "", raw)
        match = _LEADING_NUMBER.match(cleaned)
        if not match:
            return ZERO

        try:
            return Decimal(match.group(0))
        except InvalidOperation:
            logger.debug("price_parse_failed", raw=raw)
            return ZERO

    @staticmethod
    def detect_currency(raw: str, url: str) -> str:
        """Infer an ISO-4217 code from the price text, then from the URL.

        A currency glyph in the price text is authoritative. Without one,
        the retailer's country domain decides (``amazon.co.uk`` -> GBP).

        Args:
            raw: Raw price text
            url: Target product URL

        Returns:
            Currency code, USD when neither signal is present
        """
        text = raw or ""
        for symbol, code in CURRENCY_SYMBOLS:
            if symbol in text:
                return code

        host = _hostname(url)
        for suffix, code in DOMAIN_CURRENCIES:
            if host.endswith(suffix):
                return code

        return DEFAULT_CURRENCY


def _hostname(url: str) -> str:
    if not url:
        return ""
    parsed = urlparse(url)
    if not parsed.netloc:
        # Scheme-less input such as "amazon.in/dp/X"
        parsed = urlparse("//" + url)
    return (parsed.hostname or "").lower()


TRACKING_PARAMS = frozenset({
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_content",
    "utm_term",
    "ref",
    "ref_",
    "tag",
    "psc",
    "fbclid",
    "gclid",
})


def normalize_url(url: str) -> str:
    """Drop tracking query parameters and the fragment from a product URL.

    Two links to the same product that differ only in affiliate or
    campaign parameters normalize to the same string.
    """
    if not url:
        return url

    parsed = urlparse(url)
    query_params = parse_qs(parsed.query, keep_blank_values=True)
    kept = {k: v for k, v in query_params.items() if k not in TRACKING_PARAMS}

    return urlunparse(
        (parsed.scheme, parsed.netloc, parsed.path, parsed.params, urlencode(kept, doseq=True), "")
    )
