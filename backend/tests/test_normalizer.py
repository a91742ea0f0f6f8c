"""Tests for price parsing, currency inference and URL clean-up."""

from decimal import Decimal

import pytest

from pricewatch.scrapers.utils.normalizer import PriceNormalizer, normalize_url


class TestNormalizePrice:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("$1,234.56", Decimal("1234.56")),
            ("₹1,299", Decimal("1299")),
            ("£19.99", Decimal("19.99")),
            ("  49.00  ", Decimal("49.00")),
            ("1,299.", Decimal("1299")),
            ("EUR 15.5", Decimal("15.5")),
        ],
    )
    def test_parses_formatted_prices(self, raw, expected):
        assert PriceNormalizer.normalize_price(raw) == expected

    @pytest.mark.parametrize("raw", ["", "Currently unavailable", "$", "--"])
    def test_non_numeric_is_zero(self, raw):
        assert PriceNormalizer.normalize_price(raw) == Decimal("0")

    def test_none_is_zero(self):
        assert PriceNormalizer.normalize_price(None) == Decimal("0")

    def test_multiple_dots_keep_leading_number(self):
        # "1.299.00" is not a number; the leading numeric run is taken
        assert PriceNormalizer.normalize_price("1.299.00") == Decimal("1.299")

    def test_result_is_never_negative(self):
        assert PriceNormalizer.normalize_price("-5.00") == Decimal("5.00")


class TestDetectCurrency:

    def test_glyph_wins_over_domain(self):
        assert PriceNormalizer.detect_currency("$19.99", "https://www.amazon.co.uk/dp/X") == "USD"

    @pytest.mark.parametrize(
        "raw, code",
        [("₹1,299", "INR"), ("£10", "GBP"), ("€10", "EUR"), ("¥1000", "JPY"), ("$5", "USD")],
    )
    def test_glyphs(self, raw, code):
        assert PriceNormalizer.detect_currency(raw, "https://www.amazon.com/dp/X") == code

    @pytest.mark.parametrize(
        "url, code",
        [
            ("https://www.amazon.co.uk/dp/X", "GBP"),
            ("https://www.amazon.in/dp/X", "INR"),
            ("https://www.amazon.de/dp/X", "EUR"),
            ("https://www.amazon.co.jp/dp/X", "JPY"),
            ("https://www.amazon.com.au/dp/X", "AUD"),
            ("https://www.amazon.ca/dp/X", "CAD"),
            ("amazon.in/dp/X", "INR"),
        ],
    )
    def test_domain_fallback(self, url, code):
        assert PriceNormalizer.detect_currency("1,299", url) == code

    def test_defaults_to_usd(self):
        assert PriceNormalizer.detect_currency("19.99", "https://shop.example.com/item") == "USD"
        assert PriceNormalizer.detect_currency("", "") == "USD"

    def test_path_does_not_leak_into_domain_check(self):
        assert PriceNormalizer.detect_currency("10", "https://example.com/products.in") == "USD"


class TestNormalizeUrl:

    def test_strips_tracking_params(self):
        url = "https://www.amazon.com/dp/B0001?utm_source=mail&ref=abc&th=1"
        assert normalize_url(url) == "https://www.amazon.com/dp/B0001?th=1"

    def test_drops_fragment(self):
        assert normalize_url("https://www.amazon.com/dp/B0001#reviews") == "https://www.amazon.com/dp/B0001"

    def test_empty(self):
        assert normalize_url("") == ""
