# tests/test_price_extractor.py

"""Tests for the free-text gold price extractor."""

import unittest

from src.models.observation import PER_GRAM_UNIT, Source
from src.scrapers.price_extractor import (
    extract,
    first_amount,
    format_amount,
    parse_amount,
    reading_from_quote,
)


class TestParseAmount(unittest.TestCase):
    """Numeric parsing helpers."""

    def test_strips_thousands_separators(self) -> None:
        self.assertEqual(parse_amount("1,285.50"), 1285.5)

    def test_rejects_zero(self) -> None:
        self.assertIsNone(parse_amount("0"))

    def test_rejects_non_numeric(self) -> None:
        self.assertIsNone(parse_amount("abc"))

    def test_rejects_non_finite(self) -> None:
        self.assertIsNone(parse_amount("inf"))

    def test_empty_input(self) -> None:
        self.assertIsNone(parse_amount(""))
        self.assertIsNone(parse_amount(None))

    def test_first_amount_finds_first_number(self) -> None:
        """Currency symbols and labels around the number are ignored."""
        self.assertEqual(first_amount("¥ 5,860.00 元"), 5860.0)

    def test_first_amount_none_without_digits(self) -> None:
        self.assertIsNone(first_amount("暂无报价"))


class TestFormatAmount(unittest.TestCase):
    """Display labels drop trailing zeros."""

    def test_integer_value(self) -> None:
        self.assertEqual(format_amount(128.0), "128")

    def test_fractional_value(self) -> None:
        self.assertEqual(format_amount(1285.5), "1285.5")


class TestExtractCcb(unittest.TestCase):
    """CCB quotes the price per gram."""

    def test_direct_per_gram_pattern(self) -> None:
        """An explicit 元/克 figure is taken as-is."""
        reading = extract("补贴 20元 今日金价 580.50元/克", Source.CCB)
        self.assertIsNotNone(reading)
        assert reading is not None
        self.assertEqual(reading.price, 580.5)
        self.assertEqual(reading.unit, PER_GRAM_UNIT)
        self.assertEqual(reading.full_text, "580.50元/克")

    def test_single_bare_currency_figure(self) -> None:
        reading = extract("当前价格 579元", Source.CCB)
        assert reading is not None
        self.assertEqual(reading.price, 579.0)

    def test_takes_maximum_of_bare_candidates(self) -> None:
        """Smaller incidental figures never beat the quoted price."""
        text = "已售 12元 立减 3元 ¥1,285.50 运费 8元"
        reading = extract(text, Source.CCB)
        assert reading is not None
        self.assertEqual(reading.price, 1285.5)
        self.assertEqual(reading.full_text, "1285.5元/克")

    def test_whitespace_between_number_and_unit(self) -> None:
        """Line breaks from innerText are collapsed before matching."""
        reading = extract("580.50 \n\t 元/克", Source.CCB)
        assert reading is not None
        self.assertEqual(reading.price, 580.5)

    def test_zero_per_gram_falls_through(self) -> None:
        """A non-positive anchored match is ignored, not returned."""
        self.assertIsNone(extract("0元/克", Source.CCB))

    def test_no_pattern_returns_none(self) -> None:
        self.assertIsNone(extract("page failed to load", Source.CCB))

    def test_malformed_input_never_raises(self) -> None:
        self.assertIsNone(extract("", Source.CCB))
        self.assertIsNone(extract(None, Source.CCB))
        self.assertIsNone(extract("元元/克¥¥,,,", Source.CCB))


class TestExtractCmb(unittest.TestCase):
    """CMB quotes per 10 grams and is normalised to per gram."""

    def test_yuan_per_ten_grams(self) -> None:
        reading = extract("价格 128元/10克", Source.CMB)
        assert reading is not None
        self.assertEqual(reading.price, 12.8)
        self.assertEqual(reading.unit, PER_GRAM_UNIT)
        self.assertEqual(reading.full_text, "128元/10克")

    def test_ten_gram_label_before_price(self) -> None:
        reading = extract("规格 10克 售价 ¥ 5,860.00", Source.CMB)
        assert reading is not None
        self.assertEqual(reading.price, 586.0)
        self.assertEqual(reading.full_text, "5860元/10克")

    def test_symbol_then_ten_grams(self) -> None:
        reading = extract("¥5860.00/10克", Source.CMB)
        assert reading is not None
        self.assertEqual(reading.price, 586.0)

    def test_falls_back_to_maximum_bare_figure(self) -> None:
        reading = extract("黄金 5860元 手续费 30元", Source.CMB)
        assert reading is not None
        self.assertEqual(reading.price, 586.0)
        self.assertEqual(reading.full_text, "5860元/10克")

    def test_no_pattern_returns_none(self) -> None:
        self.assertIsNone(extract("维护中", Source.CMB))


class TestReadingFromQuote(unittest.TestCase):
    """Structured DOM values go through the same normalisation."""

    def test_cmb_divides_by_ten(self) -> None:
        reading = reading_from_quote(5860.0, Source.CMB)
        self.assertEqual(reading.price, 586.0)
        self.assertEqual(reading.full_text, "5860元/10克")

    def test_ccb_kept_per_gram(self) -> None:
        reading = reading_from_quote(580.5, Source.CCB)
        self.assertEqual(reading.price, 580.5)
        self.assertEqual(reading.full_text, "580.5元/克")


if __name__ == "__main__":
    unittest.main()
