# src/scrapers/price_extractor.py

"""Pull a per-gram gold price out of noisy rendered page text.

CCB quotes the price per gram.  CMB quotes it per 10 grams, so every CMB
value is divided by ten before it leaves this module.  When no anchored
pattern matches, the largest currency-marked figure on the page wins:
the surrounding page chrome (subsidy banners, counters, weights) only
ever carries smaller numbers than the live quote.
"""

import math
import re

from src.models.observation import PER_GRAM_UNIT, PriceReading, Source

_NUMBER = r"(\d+(?:,\d{3})*(?:\.\d+)?)"

_WHITESPACE_RE = re.compile(r"\s+")

_PER_GRAM_RE = re.compile(_NUMBER + r"\s*元/克")
_YUAN_RE = re.compile(_NUMBER + r"\s*元")
_SYMBOL_RE = re.compile(r"[¥￥]\s*" + _NUMBER)
_FIRST_NUMBER_RE = re.compile(_NUMBER)

# Anchored "per 10 grams" patterns, tried in order
_TEN_GRAM_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"10\s*克[^0-9¥￥]*[¥￥]?\s*" + _NUMBER),
    re.compile(r"[¥￥]\s*" + _NUMBER + r"\s*(?:元)?\s*/?\s*10\s*克"),
    re.compile(_NUMBER + r"\s*元\s*/?\s*10\s*克"),
)

TEN_GRAMS = 10


def parse_amount(text: str | None) -> float | None:
    """Parse ``'1,285.50'`` into a positive float, else ``None``."""
    if not text:
        return None
    try:
        value = float(text.replace(",", ""))
    except ValueError:
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def first_amount(text: str | None) -> float | None:
    """Return the first positive number found in *text*."""
    if not text:
        return None
    match = _FIRST_NUMBER_RE.search(text)
    return parse_amount(match.group(1)) if match else None


def format_amount(value: float) -> str:
    """Render an amount for display labels without trailing zeros."""
    return f"{value:.2f}".rstrip("0").rstrip(".")


def reading_from_quote(value: float, source: Source) -> PriceReading:
    """Build a per-gram reading from a price as quoted on *source*'s page."""
    if source is Source.CMB:
        return PriceReading(
            price=round(value / TEN_GRAMS, 2),
            unit=PER_GRAM_UNIT,
            full_text=f"{format_amount(value)}元/10克",
        )
    return PriceReading(
        price=round(value, 2),
        unit=PER_GRAM_UNIT,
        full_text=f"{format_amount(value)}{PER_GRAM_UNIT}",
    )


def _candidates(
    text: str, patterns: tuple[re.Pattern[str], ...],
) -> list[float]:
    values: list[float] = []
    for pattern in patterns:
        for match in pattern.finditer(text):
            value = parse_amount(match.group(1))
            if value is not None:
                values.append(value)
    return values


def _extract_cmb(text: str) -> PriceReading | None:
    for pattern in _TEN_GRAM_RES:
        match = pattern.search(text)
        if not match:
            continue
        value = parse_amount(match.group(1))
        if value is not None:
            return reading_from_quote(value, Source.CMB)

    values = _candidates(text, (_YUAN_RE,))
    if not values:
        return None
    return reading_from_quote(max(values), Source.CMB)


def _extract_ccb(text: str) -> PriceReading | None:
    match = _PER_GRAM_RE.search(text)
    if match:
        value = parse_amount(match.group(1))
        if value is not None:
            return PriceReading(
                price=round(value, 2),
                unit=PER_GRAM_UNIT,
                full_text=match.group(0),
            )

    values = _candidates(text, (_YUAN_RE, _SYMBOL_RE))
    if not values:
        return None
    return reading_from_quote(max(values), Source.CCB)


def extract(raw_text: str | None, source: Source) -> PriceReading | None:
    """Extract a per-gram price reading, or ``None`` when nothing matches.

    Never raises for malformed input.
    """
    if not raw_text or not isinstance(raw_text, str):
        return None
    text = _WHITESPACE_RE.sub(" ", raw_text)
    if source is Source.CMB:
        return _extract_cmb(text)
    return _extract_ccb(text)
