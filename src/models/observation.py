# src/models/observation.py

"""Price observation models shared by the scraper, store and read path."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Source(str, Enum):
    """The two upstream gold price feeds."""

    CCB = "ccb"
    CMB = "cmb"

    @classmethod
    def from_param(cls, value: str | None) -> "Source":
        """Map a request parameter to a source; unknown values mean CCB."""
        return cls.CMB if value == cls.CMB.value else cls.CCB


class Provenance(str, Enum):
    """Where a served price came from."""

    LIVE = "live"
    CACHE = "cache"


PER_GRAM_UNIT = "元/克"


@dataclass(frozen=True)
class PriceReading:
    """A normalized per-gram price pulled from one page."""

    price: float
    unit: str
    full_text: str


@dataclass(frozen=True)
class Observation:
    """One persisted price reading for a source."""

    id: int
    source: Source
    price: float
    unit: str
    captured_at: datetime

    @property
    def formatted_price(self) -> str:
        return f"{self.price:.2f}"

    def to_dict(self) -> dict[str, object]:
        """Serialise for JSON responses and CLI output."""
        return {
            "id": self.id,
            "price": self.price,
            "unit": self.unit,
            "timestamp": self.captured_at.isoformat(),
            "source": self.source.value,
        }


@dataclass(frozen=True)
class PriceView:
    """An observation as served to a client, tagged with provenance."""

    observation: Observation
    provenance: Provenance
    full_text: str = ""

    @property
    def label(self) -> str:
        return self.full_text or (
            f"{self.observation.formatted_price}"
            f"{self.observation.unit}"
        )


@dataclass(frozen=True)
class CapturedSignal:
    """Raw material captured from a rendered page."""

    raw_text: str
    raw_html: str
    structured_value: float | None = None
