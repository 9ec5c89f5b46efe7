# src/models/schedule.py

"""Schedule state models for the recurring scrape job."""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class ScheduleState:
    """Snapshot of the in-memory timer slot."""

    armed: bool = False
    expression: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {"enabled": self.armed, "expression": self.expression}


@dataclass(frozen=True)
class PersistedScheduleConfig:
    """Cron settings as stored in the config table."""

    enabled: bool = False
    expression: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {"enabled": self.enabled, "expression": self.expression}


class BootstrapState(Enum):
    """Progress of the one-time adopt-persisted-config step."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    DONE = "done"
