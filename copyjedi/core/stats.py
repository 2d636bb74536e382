"""
Local paste statistics: one JSON record per user, reset when the day changes.
"""

import json
import random
import string
from dataclasses import asdict, dataclass
from datetime import date
from pathlib import Path
from typing import Callable, Optional

from .exceptions import StatsStoreError
from ..util.logging import logger

_ID_ALPHABET = string.digits + string.ascii_lowercase


def today_string(today: date = None) -> str:
    """Day stamp in the form "Sat Oct 17 2026"."""
    return (today or date.today()).strftime("%a %b %d %Y")


def generate_user_id() -> str:
    return "user_" + "".join(random.choice(_ID_ALPHABET) for _ in range(9))


@dataclass
class PasteStats:
    totalPastes: int = 0
    totalLinesPasted: int = 0
    date: str = ""
    userId: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


class StatsStore:
    """File-backed PasteStats record."""

    def __init__(self, path: str, auto_reset_daily: bool = True,
                 clock: Callable[[], date] = date.today):
        self.path = Path(path).expanduser()
        self.auto_reset_daily = auto_reset_daily
        self._clock = clock
        self.stats = PasteStats(date=self._today())

    def _today(self) -> str:
        return today_string(self._clock())

    def _fresh(self, user_id: Optional[str] = None) -> PasteStats:
        return PasteStats(0, 0, self._today(), user_id or generate_user_id())

    def load(self) -> PasteStats:
        """Load the record, creating or repairing it as needed."""
        logger.debug(f"Loading stats from: {self.path}")

        if not self.path.exists():
            logger.info("Stats file does not exist, creating new one")
            self.stats = self._fresh()
            self.save()
            return self.stats

        try:
            raw = self.path.read_text(encoding="utf-8")
            if not raw.strip():
                raise ValueError("Empty stats file")
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("Stats file does not hold an object")
            saved = PasteStats(
                totalPastes=int(data.get("totalPastes", 0)),
                totalLinesPasted=int(data.get("totalLinesPasted", 0)),
                date=str(data.get("date", "")),
                userId=data.get("userId"),
            )
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Error reading stats file: {e}")
            self.stats = self._fresh()
            self.save()
            return self.stats

        if self.auto_reset_daily and saved.date != self._today():
            self.stats = self._fresh(saved.userId)
            self.save()
        else:
            if not saved.userId:
                saved.userId = generate_user_id()
            self.stats = saved
        return self.stats

    def save(self):
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self.stats.to_dict()), encoding="utf-8")
        except OSError as e:
            raise StatsStoreError(f"Error saving statistics to {self.path}", e)
        logger.log_stats_saved(str(self.path), self.stats.to_dict())

    def roll_over_if_new_day(self) -> bool:
        if self.auto_reset_daily and self.stats.date != self._today():
            self.stats = self._fresh(self.stats.userId)
            return True
        return False

    def record_paste(self, line_count: int) -> PasteStats:
        """Count one paste of line_count lines and persist."""
        self.roll_over_if_new_day()
        self.stats.totalPastes += 1
        self.stats.totalLinesPasted += line_count
        self.save()
        return self.stats

    def reset(self) -> PasteStats:
        """Zero the counters, keeping the user id."""
        self.stats = self._fresh(self.stats.userId)
        self.save()
        logger.info("Statistics reset")
        return self.stats
