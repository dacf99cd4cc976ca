"""
Ramadan begin/end time lookup
"""
import json
import re
from datetime import date
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Dict, Mapping, Optional

from errors import NotFound, ValidationError
from logging_config import get_logger

logger = get_logger("gateway.schedule")

PATH_DATE = re.compile(r"[0-9]{2}_[0-9]{2}_[0-9]{4}")
BODY_DATE = re.compile(r"[0-9]{2}/[0-9]{2}/[0-9]{4}")
TODAY = "today"


def canonical_date(day: date) -> str:
    """``DD/MM/YYYY``"""
    return day.strftime("%d/%m/%Y")


def load_schedule(path: Path) -> Dict[str, Dict[str, str]]:
    """Read the ``{"DD/MM/YYYY": {"begin": ..., "end": ...}}`` table"""
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)

    table = {}
    for key, times in raw.items():
        if not BODY_DATE.fullmatch(key):
            raise ValueError(f"Bad schedule date key {key!r} in {path}")
        table[key] = {"begin": str(times["begin"]), "end": str(times["end"])}

    logger.info("Schedule loaded", path=str(path), entries=len(table))
    return table


class ScheduleLookup:
    def __init__(self, entries: Mapping[str, Mapping[str, str]], today: Callable[[], date] = date.today):
        self._entries = MappingProxyType({k: MappingProxyType(dict(v)) for k, v in entries.items()})
        self._today = today

    @classmethod
    def from_file(cls, path: Path, today: Callable[[], date] = date.today) -> "ScheduleLookup":
        return cls(load_schedule(path), today=today)

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, canonical: str) -> Optional[Dict[str, str]]:
        times = self._entries.get(canonical)
        return dict(times) if times is not None else None

    def today(self) -> Dict[str, str]:
        times = self.lookup(canonical_date(self._today()))
        if times is None:
            raise NotFound("No data available for today")
        return times

    def by_path(self, value: str) -> Dict[str, str]:
        """``DD_MM_YYYY`` or ``today``"""
        if value == TODAY:
            return self.today()
        if not PATH_DATE.fullmatch(value):
            raise ValidationError("Invalid date format. Please use DD_MM_YYYY")
        return self._require(value.replace("_", "/"))

    def by_body(self, value: Optional[str]) -> Dict[str, str]:
        """``DD/MM/YYYY`` as posted in a JSON body"""
        if not value:
            raise ValidationError("Date is required")
        if not isinstance(value, str) or not BODY_DATE.fullmatch(value):
            raise ValidationError("Invalid date format. Please use DD/MM/YYYY")
        return self._require(value)

    def _require(self, canonical: str) -> Dict[str, str]:
        times = self.lookup(canonical)
        if times is None:
            raise NotFound("No data available for the specified date")
        return times
