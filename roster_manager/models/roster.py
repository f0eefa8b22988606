import copy
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Literal, Optional

from roster_manager.utils.date_helper import holiday_flags

logger = logging.getLogger(__name__)

Ward = Literal["icu", "general"]
ShiftPeriod = Literal["morning", "afternoon", "night"]

ICU: Ward = "icu"
GENERAL: Ward = "general"
WARDS = (GENERAL, ICU)

MORNING: ShiftPeriod = "morning"
AFTERNOON: ShiftPeriod = "afternoon"
NIGHT: ShiftPeriod = "night"
SHIFTS = (MORNING, AFTERNOON, NIGHT)


def other_ward(ward: str) -> str:
    return ICU if ward == GENERAL else GENERAL


def _empty_pair():
    return {ICU: None, GENERAL: None}


def empty_shifts(is_holiday: bool):
    return {
        MORNING: _empty_pair() if is_holiday else None,
        AFTERNOON: _empty_pair(),
        NIGHT: _empty_pair(),
    }


class DayAssignment:
    def __init__(self, date, is_holiday=False, holiday_name="", shifts=None):
        self.date = date                    # YYYY-MM-DD
        self.is_holiday = is_holiday
        self.holiday_name = holiday_name    # custom holidays only
        self.shifts = shifts or empty_shifts(is_holiday)

    @property
    def has_morning(self) -> bool:
        return self.shifts.get(MORNING) is not None

    def get(self, shift: str, ward: str) -> Optional[str]:
        pair = self.shifts.get(shift)
        if pair is None:
            return None
        return pair.get(ward)

    def set(self, shift: str, ward: str, physician_id: Optional[str]) -> bool:
        """Write one slot. Returns False when the slot does not exist (Morning on a weekday)."""
        pair = self.shifts.get(shift)
        if pair is None:
            return False
        pair[ward] = physician_id or None
        return True

    def slots(self) -> Iterator[tuple]:
        """(shift, ward, physician_id) for every existing slot, filled or not."""
        for shift in SHIFTS:
            pair = self.shifts.get(shift)
            if pair is None:
                continue
            for ward in WARDS:
                yield shift, ward, pair.get(ward)

    def occupants(self) -> set:
        return {pid for _, _, pid in self.slots() if pid}

    def clear(self):
        self.shifts = empty_shifts(self.is_holiday)

    def set_holiday(self, is_holiday: bool, name: str = ""):
        self.is_holiday = is_holiday
        self.holiday_name = name if is_holiday else ""
        if is_holiday and not self.has_morning:
            self.shifts[MORNING] = _empty_pair()
        elif not is_holiday and self.has_morning:
            if any(self.shifts[MORNING].values()):
                logger.info("%s is no longer a holiday, dropping its morning slots", self.date)
            self.shifts[MORNING] = None

    def to_dict(self):
        return {
            "date": self.date,
            "is_holiday": self.is_holiday,
            "holiday_name": self.holiday_name,
            "shifts": copy.deepcopy(self.shifts),
        }

    @staticmethod
    def from_dict(data):
        # stored dates may carry a time component
        key = str(data["date"]).split("T")[0]
        is_holiday = bool(data.get("is_holiday", False))
        raw = data.get("shifts") or {}
        shifts = empty_shifts(is_holiday)
        for shift in SHIFTS:
            pair = raw.get(shift)
            if pair is None:
                continue
            if shifts[shift] is None:
                shifts[shift] = _empty_pair()
            for ward in WARDS:
                shifts[shift][ward] = pair.get(ward) or None
        return DayAssignment(key, is_holiday, data.get("holiday_name") or "", shifts)


@dataclass(frozen=True)
class Holiday:
    date: str
    name: str = ""


@dataclass
class MonthConfig:
    year: int
    month: int                       # 1..12
    custom_holidays: List[Holiday] = field(default_factory=list)

    def holiday_names(self) -> Dict[str, str]:
        return {h.date: h.name for h in self.custom_holidays}

    def to_dict(self):
        return {
            "year": self.year,
            "month": self.month,
            "custom_holidays": [{"date": h.date, "name": h.name} for h in self.custom_holidays],
        }

    @staticmethod
    def from_dict(data):
        holidays = [Holiday(str(h["date"]).split("T")[0], h.get("name") or "")
                    for h in data.get("custom_holidays") or []]
        holidays.sort(key=lambda h: h.date)
        return MonthConfig(int(data["year"]), int(data["month"]), holidays)


class MonthRoster:
    """One DayAssignment per calendar day of (year, month), in date order."""

    def __init__(self, year: int, month: int, days: Iterable[DayAssignment]):
        self.year = year
        self.month = month
        self.days: Dict[str, DayAssignment] = {d.date: d for d in days}

    def __iter__(self) -> Iterator[DayAssignment]:
        return iter(self.days.values())

    def __len__(self):
        return len(self.days)

    def __contains__(self, date_key):
        return date_key in self.days

    def day(self, date_key: str) -> Optional[DayAssignment]:
        return self.days.get(date_key)

    def dates(self) -> List[str]:
        return list(self.days.keys())

    def apply_config(self, config: MonthConfig):
        """Re-derive the holiday flags in place. Slot contents are kept."""
        for key, is_holiday, name in holiday_flags(self.year, self.month, config.holiday_names()):
            day = self.days.get(key)
            if day is not None:
                day.set_holiday(is_holiday, name)

    def clear(self):
        for day in self:
            day.clear()

    def copy_shifts_from(self, other: "MonthRoster"):
        for day in self:
            src = other.day(day.date)
            if src is not None:
                day.shifts = copy.deepcopy(src.shifts)

    def to_records(self) -> List[dict]:
        return [d.to_dict() for d in self]


def build_month_roster(config: MonthConfig, records: Iterable[dict] = ()) -> MonthRoster:
    """
    Merge persisted day records (full history is fine, other months are ignored)
    with holiday flags freshly derived from the config.
    """
    stored = {}
    for rec in records:
        try:
            day = DayAssignment.from_dict(rec)
        except (KeyError, TypeError, AttributeError):
            logger.warning("skipping malformed day record: %r", rec)
            continue
        stored[day.date] = day

    days = []
    for key, is_holiday, name in holiday_flags(config.year, config.month, config.holiday_names()):
        day = stored.get(key)
        if day is None:
            day = DayAssignment(key, is_holiday, name)
        else:
            day.set_holiday(is_holiday, name)
        days.append(day)
    return MonthRoster(config.year, config.month, days)
