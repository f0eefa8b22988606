import calendar
from datetime import date
from typing import Dict, List, Tuple


def month_dates(year: int, month: int) -> List[date]:
    days = calendar.monthrange(year, month)[1]
    return [date(year, month, d) for d in range(1, days + 1)]


def date_key(d: date) -> str:
    return d.strftime("%Y-%m-%d")


def is_weekend(d: date) -> bool:
    # 5 = Saturday, 6 = Sunday
    return d.weekday() >= 5


def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    """(2025, 12) + 1 -> (2026, 1)"""
    idx = year * 12 + (month - 1) + delta
    return idx // 12, idx % 12 + 1


def holiday_flags(year: int, month: int, custom: Dict[str, str]) -> List[Tuple[str, bool, str]]:
    """
    For every date of the month: (YYYY-MM-DD, is_holiday, holiday_name).
    - weekend days are always holidays
    - custom holidays keep their admin-given name (may be "")
    """
    out = []
    for d in month_dates(year, month):
        key = date_key(d)
        name = custom.get(key)
        out.append((key, is_weekend(d) or name is not None, name or ""))
    return out
