"""
Constraint evaluation for a month roster.

Every day is checked on its own:
  ward_conflict       one physician in both wards of the same shift
  continuity          afternoon and night of one ward held by different people
  cross_ward          holiday morning pattern broken (General/Morning -> ICU/A+N,
                      ICU/Morning -> General/A+N, two distinct physicians)
  unavailable/inactive
  morning_on_weekday  morning slots exist on a non-holiday
plus insufficient_staff (fewer than 2 active physicians) and stale_reference
(slot points at an id that is not in the physician list).

Fairness is the only thing that links days together.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from roster_manager.models.physician import Physician
from roster_manager.models.roster import (
    AFTERNOON, GENERAL, ICU, MORNING, NIGHT, DayAssignment, MonthRoster,
)

logger = logging.getLogger(__name__)

WARD_CONFLICT = "ward_conflict"
CONTINUITY = "continuity"
CROSS_WARD = "cross_ward"
UNAVAILABLE = "unavailable"
INACTIVE = "inactive"
MORNING_ON_WEEKDAY = "morning_on_weekday"
INSUFFICIENT_STAFF = "insufficient_staff"
STALE_REFERENCE = "stale_reference"


@dataclass(frozen=True)
class Violation:
    code: str
    date: Optional[str]
    message: str
    physician_id: Optional[str] = None


@dataclass
class PhysicianTally:
    physician_id: str
    name: str
    total_shifts: int = 0
    holiday_shifts: int = 0
    icu_shifts: int = 0
    general_shifts: int = 0
    days_worked: List[str] = field(default_factory=list)
    consecutive_days: bool = False

    @property
    def ward_imbalance(self) -> int:
        return self.icu_shifts - self.general_shifts


@dataclass
class Evaluation:
    violations: List[Violation]
    fairness: Dict[str, PhysicianTally]
    unfilled: int = 0

    @property
    def is_valid(self) -> bool:
        return not self.violations

    def by_code(self, code: str) -> List[Violation]:
        return [v for v in self.violations if v.code == code]


def check_day(day: DayAssignment, by_id: Dict[str, Physician]) -> List[Violation]:
    out = []
    key = day.date

    # same shift, both wards
    for shift in (MORNING, AFTERNOON, NIGHT):
        icu, gen = day.get(shift, ICU), day.get(shift, GENERAL)
        if icu and icu == gen:
            out.append(Violation(WARD_CONFLICT, key,
                                 f"{_name(by_id, icu)} holds ICU and General {shift}", icu))

    # afternoon chains into night
    for ward in (GENERAL, ICU):
        aft, night = day.get(AFTERNOON, ward), day.get(NIGHT, ward)
        if aft != night:
            out.append(Violation(CONTINUITY, key,
                                 f"{ward} afternoon ({_name(by_id, aft)}) != night ({_name(by_id, night)})",
                                 aft or night))

    if day.is_holiday:
        out.extend(_check_holiday_pattern(day, by_id))
    elif day.has_morning:
        # morning only exists on holidays
        out.append(Violation(MORNING_ON_WEEKDAY, key, "morning slots on a non-holiday"))

    # availability, stale ids
    for pid in sorted(day.occupants()):
        p = by_id.get(pid)
        if p is None:
            out.append(Violation(STALE_REFERENCE, key, f"unknown physician id {pid}", pid))
        elif not p.active:
            out.append(Violation(INACTIVE, key, f"{p.name} is inactive", pid))
        elif key in p.unavailable_dates:
            out.append(Violation(UNAVAILABLE, key, f"{p.name} is unavailable", pid))
    return out


def _check_holiday_pattern(day: DayAssignment, by_id) -> List[Violation]:
    out = []
    key = day.date
    m_gen, m_icu = day.get(MORNING, GENERAL), day.get(MORNING, ICU)
    # Pattern A: General/Morning -> ICU afternoon + night
    if m_gen and (day.get(AFTERNOON, ICU) != m_gen or day.get(NIGHT, ICU) != m_gen):
        out.append(Violation(CROSS_WARD, key,
                             f"{_name(by_id, m_gen)} on General morning must cover ICU afternoon/night",
                             m_gen))
    # Pattern B: ICU/Morning -> General afternoon + night
    if m_icu and (day.get(AFTERNOON, GENERAL) != m_icu or day.get(NIGHT, GENERAL) != m_icu):
        out.append(Violation(CROSS_WARD, key,
                             f"{_name(by_id, m_icu)} on ICU morning must cover General afternoon/night",
                             m_icu))
    if m_gen and m_gen == m_icu:
        out.append(Violation(CROSS_WARD, key,
                             f"{_name(by_id, m_gen)} holds both morning slots", m_gen))
    return out


def _name(by_id, pid) -> str:
    if not pid:
        return "-"
    p = by_id.get(pid)
    return p.name if p else "unknown"


def fairness_report(roster: MonthRoster, physicians: Iterable[Physician]) -> Dict[str, PhysicianTally]:
    tallies = {p.id: PhysicianTally(p.id, p.name) for p in physicians if p.active}
    for day in roster:
        for _shift, ward, pid in day.slots():
            t = tallies.get(pid) if pid else None
            if t is None:
                continue
            t.total_shifts += 1
            if day.is_holiday:
                t.holiday_shifts += 1
            if ward == ICU:
                t.icu_shifts += 1
            else:
                t.general_shifts += 1
            if not t.days_worked or t.days_worked[-1] != day.date:
                t.days_worked.append(day.date)

    for t in tallies.values():
        worked = [date.fromisoformat(k) for k in t.days_worked]
        t.consecutive_days = any(b - a == timedelta(days=1) for a, b in zip(worked, worked[1:]))
    return tallies


def evaluate(roster: MonthRoster, physicians: Iterable[Physician]) -> Evaluation:
    physicians = list(physicians)
    by_id = {p.id: p for p in physicians}
    violations = []

    active = [p for p in physicians if p.active]
    if len(active) < 2:
        violations.append(Violation(INSUFFICIENT_STAFF, None,
                                    f"{len(active)} active physician(s), at least 2 required"))

    unfilled = 0
    for day in roster:
        violations.extend(check_day(day, by_id))
        # per-day shortfall; a short month is already reported once above
        if len(active) >= 2:
            eligible = sum(1 for p in active if p.is_available(day.date))
            if eligible < 2:
                violations.append(Violation(INSUFFICIENT_STAFF, day.date,
                                            f"only {eligible} eligible physician(s) on {day.date}"))
        unfilled += sum(1 for _, _, pid in day.slots() if not pid)

    fairness = fairness_report(roster, physicians)
    logger.debug("evaluated %04d-%02d: %d violation(s), %d unfilled slot(s)",
                 roster.year, roster.month, len(violations), unfilled)
    return Evaluation(violations, fairness, unfilled)


@dataclass
class SummaryRow:
    name: str
    total_shifts: int
    holiday_shifts: int
    icu_shifts: int
    general_shifts: int
    consecutive_days: bool


def month_summary(roster: MonthRoster, physicians: Iterable[Physician]) -> List[SummaryRow]:
    """Read-only per-physician rows, in physician list order."""
    tallies = fairness_report(roster, physicians)
    return [
        SummaryRow(t.name, t.total_shifts, t.holiday_shifts, t.icu_shifts,
                   t.general_shifts, t.consecutive_days)
        for t in tallies.values()
    ]
