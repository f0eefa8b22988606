import logging
from typing import Iterable, List, Optional

from roster_manager.logic.evaluator import (
    INACTIVE, STALE_REFERENCE, UNAVAILABLE, WARD_CONFLICT, Violation, check_day,
)
from roster_manager.models.physician import Physician
from roster_manager.models.roster import (
    AFTERNOON, MORNING, NIGHT, SHIFTS, WARDS, MonthRoster, other_ward,
)

logger = logging.getLogger(__name__)

# advisory only, never blocks an edit
ADVISORY_CODES = (WARD_CONFLICT, UNAVAILABLE, INACTIVE, STALE_REFERENCE)


def cascade_targets(shift: str, ward: str, is_holiday: bool) -> List[tuple]:
    """
    Slots written together with (shift, ward):
      holiday Morning/General -> + ICU afternoon/night      (pattern A)
      holiday Morning/ICU     -> + General afternoon/night  (pattern B)
      Afternoon/<ward>        -> + Night/<ward>
      Night/<ward>            -> nothing else
    """
    targets = [(shift, ward)]
    if shift == MORNING and is_holiday:
        cross = other_ward(ward)
        targets += [(AFTERNOON, cross), (NIGHT, cross)]
    elif shift == AFTERNOON:
        targets.append((NIGHT, ward))
    return targets


def apply_edit(roster: MonthRoster, date_key: str, shift: str, ward: str,
               physician_id: Optional[str]) -> MonthRoster:
    """
    Write one cell and repair continuity/cross-ward chaining on that day only.
    An empty physician_id clears the cell (and cascades the clear).
    Never raises: unknown dates or missing morning slots are ignored.
    """
    if shift not in SHIFTS or ward not in WARDS:
        logger.warning("ignoring edit on unknown slot %s/%s", shift, ward)
        return roster
    day = roster.day(date_key)
    if day is None:
        logger.warning("ignoring edit on %s, not part of %04d-%02d", date_key, roster.year, roster.month)
        return roster
    if shift == MORNING and not day.has_morning:
        logger.warning("ignoring morning edit on %s, not a holiday", date_key)
        return roster

    for s, w in cascade_targets(shift, ward, day.is_holiday):
        day.set(s, w, physician_id)
    logger.debug("edit %s %s/%s -> %s", date_key, shift, ward, physician_id or "-")
    return roster


def edit_warnings(roster: MonthRoster, date_key: str,
                  physicians: Iterable[Physician]) -> List[Violation]:
    """Advisory problems left on the edited day (ward separation, availability, stale ids)."""
    day = roster.day(date_key)
    if day is None:
        return []
    by_id = {p.id: p for p in physicians}
    return [v for v in check_day(day, by_id) if v.code in ADVISORY_CODES]
