import pytest

from roster_manager.logic.cascade import apply_edit, cascade_targets, edit_warnings
from roster_manager.logic.evaluator import UNAVAILABLE, WARD_CONFLICT
from roster_manager.models.physician import Physician
from roster_manager.models.roster import (
    AFTERNOON, GENERAL, ICU, MORNING, NIGHT, WARDS, build_month_roster,
)

from conftest import FRIDAY, MONDAY, SATURDAY


@pytest.fixture
def roster(august):
    return build_month_roster(august)


def test_holiday_general_morning_pulls_icu_evening(roster):
    apply_edit(roster, SATURDAY, MORNING, GENERAL, "p0")
    day = roster.day(SATURDAY)
    assert day.get(AFTERNOON, ICU) == "p0"
    assert day.get(NIGHT, ICU) == "p0"
    assert day.get(AFTERNOON, GENERAL) is None


def test_holiday_icu_morning_pulls_general_evening(roster):
    apply_edit(roster, SATURDAY, MORNING, ICU, "p1")
    day = roster.day(SATURDAY)
    assert day.get(AFTERNOON, GENERAL) == "p1"
    assert day.get(NIGHT, GENERAL) == "p1"
    assert day.get(NIGHT, ICU) is None


def test_afternoon_pulls_night_same_ward(roster):
    apply_edit(roster, FRIDAY, AFTERNOON, ICU, "p2")
    day = roster.day(FRIDAY)
    assert day.get(NIGHT, ICU) == "p2"
    assert day.get(NIGHT, GENERAL) is None


def test_night_alone_does_not_cascade(roster):
    apply_edit(roster, FRIDAY, AFTERNOON, GENERAL, "p0")
    apply_edit(roster, FRIDAY, NIGHT, GENERAL, "p1")
    day = roster.day(FRIDAY)
    assert day.get(AFTERNOON, GENERAL) == "p0"
    assert day.get(NIGHT, GENERAL) == "p1"


def test_clearing_cascades_too(roster):
    apply_edit(roster, SATURDAY, MORNING, GENERAL, "p0")
    apply_edit(roster, SATURDAY, MORNING, GENERAL, None)
    day = roster.day(SATURDAY)
    assert day.get(AFTERNOON, ICU) is None
    assert day.get(NIGHT, ICU) is None


def test_edit_touches_only_that_day(roster):
    before = {d.date: d.to_dict() for d in roster if d.date != MONDAY}
    apply_edit(roster, MONDAY, AFTERNOON, GENERAL, "p0")
    after = {d.date: d.to_dict() for d in roster if d.date != MONDAY}
    assert before == after


def test_bad_targets_are_ignored(roster):
    before = roster.to_records()
    apply_edit(roster, FRIDAY, MORNING, GENERAL, "p0")      # no morning on a weekday
    apply_edit(roster, "2025-09-01", AFTERNOON, ICU, "p0")  # other month
    apply_edit(roster, FRIDAY, "evening", ICU, "p0")
    assert roster.to_records() == before


def test_afternoon_and_morning_edits_keep_continuity(roster):
    edits = [
        (SATURDAY, MORNING, GENERAL, "p0"),
        (SATURDAY, MORNING, ICU, "p1"),
        (SATURDAY, AFTERNOON, GENERAL, "p2"),
        (FRIDAY, AFTERNOON, ICU, "p3"),
        (FRIDAY, AFTERNOON, GENERAL, "p0"),
        (SATURDAY, MORNING, GENERAL, "p3"),
    ]
    for args in edits:
        apply_edit(roster, *args)
    for day in roster:
        for ward in WARDS:
            assert day.get(AFTERNOON, ward) == day.get(NIGHT, ward)


def test_cascade_targets_table():
    assert cascade_targets(MORNING, GENERAL, True) == [(MORNING, GENERAL), (AFTERNOON, ICU), (NIGHT, ICU)]
    assert cascade_targets(AFTERNOON, GENERAL, False) == [(AFTERNOON, GENERAL), (NIGHT, GENERAL)]
    assert cascade_targets(NIGHT, ICU, True) == [(NIGHT, ICU)]


def test_warnings_are_advisory(roster):
    physicians = [Physician("p0", "Dr A", unavailable_dates=[FRIDAY]), Physician("p1", "Dr B")]
    apply_edit(roster, FRIDAY, AFTERNOON, GENERAL, "p0")
    apply_edit(roster, FRIDAY, AFTERNOON, ICU, "p0")

    # the edit went through regardless
    assert roster.day(FRIDAY).get(NIGHT, ICU) == "p0"
    codes = {w.code for w in edit_warnings(roster, FRIDAY, physicians)}
    assert codes == {UNAVAILABLE, WARD_CONFLICT}
    assert edit_warnings(roster, "2025-09-01", physicians) == []
