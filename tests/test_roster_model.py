from roster_manager.models.physician import Physician, StaleReference, display_name, resolve_physician
from roster_manager.models.roster import (
    AFTERNOON, GENERAL, ICU, MORNING, NIGHT, DayAssignment, Holiday, MonthConfig, build_month_roster,
)
from roster_manager.utils.date_helper import shift_month

from conftest import FRIDAY, MONDAY, SATURDAY


def test_month_has_one_day_per_date(august):
    roster = build_month_roster(august)
    assert len(roster) == 31
    assert roster.dates()[0] == "2025-08-01"
    assert roster.dates()[-1] == "2025-08-31"


def test_weekends_are_holidays_with_morning_slots(august):
    roster = build_month_roster(august)
    assert roster.day(SATURDAY).is_holiday
    assert roster.day(SATURDAY).has_morning
    assert not roster.day(FRIDAY).is_holiday
    assert not roster.day(FRIDAY).has_morning


def test_custom_holiday_gets_name_and_morning():
    config = MonthConfig(2025, 8, [Holiday("2025-08-12", "Mother's Day")])
    day = build_month_roster(config).day("2025-08-12")
    assert day.is_holiday
    assert day.holiday_name == "Mother's Day"
    assert day.has_morning


def test_merge_keeps_persisted_shifts_and_ignores_other_months(august):
    records = [
        {"date": "2025-08-04T00:00:00", "is_holiday": False,
         "shifts": {"afternoon": {"icu": "p1", "general": "p0"}, "night": {"icu": "p1", "general": "p0"}}},
        {"date": "2025-07-31", "is_holiday": False, "shifts": {}},
        {"no_date": True},
    ]
    roster = build_month_roster(august, records)
    assert len(roster) == 31
    assert "2025-07-31" not in roster
    assert roster.day(MONDAY).get(AFTERNOON, GENERAL) == "p0"
    assert roster.day(MONDAY).get(NIGHT, ICU) == "p1"


def test_config_change_recomputes_flags_without_losing_data(august):
    roster = build_month_roster(august)
    roster.day(MONDAY).set(AFTERNOON, ICU, "p1")

    roster.apply_config(MonthConfig(2025, 8, [Holiday(MONDAY, "Extra")]))
    day = roster.day(MONDAY)
    assert day.is_holiday and day.holiday_name == "Extra"
    assert day.has_morning
    assert day.get(AFTERNOON, ICU) == "p1"

    day.set(MORNING, GENERAL, "p0")
    roster.apply_config(august)
    assert not day.is_holiday
    assert not day.has_morning
    assert day.get(AFTERNOON, ICU) == "p1"


def test_morning_write_on_weekday_is_refused(august):
    day = build_month_roster(august).day(FRIDAY)
    assert day.set(MORNING, ICU, "p0") is False
    assert day.get(MORNING, ICU) is None


def test_day_record_round_trip_through_dict():
    day = DayAssignment(SATURDAY, True, "")
    day.set(MORNING, GENERAL, "p0")
    again = DayAssignment.from_dict(day.to_dict())
    assert again.get(MORNING, GENERAL) == "p0"
    assert again.is_holiday


def test_stale_reference_renders_unknown():
    by_id = {"p0": Physician("p0", "Dr A")}
    assert resolve_physician(by_id, None) is None
    assert resolve_physician(by_id, "p0").name == "Dr A"
    ref = resolve_physician(by_id, "gone")
    assert isinstance(ref, StaleReference)
    assert display_name(by_id, "gone") == "unknown"


def test_physician_defaults_from_partial_record():
    p = Physician.from_dict({"id": "x", "name": "Dr X"})
    assert p.active
    assert p.unavailable_dates == []
    assert p.is_available(FRIDAY)


def test_shift_month_wraps_years():
    assert shift_month(2025, 12, 1) == (2026, 1)
    assert shift_month(2025, 1, -1) == (2024, 12)


def test_clear_keeps_day_shape(august):
    roster = build_month_roster(august)
    roster.day(SATURDAY).set(MORNING, GENERAL, "p0")
    roster.day(MONDAY).set(AFTERNOON, ICU, "p1")
    roster.clear()
    assert all(pid is None for day in roster for _, _, pid in day.slots())
    assert roster.day(SATURDAY).has_morning
    assert not roster.day(MONDAY).has_morning
