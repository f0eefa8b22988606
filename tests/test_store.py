import json
import sqlite3

import pytest

from roster_manager.data.data_manager import JsonRosterStore
from roster_manager.data.repo import SqliteRosterStore
from roster_manager.exceptions import AuthenticationError, PersistenceFailure
from roster_manager.models.physician import Physician
from roster_manager.models.roster import AFTERNOON, GENERAL, ICU, NIGHT, Holiday, MonthConfig, build_month_roster

from conftest import FRIDAY, make_physicians


@pytest.fixture(params=["json", "sqlite"])
def store(request, tmp_path):
    if request.param == "json":
        yield JsonRosterStore(tmp_path / "data")
    else:
        s = SqliteRosterStore(str(tmp_path / "data" / "roster.sqlite3"))
        yield s
        s.close()


def test_physicians_round_trip(store):
    physicians = make_physicians(3)
    physicians[1].active = False
    physicians[2].unavailable_dates = ["2025-08-12", "2025-08-02"]
    store.save_physicians(physicians)

    loaded = {p.id: p for p in store.load_physicians()}
    assert set(loaded) == {"p0", "p1", "p2"}
    assert loaded["p1"].active is False
    assert loaded["p2"].unavailable_dates == ["2025-08-02", "2025-08-12"]
    assert loaded["p0"].name == "Dr A"


def test_saving_physicians_replaces_the_list(store):
    store.save_physicians(make_physicians(3))
    store.save_physicians([Physician("p1", "Dr B renamed")])
    loaded = store.load_physicians()
    assert [(p.id, p.name) for p in loaded] == [("p1", "Dr B renamed")]


def test_month_roster_upsert_keeps_other_dates(store):
    store.save_month_roster([
        {"date": "2025-07-31", "is_holiday": False, "holiday_name": "",
         "shifts": {"morning": None, "afternoon": {"general": "p9", "icu": None}, "night": None}},
    ])
    august = MonthConfig(2025, 8)
    roster = build_month_roster(august)
    roster.day(FRIDAY).set(AFTERNOON, GENERAL, "p0")
    roster.day(FRIDAY).set(NIGHT, GENERAL, "p0")
    store.save_month_roster(roster.to_records())

    roster.day(FRIDAY).set(AFTERNOON, ICU, "p1")
    store.save_month_roster(roster.to_records())

    records = store.load_month_roster()
    dates = [r["date"] for r in records]
    assert dates == sorted(dates)
    assert "2025-07-31" in dates
    assert len(dates) == 32

    reloaded = build_month_roster(august, records)
    day = reloaded.day(FRIDAY)
    assert day.get(AFTERNOON, GENERAL) == "p0"
    assert day.get(AFTERNOON, ICU) == "p1"


def test_config_defaults_then_round_trip(store):
    cfg = store.load_config()
    assert 1 <= cfg.month <= 12
    assert cfg.custom_holidays == []

    store.save_config(MonthConfig(2025, 8, [Holiday("2025-08-12", "Founders Day")]))
    store.save_config(MonthConfig(2025, 9, [Holiday("2025-09-08", "Harvest")]))
    cfg = store.load_config()
    assert (cfg.year, cfg.month) == (2025, 9)
    assert cfg.custom_holidays == [Holiday("2025-09-08", "Harvest")]


def test_authenticate(store):
    store.add_user("kim", "s3cret", "editor", "Dr Kim")
    user = store.authenticate("kim", "s3cret")
    assert (user.username, user.role, user.name) == ("kim", "editor", "Dr Kim")

    with pytest.raises(AuthenticationError):
        store.authenticate("kim", "wrong")
    with pytest.raises(AuthenticationError):
        store.authenticate("nobody", "s3cret")
    with pytest.raises(ValueError):
        store.add_user("lee", "x", "superuser")


def test_json_passwords_are_not_stored_in_clear(tmp_path):
    store = JsonRosterStore(tmp_path)
    store.add_user("kim", "s3cret")
    assert "s3cret" not in (tmp_path / "users.json").read_text(encoding="utf-8")


def test_json_corrupt_files_fall_back(tmp_path):
    (tmp_path / "schedules.json").write_text("{not json", encoding="utf-8")
    (tmp_path / "config.json").write_text(json.dumps({"year": "x"}), encoding="utf-8")
    (tmp_path / "physicians.json").write_text(json.dumps([{"name": "no id"}, {"id": "p0", "name": "Dr A"}]),
                                              encoding="utf-8")
    store = JsonRosterStore(tmp_path)
    assert store.load_month_roster() == []
    assert 1 <= store.load_config().month <= 12
    assert [p.id for p in store.load_physicians()] == ["p0"]


def test_json_write_failure_is_reported(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    store = JsonRosterStore(blocker)
    with pytest.raises(PersistenceFailure):
        store.save_month_roster([{"date": FRIDAY, "is_holiday": False, "shifts": {}}])


def test_sqlite_write_failure_is_reported(tmp_path):
    store = SqliteRosterStore(str(tmp_path / "roster.sqlite3"))
    store.close()
    with pytest.raises(PersistenceFailure):
        store.save_config(MonthConfig(2025, 8))


def test_physicians_keep_saved_order(store):
    physicians = [Physician("z", "Zed"), Physician("a", "Amy"), Physician("m", "Max")]
    store.save_physicians(physicians)
    assert [p.id for p in store.load_physicians()] == ["z", "a", "m"]

    store.save_physicians([physicians[2], physicians[0]])
    assert [p.id for p in store.load_physicians()] == ["m", "z"]


def test_sqlite_corrupt_config_falls_back(tmp_path):
    store = SqliteRosterStore(str(tmp_path / "roster.sqlite3"))
    store.save_config(MonthConfig(2025, 8, [Holiday("2025-08-12", "Founders Day")]))
    with store.conn:
        store.conn.execute("UPDATE app_settings SET value='not json' WHERE key='main_config'")
    cfg = store.load_config()
    store.close()
    assert 1 <= cfg.month <= 12
    assert cfg.custom_holidays == [Holiday("2025-08-12", "Founders Day")]


def test_sqlite_opens_database_without_position_column(tmp_path):
    path = str(tmp_path / "old.sqlite3")
    conn = sqlite3.connect(path)
    conn.execute("""CREATE TABLE physicians(id TEXT PRIMARY KEY, name TEXT NOT NULL, phone TEXT,
                    active INTEGER NOT NULL DEFAULT 1, color TEXT, unavailable_dates TEXT)""")
    conn.execute("INSERT INTO physicians(id, name, active) VALUES('p0', 'Dr A', 1)")
    conn.commit()
    conn.close()

    store = SqliteRosterStore(path)
    assert [p.id for p in store.load_physicians()] == ["p0"]
    store.save_physicians([Physician("p1", "Dr B"), Physician("p0", "Dr A")])
    assert [p.id for p in store.load_physicians()] == ["p1", "p0"]
    store.close()
