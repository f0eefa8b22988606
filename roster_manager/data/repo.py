import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, List

from roster_manager.data.data_manager import default_config
from roster_manager.data.models import ROLES, User, hash_password, verify_password
from roster_manager.exceptions import AuthenticationError, PersistenceFailure
from roster_manager.models.physician import Physician
from roster_manager.models.roster import Holiday, MonthConfig

logger = logging.getLogger(__name__)


class SqliteRosterStore:
    def __init__(self, db_path: str = "roster.sqlite3"):
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._create_tables()

    def _create_tables(self):
        cur = self.conn.cursor()
        cur.executescript("""
        CREATE TABLE IF NOT EXISTS physicians(
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            phone TEXT,
            active INTEGER NOT NULL DEFAULT 1,
            color TEXT,
            unavailable_dates TEXT,         -- JSON list of YYYY-MM-DD
            position INTEGER NOT NULL DEFAULT 0
        );
        CREATE TABLE IF NOT EXISTS daily_schedules(
            date TEXT PRIMARY KEY,          -- YYYY-MM-DD
            is_holiday INTEGER NOT NULL DEFAULT 0,
            holiday_name TEXT,
            shifts TEXT NOT NULL            -- JSON
        );
        CREATE TABLE IF NOT EXISTS app_settings(
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );
        CREATE TABLE IF NOT EXISTS holidays(
            date TEXT PRIMARY KEY,
            name TEXT
        );
        CREATE TABLE IF NOT EXISTS users(
            username TEXT PRIMARY KEY,
            password_hash TEXT NOT NULL,
            role TEXT NOT NULL,
            name TEXT
        );
        """)
        # databases created before list order was kept
        cols = {r["name"] for r in cur.execute("PRAGMA table_info(physicians)")}
        if "position" not in cols:
            cur.execute("ALTER TABLE physicians ADD COLUMN position INTEGER NOT NULL DEFAULT 0")
        self.conn.commit()

    def close(self):
        self.conn.close()

    def _transaction(self, fn, what: str):
        try:
            with self.conn:      # commit, or rollback on error
                fn(self.conn.cursor())
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"could not save {what}: {exc}") from exc

    # --- Physicians ---
    def load_physicians(self) -> List[Physician]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM physicians ORDER BY position, name, id;")
        out = []
        for r in cur.fetchall():
            try:
                dates = json.loads(r["unavailable_dates"] or "[]")
            except ValueError:
                logger.warning("bad unavailable_dates for physician %s", r["id"])
                dates = []
            out.append(Physician.from_dict({**dict(r), "active": bool(r["active"]),
                                            "unavailable_dates": dates}))
        return out

    def save_physicians(self, physicians: List[Physician]):
        def write(cur):
            ids = [p.id for p in physicians]
            # ids missing from the payload are removed
            if ids:
                marks = ",".join("?" for _ in ids)
                cur.execute(f"DELETE FROM physicians WHERE id NOT IN ({marks})", ids)
            else:
                cur.execute("DELETE FROM physicians")
            for pos, p in enumerate(physicians):
                cur.execute("""
                INSERT INTO physicians(id, name, phone, active, color, unavailable_dates, position)
                VALUES(?,?,?,?,?,?,?)
                ON CONFLICT(id) DO UPDATE SET
                    name=excluded.name,
                    phone=excluded.phone,
                    active=excluded.active,
                    color=excluded.color,
                    unavailable_dates=excluded.unavailable_dates,
                    position=excluded.position;
                """, (p.id, p.name, p.phone, int(p.active), p.color,
                      json.dumps(sorted(p.unavailable_dates)), pos))
        self._transaction(write, "physicians")

    # --- Schedules ---
    def load_month_roster(self) -> List[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM daily_schedules ORDER BY date;")
        out = []
        for r in cur.fetchall():
            try:
                shifts = json.loads(r["shifts"])
            except ValueError:
                logger.warning("bad shifts payload for %s", r["date"])
                shifts = None
            out.append({
                "date": r["date"],
                "is_holiday": bool(r["is_holiday"]),
                "holiday_name": r["holiday_name"] or "",
                "shifts": shifts,
            })
        return out

    def save_month_roster(self, days: List[Dict[str, Any]]):
        def write(cur):
            for d in days:
                cur.execute("""
                INSERT INTO daily_schedules(date, is_holiday, holiday_name, shifts)
                VALUES(?,?,?,?)
                ON CONFLICT(date) DO UPDATE SET
                    is_holiday=excluded.is_holiday,
                    holiday_name=excluded.holiday_name,
                    shifts=excluded.shifts;
                """, (d["date"], int(bool(d.get("is_holiday"))), d.get("holiday_name") or "",
                      json.dumps(d.get("shifts") or {})))
        self._transaction(write, "schedule")

    # --- Config ---
    def load_config(self) -> MonthConfig:
        cur = self.conn.cursor()
        cur.execute("SELECT value FROM app_settings WHERE key='main_config'")
        row = cur.fetchone()
        if row is None:
            base = default_config()
        else:
            try:
                value = json.loads(row["value"])
                base = MonthConfig(int(value["year"]), int(value["month"]))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("bad main_config row, using current month: %s", exc)
                base = default_config()
        cur.execute("SELECT date, name FROM holidays ORDER BY date")
        base.custom_holidays = [Holiday(r["date"], r["name"] or "") for r in cur.fetchall()]
        return base

    def save_config(self, config: MonthConfig):
        def write(cur):
            cur.execute("""
            INSERT INTO app_settings(key, value) VALUES('main_config', ?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value;
            """, (json.dumps({"year": config.year, "month": config.month}),))
            cur.execute("DELETE FROM holidays")
            cur.executemany("INSERT INTO holidays(date, name) VALUES(?,?)",
                            [(h.date, h.name) for h in config.custom_holidays])
        self._transaction(write, "config")

    # --- Users ---
    def add_user(self, username: str, password: str, role: str = "viewer", name: str = ""):
        if role not in ROLES:
            raise ValueError(f"unknown role: {role}")

        def write(cur):
            cur.execute("""
            INSERT INTO users(username, password_hash, role, name) VALUES(?,?,?,?)
            ON CONFLICT(username) DO UPDATE SET
                password_hash=excluded.password_hash, role=excluded.role, name=excluded.name;
            """, (username, hash_password(password), role, name))
        self._transaction(write, "user")

    def authenticate(self, username: str, password: str) -> User:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM users WHERE username=?", (username,))
        row = cur.fetchone()
        if row is None or not verify_password(password, row["password_hash"]):
            raise AuthenticationError("invalid username or password")
        return User(row["username"], row["role"], row["name"] or None)
