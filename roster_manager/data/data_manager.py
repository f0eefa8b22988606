from __future__ import annotations
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List

from roster_manager.data.models import ROLES, User, hash_password, verify_password
from roster_manager.exceptions import AuthenticationError, PersistenceFailure
from roster_manager.models.physician import Physician
from roster_manager.models.roster import MonthConfig

logger = logging.getLogger(__name__)

# project root = .../roster_manager
BASE_DIR = Path(__file__).resolve().parents[1]
DEFAULT_DATA_DIR = BASE_DIR / "data"


def _safe_json_load(path: Path, default):
    if not path.exists():
        return default
    try:
        raw = path.read_text(encoding="utf-8").strip()
        if not raw:
            return default
        return json.loads(raw)
    except (OSError, ValueError) as exc:
        logger.warning("could not read %s, using defaults: %s", path, exc)
        return default


def _safe_json_save(path: Path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
    tmp.replace(path)


def default_config() -> MonthConfig:
    today = date.today()
    return MonthConfig(today.year, today.month, [])


class JsonRosterStore:
    """One JSON file per collection, written atomically (tmp + replace)."""

    def __init__(self, data_dir: str | Path = DEFAULT_DATA_DIR):
        self.data_dir = Path(data_dir)
        self.physicians_file = self.data_dir / "physicians.json"
        self.schedules_file = self.data_dir / "schedules.json"
        self.config_file = self.data_dir / "config.json"
        self.users_file = self.data_dir / "users.json"

    def _write(self, path: Path, data):
        try:
            _safe_json_save(path, data)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceFailure(f"could not write {path.name}: {exc}") from exc

    # ---------- physicians ----------
    def load_physicians(self) -> List[Physician]:
        data = _safe_json_load(self.physicians_file, default=[])
        out = []
        for item in data:
            if not isinstance(item, dict) or "id" not in item:
                logger.warning("skipping malformed physician record: %r", item)
                continue
            out.append(Physician.from_dict(item))
        return out

    def save_physicians(self, physicians: List[Physician]):
        self._write(self.physicians_file, [p.to_dict() for p in physicians])

    # ---------- schedules ----------
    def load_month_roster(self) -> List[Dict[str, Any]]:
        """Full history, sorted by date; callers pick the month they need."""
        data = _safe_json_load(self.schedules_file, default={})
        if not isinstance(data, dict):
            return []
        records = []
        for key, rec in sorted(data.items()):
            if not isinstance(rec, dict):
                continue
            rec.setdefault("date", key)
            records.append(rec)
        return records

    def save_month_roster(self, days: List[Dict[str, Any]]):
        """Upsert by date, other dates are left untouched."""
        data = _safe_json_load(self.schedules_file, default={})
        if not isinstance(data, dict):
            data = {}
        for rec in days:
            data[rec["date"]] = rec
        self._write(self.schedules_file, data)

    # ---------- config ----------
    def load_config(self) -> MonthConfig:
        data = _safe_json_load(self.config_file, default=None)
        if not data:
            return default_config()
        try:
            return MonthConfig.from_dict(data)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("bad config file, using current month: %s", exc)
            return default_config()

    def save_config(self, config: MonthConfig):
        self._write(self.config_file, config.to_dict())

    # ---------- users ----------
    def add_user(self, username: str, password: str, role: str = "viewer", name: str = ""):
        if role not in ROLES:
            raise ValueError(f"unknown role: {role}")
        users = _safe_json_load(self.users_file, default={})
        users[username] = {"password_hash": hash_password(password), "role": role, "name": name}
        self._write(self.users_file, users)

    def authenticate(self, username: str, password: str) -> User:
        users = _safe_json_load(self.users_file, default={})
        rec = users.get(username)
        if not rec or not verify_password(password, rec.get("password_hash", "")):
            raise AuthenticationError("invalid username or password")
        return User(username, rec.get("role", "viewer"), rec.get("name") or None)
