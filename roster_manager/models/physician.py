import uuid
from dataclasses import dataclass
from typing import Dict, Optional, Union

DEFAULT_COLOR = "#e5e7eb"


class Physician:
    def __init__(self, id, name, phone="", active=True,
                 unavailable_dates=None, color=DEFAULT_COLOR):
        self.id = id
        self.name = name
        self.phone = phone
        self.active = active
        self.unavailable_dates = list(unavailable_dates or [])  # ['2025-08-12', ...]
        self.color = color                                       # display only

    @classmethod
    def create(cls, name, **kwargs) -> "Physician":
        return cls(str(uuid.uuid4()), name, **kwargs)

    def is_available(self, date_key: str) -> bool:
        return self.active and date_key not in self.unavailable_dates

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "active": self.active,
            "unavailable_dates": sorted(self.unavailable_dates),
            "color": self.color,
        }

    @staticmethod
    def from_dict(data):
        return Physician(
            id=data["id"],
            name=data.get("name", ""),
            phone=data.get("phone") or "",
            active=bool(data.get("active", True)),
            unavailable_dates=data.get("unavailable_dates") or [],
            color=data.get("color") or DEFAULT_COLOR,
        )

    def __repr__(self):
        return f"Physician({self.id!r}, {self.name!r})"


@dataclass(frozen=True)
class StaleReference:
    """A slot that points at a physician id no longer in the directory."""
    id: str
    name: str = "unknown"


def resolve_physician(by_id: Dict[str, Physician],
                      physician_id: Optional[str]) -> Union[Physician, StaleReference, None]:
    if not physician_id:
        return None
    found = by_id.get(physician_id)
    if found is None:
        return StaleReference(physician_id)
    return found


def display_name(by_id: Dict[str, Physician], physician_id: Optional[str]) -> str:
    ref = resolve_physician(by_id, physician_id)
    if ref is None:
        return "-"
    return ref.name
