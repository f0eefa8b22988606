import hashlib
import hmac
import os
from dataclasses import dataclass
from typing import Literal, Optional

Role = Literal["admin", "editor", "viewer"]
ROLES = ("admin", "editor", "viewer")

_ITERATIONS = 120_000


@dataclass(frozen=True)
class User:
    username: str
    role: Role
    name: Optional[str] = None


def can_edit(role: str) -> bool:
    """Generation and cell edits are reserved to admin/editor."""
    return role in ("admin", "editor")


def hash_password(password: str, salt: Optional[bytes] = None) -> str:
    salt = salt or os.urandom(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, _ITERATIONS)
    return f"pbkdf2_sha256${_ITERATIONS}${salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        _algo, iterations, salt_hex, digest_hex = stored.split("$")
        digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"),
                                     bytes.fromhex(salt_hex), int(iterations))
    except (ValueError, AttributeError):
        return False
    return hmac.compare_digest(digest.hex(), digest_hex)
