"""User account model and password hashing."""

from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from inkwell.content.models import format_timestamp, parse_timestamp, utcnow

HASH_ALGORITHM = "pbkdf2_sha256"
PASSWORD_ITERATIONS = 200_000


class UserRole(StrEnum):
    USER = "user"
    EDITOR = "editor"
    ADMIN = "admin"


class UserStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    BANNED = "banned"


def hash_password(password: str, *, iterations: int = PASSWORD_ITERATIONS) -> str:
    """Hash ``password`` as ``pbkdf2_sha256$<iterations>$<salt>$<digest>``."""
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode(), iterations)
    return f"{HASH_ALGORITHM}${iterations}${salt}${digest.hex()}"


def check_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt, expected = encoded.split("$")
        rounds = int(iterations)
    except ValueError:
        return False
    if algorithm != HASH_ALGORITHM:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode(), rounds)
    return hmac.compare_digest(digest.hex(), expected)


class User(BaseModel):
    """A user account row in the ``accounts`` database."""

    model_config = ConfigDict(validate_assignment=True)

    username: str
    email: str
    password_hash: str = ""
    display_name: str = ""
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.ACTIVE
    login_count: int = 0
    last_login_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("username", "email")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("last_login_at", "created_at", "updated_at", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Any:
        return parse_timestamp(value)

    @property
    def full_name(self) -> str:
        return self.display_name or self.username

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def has_role(self, role: str) -> bool:
        return self.role == role

    def set_password(self, password: str, *, iterations: int = PASSWORD_ITERATIONS) -> None:
        self.password_hash = hash_password(password, iterations=iterations)

    def verify_password(self, password: str) -> bool:
        return bool(self.password_hash) and check_password(password, self.password_hash)

    def record_login(self, now: datetime | None = None) -> None:
        self.last_login_at = (now or utcnow()).replace(microsecond=0)
        self.login_count += 1

    def to_row(self) -> dict[str, Any]:
        row = self.model_dump(mode="python")
        row["role"] = self.role.value
        row["status"] = self.status.value
        for name in ("last_login_at", "created_at", "updated_at"):
            value = getattr(self, name)
            row[name] = format_timestamp(value) if value is not None else None
        return row
