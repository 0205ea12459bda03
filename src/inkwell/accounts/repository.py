"""User persistence in the ``accounts`` database."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Any

from inkwell.accounts.models import User, UserRole, UserStatus
from inkwell.content.models import as_utc, utcnow
from inkwell.db.registry import DatabaseRegistry
from inkwell.db.schemas import ACCOUNTS
from inkwell.shared.errors import DuplicateKeyError
from inkwell.storage.sqlite import SqliteDriver

logger = logging.getLogger(__name__)


class UserRepository:
    """CRUD and lookups for user accounts.

    Only ever talks to the ``accounts`` handle of the registry.
    """

    def __init__(self, registry: DatabaseRegistry, *, now: datetime | None = None) -> None:
        self._driver = SqliteDriver(registry, ACCOUNTS, "users", key_column="username")
        self._now = now

    def now(self) -> datetime:
        return as_utc(self._now) if self._now is not None else utcnow()

    # ── Reads ────────────────────────────────────────────────────

    def find(self, username: str) -> User | None:
        row = self._driver.load(username)
        return User.model_validate(row) if row is not None else None

    def find_by_email(self, email: str) -> User | None:
        rows = self._driver.select("email = ?", (email.strip(),))
        return User.model_validate(rows[0]) if rows else None

    def all(self) -> list[User]:
        return [User.model_validate(row) for row in self._driver.select(order_by="username")]

    def active(self) -> list[User]:
        return self._where("status = ?", UserStatus.ACTIVE.value)

    def by_role(self, role: UserRole | str) -> list[User]:
        return self._where("role = ?", str(role))

    def count(self) -> int:
        return sum(1 for _ in self._driver.list())

    def _where(self, clause: str, value: Any) -> list[User]:
        rows = self._driver.select(clause, (value,), order_by="username")
        return [User.model_validate(row) for row in rows]

    # ── Writes ───────────────────────────────────────────────────

    def create(
        self, user: User | None = None, *, password: str | None = None, **fields: Any
    ) -> User:
        """Insert a new account.

        Raises:
            DuplicateKeyError: If the username or the email is already taken.
        """
        if user is None:
            user = User.model_validate(fields)
        if self._driver.exists(user.username):
            raise DuplicateKeyError(user.username, field="username")
        if self.find_by_email(user.email) is not None:
            raise DuplicateKeyError(user.email, field="email")
        if password is not None:
            user.set_password(password)
        if user.created_at is None:
            user.created_at = self.now().replace(microsecond=0)
        saved = self.save(user)
        logger.info("Created user %s", user.username)
        return saved

    def save(self, user: User) -> User:
        now = self.now().replace(microsecond=0)
        if user.created_at is None:
            user.created_at = now
        user.updated_at = now
        try:
            self._driver.save(user.username, user.to_row())
        except sqlite3.IntegrityError as exc:
            raise DuplicateKeyError(user.email, field="email") from exc
        return user

    def delete(self, username: str) -> bool:
        return self._driver.delete(username)

    def record_login(self, username: str) -> User:
        """Stamp a successful login.

        Raises:
            KeyError: If no such user exists.
        """
        user = self.find(username)
        if user is None:
            raise KeyError(username)
        user.record_login(self.now())
        return self.save(user)
