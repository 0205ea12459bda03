"""Append-only audit trail in the ``audit`` database."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from inkwell.audit.models import AuditEntry
from inkwell.content.models import as_utc, utcnow
from inkwell.db.registry import DatabaseRegistry
from inkwell.db.schemas import AUDIT
from inkwell.storage.sqlite import SqliteDriver

logger = logging.getLogger(__name__)

# Newest first; rowid breaks ties between entries written in the same second.
_NEWEST_FIRST = "created_at DESC, rowid DESC"


class AuditLog:
    """Records actions and answers who-did-what queries."""

    def __init__(self, registry: DatabaseRegistry, *, now: datetime | None = None) -> None:
        self._driver = SqliteDriver(registry, AUDIT, "audit_log", key_column="id")
        self._now = now

    def now(self) -> datetime:
        return as_utc(self._now) if self._now is not None else utcnow()

    def record(
        self,
        username: str,
        action: str,
        *,
        resource_type: str | None = None,
        resource_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditEntry:
        stamp = self.now().replace(microsecond=0)
        entry = AuditEntry(
            username=username,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details or {},
            created_at=stamp,
            updated_at=stamp,
        )
        self._driver.save(entry.id, entry.to_row())
        logger.debug("Audit: %s %s %s/%s", username, action, resource_type, resource_id)
        return entry

    def find(self, entry_id: str) -> AuditEntry | None:
        row = self._driver.load(entry_id)
        return AuditEntry.model_validate(row) if row is not None else None

    def by_user(self, username: str) -> list[AuditEntry]:
        return self._select("username = ?", (username,))

    def by_action(self, action: str) -> list[AuditEntry]:
        return self._select("action = ?", (action,))

    def by_resource(self, resource_type: str, resource_id: str | None = None) -> list[AuditEntry]:
        if resource_id is None:
            return self._select("resource_type = ?", (resource_type,))
        return self._select("resource_type = ? AND resource_id = ?", (resource_type, resource_id))

    def recent(self, limit: int = 50) -> list[AuditEntry]:
        return self._select(limit=max(limit, 0))

    def count(self) -> int:
        return sum(1 for _ in self._driver.list())

    def _select(
        self, where: str = "", params: tuple[Any, ...] = (), limit: int | None = None
    ) -> list[AuditEntry]:
        rows = self._driver.select(where, params, order_by=_NEWEST_FIRST, limit=limit)
        return [AuditEntry.model_validate(row) for row in rows]
