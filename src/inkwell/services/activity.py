"""Cross-concern reads over accounts and the audit trail.

Accounts and audit entries live in separate databases.  This service holds
one repository per concern and joins their results in Python; it never
shares a connection between them or attaches one database file to another.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime

from pydantic import BaseModel, Field

from inkwell.accounts.models import User
from inkwell.accounts.repository import UserRepository
from inkwell.audit.log import AuditLog
from inkwell.audit.models import AuditEntry


class UserActivity(BaseModel):
    """A user together with their recent audit entries."""

    user: User
    entries: list[AuditEntry] = Field(default_factory=list)
    action_counts: dict[str, int] = Field(default_factory=dict)
    last_action_at: datetime | None = None


class ActivitySummary(BaseModel):
    total_users: int = 0
    active_users: int = 0
    users_by_role: dict[str, int] = Field(default_factory=dict)
    total_entries: int = 0
    entries_by_action: dict[str, int] = Field(default_factory=dict)
    most_active: list[tuple[str, int]] = Field(default_factory=list)
    # Usernames that appear in the audit trail but have no account (deleted users).
    unknown_actors: list[str] = Field(default_factory=list)


class ActivityService:
    def __init__(self, users: UserRepository, audit: AuditLog) -> None:
        self._users = users
        self._audit = audit

    def activity_for(self, username: str, limit: int = 20) -> UserActivity | None:
        """Recent actions of ``username``, or ``None`` if the account does not exist."""
        user = self._users.find(username)
        if user is None:
            return None
        entries = self._audit.by_user(username)
        counts = Counter(entry.action for entry in entries)
        return UserActivity(
            user=user,
            entries=entries[: max(limit, 0)],
            action_counts=dict(sorted(counts.items())),
            last_action_at=entries[0].created_at if entries else None,
        )

    def summary(self, top: int = 5) -> ActivitySummary:
        users = self._users.all()
        entries = self._audit.recent(limit=self._audit.count())

        known = {user.username for user in users}
        per_user = Counter(entry.username for entry in entries)
        return ActivitySummary(
            total_users=len(users),
            active_users=sum(1 for user in users if user.is_active),
            users_by_role=dict(sorted(Counter(str(user.role) for user in users).items())),
            total_entries=len(entries),
            entries_by_action=dict(sorted(Counter(e.action for e in entries).items())),
            most_active=[
                (name, count) for name, count in per_user.most_common() if name in known
            ][:top],
            unknown_actors=sorted(name for name in per_user if name not in known),
        )
