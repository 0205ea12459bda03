"""Tests for ActivityService."""

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from inkwell.accounts import UserRepository
from inkwell.audit import AuditLog
from inkwell.db import ACCOUNTS, AUDIT, DatabaseRegistry
from inkwell.paths import PathResolver
from inkwell.services import ActivityService

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def registry(tmp_path: Path):
    resolver = PathResolver({"databases": tmp_path / "db"})
    with DatabaseRegistry(resolver) as reg:
        yield reg


def _make_service(registry: DatabaseRegistry) -> ActivityService:
    users = UserRepository(registry, now=NOW)
    users.create(username="ada", email="ada@example.com", role="admin")
    users.create(username="bob", email="bob@example.com", role="editor")
    users.create(username="carol", email="carol@example.com", status="inactive")

    for offset, (username, action) in enumerate(
        [
            ("ada", "login"),
            ("ada", "article.create"),
            ("ada", "article.update"),
            ("bob", "login"),
            ("ghost", "article.delete"),
        ]
    ):
        AuditLog(registry, now=NOW + timedelta(minutes=offset)).record(username, action)

    return ActivityService(users, AuditLog(registry, now=NOW))


class TestActivityFor:
    def test_joins_user_and_entries(self, registry: DatabaseRegistry):
        activity = _make_service(registry).activity_for("ada")

        assert activity is not None
        assert activity.user.username == "ada"
        assert [e.action for e in activity.entries] == [
            "article.update",
            "article.create",
            "login",
        ]
        assert activity.action_counts == {"article.create": 1, "article.update": 1, "login": 1}
        assert activity.last_action_at == NOW + timedelta(minutes=2)

    def test_limit(self, registry: DatabaseRegistry):
        activity = _make_service(registry).activity_for("ada", limit=1)
        assert activity is not None
        assert len(activity.entries) == 1
        assert sum(activity.action_counts.values()) == 3

    def test_user_without_entries(self, registry: DatabaseRegistry):
        activity = _make_service(registry).activity_for("carol")
        assert activity is not None
        assert activity.entries == []
        assert activity.last_action_at is None

    def test_unknown_user(self, registry: DatabaseRegistry):
        assert _make_service(registry).activity_for("ghost") is None


class TestSummary:
    def test_counts(self, registry: DatabaseRegistry):
        summary = _make_service(registry).summary()

        assert summary.total_users == 3
        assert summary.active_users == 2
        assert summary.users_by_role == {"admin": 1, "editor": 1, "user": 1}
        assert summary.total_entries == 5
        assert summary.entries_by_action["login"] == 2
        assert summary.most_active == [("ada", 3), ("bob", 1)]
        assert summary.unknown_actors == ["ghost"]

    def test_top(self, registry: DatabaseRegistry):
        assert _make_service(registry).summary(top=1).most_active == [("ada", 3)]

    def test_uses_both_databases(self, registry: DatabaseRegistry):
        _make_service(registry).summary()
        assert registry.is_open(ACCOUNTS)
        assert registry.is_open(AUDIT)
        assert registry.connection_for(ACCOUNTS) is not registry.connection_for(AUDIT)
