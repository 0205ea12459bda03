"""Application services that compose results across databases."""

from inkwell.services.activity import ActivityService, ActivitySummary, UserActivity

__all__ = ["ActivityService", "ActivitySummary", "UserActivity"]
