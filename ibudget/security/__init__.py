"""Failed-authentication tracking package."""

from ibudget.security.tracker import SecurityTracker, status_for_count

__all__ = ["SecurityTracker", "status_for_count"]
