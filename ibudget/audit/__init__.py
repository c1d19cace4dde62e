"""Audit logging package."""

from ibudget.audit.logger import AuditLogger, create_correlation_id, set_log_level

__all__ = ["AuditLogger", "create_correlation_id", "set_log_level"]
