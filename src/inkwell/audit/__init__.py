"""Audit trail stored in the ``audit`` database."""

from inkwell.audit.log import AuditLog
from inkwell.audit.models import AuditEntry

__all__ = ["AuditEntry", "AuditLog"]
