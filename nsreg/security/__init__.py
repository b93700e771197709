"""Audit trail for registry operations."""

from nsreg.security.audit_log import AuditEntry, AuditLogger

__all__ = ["AuditEntry", "AuditLogger"]
