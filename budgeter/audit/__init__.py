"""Audit logging package."""

from budgeter.audit.logger import SyncAuditLogger

__all__ = ["SyncAuditLogger"]
