"""Audit logging package."""

from voice_ledger.audit.logger import LedgerAuditLogger, configure_logging

__all__ = ["LedgerAuditLogger", "configure_logging"]
