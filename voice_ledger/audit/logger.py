"""
Ledger Audit Logger

DESIGN DECISION: Every ledger mutation and every step of the capture,
persistence and export pipelines is written to a structured log.
This provides:
1. Traceability when a user says "my sale disappeared"
2. Debugging of AI and storage failures that are never shown to the user
3. A record of resets, which are irreversible

The audit logger:
- Listens to controller events; it never touches the ledger
- Is synchronous and cheap, so it can run inside the controller's emit
- Never raises into the caller
"""

import logging
import sys
from typing import Callable, Optional

import structlog

from voice_ledger.controller import LedgerStateController
from voice_ledger.models.events import EventSeverity, LedgerEvent


_SHARED_PROCESSORS = [
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
    structlog.processors.JSONRenderer(ensure_ascii=False),
]


def configure_logging(debug_mode: bool = False) -> None:
    """Route structlog through stdlib logging with JSON output."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=logging.DEBUG if debug_mode else logging.INFO,
    )
    structlog.configure(
        processors=_SHARED_PROCESSORS,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# Configure structlog for local logging
configure_logging()


class LedgerAuditLogger:
    """
    Writes LedgerEvents to the structured log at their severity.

    Usage:
        audit = LedgerAuditLogger()
        audit.attach(controller)
    """

    def __init__(self):
        self._logger = structlog.get_logger("voice_ledger.audit")
        self._detach: Optional[Callable[[], None]] = None

    def attach(self, controller: LedgerStateController) -> None:
        """Start logging every event the controller emits."""
        self.detach()
        self._detach = controller.subscribe(self.log)

    def detach(self) -> None:
        if self._detach is not None:
            self._detach()
            self._detach = None

    def log(self, event: LedgerEvent) -> None:
        log_dict = event.to_log_dict()

        if event.severity == EventSeverity.ERROR:
            self._logger.error("ledger_event", **log_dict)
        elif event.severity == EventSeverity.WARNING:
            self._logger.warning("ledger_event", **log_dict)
        elif event.severity == EventSeverity.DEBUG:
            self._logger.debug("ledger_event", **log_dict)
        else:
            self._logger.info("ledger_event", **log_dict)
