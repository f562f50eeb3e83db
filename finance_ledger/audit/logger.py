"""
Audit Logger

DESIGN DECISION: Every significant action in the engine is logged.
This provides:
1. Traceability of merges, unmerges and balance changes
2. Debugging capability
3. A loud record of storage failures (decryption, persistence)

The audit logger:
- Writes structured events through structlog
- Maps event severity onto log levels
- Supports correlation IDs to trace the events of one engine operation
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_ledger.config.settings import LoggingSettings
from finance_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


_configured = False


def configure_logging(settings: Optional[LoggingSettings] = None, force: bool = False) -> None:
    """
    Configure structlog on top of stdlib logging.

    Runs once per process unless `force` is set.
    """
    global _configured
    if _configured and not force:
        return

    settings = settings or LoggingSettings()
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, settings.level),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


class AuditLogger:
    """Central audit logging service."""

    _LEVELS = {
        AuditSeverity.DEBUG: "debug",
        AuditSeverity.INFO: "info",
        AuditSeverity.WARNING: "warning",
        AuditSeverity.ERROR: "error",
        AuditSeverity.CRITICAL: "critical",
    }

    def __init__(self, logger_name: str = "finance_ledger.audit"):
        self._logger = structlog.get_logger(logger_name)
        self._events: list[AuditEvent] = []
        self._keep_events = False

    def log(self, event: AuditEvent) -> None:
        """Log an audit event at the level matching its severity."""
        method = getattr(self._logger, self._LEVELS[event.severity])
        method("audit_event", **event.to_log_dict())
        if self._keep_events:
            self._events.append(event)

    def record_events(self) -> list[AuditEvent]:
        """
        Start keeping logged events in memory and return the live list.

        Used by callers (and tests) that need to inspect what was audited.
        """
        self._keep_events = True
        return self._events

    def log_rejected(
        self,
        operation: str,
        reason: str,
        entity_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an expected domain failure."""
        self.log(AuditEventBuilder.operation_rejected(
            operation=operation,
            reason=reason,
            entity_id=entity_id,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of each engine operation and pass it through
    every audit event the operation raises.
    """
    return uuid4()
