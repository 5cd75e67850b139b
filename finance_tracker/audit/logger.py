"""
Audit Logger

DESIGN DECISION: Every storage event that matters operationally is logged.
This provides:
1. Visibility into degraded mode (the API never reports it to clients)
2. A record of connection attempts while the database is down
3. Debugging capability for failed requests

The audit logger:
- Logs locally only, as structured JSON lines
- Picks the log level from the event severity
"""

import logging
import sys
from typing import Any, Optional

import structlog

from finance_tracker.models.audit import AuditEvent, AuditEventBuilder


# Configure structlog for local logging
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
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """
    Route stdlib logging (and therefore structlog) to stdout.

    structlog renders the final JSON line, so the handler only prints
    the message.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )


class AuditLogger:
    """
    Central audit logging service.

    Maps each AuditEvent to one structured log line at the event's
    severity.
    """

    def __init__(self, logger: Optional[Any] = None):
        self._logger = logger or structlog.get_logger("finance_tracker.audit")

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        log_dict = event.to_log_dict()
        severity = event.severity.value

        if severity in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif severity == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif severity == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

    def log_connection_attempted(self, target: str) -> None:
        self.log(AuditEventBuilder.connection_attempted(target))

    def log_connection_succeeded(self, database: str) -> None:
        self.log(AuditEventBuilder.connection_succeeded(database))

    def log_connection_failed(self, error_message: str) -> None:
        self.log(AuditEventBuilder.connection_failed(error_message))

    def log_connection_closed(self, error_message: Optional[str] = None) -> None:
        self.log(AuditEventBuilder.connection_closed(error_message))

    def log_connection_uri_defaulted(self, default_uri: str) -> None:
        self.log(AuditEventBuilder.connection_uri_defaulted(default_uri))

    def log_primary_unavailable(self, operation: str, error: BaseException) -> None:
        """Log that an operation is being served by the fallback store."""
        self.log(AuditEventBuilder.primary_storage_unavailable(operation, error))

    def log_transaction_created(self, transaction_id: int, amount: float, category: str) -> None:
        self.log(AuditEventBuilder.transaction_created(transaction_id, amount, category))

    def log_transaction_updated(self, transaction_id: int, fields: list[str]) -> None:
        self.log(AuditEventBuilder.transaction_updated(transaction_id, fields))

    def log_transaction_deleted(self, transaction_id: int) -> None:
        self.log(AuditEventBuilder.transaction_deleted(transaction_id))

    def log_id_collision(self, entity_type: str, entity_id: int, object_id: str) -> None:
        """Log that a new document shares its integer id with an existing one."""
        self.log(AuditEventBuilder.id_collision(entity_type, entity_id, object_id))

    def log_validation_failed(self, stage: str, issues: list[dict]) -> None:
        self.log(AuditEventBuilder.validation_failed(stage, issues))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log an unexpected error."""
        self.log(AuditEventBuilder.system_error(error_type, error_message, details))
