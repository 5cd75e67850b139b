"""
Audit Models for the Finance Tracker

Every significant storage event is logged as a typed event.
This provides:
1. Traceability of which store served each write
2. Debugging information when the database is unreachable
3. A single place that defines what gets logged and at which severity
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we log."""
    # Primary store connection lifecycle
    CONNECTION_ATTEMPTED = "connection_attempted"
    CONNECTION_SUCCEEDED = "connection_succeeded"
    CONNECTION_FAILED = "connection_failed"
    CONNECTION_CLOSED = "connection_closed"
    CONNECTION_URI_DEFAULTED = "connection_uri_defaulted"

    # Degraded mode
    PRIMARY_STORAGE_UNAVAILABLE = "primary_storage_unavailable"

    # Persistence
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    ID_COLLISION = "id_collision"

    # Request handling
    VALIDATION_FAILED = "validation_failed"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """A single audit event."""

    # Identity
    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'connection')"
    )
    entity_id: Optional[int] = None

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description"
    )
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict[str, Any]:
        """Convert to dictionary for structured logging."""
        log = {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "description": self.description,
        }
        if self.entity_type:
            log["entity_type"] = self.entity_type
        if self.entity_id is not None:
            log["entity_id"] = self.entity_id
        if self.details:
            log["details"] = self.details
        if self.error_message:
            log["error_message"] = self.error_message
        return log


class AuditEventBuilder:
    """
    Factory for creating properly structured audit events.

    Use these methods instead of constructing AuditEvent directly
    so event descriptions and severities stay consistent.
    """

    @staticmethod
    def connection_attempted(target: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONNECTION_ATTEMPTED,
            entity_type="connection",
            description="Attempting to connect to MongoDB",
            details={"target": target},
        )

    @staticmethod
    def connection_succeeded(database: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONNECTION_SUCCEEDED,
            entity_type="connection",
            description="Connected to MongoDB",
            details={"database": database},
        )

    @staticmethod
    def connection_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONNECTION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="connection",
            description="MongoDB connection failed",
            error_message=error_message,
        )

    @staticmethod
    def connection_closed(error_message: Optional[str] = None) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONNECTION_CLOSED,
            severity=AuditSeverity.ERROR if error_message else AuditSeverity.INFO,
            entity_type="connection",
            description=(
                "Error closing MongoDB connection" if error_message
                else "MongoDB connection closed"
            ),
            error_message=error_message,
        )

    @staticmethod
    def connection_uri_defaulted(default_uri: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONNECTION_URI_DEFAULTED,
            severity=AuditSeverity.WARNING,
            entity_type="connection",
            description="MONGODB_URI environment variable not set. Using default local connection.",
            details={"default_uri": default_uri},
        )

    @staticmethod
    def primary_storage_unavailable(operation: str, error: BaseException) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PRIMARY_STORAGE_UNAVAILABLE,
            severity=AuditSeverity.ERROR,
            entity_type="storage",
            description=f"Error during {operation}, using fallback storage",
            details={"operation": operation, "error_type": type(error).__name__},
            error_message=str(error),
        )

    @staticmethod
    def transaction_created(transaction_id: int, amount: float, category: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction created",
            details={"amount": amount, "category": category},
        )

    @staticmethod
    def transaction_updated(transaction_id: int, fields: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction updated",
            details={"fields": fields},
        )

    @staticmethod
    def transaction_deleted(transaction_id: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction deleted",
        )

    @staticmethod
    def id_collision(entity_type: str, entity_id: int, object_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ID_COLLISION,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            description="Integer id already used by another document; lookups by this id return the older one",
            details={"object_id": object_id},
        )

    @staticmethod
    def validation_failed(stage: str, issues: list[dict]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            description=f"Validation failed at {stage}",
            details={"stage": stage, "issues": issues},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            details=details or {},
            error_message=error_message,
        )
