"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker.
All data flowing through the system must conform to these schemas.
"""

from finance_tracker.models.transaction import (
    INCOME_CATEGORY,
    Category,
    InsertTransaction,
    Transaction,
    TransactionUpdate,
    coerce_timestamp,
)
from finance_tracker.models.user import InsertUser, User
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "INCOME_CATEGORY",
    "Category",
    "InsertTransaction",
    "Transaction",
    "TransactionUpdate",
    "coerce_timestamp",
    # User models
    "InsertUser",
    "User",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
