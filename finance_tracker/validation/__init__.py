"""Payload validation package."""

from finance_tracker.validation.validator import (
    TransactionValidationError,
    TransactionValidator,
    ValidationIssue,
)

__all__ = ["TransactionValidationError", "TransactionValidator", "ValidationIssue"]
