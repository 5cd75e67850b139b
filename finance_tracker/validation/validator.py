"""
Transaction Record Validation

Runs every write payload through the pydantic models before it reaches
storage, and turns pydantic's error list into issues a person can read.

IMPORTANT: Validation never silently fixes bad input. It normalizes
representation only (string amounts to numbers, date strings to UTC
timestamps, isIncome from category) and rejects everything else.
"""

from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from finance_tracker.audit import AuditLogger
from finance_tracker.models.transaction import InsertTransaction, TransactionUpdate
from finance_tracker.models.user import InsertUser


ModelT = TypeVar("ModelT", bound=BaseModel)

# Messages shown to users, keyed by top-level field
FIELD_MESSAGES = {
    "description": "Description is required",
    "amount": "Amount must be greater than 0",
    "date": "Please enter a valid date",
    "category": "Please select a valid category",
    "username": "Username must be at least 3 characters",
    "password": "Password must be at least 6 characters",
}

NUMBER_ERROR_TYPES = {"float_parsing", "float_type", "finite_number"}


class ValidationIssue(BaseModel):
    """A single problem with a submitted payload."""

    field: str
    message: str


class TransactionValidationError(Exception):
    """A payload was rejected; carries one issue per failing field."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        super().__init__(self.message)

    @property
    def message(self) -> str:
        details = "; ".join(f'{issue.message} at "{issue.field}"' for issue in self.issues)
        return f"Validation error: {details}"


class TransactionValidator:
    """
    Validates incoming payloads for transactions and users.

    Each method returns the validated model or raises
    TransactionValidationError.
    """

    def __init__(self, audit_logger: Optional[AuditLogger] = None):
        self._audit = audit_logger or AuditLogger()

    def validate_insert(self, payload: Any) -> InsertTransaction:
        """Validate a full payload for a new transaction."""
        return self._validate(InsertTransaction, payload, stage="insert")

    def validate_update(self, payload: Any) -> TransactionUpdate:
        """Validate a partial payload; every field is optional."""
        return self._validate(TransactionUpdate, payload, stage="update")

    def validate_user(self, payload: Any) -> InsertUser:
        """Validate a payload for a new user."""
        return self._validate(InsertUser, payload, stage="user")

    def _validate(self, model: type[ModelT], payload: Any, stage: str) -> ModelT:
        if not isinstance(payload, dict):
            issues = [ValidationIssue(field="body", message="Expected a JSON object")]
            self._audit.log_validation_failed(stage, [i.model_dump() for i in issues])
            raise TransactionValidationError(issues)

        try:
            return model.model_validate(payload)
        except ValidationError as e:
            issues = [self._to_issue(error) for error in e.errors()]
            self._audit.log_validation_failed(stage, [i.model_dump() for i in issues])
            raise TransactionValidationError(issues) from e

    @staticmethod
    def _to_issue(error: dict) -> ValidationIssue:
        """Map one pydantic error to a user-facing issue."""
        location = [str(part) for part in error.get("loc", ())]
        field = ".".join(location) or "body"
        top = location[0] if location else ""
        error_type = error.get("type", "")
        raw_message = str(error.get("msg", "Invalid value"))

        if error_type == "missing":
            message = "Required"
        elif "cannot be null" in raw_message:
            message = "Field cannot be null"
        elif top == "amount" and error_type in NUMBER_ERROR_TYPES:
            message = "Amount must be a number"
        elif error_type == "value_error":
            # Our own validators already raise user-facing messages
            message = raw_message.removeprefix("Value error, ")
        elif top in FIELD_MESSAGES:
            message = FIELD_MESSAGES[top]
        else:
            message = raw_message.removeprefix("Value error, ")

        return ValidationIssue(field=field, message=message)
