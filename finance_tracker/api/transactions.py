import re
from typing import Any, List

from fastapi import APIRouter, Body, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from ..models.transaction import Transaction
from ..validation import TransactionValidationError

# Configure logging
import structlog
logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/transactions",
    tags=["transactions"],
)


TRANSACTION_ID_PATTERN = re.compile(r"-?[0-9]+")


def parse_transaction_id(raw_id: str) -> int:
    """Route ids must be plain base-10 integers (ASCII digits, optional minus)."""
    if not TRANSACTION_ID_PATTERN.fullmatch(raw_id):
        raise HTTPException(status_code=400, detail="Invalid transaction ID")
    return int(raw_id)


def invalid_payload(error: TransactionValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid transaction data", "error": error.message},
    )


@router.get("", response_model=List[Transaction])
async def read_transactions(request: Request):
    storage = request.app.state.storage

    try:
        return await storage.list_transactions()
    except Exception as e:
        logger.error("list_transactions_failed", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch transactions")


@router.get("/{transaction_id}", response_model=Transaction)
async def read_transaction(request: Request, transaction_id: str):
    storage = request.app.state.storage
    parsed_id = parse_transaction_id(transaction_id)

    transaction = await storage.get_transaction(parsed_id)
    if transaction is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return transaction


@router.post("", response_model=Transaction, status_code=201)
async def create_transaction(request: Request, payload: Any = Body(default=None)):
    storage = request.app.state.storage
    validator = request.app.state.validator
    audit = request.app.state.audit

    try:
        data = validator.validate_insert(payload)
    except TransactionValidationError as e:
        return invalid_payload(e)

    transaction = await storage.create_transaction(data)
    audit.log_transaction_created(
        transaction.id, transaction.amount, transaction.category.value
    )
    return transaction


@router.patch("/{transaction_id}", response_model=Transaction)
async def update_transaction(
    request: Request,
    transaction_id: str,
    payload: Any = Body(default=None),
):
    storage = request.app.state.storage
    validator = request.app.state.validator
    audit = request.app.state.audit
    parsed_id = parse_transaction_id(transaction_id)

    existing = await storage.get_transaction(parsed_id)
    if existing is None:
        raise HTTPException(status_code=404, detail="Transaction not found")

    try:
        update = validator.validate_update(payload)
    except TransactionValidationError as e:
        return invalid_payload(e)

    updated = await storage.update_transaction(parsed_id, update)
    if updated is None:
        raise HTTPException(status_code=404, detail="Transaction not found")

    audit.log_transaction_updated(parsed_id, sorted(update.changes()))
    return updated


@router.delete("/{transaction_id}", status_code=204)
async def delete_transaction(request: Request, transaction_id: str):
    storage = request.app.state.storage
    audit = request.app.state.audit
    parsed_id = parse_transaction_id(transaction_id)

    deleted = await storage.delete_transaction(parsed_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Transaction not found")

    audit.log_transaction_deleted(parsed_id)
    return Response(status_code=204)
