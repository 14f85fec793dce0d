from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas import (
    TransactionCreate,
    TransactionCreated,
    TransactionListResponse,
    TransactionUpdate,
    TransactionView,
)
from ..services import transaction_service

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("/", response_model=TransactionListResponse, summary="List all transactions with metrics")
def list_transactions(db: Session = Depends(get_db)):
    return transaction_service.list_transactions(db)


@router.post("/", response_model=TransactionCreated, status_code=201, summary="Add a transaction")
def add_transaction(payload: TransactionCreate, db: Session = Depends(get_db)):
    """Add a transaction, creating its merchant and category on first use."""
    tx_id = transaction_service.add_transaction(
        db,
        merchant_name=payload.merchant_name,
        category_name=payload.category_name,
        category_multiplier=payload.category_multiplier,
        amount=payload.amount,
        date=payload.date,
    )
    return {"id": tx_id}


@router.get(
    "/by-merchant-id/{merchant_id}",
    response_model=TransactionListResponse,
    summary="List a merchant's transactions with metrics",
)
def list_by_merchant_id(merchant_id: int, db: Session = Depends(get_db)):
    return transaction_service.list_transactions_by_merchant_id(db, merchant_id)


@router.get(
    "/by-merchant-name/{name}",
    response_model=TransactionListResponse,
    summary="List a merchant's transactions with metrics, by merchant name",
)
def list_by_merchant_name(name: str, db: Session = Depends(get_db)):
    return transaction_service.list_transactions_by_merchant_name(db, name)


@router.get(
    "/by-category-name/{name}",
    response_model=TransactionListResponse,
    summary="List a category's transactions across its merchants, with metrics",
)
def list_by_category_name(name: str, db: Session = Depends(get_db)):
    return transaction_service.list_transactions_by_category_name(db, name)


@router.get("/by-date-range", response_model=TransactionListResponse, summary="List transactions in a date range")
def list_by_date_range(
    start_date: str = Query(description="First date, inclusive (YYYY-MM-DD)"),
    end_date: str = Query(description="Last date, inclusive (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
):
    return transaction_service.list_transactions_by_date_range(db, start_date, end_date)


@router.get("/{tx_id}", response_model=TransactionView, summary="Get one transaction")
def get_transaction(tx_id: int, db: Session = Depends(get_db)):
    return transaction_service.get_transaction(db, tx_id)


@router.put("/{tx_id}", response_model=TransactionView, summary="Update merchant, amount or date")
def update_transaction(tx_id: int, body: TransactionUpdate, db: Session = Depends(get_db)):
    """Only the fields present in the body are written."""
    return transaction_service.update_transaction(
        db,
        tx_id,
        merchant_name=body.merchant_name,
        category_name=body.category_name,
        category_multiplier=body.category_multiplier,
        amount=body.amount,
        date=body.date,
    )


@router.delete("/{tx_id}", status_code=204, summary="Permanently delete a transaction")
def delete_transaction(tx_id: int, db: Session = Depends(get_db)):
    transaction_service.delete_transaction(db, tx_id)
