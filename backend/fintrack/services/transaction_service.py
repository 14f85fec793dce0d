"""Transaction reads and writes.

Every list read fetches raw rows in ascending date order, expands them and
hands the expanded list to the metrics engine.  Views are rebuilt on each
read, so a renamed merchant or a flipped category multiplier shows up
immediately in old transactions.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Query, Session

from ..errors import InvalidInputError, NotFoundError
from ..models import Merchant, Transaction
from ..schemas import TransactionListResponse, TransactionView
from .assembler import expand_transaction, expand_transactions
from .metrics import compute_metrics
from .normalizer import clean_name, parse_amount_cents, parse_date
from .resolver import get_category_by_name, get_merchant_by_name, resolve_merchant

logger = logging.getLogger(__name__)


def _ordered(query: Query) -> Query:
    return query.order_by(Transaction.posted_date.asc(), Transaction.id.asc())


def _respond(views: list[TransactionView]) -> TransactionListResponse:
    return TransactionListResponse(transactions=views, metrics=compute_metrics(views))


def _get_tx_or_raise(db: Session, tx_id: int) -> Transaction:
    tx = db.get(Transaction, tx_id)
    if tx is None:
        raise NotFoundError(f"transaction {tx_id} not found")
    return tx


# ── Reads ─────────────────────────────────────────────────────────────────────


def get_transaction(db: Session, tx_id: int) -> TransactionView:
    return expand_transaction(db, _get_tx_or_raise(db, tx_id))


def list_transactions(db: Session) -> TransactionListResponse:
    txns = _ordered(db.query(Transaction)).all()
    return _respond(expand_transactions(db, txns))


def list_transactions_by_merchant_id(db: Session, merchant_id: int) -> TransactionListResponse:
    if db.get(Merchant, merchant_id) is None:
        raise NotFoundError(f"merchant {merchant_id} not found")
    txns = _ordered(db.query(Transaction).filter(Transaction.merchant_id == merchant_id)).all()
    return _respond(expand_transactions(db, txns))


def list_transactions_by_merchant_name(db: Session, merchant_name: str) -> TransactionListResponse:
    merchant = get_merchant_by_name(db, clean_name(merchant_name))
    if merchant is None:
        raise NotFoundError(f"merchant {merchant_name!r} not found")
    return list_transactions_by_merchant_id(db, merchant.id)


def list_transactions_by_category_name(db: Session, category_name: str) -> TransactionListResponse:
    """Transactions of every merchant in the category, merged into one date-ordered list.

    Each merchant's rows come back date-sorted but the concatenation is
    grouped by merchant, so the merged list is sorted again before metrics.
    """
    category = get_category_by_name(db, clean_name(category_name))
    if category is None:
        raise NotFoundError(f"category {category_name!r} not found")

    merchants = db.query(Merchant).filter(Merchant.category_id == category.id).order_by(Merchant.id).all()
    views: list[TransactionView] = []
    for merchant in merchants:
        txns = _ordered(db.query(Transaction).filter(Transaction.merchant_id == merchant.id)).all()
        views.extend(expand_transactions(db, txns))

    # ISO dates sort lexically; id breaks ties the same way _ordered does
    views.sort(key=lambda v: (v.date, v.id))
    return _respond(views)


def list_transactions_by_date_range(db: Session, start_date: str, end_date: str) -> TransactionListResponse:
    """Transactions with start_date <= date <= end_date."""
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start > end:
        raise InvalidInputError(f"start_date {start} is after end_date {end}")
    txns = _ordered(
        db.query(Transaction).filter(Transaction.posted_date >= start, Transaction.posted_date <= end)
    ).all()
    return _respond(expand_transactions(db, txns))


# ── Writes ────────────────────────────────────────────────────────────────────


def add_transaction(
    db: Session,
    merchant_name: Optional[str],
    category_name: Optional[str],
    category_multiplier: Optional[int],
    amount: Optional[float],
    date: Optional[str],
) -> int:
    """Resolve the merchant, insert the transaction and return its id."""
    if not clean_name(merchant_name):
        raise InvalidInputError("missing required field: merchant_name")
    amount_cents = parse_amount_cents(amount)
    posted_date = parse_date(date)

    merchant_id = resolve_merchant(db, merchant_name, category_name, category_multiplier)

    tx = Transaction(merchant_id=merchant_id, amount_cents=amount_cents, posted_date=posted_date)
    db.add(tx)
    db.commit()
    db.refresh(tx)
    logger.info("Added transaction id=%s (merchant id=%s, %s cents on %s)", tx.id, merchant_id, amount_cents, posted_date)
    return tx.id


def update_transaction(
    db: Session,
    tx_id: int,
    merchant_name: Optional[str] = None,
    category_name: Optional[str] = None,
    category_multiplier: Optional[int] = None,
    amount: Optional[float] = None,
    date: Optional[str] = None,
) -> TransactionView:
    """Apply whichever of merchant, amount and date were supplied."""
    tx = _get_tx_or_raise(db, tx_id)

    # Validate everything before resolving, which may create rows
    amount_cents = parse_amount_cents(amount) if amount is not None else None
    posted_date = parse_date(date) if date is not None else None
    if merchant_name is not None and not clean_name(merchant_name):
        raise InvalidInputError("merchant_name cannot be empty")

    if merchant_name is not None:
        tx.merchant_id = resolve_merchant(db, merchant_name, category_name, category_multiplier)
    if amount_cents is not None:
        tx.amount_cents = amount_cents
    if posted_date is not None:
        tx.posted_date = posted_date
    db.commit()
    return get_transaction(db, tx_id)


def delete_transaction(db: Session, tx_id: int) -> None:
    tx = _get_tx_or_raise(db, tx_id)
    db.delete(tx)
    db.commit()
    logger.info("Deleted transaction id=%s", tx_id)
