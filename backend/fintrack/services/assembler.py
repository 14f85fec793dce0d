"""Expand stored transaction rows into denormalized views."""

from typing import Iterable

from sqlalchemy.orm import Session

from ..errors import DataIntegrityError
from ..models import Category, Merchant, Transaction
from ..schemas import TransactionView
from .normalizer import from_cents


def expand_transaction(db: Session, tx: Transaction) -> TransactionView:
    """Join one transaction to its merchant and category.

    Both lookups go through the session identity map, so a merchant or
    category shared by many rows is loaded once per session.  A dangling
    reference is a corrupt store and raises DataIntegrityError.
    """
    merchant = db.get(Merchant, tx.merchant_id)
    if merchant is None:
        raise DataIntegrityError(
            f"transaction {tx.id} references missing merchant {tx.merchant_id}"
        )
    if merchant.category_id is None:
        raise DataIntegrityError(
            f"merchant {merchant.id} ({merchant.name!r}) of transaction {tx.id} has no category"
        )
    category = db.get(Category, merchant.category_id)
    if category is None:
        raise DataIntegrityError(
            f"merchant {merchant.id} ({merchant.name!r}) references missing category {merchant.category_id}"
        )
    return TransactionView(
        id=tx.id,
        merchant_name=merchant.name,
        category_name=category.name,
        category_multiplier=category.multiplier,
        amount=from_cents(tx.amount_cents),
        date=tx.posted_date,
    )


def expand_transactions(db: Session, txns: Iterable[Transaction]) -> list[TransactionView]:
    """Expand rows in the order given."""
    return [expand_transaction(db, tx) for tx in txns]
