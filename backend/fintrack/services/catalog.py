"""Category and merchant maintenance: explicit adds, updates and policy-driven deletes."""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import ConflictError, InvalidInputError, NotFoundError
from ..models import Category, Merchant, Transaction
from ..schemas import DeletePolicy
from .normalizer import check_multiplier, clean_name
from .resolver import get_category_by_name, get_merchant_by_name, resolve_category

logger = logging.getLogger(__name__)


def get_category_or_raise(db: Session, cat_id: int) -> Category:
    cat = db.get(Category, cat_id)
    if cat is None:
        raise NotFoundError(f"category {cat_id} not found")
    return cat


def get_merchant_or_raise(db: Session, merchant_id: int) -> Merchant:
    merchant = db.get(Merchant, merchant_id)
    if merchant is None:
        raise NotFoundError(f"merchant {merchant_id} not found")
    return merchant


def _insert_unique(db: Session, row, conflict_message: str) -> None:
    """Insert ``row`` in a savepoint and commit; a unique clash from a concurrent add is a conflict."""
    try:
        with db.begin_nested():
            db.add(row)
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(conflict_message) from exc
    db.commit()


# ── Categories ────────────────────────────────────────────────────────────────


def add_category(db: Session, name: Optional[str], multiplier: Optional[int]) -> Category:
    name = clean_name(name)
    if not name:
        raise InvalidInputError("missing required field: name")
    multiplier = check_multiplier(multiplier)
    if get_category_by_name(db, name):
        raise ConflictError(f"category {name!r} already exists")
    cat = Category(name=name, multiplier=multiplier)
    _insert_unique(db, cat, f"category {name!r} already exists")
    db.refresh(cat)
    logger.info("Added category %r (id=%s, multiplier=%s)", name, cat.id, multiplier)
    return cat


def update_category(
    db: Session, cat_id: int, name: Optional[str] = None, multiplier: Optional[int] = None
) -> Category:
    """Rename and/or re-sign a category; omitted fields are left alone."""
    cat = get_category_or_raise(db, cat_id)
    if name is not None:
        name = clean_name(name)
        if not name:
            raise InvalidInputError("category name cannot be empty")
        if name != cat.name and get_category_by_name(db, name):
            raise ConflictError(f"category {name!r} already exists")
    if multiplier is not None:
        multiplier = check_multiplier(multiplier)

    if name is not None:
        cat.name = name
    if multiplier is not None:
        cat.multiplier = multiplier
    db.commit()
    db.refresh(cat)
    return cat


def delete_category(db: Session, cat_id: int, policy: DeletePolicy = DeletePolicy.REJECT) -> None:
    """Delete a category.

    reject: refuse while any merchant belongs to it.
    cascade: delete its merchants and all of their transactions too.
    orphan: detach its merchants (category_id = NULL); their transactions
        cannot be expanded until the merchants are reassigned.
    """
    cat = get_category_or_raise(db, cat_id)
    merchant_ids = [m.id for m in db.query(Merchant.id).filter(Merchant.category_id == cat_id)]

    if merchant_ids:
        if policy == DeletePolicy.REJECT:
            raise ConflictError(
                f"category {cat.name!r} still has {len(merchant_ids)} merchant(s); "
                "use policy=cascade or policy=orphan"
            )
        if policy == DeletePolicy.CASCADE:
            db.query(Transaction).filter(Transaction.merchant_id.in_(merchant_ids)).delete(
                synchronize_session="fetch"
            )
            db.query(Merchant).filter(Merchant.id.in_(merchant_ids)).delete(synchronize_session="fetch")
        else:
            db.query(Merchant).filter(Merchant.id.in_(merchant_ids)).update(
                {"category_id": None}, synchronize_session="fetch"
            )

    db.delete(cat)
    db.commit()
    logger.info("Deleted category id=%s (policy=%s, %d merchant(s) affected)", cat_id, policy.value, len(merchant_ids))


# ── Merchants ─────────────────────────────────────────────────────────────────


def add_merchant(
    db: Session, name: Optional[str], category_name: Optional[str], category_multiplier: Optional[int]
) -> Merchant:
    name = clean_name(name)
    if not name:
        raise InvalidInputError("missing required field: name")
    if get_merchant_by_name(db, name):
        raise ConflictError(f"merchant {name!r} already exists")
    category_id = resolve_category(db, category_name, category_multiplier)
    merchant = Merchant(name=name, category_id=category_id)
    _insert_unique(db, merchant, f"merchant {name!r} already exists")
    db.refresh(merchant)
    logger.info("Added merchant %r (id=%s, category id=%s)", name, merchant.id, category_id)
    return merchant


def update_merchant(
    db: Session,
    merchant_id: int,
    name: Optional[str] = None,
    category_name: Optional[str] = None,
    category_multiplier: Optional[int] = None,
) -> Merchant:
    """Rename a merchant and/or move it to another category (created if absent)."""
    merchant = get_merchant_or_raise(db, merchant_id)
    if name is not None:
        name = clean_name(name)
        if not name:
            raise InvalidInputError("merchant name cannot be empty")
        if name != merchant.name and get_merchant_by_name(db, name):
            raise ConflictError(f"merchant {name!r} already exists")

    if category_name is not None:
        merchant.category_id = resolve_category(db, category_name, category_multiplier)
    if name is not None:
        merchant.name = name
    db.commit()
    db.refresh(merchant)
    return merchant


def delete_merchant(db: Session, merchant_id: int, policy: DeletePolicy = DeletePolicy.REJECT) -> None:
    """Delete a merchant.

    reject: refuse while it has transactions.
    cascade: delete its transactions too.
    orphan: not supported, since a transaction cannot exist without a merchant.
    """
    merchant = get_merchant_or_raise(db, merchant_id)
    tx_count = db.query(Transaction).filter(Transaction.merchant_id == merchant_id).count()

    if tx_count:
        if policy == DeletePolicy.REJECT:
            raise ConflictError(
                f"merchant {merchant.name!r} still has {tx_count} transaction(s); use policy=cascade"
            )
        if policy == DeletePolicy.ORPHAN:
            raise InvalidInputError("policy=orphan is not allowed for merchants: transactions require a merchant")
        db.query(Transaction).filter(Transaction.merchant_id == merchant_id).delete(synchronize_session="fetch")

    db.delete(merchant)
    db.commit()
    logger.info("Deleted merchant id=%s (policy=%s, %d transaction(s) removed)", merchant_id, policy.value, tx_count)
