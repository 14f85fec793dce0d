"""Merchant/category resolution: map human-supplied names to stable ids.

An existing merchant always wins: category arguments are only read when the
merchant has to be created, and an existing category keeps its multiplier
whatever the caller passes.  Moving a merchant to another category is an
explicit update (see catalog.update_merchant), never a side effect of
resolving it again.

Each insert runs in a SAVEPOINT.  When a concurrent request creates the same
name first, the unique constraint rejects our insert; we roll back to the
savepoint and use the row the other request committed.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import InvalidInputError, StoreError
from ..models import Category, Merchant
from .normalizer import check_multiplier, clean_name

logger = logging.getLogger(__name__)


def get_category_by_name(db: Session, name: str) -> Optional[Category]:
    return db.query(Category).filter(Category.name == name).first()


def get_merchant_by_name(db: Session, name: str) -> Optional[Merchant]:
    return db.query(Merchant).filter(Merchant.name == name).first()


def _insert_or_reread(db: Session, row, reread):
    """Insert ``row`` in a savepoint; on a unique-constraint clash return ``reread()``."""
    try:
        with db.begin_nested():
            db.add(row)
    except IntegrityError as exc:
        existing = reread()
        if existing is None:
            # The clash was not a lost race (e.g. a CHECK or FK failure)
            db.rollback()
            raise StoreError(str(exc.orig)) from exc
        logger.info("Lost create race for %r; reusing id=%s", getattr(row, "name", row), existing.id)
        return existing
    db.commit()
    return row


def resolve_category(db: Session, category_name: Optional[str], category_multiplier: Optional[int]) -> int:
    """Return the id of ``category_name``, creating it with ``category_multiplier`` if absent."""
    name = clean_name(category_name)
    if not name:
        raise InvalidInputError("missing required field: category_name")

    cat = get_category_by_name(db, name)
    if cat is not None:
        # Existing definition wins over the caller's multiplier hint
        return cat.id

    if category_multiplier is None:
        raise InvalidInputError("missing required field: category_multiplier")
    multiplier = check_multiplier(category_multiplier)

    cat = _insert_or_reread(
        db,
        Category(name=name, multiplier=multiplier),
        lambda: get_category_by_name(db, name),
    )
    logger.info("Resolved category %r to id=%s", name, cat.id)
    return cat.id


def resolve_merchant(
    db: Session,
    merchant_name: Optional[str],
    category_name: Optional[str] = None,
    category_multiplier: Optional[int] = None,
) -> int:
    """Return the id of ``merchant_name``, creating the merchant (and its category) on first use.

    Args:
        db: The database session.
        merchant_name: Exact merchant name; required.
        category_name: Category for a brand-new merchant. Ignored if the merchant exists.
        category_multiplier: -1 or 1, used only if the category has to be created.

    Raises:
        InvalidInputError: ``merchant_name`` is blank, or the merchant is new and
            the category context is incomplete.
    """
    name = clean_name(merchant_name)
    if not name:
        raise InvalidInputError("missing required field: merchant_name")

    merchant = get_merchant_by_name(db, name)
    if merchant is not None:
        return merchant.id

    missing = []
    if not clean_name(category_name):
        missing.append("category_name")
    if category_multiplier is None:
        missing.append("category_multiplier")
    if missing:
        raise InvalidInputError(
            f"merchant {name!r} does not exist; missing required field(s): {', '.join(missing)}"
        )

    category_id = resolve_category(db, category_name, category_multiplier)

    merchant = _insert_or_reread(
        db,
        Merchant(name=name, category_id=category_id),
        lambda: get_merchant_by_name(db, name),
    )
    logger.info("Resolved merchant %r to id=%s (category id=%s)", name, merchant.id, category_id)
    return merchant.id
