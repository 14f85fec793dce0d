"""Merchants router: CRUD for merchants and their category assignment."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ..database import get_db
from ..errors import NotFoundError
from ..models import Merchant, Transaction
from ..schemas import DeletePolicy, MerchantCreate, MerchantSchema, MerchantUpdate
from ..services import catalog, resolver
from ..services.normalizer import clean_name

router = APIRouter(prefix="/merchants", tags=["merchants"])


def _tx_count(db: Session, merchant_id: int) -> int:
    return db.query(func.count(Transaction.id)).filter(Transaction.merchant_id == merchant_id).scalar() or 0


def _to_schema(merchant: Merchant, tx_count: int) -> MerchantSchema:
    cat = merchant.category
    return MerchantSchema(
        id=merchant.id,
        name=merchant.name,
        category_id=merchant.category_id,
        category_name=cat.name if cat else None,
        category_multiplier=cat.multiplier if cat else None,
        transaction_count=tx_count,
        created_at=merchant.created_at,
    )


@router.get("/", response_model=list[MerchantSchema], summary="List all merchants")
def list_merchants(db: Session = Depends(get_db)):
    """List all merchants ordered by name, with their category and transaction count."""
    counts: dict[int, int] = dict(
        db.query(Transaction.merchant_id, func.count(Transaction.id))
        .group_by(Transaction.merchant_id)
        .all()
    )
    merchants = db.query(Merchant).options(joinedload(Merchant.category)).order_by(Merchant.name).all()
    return [_to_schema(m, counts.get(m.id, 0)) for m in merchants]


@router.post("/", response_model=MerchantSchema, status_code=201, summary="Create a merchant")
def create_merchant(payload: MerchantCreate, db: Session = Depends(get_db)):
    """Create a merchant; its category is created too if the name is new."""
    merchant = catalog.add_merchant(db, payload.name, payload.category_name, payload.category_multiplier)
    return _to_schema(merchant, 0)


@router.get("/by-name/{name}", response_model=MerchantSchema, summary="Get a merchant by exact name")
def get_merchant_by_name(name: str, db: Session = Depends(get_db)):
    merchant = resolver.get_merchant_by_name(db, clean_name(name))
    if not merchant:
        raise NotFoundError(f"merchant {name!r} not found")
    return _to_schema(merchant, _tx_count(db, merchant.id))


@router.get("/{merchant_id}", response_model=MerchantSchema, summary="Get a merchant by ID")
def get_merchant(merchant_id: int, db: Session = Depends(get_db)):
    merchant = catalog.get_merchant_or_raise(db, merchant_id)
    return _to_schema(merchant, _tx_count(db, merchant_id))


@router.put("/{merchant_id}", response_model=MerchantSchema, summary="Rename a merchant or move it to another category")
def update_merchant(merchant_id: int, payload: MerchantUpdate, db: Session = Depends(get_db)):
    merchant = catalog.update_merchant(
        db,
        merchant_id,
        name=payload.name,
        category_name=payload.category_name,
        category_multiplier=payload.category_multiplier,
    )
    return _to_schema(merchant, _tx_count(db, merchant_id))


@router.delete("/{merchant_id}", status_code=204, summary="Delete a merchant")
def delete_merchant(
    merchant_id: int,
    policy: DeletePolicy = Query(default=DeletePolicy.REJECT, description="What to do with its transactions"),
    db: Session = Depends(get_db),
):
    catalog.delete_merchant(db, merchant_id, policy)
