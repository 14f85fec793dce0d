from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import NotFoundError
from ..models import Category, Merchant
from ..schemas import CategoryCreate, CategorySchema, CategoryUpdate, DeletePolicy
from ..services import catalog, resolver
from ..services.normalizer import clean_name

router = APIRouter(prefix="/categories", tags=["categories"])


def _merchant_count(db: Session, cat_id: int) -> int:
    return db.query(func.count(Merchant.id)).filter(Merchant.category_id == cat_id).scalar() or 0


def _to_schema(cat: Category, merchant_count: int) -> CategorySchema:
    return CategorySchema(
        id=cat.id,
        name=cat.name,
        multiplier=cat.multiplier,
        merchant_count=merchant_count,
        created_at=cat.created_at,
    )


@router.get("/", response_model=list[CategorySchema], summary="List all categories")
def list_categories(db: Session = Depends(get_db)):
    counts: dict[int, int] = dict(
        db.query(Merchant.category_id, func.count(Merchant.id))
        .filter(Merchant.category_id.isnot(None))
        .group_by(Merchant.category_id)
        .all()
    )
    cats = db.query(Category).order_by(Category.name).all()
    return [_to_schema(c, counts.get(c.id, 0)) for c in cats]


@router.post("/", response_model=CategorySchema, status_code=201, summary="Create a category")
def create_category(payload: CategoryCreate, db: Session = Depends(get_db)):
    cat = catalog.add_category(db, payload.name, payload.multiplier)
    return _to_schema(cat, 0)


@router.get("/by-name/{name}", response_model=CategorySchema, summary="Get a category by exact name")
def get_category_by_name(name: str, db: Session = Depends(get_db)):
    cat = resolver.get_category_by_name(db, clean_name(name))
    if not cat:
        raise NotFoundError(f"category {name!r} not found")
    return _to_schema(cat, _merchant_count(db, cat.id))


@router.get("/{cat_id}", response_model=CategorySchema, summary="Get a category by ID")
def get_category(cat_id: int, db: Session = Depends(get_db)):
    cat = catalog.get_category_or_raise(db, cat_id)
    return _to_schema(cat, _merchant_count(db, cat_id))


@router.put("/{cat_id}", response_model=CategorySchema, summary="Rename a category or change its multiplier")
def update_category(cat_id: int, payload: CategoryUpdate, db: Session = Depends(get_db)):
    cat = catalog.update_category(db, cat_id, name=payload.name, multiplier=payload.multiplier)
    return _to_schema(cat, _merchant_count(db, cat_id))


@router.delete("/{cat_id}", status_code=204, summary="Delete a category")
def delete_category(
    cat_id: int,
    policy: DeletePolicy = Query(default=DeletePolicy.REJECT, description="What to do with its merchants"),
    db: Session = Depends(get_db),
):
    catalog.delete_category(db, cat_id, policy)
