import pytest
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import IntegrityError

from fintrack.database import Base, get_sessionmaker, init_db
from fintrack.models import Category, Merchant, Transaction


def _alembic_version(url: str) -> str:
    engine = create_engine(url)
    try:
        with engine.connect() as conn:
            return conn.execute(text("SELECT version_num FROM alembic_version")).scalar()
    finally:
        engine.dispose()


def test_init_db_builds_new_database_and_stamps_head(tmp_path):
    url = f"sqlite:///{tmp_path / 'fresh.db'}"

    init_db(url)

    engine = create_engine(url)
    tables = set(inspect(engine).get_table_names())
    engine.dispose()
    assert {"categories", "merchants", "transactions", "alembic_version"} <= tables
    assert _alembic_version(url) == "0001"


def test_init_db_adopts_unversioned_database(tmp_path):
    url = f"sqlite:///{tmp_path / 'legacy.db'}"
    engine = create_engine(url)
    Base.metadata.create_all(engine)
    engine.dispose()

    init_db(url)

    assert _alembic_version(url) == "0001"


def test_init_db_is_idempotent(tmp_path):
    url = f"sqlite:///{tmp_path / 'twice.db'}"

    init_db(url)
    init_db(url)

    assert _alembic_version(url) == "0001"


def test_in_memory_database_skips_migrations():
    assert init_db("sqlite://") == "sqlite://"


def test_foreign_keys_are_enforced(tmp_path):
    url = f"sqlite:///{tmp_path / 'fk.db'}"
    init_db(url)
    db = get_sessionmaker(url)()
    try:
        db.add(Transaction(merchant_id=12345, amount_cents=100, posted_date="2024-01-01"))
        with pytest.raises(IntegrityError):
            db.commit()
    finally:
        db.close()


def test_multiplier_check_constraint(tmp_path):
    url = f"sqlite:///{tmp_path / 'ck.db'}"
    init_db(url)
    db = get_sessionmaker(url)()
    try:
        db.add(Category(name="Weird", multiplier=2))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

        food = Category(name="Food", multiplier=-1)
        db.add(food)
        db.commit()
        db.add(Merchant(name="Cafe", category_id=food.id))
        db.commit()
        assert db.query(Merchant).count() == 1
    finally:
        db.close()
