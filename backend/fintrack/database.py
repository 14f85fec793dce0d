import logging
import os
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import Engine, create_engine, event, inspect
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()

logger = logging.getLogger(__name__)

# Alembic script directory, used when running migrations programmatically
BACKEND_DIR = Path(__file__).parent.parent          # …/backend/
ALEMBIC_DIR = BACKEND_DIR / "alembic"

# fintrack.db lives next to the backend/ directory (repo root) unless overridden
DEFAULT_DATABASE_URL = f"sqlite:///{BACKEND_DIR.parent / 'fintrack.db'}"
DATABASE_URL = os.getenv("FINTRACK_DATABASE_URL", DEFAULT_DATABASE_URL)

# Revision that matches the schema produced by Base.metadata.create_all
BASELINE_REVISION = "0001"

_engines: dict[str, Engine] = {}
_sessionmakers: dict[str, sessionmaker] = {}


def _is_memory_url(db_url: str) -> bool:
    return db_url in ("sqlite://", "sqlite:///:memory:")


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()


def get_or_create_engine(db_url: Optional[str] = None) -> Engine:
    from . import models  # noqa: F401  registers tables on Base.metadata

    url = db_url or DATABASE_URL
    if url not in _engines:
        kwargs: dict = {}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if _is_memory_url(url):
                # One shared connection, otherwise every checkout sees an empty DB
                kwargs["poolclass"] = StaticPool
        engine = create_engine(url, **kwargs)
        if url.startswith("sqlite"):
            _enable_sqlite_foreign_keys(engine)
        Base.metadata.create_all(bind=engine)
        _engines[url] = engine
    return _engines[url]


def get_sessionmaker(db_url: Optional[str] = None) -> sessionmaker:
    url = db_url or DATABASE_URL
    if url not in _sessionmakers:
        _sessionmakers[url] = sessionmaker(
            autocommit=False, autoflush=False, bind=get_or_create_engine(url)
        )
    return _sessionmakers[url]


def _run_alembic_upgrade(db_url: str, *, is_new_db: bool = False) -> None:
    """Run Alembic migrations to head for the given DB URL.

    Strategy:
    - Brand-new DBs (``is_new_db=True``): ``create_all`` already built the full
      current schema in this process.  Stamp to head so future migrations know
      the baseline; no migrations need to run.
    - Existing DBs that already have an ``alembic_version`` table: just run
      ``upgrade head`` to apply any pending migrations.
    - DBs built by ``create_all`` without Alembic (no ``alembic_version``
      table but tables exist): stamp to the baseline revision, then run
      ``upgrade head``.
    """
    from alembic import command
    from alembic.config import Config

    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(ALEMBIC_DIR))
    alembic_cfg.set_main_option("sqlalchemy.url", db_url)

    if is_new_db:
        command.stamp(alembic_cfg, "head")
        return

    tmp_engine = create_engine(db_url)
    try:
        has_alembic_version = "alembic_version" in inspect(tmp_engine).get_table_names()
    finally:
        tmp_engine.dispose()

    if not has_alembic_version:
        command.stamp(alembic_cfg, BASELINE_REVISION)

    command.upgrade(alembic_cfg, "head")


def _sqlite_path(db_url: str) -> Optional[Path]:
    prefix = "sqlite:///"
    if not db_url.startswith(prefix) or _is_memory_url(db_url):
        return None
    return Path(db_url[len(prefix):])


def init_db(db_url: Optional[str] = None) -> str:
    """Create tables and bring the schema to the Alembic head. Returns the URL used."""
    url = db_url or DATABASE_URL
    db_path = _sqlite_path(url)

    # Track whether this is a brand-new DB before create_all creates the file.
    is_new_db = db_path is not None and not db_path.exists()
    if db_path is not None:
        db_path.parent.mkdir(parents=True, exist_ok=True)

    get_or_create_engine(url)

    if _is_memory_url(url):
        logger.info("In-memory database ready; skipping migrations")
        return url

    _run_alembic_upgrade(url, is_new_db=is_new_db)
    logger.info("Database ready at %s", url)
    return url


def get_db() -> Generator[Session, None, None]:
    db = get_sessionmaker()()
    try:
        yield db
    finally:
        db.close()
