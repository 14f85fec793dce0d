import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .database import init_db
from .errors import FintrackError
from .routers import categories, merchants, transactions
from .schemas import HealthResponse

VERSION = "0.1.0"

LOG_LEVEL = os.getenv("FINTRACK_LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("FINTRACK_CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
    if o.strip()
]

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(name)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # ── Startup ───────────────────────────────────────────────────────────────
    # One engine for the whole process; create tables and run Alembic.
    init_db()
    yield
    # ── Shutdown (nothing needed for SQLite) ──────────────────────────────────


app = FastAPI(
    title="fintrack",
    description="Personal finance tracker: merchants, categories, transactions and metrics.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FintrackError)
async def fintrack_error_handler(request: Request, exc: FintrackError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s: %s", request.method, request.url.path, type(exc).__name__, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("%s %s store failure: %s", request.method, request.url.path, exc)
    detail = str(getattr(exc, "orig", None) or exc)
    return JSONResponse(status_code=500, content={"detail": detail})


app.include_router(categories.router)
app.include_router(merchants.router)
app.include_router(transactions.router)


@app.get("/health", response_model=HealthResponse, tags=["meta"])
def health():
    return {"status": "ok", "version": VERSION}
