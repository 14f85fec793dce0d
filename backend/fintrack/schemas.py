from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel


# ─────────────────────────────────────────────────────────────────────────────
# Health
# ─────────────────────────────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str
    version: str


# ─────────────────────────────────────────────────────────────────────────────
# Deletion
# ─────────────────────────────────────────────────────────────────────────────


class DeletePolicy(str, Enum):
    REJECT = "reject"
    CASCADE = "cascade"
    ORPHAN = "orphan"


# ─────────────────────────────────────────────────────────────────────────────
# Category
# ─────────────────────────────────────────────────────────────────────────────


class CategoryCreate(BaseModel):
    name: str
    multiplier: Literal[-1, 1]


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    multiplier: Optional[Literal[-1, 1]] = None


class CategorySchema(BaseModel):
    model_config = {"from_attributes": True}
    id: int
    name: str
    multiplier: int
    merchant_count: int = 0
    created_at: Optional[datetime] = None


# ─────────────────────────────────────────────────────────────────────────────
# Merchant
# ─────────────────────────────────────────────────────────────────────────────


class MerchantCreate(BaseModel):
    name: str
    category_name: str
    category_multiplier: Literal[-1, 1]


class MerchantUpdate(BaseModel):
    name: Optional[str] = None
    category_name: Optional[str] = None
    # Only consulted when category_name does not exist yet
    category_multiplier: Optional[Literal[-1, 1]] = None


class MerchantSchema(BaseModel):
    id: int
    name: str
    category_id: Optional[int]
    category_name: Optional[str] = None
    category_multiplier: Optional[int] = None
    transaction_count: int = 0
    created_at: Optional[datetime] = None


# ─────────────────────────────────────────────────────────────────────────────
# Transactions
# ─────────────────────────────────────────────────────────────────────────────


class TransactionCreate(BaseModel):
    merchant_name: str
    # Both required only the first time a merchant is seen
    category_name: Optional[str] = None
    category_multiplier: Optional[Literal[-1, 1]] = None
    amount: float
    date: str


class TransactionUpdate(BaseModel):
    merchant_name: Optional[str] = None
    category_name: Optional[str] = None
    category_multiplier: Optional[Literal[-1, 1]] = None
    amount: Optional[float] = None
    date: Optional[str] = None


class TransactionCreated(BaseModel):
    id: int


class TransactionView(BaseModel):
    """A transaction joined with its merchant and category. Never stored."""

    id: int
    merchant_name: str
    category_name: str
    category_multiplier: int
    amount: float
    date: str


class TransactionMetrics(BaseModel):
    """Aggregates over a date-ordered list of transactions.

    Every field is None for an empty list. Averages are None when their
    count is zero, and the negative max/min are None without expense rows.
    """

    transaction_count: Optional[int] = None
    positive_transaction_count: Optional[int] = None
    negative_transaction_count: Optional[int] = None
    merchant_count: Optional[int] = None
    category_count: Optional[int] = None
    day_count: Optional[int] = None
    balance: Optional[float] = None
    net_positive: Optional[float] = None
    net_negative: Optional[float] = None
    average_positive: Optional[float] = None
    average_negative: Optional[float] = None
    maximum_negative: Optional[float] = None
    minimum_negative: Optional[float] = None
    positive_per_day: Optional[float] = None
    negative_per_day: Optional[float] = None


class TransactionListResponse(BaseModel):
    transactions: list[TransactionView]
    metrics: TransactionMetrics
