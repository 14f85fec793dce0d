from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .database import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True)
    multiplier = Column(Integer, nullable=False)  # +1 income | -1 expense
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    merchants = relationship("Merchant", back_populates="category")

    __table_args__ = (
        CheckConstraint("multiplier IN (-1, 1)", name="ck_categories_multiplier"),
    )


class Merchant(Base):
    __tablename__ = "merchants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, unique=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    category = relationship("Category", back_populates="merchants")
    transactions = relationship("Transaction", back_populates="merchant")


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    merchant_id = Column(Integer, ForeignKey("merchants.id"), nullable=False, index=True)
    amount_cents = Column(Integer, nullable=False)   # magnitude; sign comes from the category
    posted_date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    merchant = relationship("Merchant", back_populates="transactions")

    __table_args__ = (
        CheckConstraint("amount_cents >= 0", name="ck_transactions_amount_cents"),
    )
