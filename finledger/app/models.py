from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from finledger.app.db import Base


# -------------------------
# Helpers
# -------------------------

def utcnow() -> datetime:
    # Stored naive in UTC; SQLite drops tzinfo anyway.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def uuid_str() -> str:
    return str(uuid.uuid4())


TXN_TYPES = ("deposit", "withdrawal")
MESSAGE_TYPES = ("info", "warning")

Money = Numeric(14, 2)


# -------------------------
# Sessions
# -------------------------

class LedgerSession(Base):
    """
    Anonymous tenant boundary.

    clock: latest transaction date ever posted (monotonic); the "now" used for
    saving-goal accrual and payment-request bookkeeping.
    version: bumped on every ledger mutation, tags LedgerSnapshot instances.
    """
    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid_str)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    clock: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


# -------------------------
# Ledger
# -------------------------

class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class Transaction(Base):
    """
    amount is always positive; the sign comes from type (deposit: +, withdrawal: -).
    """
    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_session_date", "session_id", "date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    external_iban: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    category_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    category = relationship("Category")


class CategoryRule(Base):
    __tablename__ = "category_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    description: Mapped[str] = mapped_column(String(500), nullable=False)
    iban: Mapped[str] = mapped_column(String(64), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    apply_on_history: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    last_run_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_run_updated_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


# -------------------------
# Goals / requests / messages
# -------------------------

class SavingGoal(Base):
    """
    anchor: session clock when the goal started accruing (set lazily when the
    session had no transactions yet). months_accrued counts whole months
    already processed since anchor.
    """
    __tablename__ = "saving_goals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    goal: Mapped[Decimal] = mapped_column(Money, nullable=False)
    save_per_month: Mapped[Decimal] = mapped_column(Money, nullable=False)
    min_balance_required: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    balance: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))

    anchor: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    months_accrued: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class PaymentRequest(Base):
    """
    requested_at: session clock at creation. Deposits dated before it never
    count toward the request; None means the session had no clock yet.
    last_txn_id: highest transaction id of the session at creation; only
    deposits posted afterwards are eligible.
    """
    __tablename__ = "payment_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    description: Mapped[str] = mapped_column(String(500), nullable=False)
    due_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    number_of_requests: Mapped[int] = mapped_column(Integer, nullable=False)

    requested_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_txn_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    overdue_notified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class PaymentRequestMatch(Base):
    __tablename__ = "payment_request_matches"
    __table_args__ = (
        UniqueConstraint("transaction_id", name="uq_payment_request_match_txn"),
        Index("ix_payment_request_matches_request_id", "payment_request_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    payment_request_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("payment_requests.id", ondelete="CASCADE"),
        nullable=False,
    )
    transaction_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("transactions.id", ondelete="CASCADE"),
        nullable=False,
    )


class UserMessage(Base):
    """
    Append-only advisory message; read is the only mutable field.
    """
    __tablename__ = "user_messages"
    __table_args__ = (
        Index("ix_user_messages_session_id", "session_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
    )

    type: Mapped[str] = mapped_column(String(10), nullable=False)
    kind: Mapped[str] = mapped_column(String(60), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
