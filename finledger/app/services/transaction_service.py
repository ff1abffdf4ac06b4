from __future__ import annotations

from datetime import datetime
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from finledger.app.config import default_page_size
from finledger.app.errors import InvalidParameter, NotFound
from finledger.app.models import TXN_TYPES, Category, Transaction, to_utc_naive, utcnow
from finledger.app.norma.ledger import ZERO, money
from finledger.app.services import payment_request_service, pipeline
from finledger.app.services.category_service import require_category
from finledger.app.services.ledger_service import find_session, record_mutation

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def require_transaction(db: Session, session_id: str, txn_id: int) -> Transaction:
    txn = db.execute(
        select(Transaction).where(
            and_(
                Transaction.session_id == session_id,
                Transaction.id == txn_id,
            )
        )
    ).scalar_one_or_none()
    if not txn:
        raise NotFound("transaction not found")
    return txn


def _validated_fields(
    db: Session,
    session_id: str,
    *,
    date: datetime,
    amount: Decimal,
    txn_type: str,
    category_id: Optional[int],
) -> tuple[datetime, Decimal]:
    if date is None:
        raise InvalidParameter("date is required")
    if txn_type not in TXN_TYPES:
        raise InvalidParameter(f"type must be one of {', '.join(TXN_TYPES)}")
    amt = money(amount)
    if amt <= ZERO:
        raise InvalidParameter("amount must be positive")
    if category_id is not None:
        require_category(db, session_id, category_id)
    return to_utc_naive(date), amt


def list_transactions(
    db: Session,
    session_id: str,
    *,
    offset: int = 0,
    limit: Optional[int] = None,
    category: Optional[str] = None,
) -> List[Transaction]:
    limit = default_page_size() if limit is None else limit
    if offset < 0 or limit < 1 or limit > MAX_PAGE_SIZE:
        raise InvalidParameter(f"offset must be >= 0 and limit within 1..{MAX_PAGE_SIZE}")

    stmt = select(Transaction).where(Transaction.session_id == session_id)
    if category:
        stmt = stmt.join(Category, Category.id == Transaction.category_id).where(Category.name == category)
    stmt = stmt.order_by(Transaction.id.asc()).offset(offset).limit(limit)
    return list(db.execute(stmt).scalars().all())


def create_transaction(
    db: Session,
    session_id: str,
    *,
    date: datetime,
    amount: Decimal,
    txn_type: str,
    description: Optional[str] = None,
    external_iban: Optional[str] = None,
    category_id: Optional[int] = None,
) -> Transaction:
    sess = find_session(db, session_id)
    date, amount = _validated_fields(
        db, session_id, date=date, amount=amount, txn_type=txn_type, category_id=category_id
    )
    before = pipeline.capture_state(db, session_id)

    txn = Transaction(
        session_id=session_id,
        date=date,
        amount=amount,
        type=txn_type,
        description=description or "",
        external_iban=external_iban,
        category_id=category_id,
        created_at=utcnow(),
    )
    db.add(txn)
    db.flush()
    record_mutation(db, sess, date)

    pipeline.run(
        db,
        session_id,
        before,
        changed=txn,
        uncategorized=txn if category_id is None else None,
    )
    db.commit()
    db.refresh(txn)
    logger.info("Transaction %s posted to session %s", txn.id, session_id)
    return txn


def update_transaction(
    db: Session,
    session_id: str,
    txn_id: int,
    *,
    date: datetime,
    amount: Decimal,
    txn_type: str,
    description: Optional[str] = None,
    external_iban: Optional[str] = None,
    category_id: Optional[int] = None,
) -> Transaction:
    sess = find_session(db, session_id)
    txn = require_transaction(db, session_id, txn_id)
    date, amount = _validated_fields(
        db, session_id, date=date, amount=amount, txn_type=txn_type, category_id=category_id
    )
    before = pipeline.capture_state(db, session_id)

    txn.date = date
    txn.amount = amount
    txn.type = txn_type
    txn.description = description or ""
    txn.external_iban = external_iban
    txn.category_id = category_id
    db.add(txn)
    db.flush()
    record_mutation(db, sess, date)

    pipeline.run(
        db,
        session_id,
        before,
        changed=txn,
        uncategorized=txn if category_id is None else None,
    )
    db.commit()
    db.refresh(txn)
    return txn


def set_category(db: Session, session_id: str, txn_id: int, category_id: int) -> Transaction:
    txn = require_transaction(db, session_id, txn_id)
    if category_id is None:
        raise InvalidParameter("category_id is required")
    cat = require_category(db, session_id, category_id)
    txn.category_id = cat.id
    db.add(txn)
    db.commit()
    db.refresh(txn)
    return txn


def delete_transaction(db: Session, session_id: str, txn_id: int) -> None:
    sess = find_session(db, session_id)
    txn = require_transaction(db, session_id, txn_id)
    before = pipeline.capture_state(db, session_id)

    payment_request_service.unmatch_transaction(db, txn.id)
    db.delete(txn)
    db.flush()
    record_mutation(db, sess)

    pipeline.run(db, session_id, before)
    db.commit()
    logger.info("Transaction %s deleted from session %s", txn_id, session_id)
