from __future__ import annotations

from datetime import datetime
import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import and_, delete, func, select
from sqlalchemy.orm import Session

from finledger.app.errors import InvalidParameter, NotFound
from finledger.app.messages.core import RequestState
from finledger.app.models import PaymentRequest, PaymentRequestMatch, Transaction, to_utc_naive, utcnow
from finledger.app.norma.ledger import ZERO, money
from finledger.app.services.ledger_service import find_session

logger = logging.getLogger(__name__)


def require_request(db: Session, session_id: str, request_id: int) -> PaymentRequest:
    req = db.execute(
        select(PaymentRequest).where(
            and_(
                PaymentRequest.session_id == session_id,
                PaymentRequest.id == request_id,
            )
        )
    ).scalar_one_or_none()
    if not req:
        raise NotFound("payment request not found")
    return req


def _requests(db: Session, session_id: str) -> List[PaymentRequest]:
    stmt = (
        select(PaymentRequest)
        .where(PaymentRequest.session_id == session_id)
        .order_by(PaymentRequest.id.asc())
    )
    return list(db.execute(stmt).scalars().all())


def _matches(db: Session, session_id: str) -> List[PaymentRequestMatch]:
    stmt = (
        select(PaymentRequestMatch)
        .join(PaymentRequest, PaymentRequest.id == PaymentRequestMatch.payment_request_id)
        .where(PaymentRequest.session_id == session_id)
        .order_by(PaymentRequestMatch.id.asc())
    )
    return list(db.execute(stmt).scalars().all())


def _match_counts(db: Session, session_id: str) -> Dict[int, int]:
    counts: Dict[int, int] = {}
    for m in _matches(db, session_id):
        counts[m.payment_request_id] = counts.get(m.payment_request_id, 0) + 1
    return counts


def is_filled(req: PaymentRequest, matched: int) -> bool:
    return matched >= req.number_of_requests


def deposit_fits(req: PaymentRequest, txn: Transaction) -> bool:
    if txn.type != "deposit":
        return False
    if money(txn.amount) != money(req.amount):
        return False
    if req.last_txn_id is not None and txn.id <= req.last_txn_id:
        return False
    return req.requested_at is None or txn.date >= req.requested_at


def place_deposit(
    requests: List[PaymentRequest],
    counts: Dict[int, int],
    txn: Transaction,
) -> Optional[int]:
    """
    Oldest request with an equal amount that still has a free installment
    slot, or None.
    """
    for req in requests:
        if counts.get(req.id, 0) < req.number_of_requests and deposit_fits(req, txn):
            return req.id
    return None


def rematch(db: Session, session_id: str, changed: Optional[Transaction] = None) -> Dict[int, int]:
    """
    Keep existing matches fixed. Matches whose transaction no longer fits its
    request are dropped, then `changed` (a new or edited transaction) is placed
    into a free slot if it is not already matched.
    Returns {transaction_id: payment_request_id}. Flushes, does not commit.
    """
    requests = _requests(db, session_id)
    by_id = {r.id: r for r in requests}
    existing = _matches(db, session_id)
    txns: Dict[int, Transaction] = {}
    if existing:
        rows = db.execute(
            select(Transaction).where(Transaction.id.in_([m.transaction_id for m in existing]))
        ).scalars().all()
        txns = {t.id: t for t in rows}

    plan: Dict[int, int] = {}
    stale: List[PaymentRequestMatch] = []
    for m in existing:
        txn = txns.get(m.transaction_id)
        req = by_id.get(m.payment_request_id)
        if txn is None or req is None or not deposit_fits(req, txn):
            stale.append(m)
        else:
            plan[m.transaction_id] = m.payment_request_id

    if stale:
        db.execute(
            delete(PaymentRequestMatch)
            .where(PaymentRequestMatch.id.in_([m.id for m in stale]))
            .execution_options(synchronize_session=False)
        )
        for m in stale:
            db.expunge(m)
        db.flush()

    added = 0
    if changed is not None and changed.id not in plan:
        counts: Dict[int, int] = {}
        for req_id in plan.values():
            counts[req_id] = counts.get(req_id, 0) + 1
        req_id = place_deposit(requests, counts, changed)
        if req_id is not None:
            db.add(PaymentRequestMatch(payment_request_id=req_id, transaction_id=changed.id))
            plan[changed.id] = req_id
            added = 1
            db.flush()

    if stale or added:
        logger.info(
            "Payment requests rematched for session %s: %s matches removed, %s added",
            session_id,
            len(stale),
            added,
        )
    return plan


def unmatch_transaction(db: Session, txn_id: int) -> None:
    db.execute(
        delete(PaymentRequestMatch)
        .where(PaymentRequestMatch.transaction_id == txn_id)
        .execution_options(synchronize_session=False)
    )
    db.flush()


def request_states(db: Session, session_id: str) -> Dict[int, RequestState]:
    counts = _match_counts(db, session_id)
    return {
        r.id: RequestState(
            id=r.id,
            description=r.description,
            filled=is_filled(r, counts.get(r.id, 0)),
        )
        for r in _requests(db, session_id)
    }


def flag_overdue(db: Session, session_id: str, now: Optional[datetime]) -> List[RequestState]:
    """Flag unfilled requests whose due date passed; each request is flagged once."""
    if now is None:
        return []
    counts = _match_counts(db, session_id)
    flagged: List[RequestState] = []
    for req in _requests(db, session_id):
        if req.overdue_notified or is_filled(req, counts.get(req.id, 0)):
            continue
        if req.due_date < now:
            req.overdue_notified = True
            db.add(req)
            flagged.append(RequestState(id=req.id, description=req.description, filled=False))
    if flagged:
        db.flush()
        logger.info("Payment requests overdue for session %s: %s", session_id, [r.id for r in flagged])
    return flagged


def list_requests(db: Session, session_id: str) -> List[Tuple[PaymentRequest, bool, List[Transaction]]]:
    """Each request with its filled flag and matched transactions in ledger order."""
    requests = _requests(db, session_id)
    by_request: Dict[int, List[Transaction]] = {r.id: [] for r in requests}
    rows = db.execute(
        select(PaymentRequestMatch.payment_request_id, Transaction)
        .join(Transaction, Transaction.id == PaymentRequestMatch.transaction_id)
        .where(Transaction.session_id == session_id)
        .order_by(Transaction.date.asc(), Transaction.id.asc())
    ).all()
    for req_id, txn in rows:
        by_request.setdefault(req_id, []).append(txn)

    return [(r, is_filled(r, len(by_request[r.id])), by_request[r.id]) for r in requests]


def create_request(
    db: Session,
    session_id: str,
    *,
    description: str,
    due_date: datetime,
    amount: Decimal,
    number_of_requests: int,
) -> PaymentRequest:
    """Adds the request and flushes; the caller commits."""
    amount = money(amount)
    if amount <= ZERO:
        raise InvalidParameter("amount must be positive")
    if number_of_requests is None or number_of_requests < 1:
        raise InvalidParameter("number_of_requests must be at least 1")
    if due_date is None:
        raise InvalidParameter("due_date is required")

    sess = find_session(db, session_id)
    last_txn_id = db.execute(
        select(func.max(Transaction.id)).where(Transaction.session_id == session_id)
    ).scalar_one_or_none()
    req = PaymentRequest(
        session_id=session_id,
        description=description or "",
        due_date=to_utc_naive(due_date),
        amount=amount,
        number_of_requests=number_of_requests,
        requested_at=sess.clock,
        last_txn_id=last_txn_id,
        overdue_notified=False,
        created_at=utcnow(),
    )
    db.add(req)
    db.flush()
    return req
