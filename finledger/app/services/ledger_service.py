from __future__ import annotations

from datetime import datetime
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from finledger.app.config import max_history_intervals
from finledger.app.errors import InvalidParameter, NotFound, Unauthorized
from finledger.app.models import LedgerSession, Transaction, to_utc_naive, utcnow
from finledger.app.norma.intervals import Bucket, balance_history, parse_interval
from finledger.app.norma.ledger import LedgerIntegrityError, LedgerSnapshot, check_ledger_integrity

logger = logging.getLogger(__name__)


def create_session(db: Session) -> LedgerSession:
    sess = LedgerSession(created_at=utcnow(), version=0)
    db.add(sess)
    db.commit()
    db.refresh(sess)
    logger.info("Created ledger session %s", sess.id)
    return sess


def require_session(db: Session, session_id: Optional[str]) -> LedgerSession:
    if not session_id:
        raise Unauthorized()
    sess = db.get(LedgerSession, session_id)
    if not sess:
        raise Unauthorized()
    return sess


def find_session(db: Session, session_id: str) -> LedgerSession:
    sess = db.get(LedgerSession, session_id)
    if not sess:
        raise NotFound("session not found")
    return sess


def session_transactions(
    db: Session,
    session_id: str,
    *,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[Transaction]:
    """Transactions of one session ordered by (date, id); start exclusive, end inclusive."""
    filters = [Transaction.session_id == session_id]
    if start is not None:
        filters.append(Transaction.date > start)
    if end is not None:
        filters.append(Transaction.date <= end)
    stmt = (
        select(Transaction)
        .where(and_(*filters))
        .order_by(Transaction.date.asc(), Transaction.id.asc())
    )
    return list(db.execute(stmt).scalars().all())


def load_snapshot(db: Session, session_id: str) -> LedgerSnapshot:
    sess = find_session(db, session_id)
    db.flush()
    snapshot = LedgerSnapshot.build(
        session_id=sess.id,
        version=sess.version,
        clock=sess.clock,
        txns=session_transactions(db, session_id),
    )
    try:
        check_ledger_integrity(snapshot.rows)
    except LedgerIntegrityError as exc:
        logger.warning("Ledger invariant guard failed for session %s: %s", sess.id, exc)
    return snapshot


def session_now(sess: LedgerSession) -> datetime:
    return sess.clock if sess.clock is not None else utcnow()


def record_mutation(db: Session, sess: LedgerSession, posted_date: Optional[datetime] = None) -> None:
    """Bump the session version and move the clock forward; it never moves back."""
    sess.version = (sess.version or 0) + 1
    if posted_date is not None:
        posted_date = to_utc_naive(posted_date)
        if sess.clock is None or posted_date > sess.clock:
            sess.clock = posted_date
    db.add(sess)
    db.flush()


def balance_as_of(db: Session, session_id: str, timestamp: datetime) -> Decimal:
    snapshot = load_snapshot(db, session_id)
    return snapshot.balance_as_of(to_utc_naive(timestamp))


def history(
    db: Session,
    session_id: str,
    interval: Optional[str] = None,
    count: int = 1,
    *,
    now: Optional[datetime] = None,
) -> List[Bucket]:
    interval = parse_interval(interval)
    cap = max_history_intervals()
    if count > cap:
        raise InvalidParameter(f"intervals must not exceed {cap}")
    snapshot = load_snapshot(db, session_id)
    return balance_history(snapshot, interval, count, now=now or utcnow())
