from __future__ import annotations

from datetime import datetime
import logging
from decimal import Decimal
from typing import Dict, List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from finledger.app.errors import InvalidParameter, NotFound
from finledger.app.messages.core import GoalState
from finledger.app.models import SavingGoal, utcnow
from finledger.app.norma.ledger import ZERO, money
from finledger.app.services.ledger_service import find_session, load_snapshot

logger = logging.getLogger(__name__)


def months_between(start: datetime, end: datetime) -> int:
    """Whole calendar months elapsed from start to end; Jan 31 to Feb 1 is 0."""
    delta = relativedelta(end, start)
    return max(0, delta.years * 12 + delta.months)


def require_goal(db: Session, session_id: str, goal_id: int) -> SavingGoal:
    goal = db.execute(
        select(SavingGoal).where(
            and_(
                SavingGoal.session_id == session_id,
                SavingGoal.id == goal_id,
            )
        )
    ).scalar_one_or_none()
    if not goal:
        raise NotFound("saving goal not found")
    return goal


def _goals(db: Session, session_id: str) -> List[SavingGoal]:
    stmt = (
        select(SavingGoal)
        .where(SavingGoal.session_id == session_id)
        .order_by(SavingGoal.id.asc())
    )
    return list(db.execute(stmt).scalars().all())


def accrue(db: Session, session_id: str, now: Optional[datetime] = None) -> List[SavingGoal]:
    """
    Move money into saving goals for every calendar month elapsed since each
    goal's anchor that has not been processed yet.

    Months are processed oldest first and, within a month, goals in creation
    order. A month's contribution is capped by save_per_month, by what is left
    to reach the goal and by the surplus: the balance at `now` minus the goal's
    minimum balance minus everything already set aside in goals. Running it
    twice for the same `now` changes nothing. Flushes, does not commit.
    """
    sess = find_session(db, session_id)
    now = now or sess.clock
    goals = _goals(db, session_id)
    if now is None or not goals:
        return goals

    for goal in goals:
        if goal.anchor is None:
            goal.anchor = now
            db.add(goal)

    pending = {g.id: months_between(g.anchor, now) - (g.months_accrued or 0) for g in goals}
    rounds = max(pending.values())
    if rounds <= 0:
        db.flush()
        return goals

    available = load_snapshot(db, session_id).balance_as_of(now)
    for _ in range(rounds):
        for goal in goals:
            if pending[goal.id] <= 0:
                continue
            pending[goal.id] -= 1
            goal.months_accrued = (goal.months_accrued or 0) + 1

            committed = sum((money(g.balance) for g in goals), ZERO)
            surplus = money(available) - money(goal.min_balance_required) - committed
            remaining = money(goal.goal) - money(goal.balance)
            contribution = min(money(goal.save_per_month), remaining, max(surplus, ZERO))
            if contribution > ZERO:
                goal.balance = money(goal.balance) + contribution
                logger.info(
                    "Saving goal %s accrued %s (balance %s of %s)",
                    goal.id,
                    contribution,
                    goal.balance,
                    goal.goal,
                )
            db.add(goal)

    db.flush()
    return goals


def goal_states(db: Session, session_id: str) -> Dict[int, GoalState]:
    return {
        g.id: GoalState(id=g.id, name=g.name, goal=money(g.goal), balance=money(g.balance))
        for g in _goals(db, session_id)
    }


def list_goals(db: Session, session_id: str) -> List[SavingGoal]:
    goals = accrue(db, session_id)
    db.commit()
    return goals


def create_goal(
    db: Session,
    session_id: str,
    *,
    name: str,
    goal: Decimal,
    save_per_month: Decimal,
    min_balance_required: Decimal = ZERO,
) -> SavingGoal:
    """Adds the goal and flushes; the caller commits."""
    if not (name or "").strip():
        raise InvalidParameter("saving goal name must not be empty")
    goal = money(goal)
    save_per_month = money(save_per_month)
    min_balance_required = money(min_balance_required)
    if goal <= ZERO or save_per_month <= ZERO or min_balance_required < ZERO:
        raise InvalidParameter("goal and savePerMonth must be positive, minBalanceRequired not negative")

    sess = find_session(db, session_id)
    row = SavingGoal(
        session_id=session_id,
        name=name.strip(),
        goal=goal,
        save_per_month=save_per_month,
        min_balance_required=min_balance_required,
        balance=ZERO,
        anchor=sess.clock,
        months_accrued=0,
        created_at=utcnow(),
    )
    db.add(row)
    db.flush()
    return row


def delete_goal(db: Session, session_id: str, goal_id: int) -> None:
    goal = require_goal(db, session_id, goal_id)
    db.delete(goal)
    db.commit()
