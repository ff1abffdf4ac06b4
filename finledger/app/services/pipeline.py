"""
Mutation pipeline.

Every ledger mutation runs the same stages against the same database session:
rule categorization, saving-goal accrual, payment-request rematching, overdue
flagging and message generation. Stages never call each other; each reads the
state the previous one flushed. Callers commit once after run().
"""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from finledger.app.config import new_high_lookback_months
from finledger.app.messages.core import GoalState, MessageContext, RequestState
from finledger.app.models import Transaction, UserMessage
from finledger.app.norma.ledger import LedgerSnapshot
from finledger.app.services import (
    categorize_service,
    message_service,
    payment_request_service,
    saving_goal_service,
)
from finledger.app.services.ledger_service import find_session, load_snapshot, session_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineState:
    snapshot: LedgerSnapshot
    requests: Dict[int, RequestState] = field(default_factory=dict)
    goals: Dict[int, GoalState] = field(default_factory=dict)


def capture_state(db: Session, session_id: str) -> PipelineState:
    return PipelineState(
        snapshot=load_snapshot(db, session_id),
        requests=payment_request_service.request_states(db, session_id),
        goals=saving_goal_service.goal_states(db, session_id),
    )


def run(
    db: Session,
    session_id: str,
    before: PipelineState,
    *,
    changed: Optional[Transaction] = None,
    uncategorized: Optional[Transaction] = None,
) -> List[UserMessage]:
    """changed: the posted or edited transaction, offered to open payment requests."""
    sess = find_session(db, session_id)

    if uncategorized is not None and uncategorized.category_id is None:
        categorize_service.categorize_transaction(db, session_id, uncategorized)

    saving_goal_service.accrue(db, session_id, sess.clock)
    payment_request_service.rematch(db, session_id, changed)
    overdue = payment_request_service.flag_overdue(db, session_id, sess.clock)

    after = capture_state(db, session_id)
    ctx = MessageContext(
        before=before.snapshot,
        after=after.snapshot,
        requests_before=before.requests,
        requests_after=after.requests,
        goals_before=before.goals,
        goals_after=after.goals,
        newly_overdue=tuple(overdue),
        lookback_months=new_high_lookback_months(),
    )
    messages = message_service.generate(db, session_id, ctx, date=session_now(sess))
    logger.info(
        "Pipeline ran for session %s at version %s: %s messages",
        session_id,
        after.snapshot.version,
        len(messages),
    )
    return messages
