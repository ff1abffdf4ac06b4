from __future__ import annotations

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from finledger.app.errors import NotFound
from finledger.app.messages import evaluate_rules
from finledger.app.messages.core import MessageContext
from finledger.app.models import UserMessage, utcnow

logger = logging.getLogger(__name__)


def list_messages(db: Session, session_id: str) -> List[UserMessage]:
    stmt = (
        select(UserMessage)
        .where(UserMessage.session_id == session_id)
        .order_by(UserMessage.id.asc())
    )
    return list(db.execute(stmt).scalars().all())


def mark_read(db: Session, session_id: str, message_id: int) -> UserMessage:
    msg = db.execute(
        select(UserMessage).where(
            and_(
                UserMessage.session_id == session_id,
                UserMessage.id == message_id,
            )
        )
    ).scalar_one_or_none()
    if not msg:
        raise NotFound("message not found")
    if not msg.read:
        msg.read = True
        db.add(msg)
        db.commit()
        db.refresh(msg)
    return msg


def generate(
    db: Session,
    session_id: str,
    ctx: MessageContext,
    *,
    date: Optional[datetime] = None,
) -> List[UserMessage]:
    """Evaluate the rule registry and store one message per fired rule. Flushes only."""
    stamp = date or utcnow()
    created: List[UserMessage] = []
    for draft in evaluate_rules(ctx):
        msg = UserMessage(
            session_id=session_id,
            type=draft.type,
            kind=draft.kind,
            message=draft.message,
            date=stamp,
            read=False,
            created_at=utcnow(),
        )
        db.add(msg)
        created.append(msg)
        logger.info("Message %s (%s) for session %s", draft.kind, draft.type, session_id)
    if created:
        db.flush()
    return created
