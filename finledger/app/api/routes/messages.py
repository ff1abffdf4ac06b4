from __future__ import annotations

from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from finledger.app.api.deps import get_current_session
from finledger.app.db import get_db
from finledger.app.models import LedgerSession, UserMessage
from finledger.app.services import message_service

router = APIRouter(prefix="/api/v1/messages", tags=["messages"])


class MessageOut(BaseModel):
    id: int
    message: str
    date: datetime
    read: bool
    type: str


def _message_out(msg: UserMessage) -> MessageOut:
    return MessageOut(id=msg.id, message=msg.message, date=msg.date, read=msg.read, type=msg.type)


@router.get("", response_model=List[MessageOut])
def list_messages(
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return [_message_out(m) for m in message_service.list_messages(db, sess.id)]


@router.put("/{message_id}", response_model=MessageOut, status_code=201)
def mark_read(
    message_id: int,
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return _message_out(message_service.mark_read(db, sess.id, message_id))
