from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from finledger.app.db import get_db
from finledger.app.services import ledger_service

router = APIRouter(prefix="/api/v1/sessions", tags=["sessions"])


class SessionOut(BaseModel):
    id: str


@router.post("", response_model=SessionOut, status_code=201)
def create_session(db: Session = Depends(get_db)):
    sess = ledger_service.create_session(db)
    return SessionOut(id=sess.id)
