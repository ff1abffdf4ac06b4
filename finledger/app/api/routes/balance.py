from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from finledger.app.api.deps import get_current_session
from finledger.app.db import get_db
from finledger.app.models import LedgerSession
from finledger.app.norma.intervals import DEFAULT_INTERVAL
from finledger.app.services import ledger_service

router = APIRouter(prefix="/api/v1/balance", tags=["balance"])


class BucketOut(BaseModel):
    open: float
    close: float
    high: float
    low: float
    volume: float
    timestamp: int


@router.get("/history", response_model=List[BucketOut])
def balance_history(
    interval: Optional[str] = Query(DEFAULT_INTERVAL),
    intervals: int = Query(1),
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    buckets = ledger_service.history(db, sess.id, interval, intervals)
    return [BucketOut(**b.as_dict()) for b in buckets]
