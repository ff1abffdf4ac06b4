from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from finledger.app.api.deps import get_current_session
from finledger.app.api.routes.transactions import TransactionOut, transaction_out
from finledger.app.db import get_db
from finledger.app.models import LedgerSession, PaymentRequest, Transaction
from finledger.app.services import ledger_service, payment_request_service, pipeline

router = APIRouter(prefix="/api/v1/paymentRequests", tags=["payment requests"])


class PaymentRequestIn(BaseModel):
    description: str
    due_date: datetime
    amount: Decimal
    number_of_requests: int


class PaymentRequestOut(BaseModel):
    id: int
    description: str
    due_date: datetime
    amount: float
    number_of_requests: int
    filled: bool
    transactions: List[TransactionOut]


def _request_out(req: PaymentRequest, filled: bool, txns: List[Transaction]) -> PaymentRequestOut:
    return PaymentRequestOut(
        id=req.id,
        description=req.description,
        due_date=req.due_date,
        amount=float(req.amount),
        number_of_requests=req.number_of_requests,
        filled=filled,
        transactions=[transaction_out(t) for t in txns],
    )


@router.get("", response_model=List[PaymentRequestOut])
def list_requests(
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return [
        _request_out(req, filled, txns)
        for req, filled, txns in payment_request_service.list_requests(db, sess.id)
    ]


@router.post("", response_model=PaymentRequestOut, status_code=201)
def create_request(
    req: PaymentRequestIn,
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    before = pipeline.capture_state(db, sess.id)
    created = payment_request_service.create_request(
        db,
        sess.id,
        description=req.description,
        due_date=req.due_date,
        amount=req.amount,
        number_of_requests=req.number_of_requests,
    )
    ledger_service.record_mutation(db, sess)
    pipeline.run(db, sess.id, before)
    db.commit()

    for item, filled, txns in payment_request_service.list_requests(db, sess.id):
        if item.id == created.id:
            return _request_out(item, filled, txns)
    return _request_out(created, False, [])
