from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from finledger.app.api.deps import get_current_session
from finledger.app.db import get_db
from finledger.app.models import LedgerSession, Transaction
from finledger.app.services import transaction_service

router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"])


class CategoryRefOut(BaseModel):
    id: int
    name: str


class CategoryRefIn(BaseModel):
    id: int
    name: Optional[str] = None


class TransactionIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    date: datetime
    amount: Decimal
    type: str
    external_iban: Optional[str] = Field(default=None, alias="externalIBAN")
    description: Optional[str] = None
    category: Optional[CategoryRefIn] = None


class TransactionOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    date: datetime
    amount: float
    external_iban: Optional[str] = Field(default=None, alias="externalIBAN")
    type: str
    description: str
    category: Optional[CategoryRefOut] = None


class CategoryAssignIn(BaseModel):
    category_id: int


def transaction_out(txn: Transaction) -> TransactionOut:
    category = None
    if txn.category is not None:
        category = CategoryRefOut(id=txn.category.id, name=txn.category.name)
    return TransactionOut(
        id=txn.id,
        date=txn.date,
        amount=float(txn.amount),
        external_iban=txn.external_iban,
        type=txn.type,
        description=txn.description or "",
        category=category,
    )


@router.get("", response_model=List[TransactionOut])
def list_transactions(
    offset: int = Query(0),
    limit: Optional[int] = Query(None),
    category: Optional[str] = Query(None),
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    txns = transaction_service.list_transactions(
        db, sess.id, offset=offset, limit=limit, category=category
    )
    return [transaction_out(t) for t in txns]


@router.post("", response_model=TransactionOut, status_code=201)
def create_transaction(
    req: TransactionIn,
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    txn = transaction_service.create_transaction(
        db,
        sess.id,
        date=req.date,
        amount=req.amount,
        txn_type=req.type,
        description=req.description,
        external_iban=req.external_iban,
        category_id=req.category.id if req.category else None,
    )
    return transaction_out(txn)


@router.get("/{transaction_id}", response_model=TransactionOut)
def get_transaction(
    transaction_id: int,
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return transaction_out(transaction_service.require_transaction(db, sess.id, transaction_id))


@router.put("/{transaction_id}", response_model=TransactionOut)
def update_transaction(
    transaction_id: int,
    req: TransactionIn,
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    txn = transaction_service.update_transaction(
        db,
        sess.id,
        transaction_id,
        date=req.date,
        amount=req.amount,
        txn_type=req.type,
        description=req.description,
        external_iban=req.external_iban,
        category_id=req.category.id if req.category else None,
    )
    return transaction_out(txn)


@router.delete("/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: int,
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    transaction_service.delete_transaction(db, sess.id, transaction_id)
    return Response(status_code=204)


@router.patch("/{transaction_id}/category", response_model=TransactionOut)
def assign_category(
    transaction_id: int,
    req: CategoryAssignIn,
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    txn = transaction_service.set_category(db, sess.id, transaction_id, req.category_id)
    return transaction_out(txn)
