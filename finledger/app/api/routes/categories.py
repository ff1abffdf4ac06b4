from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from finledger.app.api.deps import get_current_session
from finledger.app.db import get_db
from finledger.app.models import LedgerSession
from finledger.app.services import category_service

router = APIRouter(prefix="/api/v1/categories", tags=["categories"])


class CategoryIn(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class CategoryOut(BaseModel):
    id: int
    name: str


@router.get("", response_model=List[CategoryOut])
def list_categories(
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return [CategoryOut(id=c.id, name=c.name) for c in category_service.list_categories(db, sess.id)]


@router.post("", response_model=CategoryOut, status_code=201)
def create_category(
    req: CategoryIn,
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    cat = category_service.create_category(db, sess.id, req.name)
    return CategoryOut(id=cat.id, name=cat.name)


@router.get("/{category_id}", response_model=CategoryOut)
def get_category(
    category_id: int,
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    cat = category_service.require_category(db, sess.id, category_id)
    return CategoryOut(id=cat.id, name=cat.name)


@router.put("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    req: CategoryIn,
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    cat = category_service.update_category(db, sess.id, category_id, req.name)
    return CategoryOut(id=cat.id, name=cat.name)


@router.delete("/{category_id}", status_code=204)
def delete_category(
    category_id: int,
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    category_service.delete_category(db, sess.id, category_id)
    return Response(status_code=204)
