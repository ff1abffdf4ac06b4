from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from finledger.app.api.deps import get_current_session
from finledger.app.db import get_db
from finledger.app.models import CategoryRule, LedgerSession
from finledger.app.services import categorize_service

router = APIRouter(prefix="/api/v1/categoryRules", tags=["category rules"])


class CategoryRuleIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    description: str
    iban: str = Field(alias="iBAN")
    type: str
    category_id: int
    apply_on_history: bool = Field(default=False, alias="applyOnHistory")


class CategoryRuleOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    description: str
    iban: str = Field(alias="iBAN")
    type: str
    category_id: int
    apply_on_history: bool = Field(alias="applyOnHistory")


def _rule_out(rule: CategoryRule) -> CategoryRuleOut:
    return CategoryRuleOut(
        id=rule.id,
        description=rule.description,
        iban=rule.iban,
        type=rule.type,
        category_id=rule.category_id,
        apply_on_history=rule.apply_on_history,
    )


@router.get("", response_model=List[CategoryRuleOut])
def list_rules(
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return [_rule_out(r) for r in categorize_service.list_rules(db, sess.id)]


@router.post("", response_model=CategoryRuleOut, status_code=201)
def create_rule(
    req: CategoryRuleIn,
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    rule = categorize_service.create_rule(
        db,
        sess.id,
        description=req.description,
        iban=req.iban,
        txn_type=req.type,
        category_id=req.category_id,
        apply_on_history=req.apply_on_history,
    )
    return _rule_out(rule)


@router.get("/{rule_id}", response_model=CategoryRuleOut)
def get_rule(
    rule_id: int,
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return _rule_out(categorize_service.require_rule(db, sess.id, rule_id))


@router.put("/{rule_id}", response_model=CategoryRuleOut)
def update_rule(
    rule_id: int,
    req: CategoryRuleIn,
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    rule = categorize_service.update_rule(
        db,
        sess.id,
        rule_id,
        description=req.description,
        iban=req.iban,
        txn_type=req.type,
        category_id=req.category_id,
        apply_on_history=req.apply_on_history,
    )
    return _rule_out(rule)


@router.delete("/{rule_id}", status_code=204)
def delete_rule(
    rule_id: int,
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    categorize_service.delete_rule(db, sess.id, rule_id)
    return Response(status_code=204)
