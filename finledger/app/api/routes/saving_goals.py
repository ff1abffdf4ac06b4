from __future__ import annotations

from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from finledger.app.api.deps import get_current_session
from finledger.app.db import get_db
from finledger.app.models import LedgerSession, SavingGoal
from finledger.app.services import ledger_service, pipeline, saving_goal_service

router = APIRouter(prefix="/api/v1/savingGoals", tags=["saving goals"])


class SavingGoalIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    goal: Decimal
    save_per_month: Decimal = Field(alias="savePerMonth")
    min_balance_required: Decimal = Field(default=Decimal("0"), alias="minBalanceRequired")


class SavingGoalOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    goal: float
    save_per_month: float = Field(alias="savePerMonth")
    min_balance_required: float = Field(alias="minBalanceRequired")
    balance: float


def _goal_out(goal: SavingGoal) -> SavingGoalOut:
    return SavingGoalOut(
        id=goal.id,
        name=goal.name,
        goal=float(goal.goal),
        save_per_month=float(goal.save_per_month),
        min_balance_required=float(goal.min_balance_required),
        balance=float(goal.balance),
    )


@router.get("", response_model=List[SavingGoalOut])
def list_goals(
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return [_goal_out(g) for g in saving_goal_service.list_goals(db, sess.id)]


@router.post("", response_model=SavingGoalOut, status_code=201)
def create_goal(
    req: SavingGoalIn,
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    before = pipeline.capture_state(db, sess.id)
    goal = saving_goal_service.create_goal(
        db,
        sess.id,
        name=req.name,
        goal=req.goal,
        save_per_month=req.save_per_month,
        min_balance_required=req.min_balance_required,
    )
    ledger_service.record_mutation(db, sess)
    pipeline.run(db, sess.id, before)
    db.commit()
    db.refresh(goal)
    return _goal_out(goal)


@router.delete("/{goal_id}", status_code=204)
def delete_goal(
    goal_id: int,
    sess: LedgerSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    saving_goal_service.delete_goal(db, sess.id, goal_id)
    return Response(status_code=204)
