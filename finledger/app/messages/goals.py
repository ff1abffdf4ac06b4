# finledger/app/messages/goals.py
from __future__ import annotations

from typing import List, Optional

from . import register
from .core import MessageContext, MessageDraft


@register("saving_goal_contribution", priority=50)
def saving_goal_contribution(ctx: MessageContext) -> Optional[MessageDraft]:
    parts: List[str] = []
    for goal_id in sorted(ctx.goals_after):
        goal = ctx.goals_after[goal_id]
        prior = ctx.goals_before.get(goal_id)
        prior_balance = prior.balance if prior is not None else None
        if prior_balance is None or goal.balance <= prior_balance:
            continue
        if goal.balance >= goal.goal:
            parts.append(f"'{goal.name}' reached its goal of {goal.goal:.2f}")
        else:
            parts.append(f"'{goal.name}' grew to {goal.balance:.2f} of {goal.goal:.2f}")

    if not parts:
        return None
    return MessageDraft(
        kind="saving_goal_contribution",
        type="info",
        message="Saving goal progress: " + "; ".join(parts) + ".",
    )
