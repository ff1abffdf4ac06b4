# finledger/app/messages/balance.py
from __future__ import annotations

from typing import Optional

from dateutil.relativedelta import relativedelta

from finledger.app.norma.ledger import ZERO
from . import register
from .core import MessageContext, MessageDraft


@register("balance_below_zero", priority=10)
def balance_below_zero(ctx: MessageContext) -> Optional[MessageDraft]:
    before = ctx.before.current_balance
    after = ctx.after.current_balance
    if before >= ZERO and after < ZERO:
        return MessageDraft(
            kind="balance_below_zero",
            type="warning",
            message=f"Your balance dropped below zero ({after:.2f}).",
        )
    return None


@register("balance_new_high", priority=20)
def balance_new_high(ctx: MessageContext) -> Optional[MessageDraft]:
    """
    New high: the balance after the mutation exceeds every balance seen in the
    lookback window before it. Needs at least a full window of history.
    """
    earliest = ctx.before.earliest
    clock = ctx.after.clock
    if earliest is None or clock is None:
        return None

    window_start = clock - relativedelta(months=ctx.lookback_months)
    if earliest > window_start:
        return None

    previous_high = ctx.before.balance_as_of(window_start)
    for row in ctx.before.rows_between(window_start, clock):
        if row.balance > previous_high:
            previous_high = row.balance

    after = ctx.after.current_balance
    if after <= previous_high:
        return None
    return MessageDraft(
        kind="balance_new_high",
        type="info",
        message=(
            f"Your balance reached a new high of {after:.2f}, above the highest balance "
            f"of the last {ctx.lookback_months} months ({previous_high:.2f})."
        ),
    )
