# finledger/app/messages/requests.py
from __future__ import annotations

from typing import Optional

from . import register
from .core import MessageContext, MessageDraft, quoted_list


@register("payment_request_filled", priority=30)
def payment_request_filled(ctx: MessageContext) -> Optional[MessageDraft]:
    newly_filled = sorted(ctx.filled_after - ctx.filled_before)
    if not newly_filled:
        return None
    names = [ctx.requests_after[rid].description for rid in newly_filled]
    noun = "Payment request" if len(names) == 1 else "Payment requests"
    return MessageDraft(
        kind="payment_request_filled",
        type="info",
        message=f"{noun} {quoted_list(names)} filled.",
    )


@register("payment_request_overdue", priority=40)
def payment_request_overdue(ctx: MessageContext) -> Optional[MessageDraft]:
    if not ctx.newly_overdue:
        return None
    names = [r.description for r in ctx.newly_overdue]
    noun = "Payment request" if len(names) == 1 else "Payment requests"
    return MessageDraft(
        kind="payment_request_overdue",
        type="warning",
        message=f"{noun} {quoted_list(names)} passed the due date without being filled.",
    )
