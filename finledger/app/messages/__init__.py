# finledger/app/messages/__init__.py
from __future__ import annotations

from typing import Callable, List

from .core import MessageContext, MessageDraft, MessageRule, RuleBuilder

_RULES: List[MessageRule] = []


def register(key: str, *, priority: int) -> Callable[[RuleBuilder], RuleBuilder]:
    def _wrap(fn: RuleBuilder) -> RuleBuilder:
        _RULES.append(MessageRule(key=key, priority=priority, build=fn))
        return fn

    return _wrap


def registered_rules() -> List[MessageRule]:
    return sorted(_RULES, key=lambda r: (r.priority, r.key))


def evaluate_rules(ctx: MessageContext) -> List[MessageDraft]:
    """
    Run every rule once, in priority order. Each rule yields at most one draft
    per triggering mutation.
    """
    drafts: List[MessageDraft] = []
    for rule in registered_rules():
        draft = rule.evaluate(ctx)
        if draft is not None:
            drafts.append(draft)
    return drafts


# Import modules so @register decorators run
from . import balance  # noqa: E402,F401
from . import requests  # noqa: E402,F401
from . import goals  # noqa: E402,F401
