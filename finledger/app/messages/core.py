from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Dict, FrozenSet, Literal, Optional, Tuple

from finledger.app.norma.ledger import LedgerSnapshot

MessageType = Literal["info", "warning"]


@dataclass(frozen=True)
class MessageDraft:
    kind: str
    type: MessageType
    message: str


@dataclass(frozen=True)
class RequestState:
    id: int
    description: str
    filled: bool


@dataclass(frozen=True)
class GoalState:
    id: int
    name: str
    goal: Decimal
    balance: Decimal


@dataclass(frozen=True)
class MessageContext:
    """
    Everything a message rule may look at for one triggering mutation.

    before/after are ledger snapshots taken around the mutation; the request and
    goal maps hold the derived state at the same two moments.
    """
    before: LedgerSnapshot
    after: LedgerSnapshot
    requests_before: Dict[int, RequestState] = field(default_factory=dict)
    requests_after: Dict[int, RequestState] = field(default_factory=dict)
    goals_before: Dict[int, GoalState] = field(default_factory=dict)
    goals_after: Dict[int, GoalState] = field(default_factory=dict)
    newly_overdue: Tuple[RequestState, ...] = ()
    lookback_months: int = 3

    @property
    def filled_before(self) -> FrozenSet[int]:
        return frozenset(rid for rid, r in self.requests_before.items() if r.filled)

    @property
    def filled_after(self) -> FrozenSet[int]:
        return frozenset(rid for rid, r in self.requests_after.items() if r.filled)


RuleBuilder = Callable[[MessageContext], Optional[MessageDraft]]


@dataclass(frozen=True)
class MessageRule:
    key: str
    priority: int
    build: RuleBuilder

    def evaluate(self, ctx: MessageContext) -> Optional[MessageDraft]:
        return self.build(ctx)


def quoted_list(names) -> str:
    return ", ".join(f"'{n}'" for n in names)
