"""
Norma - ledger construction layer.

Responsibility:
- Turn a session's transactions into an ordered ledger with running balances.
- Answer "what was the balance at time t" from that ledger.

Design notes:
- A LedgerSnapshot is an immutable view of one session at one version; every
  analytics computation takes a snapshot and returns a new value.
- Keep it deterministic: rows are ordered by (date, id), so transactions that
  share a timestamp replay in insertion order.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, List, Optional, Tuple

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def money(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def signed_amount(amount: Any, txn_type: str) -> Decimal:
    amt = money(amount)
    return amt if txn_type == "deposit" else -amt


@dataclass(frozen=True)
class LedgerRow:
    """
    A single line in a session ledger.

    Invariants:
    - amount is the absolute transaction amount, signed_amount carries the sign
    - balance is the running total after applying this row
    """
    txn_id: int
    date: datetime
    type: str
    amount: Decimal
    signed_amount: Decimal
    balance: Decimal
    description: str = ""
    external_iban: Optional[str] = None
    category_id: Optional[int] = None


def _sort_key(t) -> tuple:
    return (t.date, t.id)


def build_balance_ledger(txns: Iterable[Any]) -> List[LedgerRow]:
    balance = ZERO
    ledger: List[LedgerRow] = []

    for t in sorted(txns, key=_sort_key):
        signed = signed_amount(t.amount, t.type)
        balance += signed
        ledger.append(
            LedgerRow(
                txn_id=t.id,
                date=t.date,
                type=t.type,
                amount=money(t.amount),
                signed_amount=signed,
                balance=balance,
                description=t.description or "",
                external_iban=t.external_iban,
                category_id=t.category_id,
            )
        )

    return ledger


def balance_as_of(rows: List[LedgerRow], timestamp: datetime) -> Decimal:
    """Sum of signed amounts of all rows dated at or before timestamp."""
    idx = bisect_right([r.date for r in rows], timestamp)
    if idx == 0:
        return ZERO
    return rows[idx - 1].balance


@dataclass(frozen=True)
class LedgerSnapshot:
    session_id: str
    version: int
    clock: Optional[datetime]
    rows: Tuple[LedgerRow, ...] = field(default_factory=tuple)

    @classmethod
    def build(
        cls,
        session_id: str,
        version: int,
        clock: Optional[datetime],
        txns: Iterable[Any],
    ) -> "LedgerSnapshot":
        return cls(
            session_id=session_id,
            version=version,
            clock=clock,
            rows=tuple(build_balance_ledger(txns)),
        )

    @property
    def current_balance(self) -> Decimal:
        return self.rows[-1].balance if self.rows else ZERO

    @property
    def earliest(self) -> Optional[datetime]:
        return self.rows[0].date if self.rows else None

    def balance_as_of(self, timestamp: datetime) -> Decimal:
        return balance_as_of(list(self.rows), timestamp)

    def rows_between(self, start: datetime, end: datetime) -> List[LedgerRow]:
        """Rows with start < date <= end."""
        return [r for r in self.rows if start < r.date <= end]


class LedgerIntegrityError(ValueError):
    pass


def check_ledger_integrity(ledger: Iterable[LedgerRow]) -> dict:
    """
    Side-effect-free ledger integrity check.

    Invariants:
    - Running balances are continuous.
    - Deposits - withdrawals = ending balance.
    - Rows are ordered by (date, id).
    """
    rows = list(ledger)
    last_balance = ZERO
    prev_key: tuple | None = None

    deposits = ZERO
    withdrawals = ZERO

    for idx, row in enumerate(rows):
        key = (row.date, row.txn_id)
        if prev_key and key < prev_key:
            raise LedgerIntegrityError(
                "Invariant violation: ledger rows are not deterministically ordered."
            )

        if row.signed_amount != signed_amount(row.amount, row.type):
            raise LedgerIntegrityError(
                f"Invariant violation: signed amount does not follow type at row {idx}."
            )

        if row.balance != last_balance + row.signed_amount:
            raise LedgerIntegrityError(
                f"Invariant violation: running balance mismatch at row {idx}."
            )

        if row.signed_amount >= 0:
            deposits += row.signed_amount
        else:
            withdrawals += -row.signed_amount

        last_balance = row.balance
        prev_key = key

    if deposits - withdrawals != last_balance:
        raise LedgerIntegrityError(
            "Invariant violation: deposits - withdrawals does not reconcile to ending balance."
        )

    return {
        "rows": len(rows),
        "deposit_total": deposits,
        "withdrawal_total": withdrawals,
        "ending_balance": last_balance,
    }
