from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from finledger.app.norma.ledger import (
    LedgerIntegrityError,
    LedgerSnapshot,
    balance_as_of,
    build_balance_ledger,
    check_ledger_integrity,
    money,
    signed_amount,
)


def _txn(txn_id: int, date: datetime, amount: str, txn_type: str, description: str = "test"):
    return SimpleNamespace(
        id=txn_id,
        date=date,
        amount=Decimal(amount),
        type=txn_type,
        description=description,
        external_iban=None,
        category_id=None,
    )


def test_signed_amount_follows_type():
    assert signed_amount("12.50", "deposit") == Decimal("12.50")
    assert signed_amount("12.50", "withdrawal") == Decimal("-12.50")


def test_money_rounds_half_up_to_cents():
    assert money("0.005") == Decimal("0.01")
    assert money(None) == Decimal("0.00")


def test_ledger_orders_by_date_then_id():
    day = datetime(2024, 5, 1, 12, 0)
    txns = [
        _txn(3, day, "10", "withdrawal"),
        _txn(1, day, "50", "deposit"),
        _txn(2, datetime(2024, 4, 30), "5", "deposit"),
    ]

    ledger = build_balance_ledger(txns)

    assert [r.txn_id for r in ledger] == [2, 1, 3]
    assert [r.balance for r in ledger] == [Decimal("5.00"), Decimal("55.00"), Decimal("45.00")]


def test_balance_as_of_includes_rows_at_timestamp():
    t0 = datetime(2024, 1, 1)
    t1 = datetime(2024, 1, 2)
    ledger = build_balance_ledger([_txn(1, t0, "100", "deposit"), _txn(2, t1, "30", "withdrawal")])

    assert balance_as_of(ledger, datetime(2023, 12, 31)) == Decimal("0.00")
    assert balance_as_of(ledger, t0) == Decimal("100.00")
    assert balance_as_of(ledger, t1) == Decimal("70.00")


def test_snapshot_exposes_current_balance_and_window_rows():
    t0 = datetime(2024, 1, 1)
    snap = LedgerSnapshot.build(
        "s-1",
        4,
        t0,
        [_txn(1, t0, "20", "deposit"), _txn(2, datetime(2024, 2, 1), "5", "withdrawal")],
    )

    assert snap.version == 4
    assert snap.current_balance == Decimal("15.00")
    assert snap.earliest == t0
    assert [r.txn_id for r in snap.rows_between(t0, datetime(2024, 3, 1))] == [2]


def test_empty_snapshot_balance_is_zero():
    snap = LedgerSnapshot.build("s-1", 0, None, [])
    assert snap.current_balance == Decimal("0.00")
    assert snap.earliest is None


def test_check_ledger_integrity_reconciles_known_good_ledger():
    t0 = datetime(2024, 3, 1, 9, 0)
    ledger = build_balance_ledger([_txn(1, t0, "100", "deposit"), _txn(2, t0, "40", "withdrawal")])

    summary = check_ledger_integrity(ledger)

    assert summary["rows"] == 2
    assert summary["deposit_total"] == Decimal("100.00")
    assert summary["withdrawal_total"] == Decimal("40.00")
    assert summary["ending_balance"] == Decimal("60.00")


def test_check_ledger_integrity_fails_on_discontinuous_balance():
    ledger = build_balance_ledger([_txn(1, datetime(2024, 3, 2), "100", "deposit")])
    bad = [replace(ledger[0], balance=Decimal("999.00"))]

    with pytest.raises(LedgerIntegrityError, match="running balance mismatch"):
        check_ledger_integrity(bad)


def test_check_ledger_integrity_fails_on_unordered_rows():
    ledger = build_balance_ledger(
        [_txn(1, datetime(2024, 3, 1), "10", "deposit"), _txn(2, datetime(2024, 3, 2), "10", "deposit")]
    )

    # balances stay continuous so only the (date, id) order is broken
    bad = [replace(ledger[0], date=datetime(2024, 3, 3)), ledger[1]]

    with pytest.raises(LedgerIntegrityError, match="not deterministically ordered"):
        check_ledger_integrity(bad)
