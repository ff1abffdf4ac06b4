from datetime import datetime, timedelta
from decimal import Decimal
import logging

from dateutil.relativedelta import relativedelta

from finledger.app.models import UserMessage
from finledger.app.norma.ledger import LedgerIntegrityError
from finledger.app.services import (
    categorize_service,
    category_service,
    ledger_service,
    message_service,
    transaction_service,
)

T = datetime(2024, 6, 1, 12, 0)


def _post(db, session_id, date, amount, txn_type="deposit", **extra):
    return transaction_service.create_transaction(
        db, session_id, date=date, amount=Decimal(amount), txn_type=txn_type, **extra
    )


def _kinds(db, session_id):
    return [(m.kind, m.type) for m in message_service.list_messages(db, session_id)]


def test_clock_is_monotonic_and_version_bumps(sqlite_session, ledger_session):
    db = sqlite_session
    _post(db, ledger_session.id, T, "10")
    _post(db, ledger_session.id, T - timedelta(days=5), "10")

    sess = ledger_service.find_session(db, ledger_session.id)
    assert sess.clock == T
    assert sess.version == 2


def test_balance_as_of_reads_fresh_snapshot(sqlite_session, ledger_session):
    db = sqlite_session
    txn = _post(db, ledger_session.id, T, "100")
    assert ledger_service.balance_as_of(db, ledger_session.id, T) == Decimal("100.00")

    transaction_service.delete_transaction(db, ledger_session.id, txn.id)
    assert ledger_service.balance_as_of(db, ledger_session.id, T) == Decimal("0.00")


def test_withdrawal_below_zero_creates_warning(sqlite_session, ledger_session):
    db = sqlite_session
    _post(db, ledger_session.id, T, "10")
    _post(db, ledger_session.id, T, "25", "withdrawal")

    assert _kinds(db, ledger_session.id) == [("balance_below_zero", "warning")]
    msg = message_service.list_messages(db, ledger_session.id)[0]
    assert msg.date == T
    assert msg.read is False


def test_new_high_after_lookback_window(sqlite_session, ledger_session):
    db = sqlite_session
    _post(db, ledger_session.id, T - relativedelta(months=4), "100")
    _post(db, ledger_session.id, T, "50")

    assert ("balance_new_high", "info") in _kinds(db, ledger_session.id)


def test_new_transaction_is_categorized_by_last_matching_rule(sqlite_session, ledger_session):
    db = sqlite_session
    salary = category_service.create_category(db, ledger_session.id, "Salary")
    job = category_service.create_category(db, ledger_session.id, "Job")
    for cat in (salary, job):
        categorize_service.create_rule(
            db,
            ledger_session.id,
            description="University of Twente",
            iban="NL39RABO0300065264",
            txn_type="deposit",
            category_id=cat.id,
        )

    txn = _post(
        db,
        ledger_session.id,
        T,
        "1000",
        description="University of Twente",
        external_iban="NL39RABO0300065264",
    )
    assert txn.category_id == job.id

    explicit = _post(
        db,
        ledger_session.id,
        T,
        "1000",
        description="University of Twente",
        external_iban="NL39RABO0300065264",
        category_id=salary.id,
    )
    assert explicit.category_id == salary.id


def test_apply_on_history_overwrites_existing_categories(sqlite_session, ledger_session):
    db = sqlite_session
    other = category_service.create_category(db, ledger_session.id, "Other")
    salary = category_service.create_category(db, ledger_session.id, "Salary")
    txn = _post(
        db,
        ledger_session.id,
        T,
        "1000",
        description="University of Twente",
        external_iban="NL39RABO0300065264",
        category_id=other.id,
    )
    untouched = _post(db, ledger_session.id, T, "5", description="Coffee")

    rule = categorize_service.create_rule(
        db,
        ledger_session.id,
        description="University of Twente",
        iban="NL39RABO0300065264",
        txn_type="deposit",
        category_id=salary.id,
        apply_on_history=True,
    )
    db.refresh(txn)
    db.refresh(untouched)

    assert txn.category_id == salary.id
    assert untouched.category_id is None
    assert rule.last_run_updated_count == 1


def test_deleting_category_clears_transactions_and_rules(sqlite_session, ledger_session):
    db = sqlite_session
    cat = category_service.create_category(db, ledger_session.id, "Groceries")
    txn = _post(db, ledger_session.id, T, "5", "withdrawal", description="Shop", category_id=cat.id)
    categorize_service.create_rule(
        db, ledger_session.id, description="Shop", iban="", txn_type="withdrawal", category_id=cat.id
    )

    category_service.delete_category(db, ledger_session.id, cat.id)

    db.refresh(txn)
    assert txn.category_id is None
    assert categorize_service.list_rules(db, ledger_session.id) == []


def test_mark_read_is_idempotent(sqlite_session, ledger_session):
    db = sqlite_session
    _post(db, ledger_session.id, T, "10", "withdrawal")
    msg = message_service.list_messages(db, ledger_session.id)[0]

    assert message_service.mark_read(db, ledger_session.id, msg.id).read is True
    assert message_service.mark_read(db, ledger_session.id, msg.id).read is True
    assert db.query(UserMessage).filter(UserMessage.session_id == ledger_session.id).count() == 1


def test_snapshot_integrity_guard_logs_warning(sqlite_session, ledger_session, monkeypatch, caplog):
    db = sqlite_session
    _post(db, ledger_session.id, T, "10")

    with caplog.at_level(logging.WARNING, logger="finledger.app.services.ledger_service"):
        snap = ledger_service.load_snapshot(db, ledger_session.id)
    assert snap.current_balance == Decimal("10.00")
    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]

    def _broken(_rows):
        raise LedgerIntegrityError("Invariant violation: running balance mismatch at row 0.")

    monkeypatch.setattr(ledger_service, "check_ledger_integrity", _broken)
    with caplog.at_level(logging.WARNING, logger="finledger.app.services.ledger_service"):
        snap = ledger_service.load_snapshot(db, ledger_session.id)

    assert snap.current_balance == Decimal("10.00")
    assert any("running balance mismatch" in r.getMessage() for r in caplog.records)
