from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from finledger.app.errors import InvalidParameter, NotFound
from finledger.app.models import TXN_TYPES, CategoryRule, Transaction, utcnow
from finledger.app.norma.rules_engine import category_for, matching_transactions
from finledger.app.services.category_service import require_rule_category

logger = logging.getLogger(__name__)


def _validate_rule_fields(description: str, iban: str, txn_type: str) -> None:
    if txn_type not in TXN_TYPES:
        raise InvalidParameter(f"type must be one of {', '.join(TXN_TYPES)}")
    if description is None or iban is None:
        raise InvalidParameter("description and iBAN are required")


def require_rule(db: Session, session_id: str, rule_id: int) -> CategoryRule:
    rule = db.execute(
        select(CategoryRule).where(
            and_(
                CategoryRule.session_id == session_id,
                CategoryRule.id == rule_id,
            )
        )
    ).scalar_one_or_none()
    if not rule:
        raise NotFound("category rule not found")
    return rule


def list_rules(db: Session, session_id: str) -> List[CategoryRule]:
    """Rules in creation order, which is also the evaluation order."""
    stmt = (
        select(CategoryRule)
        .where(CategoryRule.session_id == session_id)
        .order_by(CategoryRule.created_at.asc(), CategoryRule.id.asc())
    )
    return list(db.execute(stmt).scalars().all())


def apply_rule_to_history(db: Session, session_id: str, rule: CategoryRule) -> int:
    """
    Overwrite the category of every matching transaction of the session.

    Flushes but does not commit; returns the number of rows changed.
    """
    txns = db.execute(
        select(Transaction)
        .where(Transaction.session_id == session_id)
        .order_by(Transaction.id.asc())
    ).scalars().all()

    updated = 0
    for txn in matching_transactions(rule, txns):
        if txn.category_id != rule.category_id:
            txn.category_id = rule.category_id
            db.add(txn)
            updated += 1

    rule.last_run_at = utcnow()
    rule.last_run_updated_count = updated
    db.add(rule)
    db.flush()
    logger.info("Applied category rule %s to history: %s transactions updated", rule.id, updated)
    return updated


def categorize_transaction(db: Session, session_id: str, txn: Transaction) -> Optional[int]:
    """Assign the winning rule's category to a transaction that carries none."""
    category_id = category_for(list_rules(db, session_id), txn)
    if category_id is not None:
        txn.category_id = category_id
        db.add(txn)
        db.flush()
        logger.info("Transaction %s categorized by rule as category %s", txn.id, category_id)
    return category_id


def create_rule(
    db: Session,
    session_id: str,
    *,
    description: str,
    iban: str,
    txn_type: str,
    category_id: int,
    apply_on_history: bool = False,
) -> CategoryRule:
    _validate_rule_fields(description, iban, txn_type)
    require_rule_category(db, session_id, category_id)

    rule = CategoryRule(
        session_id=session_id,
        category_id=category_id,
        description=description,
        iban=iban,
        type=txn_type,
        apply_on_history=bool(apply_on_history),
        created_at=utcnow(),
    )
    db.add(rule)
    db.flush()
    if rule.apply_on_history:
        apply_rule_to_history(db, session_id, rule)
    db.commit()
    db.refresh(rule)
    return rule


def update_rule(
    db: Session,
    session_id: str,
    rule_id: int,
    *,
    description: str,
    iban: str,
    txn_type: str,
    category_id: int,
    apply_on_history: bool = False,
) -> CategoryRule:
    rule = require_rule(db, session_id, rule_id)
    _validate_rule_fields(description, iban, txn_type)
    require_rule_category(db, session_id, category_id)

    rule.description = description
    rule.iban = iban
    rule.type = txn_type
    rule.category_id = category_id
    rule.apply_on_history = bool(apply_on_history)
    db.add(rule)
    db.flush()
    if rule.apply_on_history:
        apply_rule_to_history(db, session_id, rule)
    db.commit()
    db.refresh(rule)
    return rule


def delete_rule(db: Session, session_id: str, rule_id: int) -> None:
    rule = require_rule(db, session_id, rule_id)
    db.delete(rule)
    db.commit()
