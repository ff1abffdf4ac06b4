from __future__ import annotations

import logging
from typing import List

from sqlalchemy import and_, delete, select, update
from sqlalchemy.orm import Session

from finledger.app.errors import Conflict, InvalidParameter, NotFound
from finledger.app.models import Category, CategoryRule, Transaction, utcnow

logger = logging.getLogger(__name__)


def _clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise InvalidParameter("category name must not be empty")
    return cleaned


def require_category(db: Session, session_id: str, category_id: int) -> Category:
    cat = db.execute(
        select(Category).where(
            and_(
                Category.session_id == session_id,
                Category.id == category_id,
            )
        )
    ).scalar_one_or_none()
    if not cat:
        raise NotFound("category not found")
    return cat


def require_rule_category(db: Session, session_id: str, category_id: int) -> Category:
    """Rules may only point at this session's categories; another session's id is a conflict."""
    cat = db.get(Category, category_id)
    if not cat:
        raise NotFound("category not found")
    if cat.session_id != session_id:
        raise Conflict("category belongs to another session")
    return cat


def list_categories(db: Session, session_id: str) -> List[Category]:
    stmt = (
        select(Category)
        .where(Category.session_id == session_id)
        .order_by(Category.id.asc())
    )
    return list(db.execute(stmt).scalars().all())


def create_category(db: Session, session_id: str, name: str) -> Category:
    cat = Category(session_id=session_id, name=_clean_name(name), created_at=utcnow())
    db.add(cat)
    db.commit()
    db.refresh(cat)
    return cat


def update_category(db: Session, session_id: str, category_id: int, name: str) -> Category:
    cat = require_category(db, session_id, category_id)
    cat.name = _clean_name(name)
    db.add(cat)
    db.commit()
    db.refresh(cat)
    return cat


def delete_category(db: Session, session_id: str, category_id: int) -> None:
    """
    Deleting a category clears it from the session's transactions and removes
    every rule that points at it.
    """
    cat = require_category(db, session_id, category_id)
    cleared = db.execute(
        update(Transaction)
        .where(and_(Transaction.session_id == session_id, Transaction.category_id == cat.id))
        .values(category_id=None)
        .execution_options(synchronize_session=False)
    ).rowcount
    removed_rules = db.execute(
        delete(CategoryRule)
        .where(CategoryRule.category_id == cat.id)
        .execution_options(synchronize_session=False)
    ).rowcount
    db.delete(cat)
    db.commit()
    db.expire_all()
    logger.info(
        "Deleted category %s (cleared %s transactions, removed %s rules)",
        category_id,
        cleared,
        removed_rules,
    )
