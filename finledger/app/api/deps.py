# finledger/app/api/deps.py
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Query
from sqlalchemy.orm import Session

from finledger.app.db import get_db
from finledger.app.models import LedgerSession
from finledger.app.services.ledger_service import require_session


def get_current_session(
    x_session_id: Optional[str] = Header(default=None, alias="X-session-ID"),
    session_id: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
) -> LedgerSession:
    """
    Session auth dependency.

    Reads the session id from the X-session-ID header, falling back to the
    session_id query parameter. Missing or unknown ids are 401.

    NOTE:
    - db must be injected via Depends(get_db) so FastAPI doesn't treat Session
      as a Pydantic field.
    """
    return require_session(db, (x_session_id or session_id or "").strip())
