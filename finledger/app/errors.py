"""
Error kinds raised by the ledger core and services.

They are HTTPException subclasses so routes can let them propagate untouched;
the status codes follow the public API contract (bad input is 405).
"""
from __future__ import annotations

from fastapi import HTTPException


class NotFound(HTTPException):
    def __init__(self, detail: str = "not found"):
        super().__init__(status_code=404, detail=detail)


class InvalidParameter(HTTPException):
    def __init__(self, detail: str = "invalid input given"):
        super().__init__(status_code=405, detail=detail)


class Conflict(HTTPException):
    def __init__(self, detail: str = "conflict"):
        super().__init__(status_code=409, detail=detail)


class Unauthorized(HTTPException):
    def __init__(self, detail: str = "session id is missing or invalid"):
        super().__init__(status_code=401, detail=detail)
