import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from finledger.app.api.routes.balance import router as balance_router
from finledger.app.api.routes.categories import router as categories_router
from finledger.app.api.routes.category_rules import router as category_rules_router
from finledger.app.api.routes.messages import router as messages_router
from finledger.app.api.routes.payment_requests import router as payment_requests_router
from finledger.app.api.routes.saving_goals import router as saving_goals_router
from finledger.app.api.routes.sessions import router as sessions_router
from finledger.app.api.routes.transactions import router as transactions_router
from finledger.app.config import log_level


logging.basicConfig(
    level=getattr(logging, log_level(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS")
    if raw is None:
        origins = ["http://localhost:5173", "http://127.0.0.1:5173"]
    else:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    if not origins:
        raise RuntimeError("CORS_ALLOW_ORIGINS must not be empty.")
    return origins


app = FastAPI(title="finledger API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def _invalid_input(request: Request, exc: RequestValidationError):
    # The public API reports malformed input as 405.
    logger.info("Rejected invalid input on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=405, content={"detail": "invalid input given"})


app.include_router(sessions_router)
app.include_router(transactions_router)
app.include_router(categories_router)
app.include_router(category_rules_router)
app.include_router(balance_router)
app.include_router(saving_goals_router)
app.include_router(payment_requests_router)
app.include_router(messages_router)
