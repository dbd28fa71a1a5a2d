import logging
import sqlite3
import sys
from contextlib import asynccontextmanager, contextmanager

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .db import init_db
from .jobs import KeepAliveJob
from .logic import validate_new_transaction
from .models import TransactionCreate, cents_to_amount
from .ratelimit import RateCounter, RateCounterError, RateGate, UpstashRateCounter
from .repo import create_txn, delete_txn, get_summary, list_txns
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

HEALTH_PATH = "/api/health"
INTERNAL_ERROR = "Internal server error."
TOO_MANY_REQUESTS = "Too many requests, please try again later."
NOT_FOUND = "Transaction not found."

router = APIRouter(prefix="/api/transactions")


def get_db_path(request: Request):
    return request.app.state.settings.db_path


@contextmanager
def _storage_errors(action: str):
    try:
        yield
    except sqlite3.Error as exc:
        logger.exception("Error %s", action)
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR) from exc


@router.get("/summary/{user_id}")
def transactions_summary(user_id: str, db_path=Depends(get_db_path)):
    with _storage_errors("retrieving transaction summary"):
        summary = get_summary(db_path, user_id)
    return {
        "balance": cents_to_amount(summary["balance_cents"]),
        "income": cents_to_amount(summary["income_cents"]),
        "expense": cents_to_amount(summary["expense_cents"]),
    }


@router.get("/{user_id}")
def list_transactions(user_id: str, db_path=Depends(get_db_path)):
    with _storage_errors("retrieving transactions"):
        transactions = list_txns(db_path, user_id)
    logger.debug("retrieved %d transactions for %s", len(transactions), user_id)
    return [txn.to_dict() for txn in transactions]


@router.post("", status_code=201)
def create_transaction(
    payload: TransactionCreate | None = None, db_path=Depends(get_db_path)
):
    if payload is None:
        # No body at all is validated like an empty object.
        payload = TransactionCreate()
    try:
        new_txn = validate_new_transaction(
            title=payload.title,
            amount=payload.amount,
            category=payload.category,
            user_id=payload.user_id,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    with _storage_errors("creating transaction"):
        txn = create_txn(
            db_path,
            user_id=new_txn.user_id,
            title=new_txn.title,
            amount_cents=new_txn.amount_cents,
            category=new_txn.category,
        )
    logger.info("transaction %s created for %s", txn.id, txn.user_id)
    return txn.to_dict()


@router.delete("/{txn_id}")
def delete_transaction(txn_id: str, db_path=Depends(get_db_path)):
    try:
        parsed_id = int(txn_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=NOT_FOUND) from exc

    with _storage_errors("deleting transaction"):
        deleted = delete_txn(db_path, parsed_id)
    if deleted is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    logger.info("transaction %s deleted", deleted.id)
    return {"message": "Transaction deleted successfully."}


async def _message_for_http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        {"message": exc.detail}, status_code=exc.status_code, headers=exc.headers
    )


async def _message_for_invalid_body(request: Request, exc: RequestValidationError):
    return JSONResponse({"message": "Invalid request body."}, status_code=400)


def create_app(
    settings: Settings | None = None,
    *,
    counter: RateCounter | None = None,
) -> FastAPI:
    settings = settings or get_settings()

    owned_counter = None
    if counter is None and settings.rate_counter_configured:
        owned_counter = counter = UpstashRateCounter(
            settings.upstash_url, settings.upstash_token
        )

    if counter is None:
        logger.warning("rate counter not configured; rate limiting is disabled")
        gate = None
    else:
        gate = RateGate(
            counter,
            limit=settings.rate_limit,
            window_seconds=settings.rate_window_seconds,
            trust_forwarded_for=settings.trust_forwarded_for,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        job = None
        if settings.keepalive_enabled and settings.keepalive_url:
            job = KeepAliveJob(
                settings.keepalive_url, settings.keepalive_interval_seconds
            )
            job.start()
        app.state.keepalive = job
        try:
            yield
        finally:
            if job is not None:
                await job.stop()
            if owned_counter is not None:
                await owned_counter.aclose()

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.rate_gate = gate
    app.state.keepalive = None

    @app.middleware("http")
    async def rate_gate(request: Request, call_next):
        gate = request.app.state.rate_gate
        if gate is None or request.url.path == HEALTH_PATH:
            return await call_next(request)
        try:
            allowed = await gate.allow(request)
        except RateCounterError:
            logger.exception("Rate limiter error")
            return JSONResponse({"message": INTERNAL_ERROR}, status_code=500)
        if not allowed:
            return JSONResponse({"message": TOO_MANY_REQUESTS}, status_code=429)
        return await call_next(request)

    app.add_exception_handler(StarletteHTTPException, _message_for_http_error)
    app.add_exception_handler(RequestValidationError, _message_for_invalid_body)

    @app.get(HEALTH_PATH)
    def health():
        return {"status": "ok"}

    app.include_router(router)
    return app


def run() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        settings = get_settings()
    except ValueError:
        logger.exception("Invalid configuration")
        sys.exit(1)
    logging.getLogger().setLevel(settings.log_level)

    try:
        init_db(settings)
    except (sqlite3.Error, OSError):
        logger.exception("Error initializing database")
        sys.exit(1)
    logger.info("Database initialized at %s", settings.db_path)

    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)
