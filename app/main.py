from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from collections import deque, defaultdict
from datetime import datetime, timezone
from typing import Optional
import logging
import time

from app.api import router_tickets, router_transactions
from app.config import settings
from app.logging_utils import configure_logging, RequestIDMiddleware, MaxBodySizeMiddleware, get_request_id
from app.models.classifier import TicketClassifier
from app.models.schemas import ErrorDetail, ErrorResponse, HealthResponse
from app.services.import_service import ImportService
from app.services.ledger import TransactionLedger
from app.services.ticket_store import TicketStore

# Configure structured logging
configure_logging()
logger = logging.getLogger(__name__)

# Request-location prefixes FastAPI puts in front of field names
_LOC_PREFIXES = {"body", "query", "path", "header"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Lifespan startup: tickets=%d transactions=%d",
                app.state.ticket_store.count(), app.state.ledger.count())
    if settings.SAMPLE_TRANSACTIONS_PATH:
        app.state.ledger.seed_from_file(settings.SAMPLE_TRANSACTIONS_PATH)
    yield
    logger.info("Lifespan shutdown complete")


def _error_body(error: str, code: str, **extra) -> dict:
    return ErrorResponse(error=error, code=code, request_id=get_request_id(), **extra).model_dump(exclude_none=True)


def _validation_details(errors) -> list[ErrorDetail]:
    details = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ())]
        if loc and loc[0] in _LOC_PREFIXES:
            loc = loc[1:]
        details.append(ErrorDetail(field=".".join(loc) or "body", message=err.get("msg", "Invalid value")))
    return details


def _install_rate_limiter(app: FastAPI) -> None:
    """Per-IP sliding window kept on the app (best-effort, single-process only)."""
    buckets: dict[str, deque] = defaultdict(deque)
    limit = settings.RATE_LIMIT_REQUESTS
    window = settings.RATE_LIMIT_WINDOW_SEC

    def exceeded(key: str) -> bool:
        now = time.time()
        bucket = buckets[key]
        while bucket and bucket[0] < now - window:
            bucket.popleft()
        if len(bucket) >= limit:
            return True
        bucket.append(now)
        return False

    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"
        if exceeded(f"ip:{client_ip}"):
            return JSONResponse(status_code=429, content=_error_body("Rate limit exceeded", "HTTP_429"))
        return await call_next(request)


def _install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(
                exc.detail if isinstance(exc.detail, str) else str(exc.detail),
                f"HTTP_{exc.status_code}",
            ),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        details = _validation_details(exc.errors())
        return JSONResponse(
            status_code=400,
            content=_error_body(
                "Validation failed",
                "VALIDATION_ERROR",
                details=[d.model_dump() for d in details],
            ),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "Internal server error",
                "INTERNAL_ERROR",
                message=str(exc) if settings.is_development else None,
            ),
        )


def create_app(
    ticket_store: Optional[TicketStore] = None,
    ledger: Optional[TransactionLedger] = None,
    classifier: Optional[TicketClassifier] = None,
) -> FastAPI:
    """Build the API with its own service instances (tests pass fresh ones)."""
    app = FastAPI(
        title="Support Desk & Ledger API",
        description="Support ticket tracking with bulk import and auto-classification, plus a transaction ledger",
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )

    app.state.ticket_store = ticket_store if ticket_store is not None else TicketStore()
    app.state.ledger = ledger if ledger is not None else TransactionLedger()
    app.state.classifier = classifier if classifier is not None else TicketClassifier()
    app.state.import_service = ImportService(app.state.ticket_store, app.state.classifier)

    if settings.RATE_LIMIT_REQUESTS > 0:
        _install_rate_limiter(app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(MaxBodySizeMiddleware, max_bytes=settings.MAX_BODY_BYTES)

    _install_exception_handlers(app)

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health():
        return HealthResponse(
            status="ok",
            message="Support Desk & Ledger API is running",
            version=settings.APP_VERSION,
            timestamp=datetime.now(timezone.utc),
        )

    app.include_router(router_tickets.router)
    app.include_router(router_transactions.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
