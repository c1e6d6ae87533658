import json
import logging
import os
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

REQUEST_ID_CTX_KEY = "request_id"
request_id_ctx_var: ContextVar[Optional[str]] = ContextVar(REQUEST_ID_CTX_KEY, default=None)

# `extra` attributes copied verbatim into structured log lines
EXTRA_LOG_FIELDS = (
    "path",
    "method",
    "status_code",
    "latency_ms",
    "event",
    "ticket_id",
    "category",
    "priority",
    "confidence",
    "keywords",
    "file_type",
    "total",
    "successful",
    "failed",
)


def get_request_id() -> Optional[str]:
    return request_id_ctx_var.get()


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        log: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "time": int(time.time() * 1000),
        }
        rid = get_request_id()
        if rid:
            log["request_id"] = rid
        if record.exc_info:
            log["exc_info"] = self.formatException(record.exc_info)
        for key in EXTRA_LOG_FIELDS:
            if hasattr(record, key):
                log[key] = getattr(record, key)
        return json.dumps(log, ensure_ascii=False, default=str)


def audit_event(logger: logging.Logger, event: str, message: str, **fields: Any) -> None:
    """Emit an INFO record tagged with `event` plus structured fields."""
    logger.info(message, extra={"event": event, **fields})


def configure_logging():
    """Route every logger to stdout, as JSON unless STRUCTURED_LOGS is off."""
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    structured = os.getenv("STRUCTURED_LOGS", "true").lower() in {"1", "true", "yes", "on"}

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        JsonLogFormatter() if structured
        else logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
    # one "request completed" line per request comes from RequestIDMiddleware
    logging.getLogger("uvicorn.access").handlers = []


def _header(scope, name: bytes) -> Optional[str]:
    for key, value in scope.get("headers", []):
        if key.lower() == name:
            return value.decode("latin-1")
    return None


class RequestIDMiddleware:
    """Tags each request with `x-request-id` and logs its outcome."""

    logger = logging.getLogger("app.request")

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = _header(scope, b"x-request-id") or str(uuid.uuid4())
        token = request_id_ctx_var.set(request_id)
        started = time.perf_counter()

        async def send_with_request_id(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", []).append((b"x-request-id", request_id.encode()))
                self._log_completion(scope, message.get("status"), started)
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            request_id_ctx_var.reset(token)

    def _log_completion(self, scope, status_code: Optional[int], started: float) -> None:
        self.logger.info(
            "request completed",
            extra={
                "path": scope.get("path"),
                "method": scope.get("method"),
                "status_code": status_code,
                "latency_ms": int((time.perf_counter() - started) * 1000),
            },
        )


class MaxBodySizeMiddleware:
    """Rejects request bodies over `max_bytes` with a 413 in the API's error shape.

    A declared Content-Length over the limit is refused before reading; otherwise
    the body is buffered and replayed to the app as a single message.
    """

    logger = logging.getLogger("app.request")

    def __init__(self, app, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = _header(scope, b"content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.max_bytes:
            await self._reject(scope, send)
            return

        chunks = []
        size = 0
        while True:
            message = await receive()
            if message["type"] != "http.request":
                # client went away; let the app see the disconnect
                async def replay_disconnect():
                    return message

                await self.app(scope, replay_disconnect, send)
                return
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self.max_bytes:
                await self._reject(scope, send)
                return
            chunks.append(chunk)
            if not message.get("more_body", False):
                break

        body = b"".join(chunks)

        async def replay_body():
            return {"type": "http.request", "body": body, "more_body": False}

        await self.app(scope, replay_body, send)

    async def _reject(self, scope, send) -> None:
        self.logger.warning(
            "request body over %d bytes rejected",
            self.max_bytes,
            extra={"path": scope.get("path"), "method": scope.get("method"), "status_code": 413},
        )
        payload = {"error": "Request body too large", "code": "HTTP_413"}
        request_id = get_request_id()
        if request_id:
            payload["request_id"] = request_id
        await send({
            "type": "http.response.start",
            "status": 413,
            "headers": [(b"content-type", b"application/json")],
        })
        await send({"type": "http.response.body", "body": json.dumps(payload).encode()})
