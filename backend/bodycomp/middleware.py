"""Middleware — request ID + bearer-token gate.

Pure ASGI middleware (not BaseHTTPMiddleware) so responses are never
buffered and the request-id ContextVar stays visible to handlers and loggers.
"""

import json
import logging
import uuid
from contextvars import ContextVar

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Receive, Scope, Send

from bodycomp.core.auth import decode_token

logger = logging.getLogger("bodycomp.middleware")

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

PROTECTED_PREFIXES = ("/profile", "/users", "/stats", "/chat")


async def send_json(send: Send, status: int, message: str) -> None:
    body = json.dumps({"message": message}).encode()
    await send({
        "type": "http.response.start",
        "status": status,
        "headers": [
            [b"content-type", b"application/json"],
            [b"content-length", str(len(body)).encode()],
        ],
    })
    await send({"type": "http.response.body", "body": body})


class RequestIdFilter(logging.Filter):
    """Stamp every log record with the current request ID."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


class RequestIdMiddleware:
    """Attach an 8-char request ID to every request/response cycle.

    Unhandled errors are turned into a JSON 500 here, inside CORS, so the
    response still carries the request ID and the CORS headers.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        rid = uuid.uuid4().hex[:8]
        token = request_id_var.set(rid)
        scope.setdefault("state", {})["request_id"] = rid
        started = False

        async def send_with_rid(message: dict) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
                headers = MutableHeaders(scope=message)
                headers.append("X-Request-ID", rid)
            await send(message)

        try:
            await self.app(scope, receive, send_with_rid)
        except Exception:
            if started:
                raise
            logger.exception("Unhandled error on %s %s", scope.get("method"), scope.get("path"))
            await send_json(send_with_rid, 500, "Server error.")
        finally:
            request_id_var.reset(token)


def _is_protected(path: str) -> bool:
    return any(path == p or path.startswith(p + "/") for p in PROTECTED_PREFIXES)


class BearerAuthMiddleware:
    """Require Authorization: Bearer <token> on protected paths.

    No token gives 401, a token that fails signature or expiry checks gives
    403. Valid claims land in ``request.state.claims``.
    """

    def __init__(self, app: ASGIApp, jwt_secret: str) -> None:
        self.app = app
        self.jwt_secret = jwt_secret

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not _is_protected(scope.get("path", "")):
            await self.app(scope, receive, send)
            return

        headers = {k: v for k, v in scope.get("headers", [])}
        auth_header = headers.get(b"authorization", b"").decode("latin-1")
        scheme, _, token = auth_header.partition(" ")
        token = token.strip()

        if scheme.lower() != "bearer" or not token:
            await send_json(send, 401, "No token provided.")
            return

        claims = decode_token(token, self.jwt_secret)
        if claims is None:
            logger.info("Rejected invalid token on %s", scope.get("path"))
            await send_json(send, 403, "Invalid token.")
            return

        scope.setdefault("state", {})["claims"] = claims
        await self.app(scope, receive, send)
