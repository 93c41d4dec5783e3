"""
Request Sanitization Middleware

Removes storage-operator-shaped keys ("$where", "profile.email", "email[$ne]")
from request bodies that decode as JSON, whatever their content type, and
from the query string before routing. Request bodies are capped in size.

This is a pure ASGI middleware: the request body is buffered, cleaned and
replayed to the application through a new ``receive`` callable, and the
query string is rebuilt in the scope, so handlers only ever see clean input.
"""

import json
import logging
from urllib.parse import parse_qsl, urlencode

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .errors import PayloadTooLargeError, error_response
from .utils.sanitization import sanitize, sanitize_query_pairs

logger = logging.getLogger(__name__)

BODY_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


def _header(scope: Scope, name: bytes) -> str:
    for key, value in scope.get("headers", []):
        if key.lower() == name:
            return value.decode("latin-1")
    return ""


class SanitizationMiddleware:
    def __init__(self, app: ASGIApp, max_body_bytes: int = 10240):
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        scope = self._clean_query(scope)

        if scope["method"] not in BODY_METHODS:
            await self.app(scope, receive, send)
            return

        declared = _header(scope, b"content-length")
        if declared.isdigit() and int(declared) > self.max_body_bytes:
            await self._reject_too_large(scope, receive, send)
            return

        body = b""
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            body += message.get("body", b"")
            more_body = message.get("more_body", False)
            if len(body) > self.max_body_bytes:
                await self._reject_too_large(scope, receive, send)
                return

        body, scope = self._clean_body(scope, body)

        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        await self.app(scope, replay, send)

    def _clean_query(self, scope: Scope) -> Scope:
        raw = scope.get("query_string", b"")
        if not raw:
            return scope

        removed: list[str] = []
        pairs = parse_qsl(raw.decode("latin-1"), keep_blank_values=True)
        kept = sanitize_query_pairs(pairs, removed)
        if not removed:
            return scope

        logger.warning(f"🧹 Removed query keys {removed} from {scope.get('path')}")
        return {**scope, "query_string": urlencode(kept).encode("latin-1")}

    def _clean_body(self, scope: Scope, body: bytes) -> tuple[bytes, Scope]:
        if not body:
            return body, scope

        # Any body that decodes as JSON is cleaned, whatever its content type
        removed: list[str] = []
        try:
            cleaned = sanitize(json.loads(body), removed)
        except (ValueError, RecursionError):
            # Left for the route's own parsing to reject
            return body, scope

        if not removed:
            return body, scope

        logger.warning(f"🧹 Removed body keys {removed} from {scope.get('path')}")
        new_body = json.dumps(cleaned).encode("utf-8")
        headers = [(k, v) for k, v in scope["headers"] if k.lower() != b"content-length"]
        headers.append((b"content-length", str(len(new_body)).encode("latin-1")))
        return new_body, {**scope, "headers": headers}

    async def _reject_too_large(self, scope: Scope, receive: Receive, send: Send) -> None:
        logger.warning(f"🚫 Request body over {self.max_body_bytes} bytes on {scope.get('path')}")
        response = error_response(PayloadTooLargeError())
        await response(scope, receive, send)
