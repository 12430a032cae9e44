"""
Request-scoped state for the web application.

Each HTTP request runs inside its own scope holding the request object, a
request id, a process-wide request number and a small cache. The scope is
carried in context variables so it follows the request across awaits.
"""

from __future__ import annotations

import itertools
import logging
import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Optional

from starlette.middleware.base import BaseHTTPMiddleware

from ..constants import SESSION_COOKIE_NAME

if TYPE_CHECKING:
    from starlette.requests import Request

logger = logging.getLogger(__name__)

REQUEST_ID_KEY = "request_id"
REQUEST_NUMBER_KEY = "request_number"

_current_request: ContextVar[Optional[Any]] = ContextVar("cms_current_request", default=None)
_request_items: ContextVar[Optional[dict[str, Any]]] = ContextVar("cms_request_items", default=None)
_request_counter = itertools.count(1)


class RequestCache:
    """Dictionary scoped to the current request.

    Outside of a request scope the cache is unavailable: reads return the
    default and writes are dropped.
    """

    @property
    def is_available(self) -> bool:
        return _request_items.get() is not None

    def get(self, key: str, default: Any = None) -> Any:
        items = _request_items.get()
        if items is None:
            return default
        return items.get(key, default)

    def set(self, key: str, value: Any) -> bool:
        items = _request_items.get()
        if items is None:
            return False
        items[key] = value
        return True

    def clear(self) -> None:
        items = _request_items.get()
        if items is not None:
            items.clear()


class SessionIdResolver:
    """Resolves the session id of the current request from its session cookie."""

    @property
    def session_id(self) -> Optional[str]:
        request = _current_request.get()
        if request is None:
            return None
        cookies = getattr(request, "cookies", None) or {}
        return cookies.get(SESSION_COOKIE_NAME)


def begin_request(request: Any) -> tuple[Any, Any]:
    """Open a request scope. Returns tokens for end_request."""
    items = {
        REQUEST_ID_KEY: uuid.uuid4().hex,
        REQUEST_NUMBER_KEY: next(_request_counter),
    }
    return _current_request.set(request), _request_items.set(items)


def end_request(tokens: tuple[Any, Any]) -> None:
    request_token, items_token = tokens
    _current_request.reset(request_token)
    _request_items.reset(items_token)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Opens a request scope around every HTTP request.

    The request id is echoed back in the X-Request-Id response header.
    """

    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        tokens = begin_request(request)
        try:
            request_id = RequestCache().get(REQUEST_ID_KEY)
            request.state.request_id = request_id
            response = await call_next(request)
            response.headers["X-Request-Id"] = request_id
            return response
        finally:
            end_request(tokens)
