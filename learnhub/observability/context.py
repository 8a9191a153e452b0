"""Per-request observability context helpers."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Iterator, Optional
from uuid import uuid4

_request_id_ctx: ContextVar[Optional[str]] = ContextVar(
    "learnhub_request_id",
    default=None,
)


def set_request_id(request_id: str) -> Token:
    """Bind request ID to the current execution context."""
    return _request_id_ctx.set(request_id)


def get_request_id() -> Optional[str]:
    """Return current request ID from context, when available."""
    return _request_id_ctx.get()


def reset_request_id(token: Token) -> None:
    """Reset request ID context to previous value."""
    _request_id_ctx.reset(token)


@contextmanager
def request_scope(request_id: Optional[str] = None) -> Iterator[str]:
    """Bind a request ID (generated when missing) for the enclosed block."""
    rid = request_id or uuid4().hex
    token = set_request_id(rid)
    try:
        yield rid
    finally:
        reset_request_id(token)
