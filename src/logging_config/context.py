"""Log context binding.

Binds a query id (one per filter/sort/paginate pass or data-source fetch)
and arbitrary extras to every record logged inside a LogContext.
"""

import uuid
from contextvars import ContextVar, Token
from typing import Any, Optional

_query_id_var: ContextVar[str] = ContextVar("query_id", default="")
_extra_context_var: ContextVar[dict] = ContextVar("extra_context", default={})


def generate_query_id() -> str:
    """Short random id for correlating the log lines of one pass."""
    return uuid.uuid4().hex[:12]


def get_query_id() -> str:
    return _query_id_var.get()


def get_context_dict() -> dict[str, Any]:
    """All bound context as a dictionary for log records."""
    ctx: dict[str, Any] = {}
    query_id = _query_id_var.get()
    if query_id:
        ctx["query_id"] = query_id
    extra = _extra_context_var.get()
    if extra:
        ctx.update(extra)
    return ctx


class LogContext:
    """Context manager binding a query id and extras to log records.

    Nested contexts restore the outer binding on exit.

    Example:
        with LogContext(operation="view", page=2):
            logger.info("running query")  # carries query_id, operation, page
    """

    def __init__(self, query_id: Optional[str] = None, **extra: Any):
        self.query_id = query_id or generate_query_id()
        self.extra = extra
        self._tokens: list[Token] = []

    def __enter__(self) -> "LogContext":
        self._tokens = [
            _query_id_var.set(self.query_id),
            _extra_context_var.set({**_extra_context_var.get(), **self.extra}),
        ]
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        query_token, extra_token = self._tokens
        _extra_context_var.reset(extra_token)
        _query_id_var.reset(query_token)
        self._tokens = []

    def bind(self, **kwargs: Any) -> None:
        """Add extras to the active context."""
        self.extra.update(kwargs)
        _extra_context_var.set({**_extra_context_var.get(), **kwargs})
