from __future__ import annotations

import contextvars
import logging
import uuid
from typing import Any

request_id_context: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )


def log_extra(**kwargs: Any) -> dict[str, Any]:
    return {k: v for k, v in kwargs.items() if v is not None}


def new_request_id(value: str | None = None) -> str:
    """Return the caller-supplied request id or a fresh one."""
    return value or str(uuid.uuid4())


def current_request_id() -> str | None:
    return request_id_context.get()
