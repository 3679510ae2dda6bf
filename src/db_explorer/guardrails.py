from __future__ import annotations

import re

from .errors import BadRequest, RecordNotFound

_DIGITS_RE = re.compile(r"^\d+$")

# Largest value a signed 64-bit integer column or LIMIT clause accepts
MAX_SQL_INT = 2**63 - 1


def detect_statement_type(sql: str) -> str:
    stripped = sql.strip().split()
    if not stripped:
        raise BadRequest("SQL statement is empty")
    return stripped[0].upper()


def clamp_limit(requested: int | None, cap: int) -> int | None:
    if cap == -1:
        return requested
    if requested is None:
        return cap
    return min(requested, cap)


def page_param(raw: str | None, default: int) -> int:
    """Parse a ``limit``/``offset`` query value, falling back to ``default``.

    Only values made entirely of digits that fit a 64-bit integer are
    accepted; anything else (empty, negative, non-numeric, too large)
    silently yields the default.
    """
    if raw is None or not _DIGITS_RE.match(raw):
        return default
    value = int(raw)
    if value > MAX_SQL_INT:
        return default
    return value


def path_segments(path: str) -> list[str]:
    return path.split("/")[1:]


def record_id(path: str) -> int:
    segments = path_segments(path)
    if len(segments) < 2 or not _DIGITS_RE.match(segments[1]):
        raise BadRequest("bad request")
    value = int(segments[1])
    if value > MAX_SQL_INT:
        raise RecordNotFound()
    return value
