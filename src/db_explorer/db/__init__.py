"""Database access layer."""

from .client import ExecResult, SQLClient

__all__ = ["ExecResult", "SQLClient"]
