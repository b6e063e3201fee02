# src/support_rag/errors.py
"""Exception types shared across the pipeline."""

from __future__ import annotations

from typing import Tuple, Type

from pydantic import ValidationError


class SupportRagError(Exception):
    """Base class for pipeline errors."""


class InvalidInputError(SupportRagError, ValueError):
    """Caller misuse: blank query, empty required list, missing field."""


class CyclicDependencyError(SupportRagError):
    """The sub-query dependency graph contains a cycle."""

    def __init__(self, resolved: int, total: int):
        super().__init__(f"Dependency cycle detected: resolved {resolved} of {total} sub-queries")
        self.resolved = resolved
        self.total = total


# Caller misuse. Other ValueErrors (JSON or model-output parse failures) stay retryable.
NON_RETRYABLE_ERRORS: Tuple[Type[BaseException], ...] = (
    InvalidInputError,
    ValidationError,
    TypeError,
    KeyError,
    AttributeError,
)


def is_retryable(exc: BaseException) -> bool:
    """True for transient failures (collaborator errors, timeouts)."""
    return isinstance(exc, Exception) and not isinstance(exc, NON_RETRYABLE_ERRORS)


def error_record(
    node: str,
    exc: BaseException,
    *,
    error_type: str = "runtime_error",
    details: dict | None = None,
) -> dict:
    """Structured error dict carried in graph state."""
    return {
        "node": node,
        "type": error_type,
        "message": str(exc),
        "retryable": is_retryable(exc),
        "details": {"exception_type": type(exc).__name__, **(details or {})},
    }
