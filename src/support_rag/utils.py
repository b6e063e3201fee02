# src/support_rag/utils.py
"""Shared helpers: observability, node error handling, bounded fan-out."""

from __future__ import annotations

import asyncio
import functools
import logging
import os
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, TypeVar

from support_rag.errors import error_record

T = TypeVar("T")

OBSERVE_ENABLED = os.getenv("LANGFUSE_ENABLED", "1") == "1"

if OBSERVE_ENABLED:
    from langfuse import observe
else:

    def observe(fn=None, **kwargs):
        def _wrap(f):
            return f

        return _wrap(fn) if fn else _wrap


def with_error_handling(node_name: str) -> Callable:
    """Decorator giving async graph nodes consistent error handling.

    A node that raises returns a structured error dict instead, so the graph
    keeps moving and the failure shows up in the final diagnostics.

    Example:
        @with_error_handling("finalize")
        async def finalize(state: WorkflowState) -> Dict[str, Any]:
            ...
            return {"response": response}
    """

    def decorator(func: Callable) -> Callable:
        logger = logging.getLogger(func.__module__)

        @functools.wraps(func)
        async def wrapper(state: Dict[str, Any]) -> Dict[str, Any]:
            try:
                logger.debug(f"Starting {node_name}")
                result = await func(state)
                logger.debug(f"Completed {node_name}: {len(result)} fields returned")
                return result
            except Exception as e:
                logger.exception(f"Error in {node_name}: {e}")
                return {"errors": [error_record(node_name, e)]}

        return wrapper

    return decorator


async def gather_or_cancel(*aws: Awaitable[Any]) -> List[Any]:
    """Await all branches; if one fails, cancel the others and re-raise."""
    tasks = [asyncio.ensure_future(a) for a in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for t in tasks:
            if not t.done():
                t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def bounded_gather(
    fn: Callable[[T], Awaitable[Any]],
    items: Iterable[T],
    *,
    limit: Optional[int] = None,
) -> List[Any]:
    """Run fn over items concurrently, at most `limit` in flight, results in input order."""
    items = list(items)
    if not items:
        return []
    semaphore = asyncio.Semaphore(max(1, int(limit or len(items))))

    async def _run(item: T) -> Any:
        async with semaphore:
            return await fn(item)

    return await gather_or_cancel(*(_run(i) for i in items))


def message_text(message: Any) -> str:
    """Plain text of a chat model reply (str content or list of content blocks)."""
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts)
    return "" if content is None else str(content)
