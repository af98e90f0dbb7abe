"""Error handling shared by the MCP tool handlers."""

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from mcp.server.fastmcp.exceptions import ToolError

from mta_mcp.models.responses import NotFoundResponse

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

# Upper bound for every caller-supplied result limit
MAX_LIMIT = 100


def clamp_limit(limit: int, maximum: int = MAX_LIMIT) -> int:
    if limit < 1:
        return 1
    if limit > maximum:
        return maximum
    return limit


def tool_operation(
    operation: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Name the failing operation in errors raised by a tool handler.

    Any exception is logged and re-raised as a ToolError such as
    "Error fetching stop information: <cause>".
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return await func(*args, **kwargs)
            except ToolError:
                raise
            except Exception as e:
                logger.exception(f"Error {operation}")
                raise ToolError(f"Error {operation}: {e}") from e

        return wrapper

    return decorator


def not_found(
    item_type: str,
    search_term: str,
    available_items: list[str] | None = None,
    suggestion: str | None = None,
) -> NotFoundResponse:
    return NotFoundResponse(
        item_type=item_type,
        search_term=search_term,
        available_items=available_items or None,
        suggestion=suggestion,
    )
