"""Tool executor — runs one registered tool under a deadline."""
import asyncio
import inspect
import json
import logging
import time
from typing import Any, Dict, Optional

from ..errors import MethodNotFoundError, ToolExecutionError
from .contract import ToolContext, is_async_handler
from .registry import ToolDef, ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def jsonable(value: Any) -> Any:
    """Coerce a handler outcome into something json.dumps accepts."""
    try:
        return json.loads(json.dumps(value, default=str))
    except (TypeError, ValueError):
        return str(value)


async def _invoke(tool: ToolDef, ctx: ToolContext, params: Dict[str, Any]) -> Any:
    """Run the handler to completion; handler failures become ToolExecutionError.

    A plain function may hand back an awaitable (wrappers around coroutine
    functions do); it is awaited under the same deadline.
    """
    try:
        if is_async_handler(tool.handler):
            outcome = await tool.handler(ctx, params)
        else:
            outcome = await asyncio.to_thread(tool.handler, ctx, params)
        if inspect.isawaitable(outcome):
            outcome = await outcome
    except Exception as e:
        logger.error(f"Tool {tool.name} failed: {e}", exc_info=True)
        raise ToolExecutionError(f"failed to execute tool {tool.name}: {e}") from e
    return outcome


async def execute_tool(
    registry: ToolRegistry,
    tool_name: str,
    params: Optional[Dict[str, Any]] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Any:
    """Execute a registered tool by name.

    Raises MethodNotFoundError for unknown names and ToolExecutionError when
    the handler raises or overruns ``timeout``.
    """
    tool = registry.get_tool(tool_name)
    if not tool:
        logger.warning(f"Unknown tool: {tool_name}")
        raise MethodNotFoundError(f"unknown action: {tool_name}")

    params = dict(params or {})
    ctx = ToolContext(tool_name=tool_name, timeout=timeout, registry=registry)

    arg_str = ", ".join(f"{k}={v!r}" for k, v in params.items())
    logger.info(f"Executing tool: {tool_name}({arg_str})")
    t0 = time.monotonic()

    # A TimeoutError raised by the handler itself arrives wrapped by _invoke,
    # so the bare one here can only be the deadline.
    try:
        outcome = await asyncio.wait_for(_invoke(tool, ctx, params), timeout=timeout)
    except asyncio.TimeoutError:
        logger.error(f"Tool {tool_name} timed out after {timeout:.0f}s")
        raise ToolExecutionError(f"failed to execute tool {tool_name}: timed out after {timeout:.0f}s")
    finally:
        elapsed = time.monotonic() - t0
        logger.info(f"Tool {tool_name}: {elapsed:.1f}s")

    return jsonable(outcome)
