"""Handler contract — the one function shape every tool must have.

    async def Handler(ctx: ToolContext, params: dict) -> Any

A plain ``def`` with the same two positional parameters is accepted too and
runs in a worker thread. Handlers report failure by raising.
"""
import inspect
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Union

ToolHandler = Callable[["ToolContext", Dict[str, Any]], Union[Any, Awaitable[Any]]]


@dataclass
class ToolContext:
    tool_name: str
    timeout: float
    registry: Any = None
    deadline: float = field(default=0.0)

    def __post_init__(self):
        if not self.deadline:
            self.deadline = time.monotonic() + self.timeout

    def remaining(self) -> float:
        """Seconds left before the invocation is cancelled."""
        return max(0.0, self.deadline - time.monotonic())


def check_handler(obj: Any) -> Optional[str]:
    """Return a reason string if ``obj`` does not satisfy the contract, else None."""
    if inspect.isclass(obj) or not callable(obj):
        return f"expected a function, got {type(obj).__name__}"
    try:
        sig = inspect.signature(obj)
    except (TypeError, ValueError) as e:
        return f"signature not inspectable: {e}"

    positional = 0
    for p in sig.parameters.values():
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD):
            positional += 1
        elif p.kind == p.VAR_POSITIONAL:
            return "variadic *args not allowed"
        elif p.kind == p.KEYWORD_ONLY and p.default is p.empty:
            return f"required keyword-only parameter '{p.name}'"
    if positional != 2:
        return f"expected (ctx, params), got {positional} positional parameter(s)"
    return None


def is_async_handler(handler: ToolHandler) -> bool:
    return inspect.iscoroutinefunction(handler) or inspect.iscoroutinefunction(
        getattr(handler, "__call__", None)
    )
