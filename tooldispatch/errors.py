"""Error taxonomy for loading and dispatch.

Dispatch errors carry the JSON-RPC code they are reported under; the
dispatcher converts them into response envelopes instead of letting them
cross the transport boundary.
"""
from typing import Any

PARSE_ERROR = -32700
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
EXECUTION_ERROR = -32000


class ConfigError(Exception):
    """Configuration file missing, unreadable or malformed."""


class LoaderError(Exception):
    """A tool's handler could not be resolved or has the wrong shape."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(f"tool {tool_name}: {message}")
        self.tool_name = tool_name


class DispatchError(Exception):
    code = EXECUTION_ERROR

    def __init__(self, message: str, data: Any = None):
        super().__init__(message)
        self.message = message
        self.data = data


class PlanParseError(DispatchError):
    code = PARSE_ERROR


class InvalidParamsError(DispatchError):
    code = INVALID_PARAMS


class MethodNotFoundError(DispatchError):
    code = METHOD_NOT_FOUND


class ToolExecutionError(DispatchError):
    code = EXECUTION_ERROR
