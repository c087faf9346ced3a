"""JSON-RPC 2.0 wire models shared by the dispatcher and the HTTP edge."""
from typing import Any, List, Optional, Union

from pydantic import BaseModel

from .errors import DispatchError

JSONRPC_VERSION = "2.0"


class RPCRequest(BaseModel):
    jsonrpc: str = JSONRPC_VERSION
    method: str
    params: Union[List[Any], dict, str, None] = None
    id: Union[int, str, None] = None


class RPCError(BaseModel):
    code: int
    message: str
    data: Optional[Any] = None

    def __str__(self) -> str:
        return f"RPC Error [Code: {self.code}]: {self.message}"


class RPCResponse(BaseModel):
    jsonrpc: str = JSONRPC_VERSION
    result: Optional[Any] = None
    error: Optional[RPCError] = None
    id: Union[int, str, None] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def success(result: Any) -> RPCResponse:
    return RPCResponse(result=result)


def failure(code: int, message: str, data: Any = None) -> RPCResponse:
    return RPCResponse(error=RPCError(code=code, message=message, data=data))


def from_exception(exc: DispatchError) -> RPCResponse:
    return failure(exc.code, exc.message, exc.data)
