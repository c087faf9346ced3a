"""HTTP edge — JSON-RPC over POST /rpc plus read-only probes.

A body that is a JSON object with a ``method`` is a JSON-RPC request; any
other body is taken as a plain-text instruction.
"""
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import settings
from .dispatcher import PlanDispatcher
from .errors import ConfigError, InvalidParamsError, LoaderError, MethodNotFoundError
from .loader import register_tools_from_config
from .rpc import RPCRequest, RPCResponse, from_exception, success
from .tools import ToolRegistry, register_builtin_services

logger = logging.getLogger(__name__)

RPC_NAMESPACE = "Server."

MethodFn = Callable[[PlanDispatcher, Any], Awaitable[RPCResponse]]


def _first_param(params: Any) -> Any:
    if isinstance(params, list):
        return params[0] if params else None
    return params


def _text_param(params: Any, key: str) -> tuple:
    """Return (text, directive) from either a bare string or an object."""
    if isinstance(params, str):
        return params, None
    if isinstance(params, dict) and isinstance(params.get(key), str):
        directive = params.get("directive")
        if directive is not None and not isinstance(directive, str):
            raise InvalidParamsError("directive must be a string")
        return params[key], directive
    raise InvalidParamsError(f"expected a string or an object with '{key}'")


async def _process_instruction(d: PlanDispatcher, params: Any) -> RPCResponse:
    text, directive = _text_param(params, "instruction")
    return await d.process_instruction(text, directive=directive)


async def _generate_plan(d: PlanDispatcher, params: Any) -> RPCResponse:
    text, directive = _text_param(params, "instruction")
    return await d.generate_plan(text, directive=directive)


async def _execute_plan(d: PlanDispatcher, params: Any) -> RPCResponse:
    if isinstance(params, dict) and "plan" in params:
        params = params["plan"]
    return await d.execute_plan(params)


async def _call_tool(d: PlanDispatcher, params: Any) -> RPCResponse:
    if not isinstance(params, dict) or not isinstance(params.get("tool_name"), str):
        raise InvalidParamsError("expected an object with 'tool_name' and 'parameters'")
    return await d.call_tool(params["tool_name"], params.get("parameters"))


async def _list_tools(d: PlanDispatcher, params: Any) -> RPCResponse:
    name = params.get("name") if isinstance(params, dict) else params
    if name:
        return success(d.registry.list_tools_for_service(str(name)))
    return success(d.registry.list_tools())


async def _list_services(d: PlanDispatcher, params: Any) -> RPCResponse:
    return success(d.registry.list_services())


METHODS: Dict[str, MethodFn] = {
    "ProcessInstruction": _process_instruction,
    "GeneratePlan": _generate_plan,
    "ExecutePlan": _execute_plan,
    "CallTool": _call_tool,
    "ListTools": _list_tools,
    "ListServices": _list_services,
}


async def handle_rpc(dispatcher: PlanDispatcher, req: RPCRequest) -> RPCResponse:
    method = req.method
    if method.startswith(RPC_NAMESPACE):
        method = method[len(RPC_NAMESPACE):]
    fn = METHODS.get(method)
    if fn is None:
        resp = from_exception(MethodNotFoundError(f"unknown method: {req.method}"))
    else:
        try:
            resp = await fn(dispatcher, _first_param(req.params))
        except InvalidParamsError as e:
            resp = from_exception(e)
    resp.id = req.id
    return resp


def _as_rpc_request(body: bytes) -> Optional[RPCRequest]:
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(payload, dict) or not payload.get("method"):
        return None
    try:
        return RPCRequest.model_validate(payload)
    except ValidationError:
        return None


def create_app(dispatcher: PlanDispatcher) -> FastAPI:
    app = FastAPI(title="tooldispatch")
    app.state.dispatcher = dispatcher

    @app.get("/health")
    async def health():
        return {"ok": True, "tools": len(dispatcher.registry)}

    @app.get("/tools")
    async def tools(service: Optional[str] = None):
        if service:
            return dispatcher.registry.list_tools_for_service(service)
        return dispatcher.registry.list_tools()

    @app.get("/services")
    async def services():
        return dispatcher.registry.list_services()

    @app.post("/rpc")
    async def rpc(request: Request):
        body = await request.body()
        req = _as_rpc_request(body)
        if req is not None:
            logger.info(f"RPC call: {req.method} (id={req.id})")
            resp = await handle_rpc(dispatcher, req)
        else:
            instruction = body.decode("utf-8", errors="replace")
            logger.debug(f"Received plain text instruction: {instruction}")
            resp = await dispatcher.process_instruction(instruction)
        return JSONResponse(resp.model_dump(mode="json"))

    return app


def build_registry(config_path: Optional[str] = None, strict: Optional[bool] = None) -> ToolRegistry:
    """Registry with built-in services plus whatever the config file provides.

    With ``strict`` off a config or loader failure is logged and startup
    continues with no configured tools.
    """
    config_path = config_path or settings.config_path
    strict = settings.strict_load if strict is None else strict

    registry = ToolRegistry()
    register_builtin_services(registry)
    try:
        register_tools_from_config(registry, config_path)
    except (ConfigError, LoaderError) as e:
        if strict:
            raise
        logger.error(f"failed to register dynamic tools from config: {e}")
    return registry
