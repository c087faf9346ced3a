"""Plan dispatcher — instruction → (meta answer | model plan → sequential execution).

All public coroutines return an RPCResponse; dispatch errors never escape.
"""
import json
import logging
from typing import Any, Dict, List, Optional, Union

from .config import settings
from .errors import (
    DispatchError,
    InvalidParamsError,
    MethodNotFoundError,
    PlanParseError,
)
from .llm import ModelReply, OpenAIPlanner, build_directive
from .rpc import RPCResponse, from_exception, success
from .tools.executor import execute_tool
from .tools.registry import ToolRegistry
from .tools.router import LIST_SERVICES, route

logger = logging.getLogger(__name__)

FUNCTION_PREFIX = "functions."

PlanInput = Union[str, bytes, List[Any], Dict[str, Any], None]


def strip_function_prefix(action: str) -> str:
    """Drop the namespace the model may echo back from its function-calling API."""
    if action.startswith(FUNCTION_PREFIX):
        return action[len(FUNCTION_PREFIX):]
    return action


def parse_plan(plan: PlanInput) -> List[Dict[str, Any]]:
    """Normalize a plan document into a non-empty list of action objects.

    Accepts JSON text, a list of objects, or a single object (one-step plan).
    """
    if plan is None or (isinstance(plan, (str, bytes)) and not plan.strip()):
        raise InvalidParamsError("received empty plan")

    if isinstance(plan, (str, bytes)):
        try:
            raw = json.loads(plan)
        except json.JSONDecodeError as e:
            raise PlanParseError(f"failed to parse plan JSON: {e}") from e
    else:
        raw = plan

    if isinstance(raw, dict):
        actions = [raw]
    elif isinstance(raw, list):
        for elem in raw:
            if not isinstance(elem, dict):
                raise PlanParseError("plan array contains non-object element")
        actions = raw
    else:
        raise PlanParseError("plan JSON is neither an object nor an array")

    if not actions:
        raise InvalidParamsError("received empty plan")
    return actions


def _action_name(action: Dict[str, Any]) -> str:
    name = action.get("action")
    if not isinstance(name, str) or not name.strip():
        raise InvalidParamsError("invalid action format")
    return strip_function_prefix(name.strip())


def _action_params(action: Dict[str, Any], name: str) -> Dict[str, Any]:
    params = action.get("parameters")
    if params is None:
        return {}
    if not isinstance(params, dict):
        raise InvalidParamsError(f"parameters for action {name} must be an object")
    return params


class PlanDispatcher:
    """Resolves plan steps against a ToolRegistry and executes them in order."""

    def __init__(self, registry: ToolRegistry, planner: Optional[OpenAIPlanner] = None,
                 tool_timeout: float = 0.0):
        self.registry = registry
        self.planner = planner or OpenAIPlanner()
        self.tool_timeout = tool_timeout or settings.tool_timeout_s

    # ── Classifying ───────────────────────────────────────

    def answer_meta_query(self, instruction: str) -> Optional[RPCResponse]:
        """Answer catalogue questions locally; None when the text is not one."""
        match = route(instruction, self.registry.known_service_names())
        if match is None:
            return None
        if match.tool == LIST_SERVICES:
            return success(self.registry.list_services())
        service = match.args.get("name")
        if service:
            return success(self.registry.list_tools_for_service(service))
        return success(self.registry.list_tools())

    # ── Planning ──────────────────────────────────────────

    def default_directive(self) -> str:
        return build_directive(self.registry.tools_by_service())

    async def _call_model(self, instruction: str, directive: Optional[str]) -> ModelReply:
        tools = list(self.registry.all_tools().values())
        return await self.planner.generate(instruction, tools, directive or self.default_directive())

    async def generate_plan(self, instruction: str, directive: Optional[str] = None) -> RPCResponse:
        """Run the planning phase only and return what the model produced."""
        try:
            reply = await self._call_model(instruction, directive)
        except DispatchError as e:
            return from_exception(e)
        fc = reply.function_call
        return success({
            "text": reply.text,
            "function_call": {"name": fc.name, "arguments": fc.arguments} if fc else None,
        })

    async def process_instruction(self, instruction: str, directive: Optional[str] = None) -> RPCResponse:
        """Handle a plain-language instruction end to end.

        ``directive`` replaces the default system directive for this call only.
        """
        logger.info(f"Processing instruction: {instruction!r}")
        if not instruction or not instruction.strip():
            return from_exception(InvalidParamsError("received empty instruction"))

        meta = self.answer_meta_query(instruction)
        if meta is not None:
            return meta

        try:
            reply = await self._call_model(instruction, directive)
            if reply.function_call:
                return success(await self._invoke_function_call(reply))
        except DispatchError as e:
            return from_exception(e)

        logger.debug(f"Generated plan: {reply.text}")
        return await self.execute_plan(reply.text)

    async def _invoke_function_call(self, reply: ModelReply) -> str:
        fc = reply.function_call
        name = strip_function_prefix(fc.name)
        try:
            params = json.loads(fc.arguments or "{}")
        except json.JSONDecodeError as e:
            raise InvalidParamsError(f"invalid arguments for tool {name}: {e}") from e
        if not isinstance(params, dict):
            raise InvalidParamsError(f"invalid arguments for tool {name}: expected an object")
        await execute_tool(self.registry, name, params, timeout=self.tool_timeout)
        return f"Tool {name} executed successfully"

    # ── Executing ─────────────────────────────────────────

    async def execute_plan(self, plan: PlanInput) -> RPCResponse:
        """Execute every action in order, stopping at the first failure."""
        completed: List[str] = []
        results: List[Dict[str, Any]] = []
        try:
            actions = parse_plan(plan)
            for action in actions:
                name = _action_name(action)
                params = _action_params(action, name)
                output = await self._run_step(name, params, completed)
                completed.append(name)
                results.append({"action": name, "output": output})
        except DispatchError as e:
            if completed and e.data is None:
                e.data = {"completed": completed}
            logger.error(f"Plan aborted after {len(completed)} step(s): {e.message}")
            return from_exception(e)

        return success({
            "status": "success",
            "message": "Plan executed successfully",
            "results": results,
        })

    async def _run_step(self, name: str, params: Dict[str, Any], completed: List[str]) -> Any:
        try:
            return await execute_tool(self.registry, name, params, timeout=self.tool_timeout)
        except DispatchError as e:
            e.data = {"completed": list(completed), "failed": name}
            raise

    # ── Direct invocation ─────────────────────────────────

    async def call_tool(self, tool_name: str, parameters: Optional[Dict[str, Any]] = None) -> RPCResponse:
        """Invoke one tool by exact name, bypassing classification and planning."""
        logger.info(f"Direct tool call: {tool_name}")
        if not tool_name or tool_name not in self.registry:
            return from_exception(MethodNotFoundError(f"unknown tool: {tool_name}"))
        if parameters is not None and not isinstance(parameters, dict):
            return from_exception(InvalidParamsError("parameters must be an object"))
        try:
            output = await execute_tool(self.registry, tool_name, parameters, timeout=self.tool_timeout)
        except DispatchError as e:
            return from_exception(e)
        return success({
            "status": "success",
            "message": f"Tool {tool_name} executed successfully",
            "output": output,
        })
