"""LLM planner — turns an instruction into a JSON action plan via OpenAI."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from openai import AsyncOpenAI

from .config import settings
from .errors import ToolExecutionError
from .tools.registry import ToolDef

logger = logging.getLogger(__name__)

PLAN_DIRECTIVE = """You are a planner that turns user requests into structured JSON plans of tool actions.
Always return a valid JSON array of actions. Do not include any markdown formatting, explanations, or additional text; output only raw JSON.

Available services and their actions:
{service_catalog}

Plan format:
[
    {{
        "action": "<action name>",
        "parameters": {{"<name>": "<value>"}}
    }}
]

Listing all services:
[{{"action": "list_services", "parameters": {{}}}}]

Listing the tools of one service:
[{{"action": "list_tools", "parameters": {{"name": "<service>"}}}}]

Important rules:
- Always provide a step-by-step plan as an array of JSON actions, executed in order.
- Use only the actions listed above, with parameters that match their schemas.
- Do not use markdown, explanations, or formatting; just return pure JSON.
- Ensure the output is well-formed and syntactically correct."""


@dataclass
class FunctionCall:
    name: str
    arguments: str = "{}"


@dataclass
class ModelReply:
    text: str = ""
    function_call: Optional[FunctionCall] = None


def build_directive(tools_by_service: Dict[str, List[str]]) -> str:
    """Fill the default directive with the current service → action vocabulary."""
    lines = []
    for service, names in sorted(tools_by_service.items()):
        lines.append(f"- {service}: {', '.join(sorted(names))}")
    catalog = "\n".join(lines) if lines else "- (none registered)"
    return PLAN_DIRECTIVE.format(service_catalog=catalog)


class OpenAIPlanner:
    """Model client: (instruction, tool catalogue, directive) -> ModelReply."""

    def __init__(self, api_key: str = "", base_url: str = "", model: str = "",
                 timeout: float = 0.0, client: Optional[AsyncOpenAI] = None):
        self.api_key = api_key or settings.openai_api_key
        self.base_url = base_url or settings.openai_base_url
        self.model = model or settings.openai_model
        self.timeout = timeout or settings.model_timeout_s
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise ToolExecutionError("LLM API error: OPENAI_API_KEY is not set")
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    async def generate(self, instruction: str, tools: Iterable[ToolDef], directive: str) -> ModelReply:
        client = self._get_client()
        messages = [
            {"role": "system", "content": directive},
            {"role": "user", "content": instruction},
        ]
        kwargs = {
            "model": self.model,
            "messages": messages,
        }
        functions = [t.as_function() for t in tools]
        if functions:
            kwargs["tools"] = functions

        try:
            response = await asyncio.wait_for(
                client.chat.completions.create(**kwargs), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"[planner] model call timed out after {self.timeout:.0f}s")
            raise ToolExecutionError(f"LLM API error: timed out after {self.timeout:.0f}s")
        except Exception as e:
            logger.error(f"[planner] OpenAI error: {e}")
            raise ToolExecutionError(f"LLM API error: {e}") from e

        if not response.choices:
            logger.error("[planner] Empty response from LLM")
            raise ToolExecutionError("LLM returned an empty response")

        message = response.choices[0].message
        raw = (message.content or "").strip()
        logger.debug(f"[planner] Raw LLM response: {raw[:200]!r}")

        for call in message.tool_calls or []:
            fn = getattr(call, "function", None)
            if fn is not None and fn.name:
                logger.info(f"[planner] Function call: {fn.name}({fn.arguments})")
                return ModelReply(text=raw, function_call=FunctionCall(fn.name, fn.arguments or "{}"))
        return ModelReply(text=raw)
