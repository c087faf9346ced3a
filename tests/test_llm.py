"""Tests for llm.py — directive building and the OpenAI planner."""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from tooldispatch.errors import ToolExecutionError
from tooldispatch.llm import OpenAIPlanner, build_directive
from tooldispatch.tools.registry import ToolDef


async def _noop(ctx, params):
    return None


def _response(content="", tool_calls=None):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    response.choices[0].message.tool_calls = tool_calls
    return response


def _client(response=None, side_effect=None):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=response, side_effect=side_effect)
    return client


TOOLS = [ToolDef("pull_image", "Pull an image", {"type": "object"}, _noop, "docker")]


class TestBuildDirective:
    def test_lists_services_and_actions(self):
        text = build_directive({"git": ["git_status", "git_init"], "docker": ["pull_image"]})
        assert "- docker: pull_image" in text
        assert "- git: git_init, git_status" in text
        assert text.index("- docker") < text.index("- git")
        assert '"action": "<action name>"' in text

    def test_empty_catalogue(self):
        assert "(none registered)" in build_directive({})


class TestToolDef:
    def test_as_function(self):
        fn = TOOLS[0].as_function()
        assert fn == {
            "type": "function",
            "function": {"name": "pull_image", "description": "Pull an image", "parameters": {"type": "object"}},
        }

    def test_empty_schema_defaults(self):
        fn = ToolDef("x", "", {}, _noop).as_function()
        assert fn["function"]["parameters"] == {"type": "object", "properties": {}}


class TestGenerate:
    @pytest.mark.asyncio
    async def test_text_plan(self):
        client = _client(_response('[{"action": "pull_image"}]'))
        planner = OpenAIPlanner(api_key="sk-test", model="gpt-test", timeout=5, client=client)
        reply = await planner.generate("pull mysql", TOOLS, "DIRECTIVE")

        assert reply.text == '[{"action": "pull_image"}]'
        assert reply.function_call is None
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-test"
        assert kwargs["messages"] == [
            {"role": "system", "content": "DIRECTIVE"},
            {"role": "user", "content": "pull mysql"},
        ]
        assert kwargs["tools"][0]["function"]["name"] == "pull_image"

    @pytest.mark.asyncio
    async def test_no_tools_omits_tools_kwarg(self):
        client = _client(_response("[]"))
        planner = OpenAIPlanner(api_key="sk-test", client=client)
        await planner.generate("x", [], "D")
        assert "tools" not in client.chat.completions.create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_function_call(self):
        call = MagicMock()
        call.function.name = "pull_image"
        call.function.arguments = '{"name": "redis"}'
        client = _client(_response(None, tool_calls=[call]))
        planner = OpenAIPlanner(api_key="sk-test", client=client)
        reply = await planner.generate("get redis", TOOLS, "D")
        assert reply.function_call.name == "pull_image"
        assert reply.function_call.arguments == '{"name": "redis"}'
        assert reply.text == ""

    @pytest.mark.asyncio
    async def test_provider_error(self):
        client = _client(side_effect=RuntimeError("503 upstream"))
        planner = OpenAIPlanner(api_key="sk-test", client=client)
        with pytest.raises(ToolExecutionError) as exc:
            await planner.generate("x", TOOLS, "D")
        assert "503 upstream" in exc.value.message

    @pytest.mark.asyncio
    async def test_empty_choices(self):
        response = MagicMock()
        response.choices = []
        planner = OpenAIPlanner(api_key="sk-test", client=_client(response))
        with pytest.raises(ToolExecutionError):
            await planner.generate("x", TOOLS, "D")

    @pytest.mark.asyncio
    async def test_timeout(self):
        async def slow(**kwargs):
            await asyncio.sleep(5)

        client = MagicMock()
        client.chat.completions.create = slow
        planner = OpenAIPlanner(api_key="sk-test", timeout=0.05, client=client)
        with pytest.raises(ToolExecutionError) as exc:
            await planner.generate("x", TOOLS, "D")
        assert "timed out" in exc.value.message

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch):
        monkeypatch.setattr("tooldispatch.llm.settings.openai_api_key", "")
        planner = OpenAIPlanner(api_key="")
        with pytest.raises(ToolExecutionError) as exc:
            await planner.generate("x", TOOLS, "D")
        assert "OPENAI_API_KEY" in exc.value.message
