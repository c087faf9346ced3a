"""Shared fixtures: a fresh registry, recording handlers, a stub planner."""
from unittest.mock import AsyncMock

import pytest

from tooldispatch.dispatcher import PlanDispatcher
from tooldispatch.llm import ModelReply
from tooldispatch.tools.registry import ToolRegistry


class Recorder:
    """Collects (tool, params) for every handler it produced."""

    def __init__(self):
        self.calls = []

    def handler(self, name, result=None, error=None):
        async def _handler(ctx, params):
            self.calls.append((name, dict(params)))
            if error is not None:
                raise error
            return result if result is not None else {"tool": name}
        return _handler

    @property
    def names(self):
        return [name for name, _ in self.calls]


class FakeService:
    def __init__(self, name, tools):
        self.name = name
        self._tools = tools

    def register_tools(self, register):
        for tool_name, handler in self._tools.items():
            register(tool_name, f"{tool_name} tool", {"type": "object", "properties": {}}, handler)


@pytest.fixture
def registry():
    return ToolRegistry()


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def populated_registry(registry, recorder):
    registry.register_service(FakeService("Docker", {
        "pull_image": recorder.handler("pull_image"),
        "create_network": recorder.handler("create_network"),
    }))
    registry.register_service(FakeService("git", {
        "git_init": recorder.handler("git_init"),
        "git_status": recorder.handler("git_status"),
    }))
    return registry


@pytest.fixture
def planner():
    mock = AsyncMock()
    mock.generate = AsyncMock(return_value=ModelReply(text="[]"))
    return mock


@pytest.fixture
def dispatcher(populated_registry, planner):
    return PlanDispatcher(populated_registry, planner=planner, tool_timeout=2.0)
