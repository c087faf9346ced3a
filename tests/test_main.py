"""Tests for main.py — JSON-RPC edge, plain-text path, startup policy."""
import json
import textwrap

import pytest
from fastapi.testclient import TestClient

from tooldispatch.errors import ConfigError, LoaderError
from tooldispatch.llm import ModelReply
from tooldispatch.main import build_registry, create_app


@pytest.fixture
def client(dispatcher):
    return TestClient(create_app(dispatcher))


def _rpc(client, method, params=None, id=1):
    body = {"jsonrpc": "2.0", "method": method, "id": id}
    if params is not None:
        body["params"] = params
    resp = client.post("/rpc", content=json.dumps(body))
    assert resp.status_code == 200
    return resp.json()


class TestReadEndpoints:
    def test_health(self, client):
        data = client.get("/health").json()
        assert data["ok"] is True
        assert data["tools"] == 4

    def test_services(self, client):
        assert set(client.get("/services").json()) == {"Docker", "git"}

    def test_tools_filtered(self, client):
        tools = client.get("/tools", params={"service": "GIT"}).json()
        assert {t.split(":")[0] for t in tools} == {"git_init", "git_status"}


class TestRpcMethods:
    def test_call_tool(self, client, recorder):
        data = _rpc(client, "Server.CallTool", [{"tool_name": "git_init", "parameters": {"name": "r"}}], id=7)
        assert data["jsonrpc"] == "2.0"
        assert data["id"] == 7
        assert data["error"] is None
        assert data["result"]["status"] == "success"
        assert recorder.calls == [("git_init", {"name": "r"})]

    def test_call_tool_unknown(self, client):
        data = _rpc(client, "CallTool", {"tool_name": "nope", "parameters": {}})
        assert data["result"] is None
        assert data["error"]["code"] == -32601

    def test_call_tool_bad_params(self, client):
        data = _rpc(client, "CallTool", ["just a string"])
        assert data["error"]["code"] == -32602

    def test_execute_plan_string(self, client, recorder):
        plan = json.dumps([{"action": "pull_image", "parameters": {"name": "mysql"}}])
        data = _rpc(client, "Server.ExecutePlan", [plan])
        assert data["result"]["message"] == "Plan executed successfully"
        assert recorder.names == ["pull_image"]

    def test_execute_plan_object(self, client, recorder):
        data = _rpc(client, "ExecutePlan", {"plan": [{"action": "git_status"}]})
        assert data["error"] is None
        assert recorder.names == ["git_status"]

    def test_execute_plan_empty(self, client):
        data = _rpc(client, "ExecutePlan", [""])
        assert data["error"]["code"] == -32602

    def test_process_instruction(self, client, planner):
        data = _rpc(client, "Server.ProcessInstruction", ["what services are available"])
        assert set(data["result"]) == {"Docker", "git"}
        planner.generate.assert_not_called()

    def test_process_instruction_bare_string_params(self, client, planner, recorder):
        planner.generate.return_value = ModelReply(text='{"action": "git_status"}')
        data = _rpc(client, "ProcessInstruction", "show git status", id=3)
        assert data["id"] == 3
        assert data["error"] is None
        assert planner.generate.call_args.args[0] == "show git status"
        assert recorder.names == ["git_status"]

    def test_process_instruction_with_directive(self, client, planner):
        planner.generate.return_value = ModelReply(text='{"action": "git_status"}')
        data = _rpc(client, "ProcessInstruction", {"instruction": "status", "directive": "CUSTOM"})
        assert data["error"] is None
        assert planner.generate.call_args.args[2] == "CUSTOM"

    def test_generate_plan(self, client, planner, recorder):
        planner.generate.return_value = ModelReply(text='[{"action": "git_init"}]')
        data = _rpc(client, "GeneratePlan", ["init a repo"])
        assert data["result"]["text"] == '[{"action": "git_init"}]'
        assert recorder.calls == []

    def test_list_methods(self, client):
        assert set(_rpc(client, "ListServices")["result"]) == {"Docker", "git"}
        tools = _rpc(client, "ListTools", ["docker"])["result"]
        assert {t.split(":")[0] for t in tools} == {"pull_image", "create_network"}

    def test_unknown_method(self, client):
        data = _rpc(client, "Server.Shutdown", [], id="abc")
        assert data["error"]["code"] == -32601
        assert data["id"] == "abc"


class TestPlainText:
    def test_instruction_body(self, client, planner):
        resp = client.post("/rpc", content="list tools for git")
        data = resp.json()
        assert {t.split(":")[0] for t in data["result"]} == {"git_init", "git_status"}
        planner.generate.assert_not_called()

    def test_json_without_method_is_instruction(self, client, planner, recorder):
        planner.generate.return_value = ModelReply(text='{"action": "git_status"}')
        resp = client.post("/rpc", content='{"text": "show me git status"}')
        assert resp.json()["error"] is None
        assert planner.generate.call_args.args[0] == '{"text": "show me git status"}'
        assert recorder.names == ["git_status"]

    def test_model_error_still_well_formed(self, client, planner):
        planner.generate.return_value = ModelReply(text="no plan for you")
        data = client.post("/rpc", content="pull mysql").json()
        assert data["jsonrpc"] == "2.0"
        assert data["error"]["code"] == -32700


class TestBuildRegistry:
    def test_loads_config_and_builtins(self, tmp_path):
        (tmp_path / "hello.py").write_text("async def Handler(ctx, params):\n    return 'hi'\n")
        cfg = tmp_path / "plug.yaml"
        cfg.write_text(
            "services: [{name: greet, enabled: true, tools: [{name: hello, enabled: true, plugin: hello.py}]}]\n"
        )
        registry = build_registry(str(cfg), strict=True)
        assert set(registry.list_services()) == {"system", "greet"}
        assert "hello" in registry

    def test_lenient_on_missing_config(self, tmp_path):
        registry = build_registry(str(tmp_path / "missing.yaml"), strict=False)
        assert registry.list_services() == ["system"]

    def test_strict_raises(self, tmp_path):
        with pytest.raises(ConfigError):
            build_registry(str(tmp_path / "missing.yaml"), strict=True)

    def test_strict_loader_error(self, tmp_path):
        cfg = tmp_path / "plug.yaml"
        cfg.write_text(textwrap.dedent("""
            services:
              - name: s
                enabled: true
                tools:
                  - name: broken
                    enabled: true
                    handler: {kind: module, module: no_such_module_xyz, symbol: h}
        """))
        with pytest.raises(LoaderError):
            build_registry(str(cfg), strict=True)

    def test_shipped_config_loads(self):
        from pathlib import Path
        cfg = Path(__file__).resolve().parent.parent / "plug.yaml"
        registry = build_registry(str(cfg), strict=True)
        assert {"docker", "git", "system"} <= set(registry.list_services())
        assert "pull_image" in registry
        assert "list_containers" not in registry
