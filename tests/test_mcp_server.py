"""Tests for the MCP server tools.

The browser run is replaced by a fake ``run_lint`` recording its arguments,
so these tests exercise argument handling, config loading and the text
returned to the client.
"""

import json

import mcp.types as types
import pytest

from layoutlint.engine.views import ElementDescriptor, LintMessage, LintResult, Location
from layoutlint.exceptions import BrowserError, ConfigError
from layoutlint.mcp import server as mcp_server_module
from layoutlint.rules import builtin_rules


def _message(severity):
    return LintMessage(
        rule_id="layout/overlapped-elements",
        severity=severity,
        message="Elements overlap by 55% of the smaller element's area",
        location=Location(element=ElementDescriptor(tag_name="div", selector="#card")),
    )


@pytest.fixture()
def mcp_server(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return mcp_server_module.LayoutLintServer()


@pytest.fixture()
def fake_run(monkeypatch):
    """Replace the browser run, recording its arguments."""
    calls = []
    results = []

    async def run_lint(profile, settings, targets, max_concurrency=1):
        calls.append({"profile": profile, "settings": settings, "targets": targets})
        return [LintResult.build(t.url, [_message(s) for s in results], [], target_id=t.id) for t in targets]

    monkeypatch.setattr(mcp_server_module, "run_lint", run_lint)
    return calls, results


def _report_json(text):
    return json.loads(text.split("\n\n")[1])


class TestToolList:
    def test_tool_definitions(self, mcp_server):
        tools = {tool.name: tool for tool in mcp_server.tool_definitions()}

        assert list(tools) == ["lint", "list_rules", "get_config"]
        assert tools["lint"].inputSchema["required"] == ["urls"]
        assert set(tools["lint"].inputSchema["properties"]) == {"urls", "config_file", "scope", "named_scope", "quiet"}

    @pytest.mark.asyncio
    async def test_list_tools_handler_is_registered(self, mcp_server):
        handler = mcp_server.server.request_handlers[types.ListToolsRequest]

        result = await handler(types.ListToolsRequest(method="tools/list"))

        assert [tool.name for tool in result.root.tools] == ["lint", "list_rules", "get_config"]


class TestListRules:
    @pytest.mark.asyncio
    async def test_lists_every_registered_rule(self, mcp_server):
        rules = json.loads(await mcp_server._execute_tool("list_rules", {}))

        assert [rule["id"] for rule in rules] == builtin_rules.ids()
        misalignment = next(rule for rule in rules if rule["id"] == "layout/misalignment")
        assert misalignment["severity"] in ("error", "warn", "info")
        assert misalignment["description"]


class TestLint:
    @pytest.mark.asyncio
    async def test_summary_and_results(self, mcp_server, fake_run):
        calls, messages = fake_run
        messages.extend(["error", "warn"])

        text = await mcp_server._execute_tool("lint", {"urls": ["http://localhost:3000/"]})

        assert text.startswith("1 error(s), 1 warning(s), 0 info message(s) across 1 URL(s).")
        [result] = _report_json(text)
        assert result["url"] == "http://localhost:3000/"
        assert result["errorCount"] == 1
        assert "Re-run lint" in text
        assert [t.url for t in calls[0]["targets"]] == ["http://localhost:3000/"]

    @pytest.mark.asyncio
    async def test_clean_run_has_no_hint(self, mcp_server, fake_run):
        text = await mcp_server._execute_tool("lint", {"urls": ["http://a/", "http://b/"]})

        assert text.startswith("0 error(s), 0 warning(s), 0 info message(s) across 2 URL(s).")
        assert "Re-run lint" not in text

    @pytest.mark.asyncio
    async def test_quiet_keeps_errors_only(self, mcp_server, fake_run):
        _, messages = fake_run
        messages.extend(["error", "warn", "info"])

        text = await mcp_server._execute_tool("lint", {"urls": ["http://a/"], "quiet": True})

        assert text.startswith("1 error(s), 0 warning(s), 0 info message(s)")
        [result] = _report_json(text)
        assert [m["severity"] for m in result["messages"]] == ["error"]

    @pytest.mark.asyncio
    async def test_config_file_and_scopes(self, mcp_server, fake_run, tmp_path):
        calls, _ = fake_run
        config_path = tmp_path / "custom.json"
        config_path.write_text(
            json.dumps({"preset": "all", "scopes": {"content": ["main", "#app"]}, "browser": {"headless": True}})
        )

        await mcp_server._execute_tool(
            "lint",
            {"urls": ["http://a/"], "config_file": str(config_path), "named_scope": "content", "scope": [".card"]},
        )

        [target] = calls[0]["targets"]
        assert target.scope == ["main", "#app", ".card"]
        assert calls[0]["profile"].headless is True
        assert {s.id for s in calls[0]["settings"] if s.severity != "off"} == set(builtin_rules.ids())

    @pytest.mark.asyncio
    async def test_unknown_named_scope(self, mcp_server, fake_run):
        with pytest.raises(ConfigError, match="Unknown scope 'nav'"):
            await mcp_server._execute_tool("lint", {"urls": ["http://a/"], "named_scope": "nav"})
        assert fake_run[0] == []

    @pytest.mark.asyncio
    async def test_urls_are_required(self, mcp_server, fake_run):
        with pytest.raises(ValueError):
            await mcp_server._execute_tool("lint", {"urls": []})

    @pytest.mark.asyncio
    async def test_failures_are_returned_as_error_text(self, mcp_server, monkeypatch):
        async def run_lint(profile, settings, targets, max_concurrency=1):
            raise BrowserError("Chrome executable not found")

        monkeypatch.setattr(mcp_server_module, "run_lint", run_lint)
        handler = mcp_server.server.request_handlers[types.CallToolRequest]

        result = await handler(
            types.CallToolRequest(
                method="tools/call",
                params=types.CallToolRequestParams(name="lint", arguments={"urls": ["http://a/"]}),
            )
        )

        assert result.root.content[0].text == "Error: Chrome executable not found"

    @pytest.mark.asyncio
    async def test_unknown_tool(self, mcp_server):
        assert await mcp_server._execute_tool("format_disk", {}) == "Unknown tool: format_disk"


class TestGetConfig:
    @pytest.mark.asyncio
    async def test_without_config_file(self, mcp_server, tmp_path):
        text = await mcp_server._execute_tool("get_config", {})

        assert text.startswith("No layoutlint.json found in")
        assert "recommended preset" in text

    @pytest.mark.asyncio
    async def test_nearest_config_file(self, mcp_server, tmp_path, monkeypatch):
        (tmp_path / "layoutlint.json").write_text(json.dumps({"preset": "all"}))
        nested = tmp_path / "src" / "pages"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        text = await mcp_server._execute_tool("get_config", {})

        assert text.startswith(f"Config file: {(tmp_path / 'layoutlint.json').resolve()}")
        assert json.loads(text.split("\n\n", 1)[1])["preset"] == "all"

    @pytest.mark.asyncio
    async def test_config_path_from_environment(self, mcp_server, tmp_path, monkeypatch):
        config_path = tmp_path / "ci.json"
        config_path.write_text("{not json")
        monkeypatch.setenv("LAYOUTLINT_CONFIG_PATH", str(config_path))

        with pytest.raises(ConfigError, match="not valid JSON"):
            await mcp_server._execute_tool("get_config", {})
