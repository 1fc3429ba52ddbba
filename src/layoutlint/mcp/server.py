"""MCP server exposing layoutlint as tools.

Tools:
    lint: lint one or more URLs and return the results as JSON, preceded by
        a one-line summary.
    list_rules: the available rules with their default severity.
    get_config: the config file the server would use, if any.

All logging goes to stderr, stdout carries the JSON-RPC stream.

Usage:
    layoutlint mcp
    python -m layoutlint.mcp
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions
from pydantic import BaseModel, ConfigDict, Field

from layoutlint import __version__
from layoutlint.cli import errors_only, run_lint, setup_logging
from layoutlint.config import CONFIG, find_config_file, load_config_file, resolve_rule_settings
from layoutlint.engine.views import LintResult
from layoutlint.formatters import format_json
from layoutlint.rules import RuleRegistry, builtin_rules

logger = logging.getLogger(__name__)


class LintToolInput(BaseModel):
    """Arguments of the lint tool."""

    model_config = ConfigDict(extra='forbid')

    urls: list[str] = Field(min_length=1, description='URLs to lint')
    config_file: str | None = Field(
        default=None,
        description='Path to a layoutlint.json (default: LAYOUTLINT_CONFIG_PATH or the nearest layoutlint.json)',
    )
    scope: list[str] = Field(
        default_factory=list,
        description='CSS selectors, only elements inside them are linted',
    )
    named_scope: str | None = Field(default=None, description='Name of a scope defined in the config file')
    quiet: bool = Field(default=False, description='Report errors only')


class LayoutLintServer:
    """MCP server for linting page layouts."""

    def __init__(self, registry: RuleRegistry = builtin_rules, max_concurrency: int = 1):
        self.server = Server('layoutlint')
        self.registry = registry
        self.max_concurrency = max_concurrency
        self._setup_handlers()

    def _setup_handlers(self):
        """Register the list_tools and call_tool handlers."""

        @self.server.list_tools()
        async def handle_list_tools() -> list[types.Tool]:
            return self.tool_definitions()

        @self.server.call_tool()
        async def handle_call_tool(name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
            """Handle tool execution."""
            try:
                result = await self._execute_tool(name, arguments or {})
                return [types.TextContent(type='text', text=result)]
            except Exception as e:
                logger.error(f'Tool execution failed: {e}', exc_info=True)
                return [types.TextContent(type='text', text=f'Error: {str(e)}')]

    def tool_definitions(self) -> list[types.Tool]:
        return [
            types.Tool(
                name='lint',
                description=(
                    'Lint the layout of web pages in a real browser. Reports clipped or overflowing content, '
                    'overlapping elements, misaligned siblings and other visual defects, each with the rule id, '
                    'CSS selectors of the elements involved and their position.'
                ),
                inputSchema=LintToolInput.model_json_schema(),
            ),
            types.Tool(
                name='list_rules',
                description='List the available layout rules with their default severity and description',
                inputSchema={'type': 'object', 'properties': {}},
            ),
            types.Tool(
                name='get_config',
                description='Show the layoutlint.json the lint tool uses when no config_file is given',
                inputSchema={'type': 'object', 'properties': {}},
            ),
        ]

    async def _execute_tool(self, tool_name: str, arguments: dict[str, Any]) -> str:
        """Run a tool and return its text output.

        Raises:
            pydantic.ValidationError: Invalid lint arguments.
            LayoutLintError: The config is invalid or the lint run failed.
        """
        if tool_name == 'lint':
            return await self._lint(LintToolInput.model_validate(arguments))
        if tool_name == 'list_rules':
            return self._list_rules()
        if tool_name == 'get_config':
            return self._get_config()
        return f'Unknown tool: {tool_name}'

    async def _lint(self, params: LintToolInput) -> str:
        config = load_config_file(Path(params.config_file).expanduser() if params.config_file else None)
        settings = resolve_rule_settings(config, self.registry)
        selectors = [*config.scope_selectors(params.named_scope), *params.scope]
        targets = config.build_targets(tuple(params.urls), tuple(selectors))

        logger.info(f'Linting {len(targets)} URL(s) with {sum(1 for s in settings if s.severity != "off")} rule(s)')
        results = await run_lint(config.browser_profile(), settings, targets, self.max_concurrency)
        if params.quiet:
            results = [errors_only(result) for result in results]
        return lint_report(results)

    def _list_rules(self) -> str:
        rules = [
            {
                'id': registered.id,
                'severity': registered.meta.severity,
                'recommended': registered.meta.recommended,
                'description': registered.meta.description,
            }
            for registered in self.registry.items()
        ]
        return json.dumps(rules, indent=2)

    def _get_config(self) -> str:
        path = CONFIG.LAYOUTLINT_CONFIG_PATH or find_config_file()
        if path is None:
            return f'No layoutlint.json found in {Path.cwd()} or its parents, the recommended preset applies.'
        config = load_config_file(path)
        return f'Config file: {path}\n\n{config.model_dump_json(indent=2)}'

    async def run(self):
        """Run the MCP server over stdio."""
        async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                InitializationOptions(
                    server_name='layoutlint',
                    server_version=__version__,
                    capabilities=self.server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                ),
            )


def lint_report(results: list[LintResult]) -> str:
    """Summary line followed by the JSON results."""
    errors = sum(r.error_count for r in results)
    warnings = sum(r.warning_count for r in results)
    infos = sum(r.info_count for r in results)
    summary = f'{errors} error(s), {warnings} warning(s), {infos} info message(s) across {len(results)} URL(s).'
    report = f'{summary}\n\n{format_json(results)}'
    if errors or warnings or infos:
        report += '\n\nEach message lists the offending elements as CSS selectors. Re-run lint after fixing to confirm.'
    return report


async def main(max_concurrency: int = 1):
    setup_logging()
    logging.getLogger('mcp').setLevel(logging.ERROR)
    server = LayoutLintServer(max_concurrency=max_concurrency)
    await server.run()


if __name__ == '__main__':
    asyncio.run(main())
