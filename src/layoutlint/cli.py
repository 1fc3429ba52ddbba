"""CLI module for layoutlint."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from layoutlint import __version__
from layoutlint.browser.profile import BrowserProfile, ViewportSize
from layoutlint.browser.session import BrowserSession
from layoutlint.config import CONFIG, load_config_file, parse_rule_override, resolve_rule_settings
from layoutlint.engine.service import LintEngine
from layoutlint.engine.targets import Target
from layoutlint.engine.views import LintResult
from layoutlint.exceptions import ConfigError, LayoutLintError
from layoutlint.formatters import FORMATS, emit
from layoutlint.rules import RuleSetting, builtin_rules

console = Console()
error_console = Console(stderr=True)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_LINT_ERRORS = 1
EXIT_FATAL = 2


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging for a CLI run.

    The level comes from --verbose or LAYOUTLINT_LOGGING_LEVEL; CDP client
    loggers follow CDP_LOGGING_LEVEL.
    """
    level = logging.DEBUG if verbose else getattr(logging, CONFIG.LAYOUTLINT_LOGGING_LEVEL.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    cdp_level = getattr(logging, CONFIG.CDP_LOGGING_LEVEL, logging.WARNING)
    for name in ("cdp_use", "cdp_use.client", "websockets"):
        logging.getLogger(name).setLevel(cdp_level)


def errors_only(result: LintResult) -> LintResult:
    """Copy of a result without warnings and infos."""
    messages = [m for m in result.messages if m.severity == "error"]
    return LintResult.build(result.url, messages, result.suppressed_messages, target_id=result.target_id)


def exit_code_for(results: list[LintResult], max_warnings: int = -1) -> int:
    """0 when clean, 1 for any error or more warnings than max_warnings (-1 disables the limit)."""
    if any(r.error_count for r in results):
        return EXIT_LINT_ERRORS
    warnings = sum(r.warning_count for r in results)
    if max_warnings >= 0 and warnings > max_warnings:
        return EXIT_LINT_ERRORS
    return EXIT_OK


async def run_lint(
    profile: BrowserProfile,
    settings: list[RuleSetting],
    targets: list[Target],
    max_concurrency: int = 1,
) -> list[LintResult]:
    """Start a browser, lint every target and stop the browser."""
    browser_session = BrowserSession(browser_profile=profile)
    try:
        await browser_session.start()
        engine = LintEngine(rules=settings, session=browser_session, max_concurrency=max_concurrency)
        return await engine.lint_targets(targets)
    finally:
        await browser_session.stop(force=True)


@click.group()
@click.version_option(version=__version__, prog_name="layoutlint")
def cli():
    """layoutlint - find layout defects in rendered web pages."""
    pass


@cli.command()
@click.argument("urls", nargs=-1)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: nearest layoutlint.json)",
)
@click.option("--format", "output_format", type=click.Choice(FORMATS), default="stylish", help="Output format")
@click.option("--rule", "rule_overrides", multiple=True, metavar="ID=SEVERITY", help="Override a rule severity")
@click.option("--scope", "scopes", multiple=True, metavar="SELECTOR", help="Lint only under these elements")
@click.option("--headless/--no-headless", default=None, help="Run browser in headless mode")
@click.option("--viewport", default=None, metavar="WxH", help="Viewport size, e.g. 1280x720")
@click.option("--max-warnings", type=int, default=-1, help="Fail when there are more warnings than this")
@click.option("--max-concurrency", type=click.IntRange(min=1), default=1, help="Targets linted in parallel")
@click.option("--quiet", "-q", is_flag=True, help="Report errors only")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def lint(
    urls: tuple[str, ...],
    config_path: Optional[Path],
    output_format: str,
    rule_overrides: tuple[str, ...],
    scopes: tuple[str, ...],
    headless: Optional[bool],
    viewport: Optional[str],
    max_warnings: int,
    max_concurrency: int,
    quiet: bool,
    verbose: bool,
):
    """Lint the layout of web pages.

    URLS replace the targets of the config file. Exit code is 0 when clean,
    1 when errors (or too many warnings) were found and 2 on a fatal failure.

    Example:
        >>> layoutlint lint http://localhost:3000 --scope main --rule misalignment=error
    """
    try:
        setup_logging(verbose)
        config = load_config_file(config_path)
        overrides = dict(parse_rule_override(value) for value in rule_overrides)
        settings = resolve_rule_settings(config, builtin_rules, overrides)
        targets = config.build_targets(urls, scopes)

        profile = config.browser_profile()
        if headless is not None:
            profile = profile.merged({"headless": headless})
        if viewport:
            try:
                profile = profile.merged({"viewport": ViewportSize.parse(viewport)})
            except ValueError as e:
                raise ConfigError(str(e)) from e
    except ConfigError as e:
        error_console.print(f"[red]Configuration error:[/red] {escape(str(e))}", highlight=False)
        sys.exit(EXIT_FATAL)

    if not targets:
        error_console.print("[red]Nothing to lint:[/red] pass URLs or define targets in layoutlint.json")
        sys.exit(EXIT_FATAL)

    try:
        results = asyncio.run(run_lint(profile, settings, targets, max_concurrency))
    except LayoutLintError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
        logger.debug("Lint run failed", exc_info=True)
        sys.exit(EXIT_FATAL)

    if quiet:
        results = [errors_only(result) for result in results]

    emit(results, output_format, console)
    sys.exit(exit_code_for(results, max_warnings))


@cli.command()
def rules():
    """List the available rules.

    Shows each rule's id, default severity, whether the recommended preset
    enables it, and its description.
    """
    table = Table(title="Rules")
    table.add_column("Rule", style="cyan", no_wrap=True)
    table.add_column("Severity")
    table.add_column("Recommended", justify="center")
    table.add_column("Description")

    for registered in builtin_rules.items():
        meta = registered.meta
        table.add_row(registered.id, meta.severity, "yes" if meta.recommended else "", meta.description)

    console.print(table)


@cli.command("mcp")
@click.option("--max-concurrency", type=click.IntRange(min=1), default=1, help="Targets linted in parallel")
def mcp_command(max_concurrency: int):
    """Serve the lint tools over MCP on stdio."""
    from layoutlint.mcp.server import main as mcp_main

    try:
        asyncio.run(mcp_main(max_concurrency))
    except ConfigError as e:
        error_console.print(f"[red]Configuration error:[/red] {escape(str(e))}", highlight=False)
        sys.exit(EXIT_FATAL)


def main():
    """Main entry point for CLI.

    Loads a .env file from the working directory, then dispatches to the
    click command group.
    """
    load_dotenv()
    cli()


if __name__ == "__main__":
    main()
