"""MCP (Model Context Protocol) server for layoutlint.

Exposes linting and the rule catalogue as tools, so an assistant can check
the layout of a page it is working on. Imports are lazy so that
``python -m layoutlint.mcp`` only loads the server when it runs.
"""

__all__ = ['LayoutLintServer']


def __getattr__(name: str):
    """Lazy import of the server class."""
    if name == 'LayoutLintServer':
        from layoutlint.mcp.server import LayoutLintServer

        return LayoutLintServer
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
