"""Entry point for running the layoutlint MCP server.

Usage:
    python -m layoutlint.mcp
"""

import asyncio

from layoutlint.mcp.server import main

if __name__ == "__main__":
    asyncio.run(main())
