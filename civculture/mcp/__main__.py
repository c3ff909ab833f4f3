"""CLI entry point: python -m civculture.mcp"""

from __future__ import annotations

import logging
import sys


def main() -> None:
    # stdout carries the MCP protocol; keep log output on stderr
    logging.basicConfig(level=logging.INFO, stream=sys.stderr)

    from civculture.mcp.server import create_server

    server = create_server()
    server.run(transport="stdio")


if __name__ == "__main__":
    main()
