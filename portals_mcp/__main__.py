"""Run the Portals MCP server: ``python -m portals_mcp``."""

from __future__ import annotations

import uvicorn

from portals_mcp.config import default_config


def main() -> None:
    uvicorn.run(
        "portals_mcp.server:app",
        host=default_config.host,
        port=default_config.port,
        log_level=default_config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
