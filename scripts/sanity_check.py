"""Minimal sanity check for a live Portals setup (wallet, whitelist, schemas)."""

from __future__ import annotations

import asyncio
import json
import os
import sys

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from portals_mcp.mcp import default_manager  # noqa: E402

# Optional tool to invoke after listing; costs USDC when set.
SAMPLE_TOOL = os.getenv("PORTALS_SAMPLE_TOOL")
SAMPLE_ARGS = os.getenv("PORTALS_SAMPLE_ARGS", "{}")


async def main() -> None:
    await default_manager.initialize()
    print("Wallet:", await default_manager.wallet_status())

    snapshot = default_manager.snapshot
    if snapshot is not None and snapshot.failed:
        print("Unreachable Portals:", ", ".join(snapshot.failed))

    for tool in default_manager.list_tools():
        print(f"- {tool['name']}: {tool['description']}")

    if SAMPLE_TOOL:
        print("Call:", await default_manager.call_tool(SAMPLE_TOOL, json.loads(SAMPLE_ARGS)))

    await default_manager.aclose()


if __name__ == "__main__":
    asyncio.run(main())
