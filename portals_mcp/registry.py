"""
Registry of whitelisted Portals and their tools.

Each refresh builds a brand new :class:`RegistrySnapshot` and publishes it with
a single attribute assignment. Snapshots are read-only, so a call resolving
against the previous snapshot never sees a half-built one.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from portals_mcp.config import BROWSE_URL, WHITELIST_ENV_VAR, PortalsConfig, default_config, load_whitelist, parse_whitelist
from portals_mcp.errors import ConfigurationError
from portals_mcp.metrics import default_metrics
from portals_mcp.payment import PaymentClient, Portal
from portals_mcp.schema_fetcher import SchemaFetcher
from portals_mcp.tools import ToolDescriptor, generate_tool_name, normalize_tools, synthesize_tool

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PortalEntry:
    portal: Portal
    tools: Tuple[ToolDescriptor, ...]

    @property
    def explicit(self) -> bool:
        return any(tool.explicit for tool in self.tools)


@dataclass(frozen=True, slots=True)
class Resolution:
    portal: Portal
    tool: ToolDescriptor


@dataclass(frozen=True, slots=True)
class RegistrySnapshot:
    portals: Mapping[str, PortalEntry] = field(default_factory=lambda: MappingProxyType({}))
    failed: Tuple[str, ...] = ()
    built_at: float = 0.0

    def tools(self) -> List[ToolDescriptor]:
        return [tool for entry in self.portals.values() for tool in entry.tools]


EMPTY_SNAPSHOT = RegistrySnapshot()


def _whitelist_error() -> ConfigurationError:
    return ConfigurationError(
        f"{WHITELIST_ENV_VAR} required in MCP config.\n"
        f"Browse available Portals: {BROWSE_URL}\n"
        f"Add Portal IDs to your config env.{WHITELIST_ENV_VAR}"
    )


def resolve_tool(snapshot: RegistrySnapshot, name: str) -> Optional[Resolution]:
    """Map a tool name back to its Portal and descriptor; first match wins."""
    for entry in snapshot.portals.values():
        if entry.explicit:
            for tool in entry.tools:
                if tool.name == name:
                    return Resolution(portal=entry.portal, tool=tool)
        elif generate_tool_name(entry.portal.title, entry.portal.id) == name:
            return Resolution(portal=entry.portal, tool=entry.tools[0])
    return None


class Registry:
    """Holds the current snapshot and rebuilds it on demand."""

    def __init__(
        self,
        client: PaymentClient,
        fetcher: SchemaFetcher,
        config: PortalsConfig | None = None,
    ) -> None:
        self.client = client
        self.fetcher = fetcher
        self.config = config or default_config
        self._snapshot: RegistrySnapshot = EMPTY_SNAPSHOT

    @property
    def snapshot(self) -> RegistrySnapshot:
        return self._snapshot

    def resolve(self, name: str, snapshot: Optional[RegistrySnapshot] = None) -> Optional[Resolution]:
        return resolve_tool(snapshot if snapshot is not None else self._snapshot, name)

    async def _load_entry(self, portal_id: str) -> Optional[PortalEntry]:
        try:
            portal = await self.client.get_portal(portal_id)
        except Exception as exc:
            logger.warning("Failed to load Portal %s: %s", portal_id, exc, extra={"portal": portal_id})
            return None

        try:
            raw_description: Any = await self.fetcher.fetch(portal.url)
        except Exception as exc:
            logger.warning("Failed to fetch schema for %s: %s", portal.title, exc, extra={"portal": portal_id})
            raw_description = None

        return PortalEntry(portal=portal, tools=normalize_tools(portal, raw_description))

    def _without_taken_names(self, entry: PortalEntry, taken: set[str]) -> Optional[PortalEntry]:
        tools = tuple(tool for tool in entry.tools if tool.name not in taken)
        if len(tools) == len(entry.tools):
            return entry
        dropped = sorted({tool.name for tool in entry.tools} & taken)
        logger.warning(
            "Portal %s exposes tool names already taken by another Portal: %s",
            entry.portal.id,
            ", ".join(dropped),
            extra={"portal": entry.portal.id},
        )
        if tools:
            return PortalEntry(portal=entry.portal, tools=tools)
        fallback = synthesize_tool(entry.portal)
        if fallback.name in taken:
            logger.warning("Skipping Portal %s: no unique tool name available", entry.portal.id)
            return None
        return PortalEntry(portal=entry.portal, tools=(fallback,))

    async def refresh(self, whitelist: Union[str, Sequence[str], None] = None) -> RegistrySnapshot:
        """
        Rebuild the snapshot from the whitelist.

        Args:
            whitelist: Comma-separated ids or a sequence of ids. When omitted,
                ``PORTALS_WHITELIST`` is read from the environment.

        Returns:
            The newly published snapshot.

        Raises:
            ConfigurationError: if the whitelist is empty. The previous snapshot
                stays in place.
        """
        if whitelist is None:
            portal_ids = load_whitelist()
        elif isinstance(whitelist, str):
            portal_ids = parse_whitelist(whitelist)
        else:
            portal_ids = parse_whitelist(",".join(whitelist))
        if not portal_ids:
            raise _whitelist_error()

        previous = self._snapshot
        results = await asyncio.gather(*(self._load_entry(portal_id) for portal_id in portal_ids))

        entries: Dict[str, PortalEntry] = {}
        failed: List[str] = []
        taken: set[str] = set()
        for portal_id, entry in zip(portal_ids, results):
            if entry is None:
                failed.append(portal_id)
                stale = previous.portals.get(portal_id)
                if stale is None or not self.config.keep_stale_portals:
                    continue
                logger.info("Keeping last known entry for Portal %s", portal_id, extra={"portal": portal_id})
                entry = stale
            entry = self._without_taken_names(entry, taken)
            if entry is None:
                continue
            taken.update(tool.name for tool in entry.tools)
            entries[portal_id] = entry

        snapshot = RegistrySnapshot(
            portals=MappingProxyType(entries),
            failed=tuple(failed),
            built_at=time.time(),
        )
        self._snapshot = snapshot
        default_metrics.record_refresh(loaded=len(entries), failed=len(failed))
        logger.debug("Registry refreshed: %d portals, %d tools", len(entries), len(snapshot.tools()))
        return snapshot
