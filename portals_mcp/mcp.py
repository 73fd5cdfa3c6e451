"""
Tool-listing and tool-invocation surface for MCP-style clients.

The manager owns the wallet-backed payment client, the registry, and the
dispatcher. ``call_tool`` never raises; every failure comes back as a
:class:`ToolFailure` that the transport presents as a tool error.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from portals_mcp.config import PortalsConfig, default_config
from portals_mcp.dispatcher import Dispatcher, error_text, failure
from portals_mcp.errors import FailureCategory, PortalsError, ToolNotFoundError
from portals_mcp.payment import PaymentClient, load_or_create_wallet, resolve_backend
from portals_mcp.registry import Registry, RegistrySnapshot
from portals_mcp.schema_fetcher import SchemaFetcher
from portals_mcp.tools import validate_arguments

logger = logging.getLogger(__name__)

FAUCET_URL = "https://faucet.solana.com"


class PortalsManager:
    """Wires wallet, registry, validation, and dispatch together."""

    def __init__(
        self,
        config: PortalsConfig | None = None,
        *,
        client: Optional[PaymentClient] = None,
        fetcher: Optional[SchemaFetcher] = None,
    ) -> None:
        self.config = config or default_config
        self.fetcher = fetcher or SchemaFetcher(self.config)
        self.client: Optional[PaymentClient] = None
        self.registry: Optional[Registry] = None
        self.dispatcher: Optional[Dispatcher] = None
        if client is not None:
            self.attach_client(client)

    def attach_client(self, client: PaymentClient) -> None:
        self.client = client
        self.registry = Registry(client, self.fetcher, self.config)
        self.dispatcher = Dispatcher(client)

    @property
    def ready(self) -> bool:
        return self.registry is not None

    @property
    def snapshot(self) -> Optional[RegistrySnapshot]:
        return self.registry.snapshot if self.registry is not None else None

    async def _load_wallet(self) -> PaymentClient:
        wallet_path = self.config.wallet_path
        wallet_path.parent.mkdir(parents=True, exist_ok=True)
        loader = resolve_backend(self.config.payment_backend)
        return await load_or_create_wallet(loader, wallet_path, self.config.network, self.config.rpc_url)

    async def _report_balance(self) -> None:
        assert self.client is not None
        address = self.client.get_address()
        try:
            balance = await self.client.get_balance()
        except Exception as exc:
            logger.warning("Could not read wallet balance: %s", exc)
            return
        logger.info("Wallet balance: SOL=%s USDC=%s", balance.gas, balance.payment)
        if balance.gas == 0:
            logger.warning("No SOL for gas fees. Send SOL to: %s (devnet faucet: %s)", address, FAUCET_URL)
        if balance.payment == 0:
            logger.warning("No USDC for payments. Send USDC to: %s. Portal calls will fail until funded.", address)

    async def initialize(self) -> None:
        """
        Load (or create) the wallet, report balances, and run the first refresh.

        Raises:
            WalletLoadError: if the wallet or payment backend cannot be loaded.
        """
        if self.client is None:
            self.attach_client(await self._load_wallet())
        await self._report_balance()
        try:
            await self.refresh()
        except PortalsError as exc:
            logger.error("Initial Portal refresh failed: %s", exc, extra={"error": exc.category.value})

    async def refresh(self) -> RegistrySnapshot:
        if self.registry is None:
            raise PortalsError("Portals manager is not initialized; no wallet loaded.")
        return await self.registry.refresh()

    async def aclose(self) -> None:
        await self.fetcher.aclose()

    def list_tools(self) -> List[Dict[str, Any]]:
        """Return ``{name, description, inputSchema}`` for every tool in the current snapshot."""
        if self.registry is None:
            return []
        return [tool.to_listing() for tool in self.registry.snapshot.tools()]

    def has_tool(self, tool_name: str) -> bool:
        """True when ``tool_name`` resolves in the current snapshot."""
        return self.registry is not None and self.registry.resolve(tool_name) is not None

    async def wallet_status(self) -> Dict[str, Any]:
        if self.client is None:
            return {"error": "Wallet not loaded."}
        address = self.client.get_address()
        try:
            balance = await self.client.get_balance()
        except Exception as exc:
            logger.warning("Could not read wallet balance: %s", exc)
            return {"address": address, "error": "Balance unavailable."}
        return {"address": address, "sol": balance.gas, "usdc": balance.payment}

    async def call_tool(self, tool_name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Refresh, resolve, validate, and dispatch a tool call.

        Returns:
            The Portal's result unchanged, or a :class:`ToolFailure`.
        """
        params = params if params is not None else {}
        try:
            snapshot = await self.refresh()
            assert self.registry is not None and self.dispatcher is not None
            resolution = self.registry.resolve(tool_name, snapshot)
            if resolution is None:
                raise ToolNotFoundError(f"Portal not found for tool: {tool_name}")
            violations = validate_arguments(
                resolution.tool.input_schema, params, portal_id=resolution.portal.id
            )
        except PortalsError as exc:
            return failure(exc.category, str(exc))
        except Exception as exc:
            logger.exception("Unexpected error preparing tool call %s", tool_name, extra={"tool": tool_name})
            return failure(FailureCategory.CALL_FAILED, f"Unexpected error while calling tool: {error_text(exc)}")

        if violations:
            return failure(FailureCategory.INVALID_PARAMS, "Invalid parameters.", violations=violations)
        return await self.dispatcher.dispatch(resolution, params)


default_manager = PortalsManager()


def list_tools() -> List[Dict[str, Any]]:
    """Return the tools exposed by the default manager."""
    return default_manager.list_tools()


async def call_tool(tool_name: str, params: Optional[Dict[str, Any]] = None) -> Any:
    """Dispatch a tool call through the default manager."""
    return await default_manager.call_tool(tool_name, params)
