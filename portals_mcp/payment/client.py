"""
Boundary to the payment client that owns the wallet and settles Portal calls.

The bridge never signs or submits transactions itself. A backend module
provides a wallet loader with the signature of :data:`WalletLoader`; the
loader returns an object satisfying :class:`PaymentClient`. The backend is
selected by dotted path (``package.module:callable``) so that the registry can
run against any implementation, including test doubles.
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Union, runtime_checkable

from portals_mcp.errors import WalletLoadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Portal:
    """A pay-per-use API registered on chain."""

    id: str
    title: str
    description: str
    url: str
    payment_vault: str


@dataclass(frozen=True, slots=True)
class Balance:
    """Wallet balances: ``gas`` pays network fees (SOL), ``payment`` pays Portals (USDC)."""

    gas: float
    payment: float


@runtime_checkable
class PaymentClient(Protocol):
    """Operations the bridge needs from a loaded wallet."""

    def get_address(self) -> str:
        ...

    async def get_balance(self) -> Balance:
        ...

    async def get_portal(self, portal_id: str) -> Portal:
        ...

    async def call_portal(
        self,
        portal_id: str,
        arguments: Dict[str, Any],
        operation: Optional[str] = None,
    ) -> Any:
        ...


WalletLoader = Callable[
    [Path, str, Optional[str]],
    Union[PaymentClient, Awaitable[PaymentClient]],
]


def resolve_backend(dotted_path: str) -> WalletLoader:
    """
    Import the wallet loader named by ``module:callable``.

    Raises:
        WalletLoadError: if the path is empty, malformed, or not importable.
    """
    if not dotted_path or ":" not in dotted_path:
        raise WalletLoadError(
            "PORTALS_PAYMENT_BACKEND must name a wallet loader as 'module:callable'."
        )
    module_name, _, attr = dotted_path.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise WalletLoadError(f"Payment backend module {module_name!r} could not be imported: {exc}") from exc
    loader = getattr(module, attr, None)
    if loader is None or not callable(loader):
        raise WalletLoadError(f"Payment backend {dotted_path!r} is not a callable wallet loader.")
    return loader


async def load_or_create_wallet(
    loader: WalletLoader,
    wallet_path: Path,
    network: str,
    rpc_url: Optional[str] = None,
) -> PaymentClient:
    """
    Load the wallet at ``wallet_path`` or create a new one there.

    An existing wallet file that fails to load is fatal: continuing would mean
    operating without an identity, so the error is re-raised with recovery
    instructions instead of silently creating a replacement.
    """
    existed = wallet_path.exists()
    try:
        client = loader(wallet_path, network, rpc_url)
        if isinstance(client, Awaitable):
            client = await client
    except WalletLoadError:
        raise
    except Exception as exc:
        if existed:
            raise WalletLoadError(
                f"Failed to load wallet from {wallet_path}. "
                "File may be corrupted. Delete it manually to create a new wallet. "
                f"ERROR: {exc}"
            ) from exc
        raise WalletLoadError(f"Failed to create wallet at {wallet_path}: {exc}") from exc

    if existed:
        logger.info("Wallet loaded: %s", client.get_address())
    else:
        logger.info("New wallet created: %s", client.get_address())
        logger.info("Wallet saved to: %s", wallet_path)
    return client
