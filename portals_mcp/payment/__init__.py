"""Payment-client boundary (wallet, balances, Portal lookup, paid calls)."""

from .client import (
    Balance,
    PaymentClient,
    Portal,
    WalletLoader,
    load_or_create_wallet,
    resolve_backend,
)

__all__ = [
    "Balance",
    "PaymentClient",
    "Portal",
    "WalletLoader",
    "load_or_create_wallet",
    "resolve_backend",
]
