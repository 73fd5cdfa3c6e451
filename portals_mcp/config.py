"""
Configuration helpers for the Portals MCP server.

This module centralizes the Portal whitelist, wallet location, network
selection, schema fetch timeouts, and logging settings. Nothing here is
validated against the chain; network and RPC values are passed through to the
payment client untouched.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

WHITELIST_ENV_VAR = "PORTALS_WHITELIST"
BROWSE_URL = "https://portalsprotocol.com/browse"

DEFAULT_NETWORK = os.getenv("PORTALS_NETWORK", "mainnet-beta")
RPC_ENDPOINTS: Dict[str, str] = {
    "mainnet-beta": "https://api.mainnet-beta.solana.com",
    "devnet": "https://api.devnet.solana.com",
    "testnet": "https://api.testnet.solana.com",
}

DEFAULT_PORTALS_DIR = os.getenv("PORTALS_DIR", str(Path.home() / ".portals"))
WALLET_FILENAME = "wallet.json"

# Dotted path ("package.module:callable") of the wallet loader.
DEFAULT_PAYMENT_BACKEND = os.getenv("PORTALS_PAYMENT_BACKEND", "")


def _load_float(env_var: str, default: float) -> float:
    raw_value = os.getenv(env_var)
    if raw_value:
        try:
            return float(raw_value)
        except ValueError:
            return default
    return default


def _load_bool(env_var: str, default: bool = False) -> bool:
    raw_value = os.getenv(env_var)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "y"}


def _load_schema_timeout() -> float:
    return _load_float("PORTALS_SCHEMA_TIMEOUT", 5.0)


DEFAULT_SCHEMA_TIMEOUT = _load_schema_timeout()
DEFAULT_RATE_LIMIT_QPS = _load_float("PORTALS_RATE_LIMIT_QPS", 5.0)
KEEP_STALE_PORTALS = _load_bool("PORTALS_KEEP_STALE")
SERVER_HOST = os.getenv("PORTALS_MCP_HOST", "127.0.0.1")
SERVER_PORT = int(_load_float("PORTALS_MCP_PORT", 8000))
LOG_LEVEL = os.getenv("PORTALS_MCP_LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("PORTALS_MCP_LOG_FORMAT", "json")  # json or plain


def parse_whitelist(raw: Optional[str]) -> List[str]:
    """
    Split a comma-separated whitelist into Portal ids.

    Whitespace is trimmed, empty entries are dropped, and duplicates are
    removed while keeping first-seen order.
    """
    if not raw:
        return []
    ids: List[str] = []
    seen: set[str] = set()
    for item in raw.split(","):
        portal_id = item.strip()
        if not portal_id or portal_id in seen:
            continue
        ids.append(portal_id)
        seen.add(portal_id)
    return ids


def load_whitelist() -> List[str]:
    """Read the whitelist from the environment at call time."""
    return parse_whitelist(os.getenv(WHITELIST_ENV_VAR))


def default_rpc_url(network: str) -> Optional[str]:
    override = os.getenv("PORTALS_RPC")
    if override:
        return override.strip()
    return RPC_ENDPOINTS.get(network)


@dataclass(slots=True)
class PortalsConfig:
    """Runtime configuration for the Portals bridge."""

    network: str = DEFAULT_NETWORK
    rpc_url: Optional[str] = default_rpc_url(DEFAULT_NETWORK)
    portals_dir: str = DEFAULT_PORTALS_DIR
    payment_backend: str = DEFAULT_PAYMENT_BACKEND
    schema_timeout: float = DEFAULT_SCHEMA_TIMEOUT
    keep_stale_portals: bool = KEEP_STALE_PORTALS
    rate_limit_qps: float = DEFAULT_RATE_LIMIT_QPS
    host: str = SERVER_HOST
    port: int = SERVER_PORT
    log_level: str = LOG_LEVEL
    log_format: str = LOG_FORMAT
    per_tool_rate_limits: dict[str, float] = field(default_factory=dict)

    @property
    def wallet_path(self) -> Path:
        return Path(self.portals_dir).expanduser() / WALLET_FILENAME


default_config = PortalsConfig()
