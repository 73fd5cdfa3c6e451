"""Exceptions and failure categories shared across the Portals bridge."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class FailureCategory(str, Enum):
    """Tags attached to every failure returned across the tool boundary."""

    CONFIGURATION = "configuration"
    NOT_FOUND = "not_found"
    INVALID_PARAMS = "invalid_params"
    INSUFFICIENT_GAS = "insufficient_gas"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    CALL_FAILED = "call_failed"


class PortalsError(Exception):
    """Base exception for bridge errors."""

    category: FailureCategory = FailureCategory.CALL_FAILED

    def __init__(self, message: str, *, portal_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.portal_id = portal_id


class ConfigurationError(PortalsError):
    """Raised when the Portal whitelist is missing or empty."""

    category = FailureCategory.CONFIGURATION


class WalletLoadError(PortalsError):
    """Raised when the wallet (or the backend that owns it) cannot be loaded."""


class ToolNotFoundError(PortalsError):
    """Raised when a tool name does not resolve against the current snapshot."""

    category = FailureCategory.NOT_FOUND


class InvalidToolSchemaError(PortalsError):
    """Raised when a Portal publishes a parameter schema that is not valid JSON Schema."""
