"""
Invoke a resolved Portal tool through the payment client.

Failures never propagate: they are classified into ToolFailure values so the
agent can tell "fund the wallet and retry" apart from a real call failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from portals_mcp.errors import FailureCategory
from portals_mcp.payment import PaymentClient
from portals_mcp.registry import Resolution

logger = logging.getLogger(__name__)

UNKNOWN_ADDRESS = "<unknown address>"

GAS_SIGNALS = ("Insufficient SOL",)
PAYMENT_SIGNALS = ("Insufficient USDC", "InsufficientUsdcBalance")

_FUNDING_TEMPLATES = {
    FailureCategory.INSUFFICIENT_GAS: "Insufficient SOL for gas fees\n\nSend SOL to: {address}\nAfter funding, retry this request.",
    FailureCategory.INSUFFICIENT_FUNDS: "Insufficient USDC balance\n\nSend USDC to: {address}\nAfter funding, retry this request.",
}


@dataclass(frozen=True, slots=True)
class ToolFailure:
    """
    A failed tool call.

    Only this type marks a failure; a Portal result is passed through as-is
    even when it happens to carry an ``error`` key.
    """

    category: FailureCategory
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message, "category": self.category.value}
        payload.update(self.details)
        return payload


def failure(category: FailureCategory, message: str, **details: Any) -> ToolFailure:
    return ToolFailure(category, message, details)


def error_text(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__ or "Unknown error"


def classify_error(message: str) -> FailureCategory:
    if any(signal in message for signal in GAS_SIGNALS):
        return FailureCategory.INSUFFICIENT_GAS
    if any(signal in message for signal in PAYMENT_SIGNALS):
        return FailureCategory.INSUFFICIENT_FUNDS
    return FailureCategory.CALL_FAILED


class Dispatcher:
    """Calls Portals and rewrites their failures into actionable messages."""

    def __init__(self, client: PaymentClient) -> None:
        self.client = client

    def _wallet_address(self) -> str:
        try:
            return self.client.get_address()
        except Exception:
            logger.exception("Could not read wallet address for funding instructions")
            return UNKNOWN_ADDRESS

    def _classify(self, exc: Exception, portal_id: str) -> ToolFailure:
        message = error_text(exc)
        category = classify_error(message)
        if category is FailureCategory.CALL_FAILED:
            logger.warning("Portal %s call failed: %s", portal_id, message, extra={"portal": portal_id, "error": message})
            return failure(category, f"Portal call failed: {message}")

        address = self._wallet_address()
        logger.warning("Portal %s call needs funding (%s)", portal_id, category.value, extra={"portal": portal_id})
        return failure(category, _FUNDING_TEMPLATES[category].format(address=address), address=address)

    async def dispatch(self, resolution: Resolution, arguments: Dict[str, Any]) -> Any:
        """
        Call the resolved tool.

        Returns:
            The payment client's result unchanged, or a :class:`ToolFailure`.
        """
        portal_id = resolution.portal.id
        operation: Optional[str] = resolution.tool.operation_id
        try:
            return await self.client.call_portal(portal_id, arguments, operation)
        except Exception as exc:
            return self._classify(exc, portal_id)
