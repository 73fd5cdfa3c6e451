import pytest

from portals_mcp.dispatcher import UNKNOWN_ADDRESS, Dispatcher, ToolFailure, classify_error
from portals_mcp.errors import FailureCategory
from portals_mcp.registry import Resolution
from portals_mcp.tools import normalize_tools


def _resolution(portal, raw=None):
    tool = normalize_tools(portal, raw)[0]
    return Resolution(portal=portal, tool=tool)


def test_classify_error_signals():
    assert classify_error("Insufficient SOL for fee") is FailureCategory.INSUFFICIENT_GAS
    assert classify_error("Insufficient USDC balance") is FailureCategory.INSUFFICIENT_FUNDS
    assert classify_error("custom program error: InsufficientUsdcBalance") is FailureCategory.INSUFFICIENT_FUNDS
    assert classify_error("timeout") is FailureCategory.CALL_FAILED


@pytest.mark.asyncio
async def test_success_returns_result_unchanged(stub_client_cls, portal_factory):
    payload = {"temperature": 21, "nested": [1, 2]}
    client = stub_client_cls(call_result=payload)
    result = await Dispatcher(client).dispatch(_resolution(portal_factory("AAAA1111")), {})
    assert result is payload


@pytest.mark.asyncio
async def test_explicit_tool_passes_operation_name(stub_client_cls, portal_factory, weather_openapi):
    client = stub_client_cls()
    resolution = _resolution(portal_factory("AAAA1111"), weather_openapi)
    await Dispatcher(client).dispatch(resolution, {"city": "Oslo"})
    assert client.calls == [("AAAA1111", {"city": "Oslo"}, "get_forecast")]


@pytest.mark.asyncio
async def test_synthesized_tool_passes_no_operation(stub_client_cls, portal_factory):
    client = stub_client_cls()
    await Dispatcher(client).dispatch(_resolution(portal_factory("AAAA1111")), {})
    assert client.calls == [("AAAA1111", {}, None)]


@pytest.mark.asyncio
async def test_insufficient_sol_rewritten_with_address(stub_client_cls, portal_factory, wallet_address):
    client = stub_client_cls(call_error=Exception("Insufficient SOL for fee"))
    result = await Dispatcher(client).dispatch(_resolution(portal_factory("AAAA1111")), {})
    assert result.category is FailureCategory.INSUFFICIENT_GAS
    assert wallet_address in result.message
    assert "retry" in result.message
    assert "Send SOL to" in result.message
    assert "Insufficient SOL for fee" not in result.message


@pytest.mark.asyncio
async def test_insufficient_usdc_rewritten(stub_client_cls, portal_factory, wallet_address):
    client = stub_client_cls(call_error=RuntimeError("Transaction failed: InsufficientUsdcBalance (0x1771)"))
    result = await Dispatcher(client).dispatch(_resolution(portal_factory("AAAA1111")), {})
    assert result.category is FailureCategory.INSUFFICIENT_FUNDS
    assert result.details["address"] == wallet_address
    assert "Send USDC to" in result.message
    assert "0x1771" not in result.message


@pytest.mark.asyncio
async def test_generic_failure_preserves_message(stub_client_cls, portal_factory):
    client = stub_client_cls(call_error=RuntimeError("upstream returned 502"))
    result = await Dispatcher(client).dispatch(_resolution(portal_factory("AAAA1111")), {})
    assert result == ToolFailure(FailureCategory.CALL_FAILED, "Portal call failed: upstream returned 502")


@pytest.mark.asyncio
async def test_address_lookup_failure_still_returns_guidance(stub_client_cls, portal_factory):
    class BrokenAddressClient(stub_client_cls):
        def get_address(self):
            raise RuntimeError("keypair unavailable")

    client = BrokenAddressClient(call_error=Exception("Insufficient SOL"))
    result = await Dispatcher(client).dispatch(_resolution(portal_factory("AAAA1111")), {})
    assert result.category is FailureCategory.INSUFFICIENT_GAS
    assert UNKNOWN_ADDRESS in result.message
