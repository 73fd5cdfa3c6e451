from portals_mcp.server import _log_tool_result


def test_log_tool_result_handles_any_result():
    # Should not raise whatever the tool returned.
    _log_tool_result("dummy", {"ok": True})
    _log_tool_result("dummy", {"error": "fail", "category": "call_failed"})
    _log_tool_result("dummy", None)
    _log_tool_result("dummy", [1, 2, 3])
