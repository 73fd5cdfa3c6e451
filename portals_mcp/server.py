"""FastAPI application exposing the Portals tool registry over MCP-style JSON-RPC."""

from __future__ import annotations

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from portals_mcp import mcp
from portals_mcp.config import default_config
from portals_mcp.dispatcher import ToolFailure
from portals_mcp.errors import FailureCategory
from portals_mcp.metrics import default_metrics
from portals_mcp.rate_limiter import PerKeyRateLimiter

logger = logging.getLogger(__name__)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "message": record.getMessage(),
            "name": record.name,
        }
        for key in ("tool", "request_id", "error", "portal"):
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        return json.dumps(payload)


def configure_logging() -> None:
    """Send logs to stderr so stdout stays free for agent transports."""
    level = getattr(logging, default_config.log_level.upper(), logging.INFO)
    if default_config.log_format.lower() == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logging.basicConfig(level=level, handlers=[handler])
    else:
        logging.basicConfig(level=level)


configure_logging()
rate_limiter = PerKeyRateLimiter(
    rate_per_sec=default_config.rate_limit_qps,
    per_tool=default_config.per_tool_rate_limits,
)
APP_VERSION = "0.1.0"
MCP_SERVER_NAME = "portals-mcp-server"
MCP_SERVER_VERSION = APP_VERSION
UNKNOWN_TOOL_KEY = "unknown_tool"

_FAILURE_STATUS = {
    FailureCategory.CONFIGURATION: 503,
    FailureCategory.NOT_FOUND: 404,
    FailureCategory.INVALID_PARAMS: 422,
    FailureCategory.INSUFFICIENT_GAS: 402,
    FailureCategory.INSUFFICIENT_FUNDS: 402,
    FailureCategory.CALL_FAILED: 502,
}


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Startup: a wallet that cannot be loaded aborts the process here.
    await mcp.default_manager.initialize()
    yield
    # Shutdown
    await mcp.default_manager.aclose()


app = FastAPI(
    title="Portals MCP Server",
    description="Pay-per-use Portal APIs exposed as agent tools.",
    version=APP_VERSION,
    lifespan=lifespan,
)


@app.middleware("http")
async def add_request_context(request: Request, call_next):
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    start = time.time()
    default_metrics.incr_request()
    response = await call_next(request)
    duration_ms = (time.time() - start) * 1000
    default_metrics.record_duration(request_id, duration_ms)
    response.headers["X-Request-ID"] = request_id
    return response


def _log_tool_result(tool_name: str, result: Any, request_id: Optional[str] = None) -> None:
    if isinstance(result, ToolFailure):
        category = result.category.value
        logger.warning(
            "tool=%s outcome=error category=%s request_id=%s",
            tool_name,
            category,
            request_id,
            extra={"tool": tool_name, "request_id": request_id, "error": category},
        )
        default_metrics.record_tool(tool_name, success=False, category=category)
    else:
        logger.info(
            "tool=%s outcome=success request_id=%s",
            tool_name,
            request_id,
            extra={"tool": tool_name, "request_id": request_id},
        )
        default_metrics.record_tool(tool_name, success=True)


def _rate_limit_key(tool_name: str) -> str:
    # Names outside the current snapshot share one bucket.
    return tool_name if mcp.default_manager.has_tool(tool_name) else UNKNOWN_TOOL_KEY


async def _enforce_rate_limit(tool_name: str, request_id: Optional[str] = None) -> Optional[JSONResponse]:
    allowed = await rate_limiter.allow(tool_name)
    if not allowed:
        logger.warning("tool=%s outcome=rate_limited", tool_name)
        default_metrics.incr_rate_limited()
        return JSONResponse(
            status_code=429,
            content={
                "jsonrpc": "2.0",
                "error": {"code": 429, "message": "Rate limit exceeded"},
                "requestId": request_id,
            },
        )
    return None


@app.get("/health")
async def health() -> JSONResponse:
    """Lightweight health endpoint for monitoring."""
    snapshot = mcp.default_manager.snapshot
    return JSONResponse(
        content={
            "status": "ok",
            "portals": len(snapshot.portals) if snapshot is not None else 0,
            "tools": len(snapshot.tools()) if snapshot is not None else 0,
        }
    )


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Return in-process metrics snapshot."""
    return JSONResponse(content=default_metrics.snapshot())


@app.get("/wallet")
async def wallet() -> JSONResponse:
    """Wallet address and balances, for funding checks."""
    return JSONResponse(content=await mcp.default_manager.wallet_status())


@app.get("/tools")
async def tools_route() -> JSONResponse:
    """List tools from the current registry snapshot."""
    return JSONResponse(content={"tools": mcp.list_tools()})


@app.post("/tools/{tool_name}")
async def call_tool_route(tool_name: str, request: Request) -> JSONResponse:
    """
    Plain HTTP proxy for call_tool; the JSON body is the argument object.

    A Portal result is returned as-is with 200. A failed call returns its
    tagged payload with a status derived from the failure category.
    """
    request_id = getattr(request.state, "request_id", None)
    limited = await _enforce_rate_limit(_rate_limit_key(tool_name), request_id)
    if limited:
        return limited
    try:
        arguments = await request.json()
    except ValueError:
        arguments = None
    if not isinstance(arguments, dict):
        return JSONResponse(status_code=400, content={"error": "Request body must be a JSON object."})
    result = await mcp.call_tool(tool_name, arguments)
    _log_tool_result(tool_name, result, request_id)
    if isinstance(result, ToolFailure):
        return JSONResponse(status_code=_FAILURE_STATUS[result.category], content=result.to_dict())
    return JSONResponse(content=result)


@app.post("/mcp")
async def mcp_gateway(request: Request) -> JSONResponse:
    """JSON-RPC 2.0 entry point for MCP clients."""
    request_id = getattr(request.state, "request_id", None)
    start_time = time.time()

    def _respond(
        payload: Dict[str, Any],
        *,
        status_code: int = 200,
        outcome: str,
        method_label: Optional[str],
        tool_label: Optional[str] = None,
        error_code: Optional[int] = None,
    ) -> JSONResponse:
        duration_ms = (time.time() - start_time) * 1000
        logger.debug(
            "mcp outcome=%s method=%s tool=%s id=%s status=%s duration_ms=%.2f error_code=%s",
            outcome,
            method_label,
            tool_label,
            payload.get("id"),
            status_code,
            duration_ms,
            error_code,
            extra={"request_id": request_id, "tool": tool_label, "error": error_code},
        )
        return JSONResponse(status_code=status_code, content=payload)

    try:
        body = await request.json()
    except ValueError:
        payload = _jsonrpc_error_payload(None, -32700, "Parse error", request_id=request_id)
        return _respond(payload, status_code=400, outcome="error", method_label=None, error_code=-32700)

    if not isinstance(body, dict):
        payload = _jsonrpc_error_payload(None, -32600, "Invalid request", request_id=request_id)
        return _respond(payload, status_code=400, outcome="error", method_label=None, error_code=-32600)

    method = body.get("method")
    rpc_id = body.get("id")
    raw_params = body.get("params")
    if raw_params is None:
        params = {}
    elif isinstance(raw_params, dict):
        params = raw_params
    else:
        payload = _jsonrpc_error_payload(rpc_id, -32602, "Invalid params", request_id=request_id)
        return _respond(payload, outcome="error", method_label=method, error_code=-32602)

    if not method:
        payload = _jsonrpc_error_payload(rpc_id, -32600, "Invalid request", request_id=request_id)
        return _respond(payload, outcome="error", method_label=None, error_code=-32600)

    if method == "initialize":
        protocol_version = params.get("protocolVersion")
        if not isinstance(protocol_version, str) or not protocol_version:
            payload = _jsonrpc_error_payload(rpc_id, -32602, "Invalid params", request_id=request_id)
            return _respond(payload, outcome="error", method_label=method, error_code=-32602)

        result = {
            "protocolVersion": protocol_version,
            "serverInfo": {"name": MCP_SERVER_NAME, "version": MCP_SERVER_VERSION},
            # Tools change between refreshes.
            "capabilities": {"tools": {"listChanged": True}},
        }
        return _respond(
            _jsonrpc_success_payload(rpc_id, result, request_id=request_id),
            outcome="success",
            method_label=method,
        )

    if method in ("list_tools", "tools/list"):
        limited = await _enforce_rate_limit("list_tools", request_id)
        if limited:
            return limited
        result = {"tools": mcp.list_tools()}
        return _respond(
            _jsonrpc_success_payload(rpc_id, result, request_id=request_id),
            outcome="success",
            method_label=method,
        )

    if method in ("call_tool", "tools/call"):
        tool_name = params.get("tool") or params.get("name")
        tool_params = params.get("params")
        if tool_params is None:
            tool_params = params.get("arguments") or {}
        if not isinstance(tool_name, str) or not tool_name.strip():
            payload = _jsonrpc_error_payload(rpc_id, -32602, "Invalid params", request_id=request_id)
            return _respond(payload, outcome="error", method_label=method, error_code=-32602)
        if not isinstance(tool_params, dict):
            payload = _jsonrpc_error_payload(rpc_id, -32602, "Invalid params", request_id=request_id)
            return _respond(payload, outcome="error", method_label=method, tool_label=tool_name, error_code=-32602)
        limited = await _enforce_rate_limit(_rate_limit_key(tool_name), request_id)
        if limited:
            return limited
        result = await mcp.call_tool(tool_name, tool_params)
        _log_tool_result(tool_name, result, request_id)
        return _respond(
            _jsonrpc_success_payload(rpc_id, _wrap_tool_result(result), request_id=request_id),
            outcome="success",
            method_label=method,
            tool_label=tool_name,
        )

    if method in ("notifications/initialized", "initialized"):
        # Notifications get no JSON-RPC response body.
        return Response(status_code=204)

    payload = _jsonrpc_error_payload(rpc_id, -32601, "Method not found", request_id=request_id)
    return _respond(payload, outcome="error", method_label=method, error_code=-32601)


# Run with: uvicorn portals_mcp.server:app


def _jsonrpc_success_payload(rpc_id: Any, result: Any, request_id: Optional[str] = None) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": rpc_id, "result": result, "requestId": request_id}


def _jsonrpc_error_payload(rpc_id: Any, code: int, message: str, request_id: Optional[str] = None) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": rpc_id, "error": {"code": code, "message": message}, "requestId": request_id}


def _wrap_tool_result(result: Any) -> Dict[str, Any]:
    """
    Shape tool outputs into an MCP content array.

    A :class:`ToolFailure` is returned in-band with ``isError`` so clients see
    an invocation error rather than a protocol fault. Any other value is a
    Portal result and is never flagged.
    """
    if isinstance(result, ToolFailure):
        return {
            "content": [{"type": "text", "text": result.message}],
            "structuredContent": result.to_dict(),
            "isError": True,
        }

    if isinstance(result, str):
        return {"content": [{"type": "text", "text": result}]}

    try:
        text_repr = json.dumps(result, indent=2, ensure_ascii=False)
    except (TypeError, ValueError):
        text_repr = str(result)
    structured = result if isinstance(result, dict) else {"result": result}
    return {"content": [{"type": "text", "text": text_repr}], "structuredContent": structured}
