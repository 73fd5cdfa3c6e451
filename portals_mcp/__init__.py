"""
Portals MCP server package.

This package exposes whitelisted pay-per-use Portal APIs as agent tools,
discovered from each Portal's OpenAPI document and paid for through a
wallet-backed payment client. See DESIGN.md for full details.
"""

__all__ = ["config"]
