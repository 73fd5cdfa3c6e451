"""Turn a Portal's OpenAPI document (or its absence) into tool descriptors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from portals_mcp.payment import Portal
from portals_mcp.tools.naming import generate_tool_name
from portals_mcp.tools.openapi import inline_component_refs, parse_openapi


def empty_object_schema() -> Dict[str, Any]:
    return {"type": "object", "properties": {}}


@dataclass(frozen=True, slots=True)
class ToolDescriptor:
    name: str
    description: str
    input_schema: Optional[Dict[str, Any]]
    portal_id: str
    operation_id: Optional[str] = None

    @property
    def explicit(self) -> bool:
        """True when the tool maps to a declared OpenAPI operation."""
        return self.operation_id is not None

    def to_listing(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema if self.input_schema is not None else empty_object_schema(),
        }


def synthesize_tool(portal: Portal) -> ToolDescriptor:
    """Fallback tool covering the whole Portal, with no parameters."""
    return ToolDescriptor(
        name=generate_tool_name(portal.title, portal.id),
        description=portal.description,
        input_schema=empty_object_schema(),
        portal_id=portal.id,
    )


def _input_schema(body_schema: Optional[Dict[str, Any]], components: Dict[str, Any]) -> Dict[str, Any]:
    if body_schema is None:
        return empty_object_schema()
    return inline_component_refs(body_schema, components)


def explicit_tools(portal: Portal, raw_description: Any) -> Tuple[ToolDescriptor, ...]:
    """
    Build one descriptor per OpenAPI operation that carries an operationId.

    A repeated operationId keeps its first position but takes the last
    definition. Request bodies that point into ``components`` are inlined so
    the published schema stands on its own.
    """
    description = parse_openapi(raw_description)
    if description is None:
        return ()

    by_name: Dict[str, ToolDescriptor] = {}
    for operation in description.operations:
        by_name[operation.operation_id] = ToolDescriptor(
            name=operation.operation_id,
            description=operation.summary or operation.description or portal.description,
            input_schema=_input_schema(operation.body_schema, description.components),
            portal_id=portal.id,
            operation_id=operation.operation_id,
        )
    return tuple(by_name.values())


def normalize_tools(portal: Portal, raw_description: Any) -> Tuple[ToolDescriptor, ...]:
    """Return the Portal's tools; never empty."""
    tools = explicit_tools(portal, raw_description)
    if tools:
        return tools
    return (synthesize_tool(portal),)
