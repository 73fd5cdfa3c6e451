"""Strict intermediate representation of the parts of an OpenAPI document we use."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

HTTP_METHODS = frozenset({"get", "put", "post", "delete", "options", "head", "patch", "trace"})
JSON_MEDIA_TYPE = "application/json"
COMPONENT_REF_PREFIX = "#/components/"


@dataclass(frozen=True, slots=True)
class Operation:
    path: str
    method: str
    operation_id: str
    summary: Optional[str] = None
    description: Optional[str] = None
    body_schema: Optional[Dict[str, Any]] = None


@dataclass(frozen=True, slots=True)
class ApiDescription:
    operations: Tuple[Operation, ...] = ()
    components: Dict[str, Any] = field(default_factory=dict)


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _json_body_schema(operation: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    request_body = operation.get("requestBody")
    if not isinstance(request_body, dict):
        return None
    content = request_body.get("content")
    if not isinstance(content, dict):
        return None
    media = content.get(JSON_MEDIA_TYPE)
    if not isinstance(media, dict):
        return None
    schema = media.get("schema")
    return schema if isinstance(schema, dict) else None


def _unescape(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def _lookup_component(ref: str, components: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    node: Any = components
    for token in ref[len(COMPONENT_REF_PREFIX):].split("/"):
        if not isinstance(node, dict):
            return None
        node = node.get(_unescape(token))
    return node if isinstance(node, dict) else None


def inline_component_refs(schema: Dict[str, Any], components: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a self-contained copy of ``schema`` with ``#/components/...`` refs inlined.

    Recursive components cannot be inlined; they are moved under the schema's
    ``definitions`` and referenced from there. Refs that do not resolve are
    left untouched so schema validation reports them.
    """
    definitions: Dict[str, Any] = {}

    def definition_ref(ref: str, target: Dict[str, Any]) -> Dict[str, Any]:
        key = ref[len(COMPONENT_REF_PREFIX):].replace("/", ".")
        if key not in definitions:
            definitions[key] = {}
            definitions[key] = walk(target, (ref,))
        return {"$ref": "#/definitions/" + key.replace("~", "~0")}

    def walk(node: Any, stack: Tuple[str, ...]) -> Any:
        if isinstance(node, list):
            return [walk(item, stack) for item in node]
        if not isinstance(node, dict):
            return node
        ref = node.get("$ref")
        if isinstance(ref, str) and ref.startswith(COMPONENT_REF_PREFIX):
            target = _lookup_component(ref, components)
            if target is not None:
                if ref in stack:
                    return definition_ref(ref, target)
                inlined = walk(target, stack + (ref,))
                siblings = {key: value for key, value in node.items() if key != "$ref"}
                if siblings:
                    return {"allOf": [inlined, walk(siblings, stack)]}
                return inlined
        return {key: walk(value, stack) for key, value in node.items()}

    result = walk(schema, ())
    if definitions and isinstance(result, dict):
        existing = result.get("definitions")
        merged = dict(existing) if isinstance(existing, dict) else {}
        merged.update(definitions)
        result["definitions"] = merged
    return result


def parse_openapi(raw: Any) -> Optional[ApiDescription]:
    """
    Parse a raw OpenAPI document into an :class:`ApiDescription`.

    Returns None when the document is absent or its top-level shape is wrong.
    Individual path items or operations that are malformed are skipped.
    """
    if raw is None:
        return None
    if not isinstance(raw, dict):
        logger.warning("OpenAPI document is not an object; ignoring it")
        return None

    components = raw.get("components")
    components = components if isinstance(components, dict) else {}

    paths = raw.get("paths")
    if paths is None:
        return ApiDescription(components=components)
    if not isinstance(paths, dict):
        logger.warning("OpenAPI 'paths' is not an object; ignoring document")
        return None

    operations = []
    for path, path_item in paths.items():
        if not isinstance(path_item, dict):
            continue
        for method, operation in path_item.items():
            if not isinstance(method, str) or method.lower() not in HTTP_METHODS:
                continue
            if not isinstance(operation, dict):
                continue
            operation_id = _text(operation.get("operationId"))
            if operation_id is None:
                continue
            operations.append(
                Operation(
                    path=str(path),
                    method=method.lower(),
                    operation_id=operation_id,
                    summary=_text(operation.get("summary")),
                    description=_text(operation.get("description")),
                    body_schema=_json_body_schema(operation),
                )
            )
    return ApiDescription(operations=tuple(operations), components=components)
