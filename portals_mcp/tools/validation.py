"""Validate tool arguments against the Portal-supplied JSON Schema."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError
from jsonschema.validators import validator_for
from referencing.exceptions import Unresolvable

from portals_mcp.errors import InvalidToolSchemaError


def _json_path(path) -> str:
    rendered = "$"
    for part in path:
        if isinstance(part, int):
            rendered += f"[{part}]"
        else:
            rendered += f".{part}"
    return rendered


def validate_arguments(
    schema: Optional[Dict[str, Any]],
    arguments: Any,
    *,
    portal_id: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Check ``arguments`` against ``schema`` and report every violation.

    Args:
        schema: JSON Schema for the tool's parameters; None means no constraints.
        arguments: Caller-supplied argument object.
        portal_id: Used only to annotate schema errors.

    Returns:
        A list of ``{"path", "message", "validator"}`` dicts, empty when valid.

    Raises:
        InvalidToolSchemaError: if the schema itself is not valid JSON Schema
            or references a definition it does not contain.
    """
    if schema is None:
        return []

    validator_cls = validator_for(schema, default=Draft7Validator)
    try:
        validator_cls.check_schema(schema)
    except SchemaError as exc:
        raise InvalidToolSchemaError(f"Tool schema is invalid: {exc.message}", portal_id=portal_id) from exc

    validator = validator_cls(schema)
    try:
        violations = [
            {
                "path": _json_path(error.absolute_path),
                "message": error.message,
                "validator": error.validator,
            }
            for error in validator.iter_errors(arguments)
        ]
    except Unresolvable as exc:
        raise InvalidToolSchemaError(f"Tool schema has an unresolvable reference: {exc}", portal_id=portal_id) from exc
    violations.sort(key=lambda item: (item["path"], item["message"]))
    return violations
