"""Tool descriptors built from Portal OpenAPI documents."""

from .naming import generate_tool_name, slugify_title
from .normalizer import ToolDescriptor, empty_object_schema, normalize_tools, synthesize_tool
from .openapi import ApiDescription, Operation, parse_openapi
from .validation import validate_arguments

__all__ = [
    "ApiDescription",
    "Operation",
    "ToolDescriptor",
    "empty_object_schema",
    "generate_tool_name",
    "normalize_tools",
    "parse_openapi",
    "slugify_title",
    "synthesize_tool",
    "validate_arguments",
]
