"""Deterministic tool names for Portals that publish no operation ids."""

from __future__ import annotations

import re

TOOL_NAME_PREFIX = "portal"
ID_SUFFIX_LENGTH = 4

_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")


def slugify_title(title: str) -> str:
    """Lower-case, collapse non-alphanumeric runs to ``_``, strip edge underscores."""
    return _NON_ALNUM_RUN.sub("_", (title or "").lower()).strip("_")


def generate_tool_name(title: str, portal_id: str) -> str:
    """
    Build ``portal_<slug>_<id prefix>``.

    The id prefix keeps identically titled Portals apart.
    """
    slug = slugify_title(title)
    suffix = portal_id[:ID_SUFFIX_LENGTH]
    return f"{TOOL_NAME_PREFIX}_{slug}_{suffix}"
