"""Deterministic ordering of output tags and paths.

Tags named in tag_order come first, in that order; the rest follow by name.
Paths are grouped by their primary tag, groups ordered the same way, paths
sorted within each group.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from spec_aggregator.transform import HTTP_METHODS

UNTAGGED = "untagged"


def tag_sort_key(name: str, tag_order: Sequence[str]) -> tuple[int, int, str, str]:
    if name in tag_order:
        return (0, tag_order.index(name), "", "")
    # case-insensitive first, so "untagged" lands among capitalized tag names
    return (1, 0, name.casefold(), name)


def sort_tags(tags: list[dict[str, Any]], tag_order: Sequence[str]) -> list[dict[str, Any]]:
    return sorted(tags, key=lambda t: tag_sort_key(t["name"], tag_order))


def primary_tag(path_item: dict[str, Any]) -> str | None:
    """First tag of the first operation in get/post/put/patch/delete order."""
    for method in HTTP_METHODS:
        op = path_item.get(method)
        if op:
            tags = op.get("tags") if isinstance(op, dict) else None
            return tags[0] if tags and isinstance(tags[0], str) else None
    return None


def sort_paths(paths: dict[str, Any], tag_order: Sequence[str]) -> dict[str, Any]:
    groups: dict[str, list[str]] = {}
    for path, path_item in paths.items():
        groups.setdefault(primary_tag(path_item) or UNTAGGED, []).append(path)

    out: dict[str, Any] = {}
    for tag in sorted(groups, key=lambda t: tag_sort_key(t, tag_order)):
        for path in sorted(groups[tag]):
            out[path] = paths[path]
    return out
