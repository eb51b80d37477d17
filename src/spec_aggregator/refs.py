"""$ref helpers shared by the merger and pruner: one rewrite, one collector."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

SCHEMA_REF_PREFIX = "#/components/schemas/"


def map_tree(node: Any, visit: Callable[[dict[str, Any]], Any]) -> Any:
    """Return a copy of node with dicts passed through visit.

    visit returns a replacement value (not descended into), or None to copy the
    dict and descend into its values. Lists and scalars are copied structurally.
    """
    if isinstance(node, dict):
        replaced = visit(node)
        if replaced is not None:
            return replaced
        return {k: map_tree(v, visit) for k, v in node.items()}
    if isinstance(node, list):
        return [map_tree(it, visit) for it in node]
    return node


def iter_refs(node: Any) -> Iterator[str]:
    """Yield every string $ref value found anywhere in node."""
    if isinstance(node, dict):
        ref = node.get("$ref")
        if isinstance(ref, str):
            yield ref
        for v in node.values():
            yield from iter_refs(v)
    elif isinstance(node, list):
        for it in node:
            yield from iter_refs(it)


def prefixed_schema_name(service_name: str, schema_name: str) -> str:
    return f"{service_name}_{schema_name}"


def schema_name_from_ref(ref: str) -> str | None:
    """Schema name a local ref points at (#/components/schemas/Name[/...]), else None."""
    if not ref.startswith(SCHEMA_REF_PREFIX):
        return None
    return ref[len(SCHEMA_REF_PREFIX) :].split("/", 1)[0] or None


def rewrite_schema_refs(node: Any, service_name: str) -> Any:
    """Point every #/components/schemas/Name $ref at {service_name}_Name.

    Used for schema bodies and operations alike so both sides agree on names.
    """

    def _visit(d: dict[str, Any]) -> dict[str, Any] | None:
        ref = d.get("$ref")
        name = schema_name_from_ref(ref) if isinstance(ref, str) else None
        if name is None:
            return None
        new_ref = SCHEMA_REF_PREFIX + prefixed_schema_name(service_name, name)
        new_ref += ref[len(SCHEMA_REF_PREFIX) + len(name) :]
        return {
            k: new_ref if k == "$ref" else rewrite_schema_refs(v, service_name)
            for k, v in d.items()
        }

    return map_tree(node, _visit)


def collect_schema_refs(node: Any, found: set[str] | None = None) -> set[str]:
    """Names of all component schemas referenced from node."""
    if found is None:
        found = set()
    for ref in iter_refs(node):
        name = schema_name_from_ref(ref)
        if name:
            found.add(name)
    return found
