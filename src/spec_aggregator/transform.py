"""Turn an included source operation into its published form."""

from __future__ import annotations

import copy
import logging
from collections.abc import Sequence
from typing import Any

from spec_aggregator.audience import VENDOR_EXTENSIONS, X_CATEGORY, X_SERVERS
from spec_aggregator.refs import rewrite_schema_refs

log = logging.getLogger(__name__)

HTTP_METHODS = ("get", "post", "put", "patch", "delete")

_DROPPED_KEYS = frozenset(VENDOR_EXTENSIONS) | {"tags", "servers"}


def clean_operation(operation: dict[str, Any]) -> dict[str, Any]:
    """Copy without vendor markers and without the source's own tags and servers."""
    return {k: copy.deepcopy(v) for k, v in operation.items() if k not in _DROPPED_KEYS}


def select_servers(
    operation: dict[str, Any],
    spec_servers: Sequence[dict[str, Any]] | None,
    default_servers: Sequence[dict[str, Any]],
) -> list[dict[str, Any]]:
    """x-servers on the operation, else the spec's servers, else the configured defaults."""
    override = operation.get(X_SERVERS)
    if override:
        return copy.deepcopy(list(override))
    if spec_servers:
        return copy.deepcopy(list(spec_servers))
    return copy.deepcopy(list(default_servers))


def prefixed_path(path: str, service_name: str, enabled: bool) -> str:
    return f"/{service_name}{path}" if enabled else path


def operation_category(operation: dict[str, Any]) -> str | None:
    """x-category when it is a non-empty string, else None."""
    category = operation.get(X_CATEGORY)
    if isinstance(category, str) and category:
        return category
    return None


def transform_operation(
    operation: dict[str, Any],
    *,
    service_name: str,
    method: str,
    path: str,
    spec_servers: Sequence[dict[str, Any]] | None,
    default_servers: Sequence[dict[str, Any]],
    prefix_schemas: bool,
    file_name: str = "?",
) -> dict[str, Any]:
    """Cleaned operation with tags = [x-category] (or []) and servers by priority.

    An x-category that is not a string is treated as missing.
    """
    category = operation_category(operation)
    if category is None:
        raw = operation.get(X_CATEGORY)
        if raw:
            log.warning(
                "%s %s (%s, %s) has invalid %s %r; publishing it untagged",
                method.upper(),
                path,
                service_name,
                file_name,
                X_CATEGORY,
                raw,
            )
        else:
            log.warning(
                "%s %s (%s, %s) is public but has no %s defined",
                method.upper(),
                path,
                service_name,
                file_name,
                X_CATEGORY,
            )

    cleaned = clean_operation(operation)
    if prefix_schemas:
        cleaned = rewrite_schema_refs(cleaned, service_name)
    cleaned["tags"] = [category] if category is not None else []
    cleaned["servers"] = select_servers(operation, spec_servers, default_servers)
    return cleaned
