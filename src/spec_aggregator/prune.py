"""Drop component schemas no retained operation or security scheme can reach."""

from __future__ import annotations

import logging
from typing import Any

from spec_aggregator.refs import collect_schema_refs

log = logging.getLogger(__name__)


def reachable_schemas(aggregated: dict[str, Any]) -> set[str]:
    """Schema names reachable from paths and securitySchemes, following refs inside schemas."""
    components = aggregated.get("components") or {}
    all_schemas = components.get("schemas") or {}

    seeds = collect_schema_refs(aggregated.get("paths") or {})
    collect_schema_refs(components.get("securitySchemes") or {}, seeds)

    processed: set[str] = set()
    to_process = sorted(seeds)
    while to_process:
        name = to_process.pop()
        if name in processed:
            continue
        processed.add(name)
        schema = all_schemas.get(name)
        if schema is not None:
            to_process.extend(r for r in collect_schema_refs(schema) if r not in processed)
    return processed


def remove_unused_schemas(aggregated: dict[str, Any]) -> None:
    """Keep only reachable schemas, preserving their merge order."""
    schemas = aggregated["components"]["schemas"]
    required = reachable_schemas(aggregated)
    kept = {name: schema for name, schema in schemas.items() if name in required}
    dropped = len(schemas) - len(kept)
    if dropped:
        log.debug("Removed %d unreferenced schema(s)", dropped)
    missing = sorted(required - schemas.keys())
    if missing:
        log.warning("Referenced schema(s) not defined by any service: %s", ", ".join(missing))
    aggregated["components"]["schemas"] = kept
