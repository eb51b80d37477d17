"""Fold one service document's components.schemas and security into the aggregate."""

from __future__ import annotations

import copy
import logging
from typing import Any

from spec_aggregator.refs import prefixed_schema_name, rewrite_schema_refs

log = logging.getLogger(__name__)


def _components(content: dict[str, Any]) -> dict[str, Any]:
    comp = content.get("components")
    return comp if isinstance(comp, dict) else {}


def merge_schemas(
    content: dict[str, Any],
    service_name: str,
    aggregated: dict[str, Any],
    prefix: bool,
) -> None:
    """Add the service's schemas to aggregated["components"]["schemas"].

    With prefix, names become {service}_{Name} and refs inside the bodies are
    rewritten with the same function operations go through. Without it a later
    schema of the same name replaces an earlier one.
    """
    schemas = _components(content).get("schemas")
    if not isinstance(schemas, dict):
        return
    target = aggregated["components"]["schemas"]
    for schema_name, schema in schemas.items():
        if prefix:
            target[prefixed_schema_name(service_name, schema_name)] = rewrite_schema_refs(
                schema, service_name
            )
        else:
            target[schema_name] = copy.deepcopy(schema)


def merge_security(content: dict[str, Any], aggregated: dict[str, Any]) -> None:
    """Union securitySchemes (last one wins on a name clash) and concatenate root security."""
    schemes = _components(content).get("securitySchemes")
    if isinstance(schemes, dict):
        target = aggregated["components"]["securitySchemes"]
        for name, scheme in schemes.items():
            if name in target and target[name] != scheme:
                log.warning(
                    "    Security scheme %r redefined with a different definition; keeping the latest",
                    name,
                )
            target[name] = copy.deepcopy(scheme)

    security = content.get("security")
    if isinstance(security, list):
        aggregated["security"].extend(copy.deepcopy(security))
