"""Shared helpers for spec_aggregator (text, spec load/dump/validate, output naming)."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

OPENAPI_VERSION = "3.1.0"
OUTPUT_SUFFIX = "-api.openapi.yaml"

# --- Text ---


def capitalize_first(s: str) -> str:
    """Uppercase the first character only (e.g. cross-border -> Cross-border)."""
    return s[:1].upper() + s[1:]


# --- Spec / file ---


class _NoAliasDumper(yaml.SafeDumper):
    """Write shared subtrees out in full instead of as &id anchors."""

    def ignore_aliases(self, data: Any) -> bool:
        return True


def output_path_for(output_dir: Path, audience: str) -> Path:
    return output_dir / f"{audience}{OUTPUT_SUFFIX}"


def dump_yaml_spec(spec: dict[str, Any], path: Path) -> None:
    """Write spec as YAML keeping key order, without line wrapping."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        yaml.dump(
            spec,
            f,
            Dumper=_NoAliasDumper,
            sort_keys=False,
            default_flow_style=False,
            allow_unicode=True,
            width=float("inf"),
        )


def load_yaml_spec(p: Path) -> dict[str, Any]:
    """Load YAML OpenAPI spec from path."""
    with p.open(encoding="utf-8") as f:
        return yaml.safe_load(f)


def validate_openapi_spec(path: Path) -> None:
    """Basic validation: spec loads and has openapi 3.1.0, paths, info. Raises ValueError if invalid."""
    try:
        spec = load_yaml_spec(path)
    except yaml.YAMLError as e:
        msg = f"Invalid YAML: {path}: {e}"
        raise ValueError(msg) from e
    if not isinstance(spec, dict) or spec.get("openapi") != OPENAPI_VERSION:
        msg = f"Invalid or non-OpenAPI {OPENAPI_VERSION} spec: {path}"
        raise ValueError(msg)
    if "paths" not in spec or "info" not in spec:
        msg = f"Spec missing paths or info: {path}"
        raise ValueError(msg)


def unique_operation_servers(spec: dict[str, Any]) -> list[str]:
    """Sorted "description: url" strings for servers used by any operation."""
    seen: set[str] = set()
    for path_item in (spec.get("paths") or {}).values():
        if not isinstance(path_item, dict):
            continue
        for op in path_item.values():
            if not isinstance(op, dict):
                continue
            for server in op.get("servers") or []:
                seen.add(f"{server.get('description')}: {server.get('url')}")
    return sorted(seen)
