"""Audience filter: which operations are published, and for whom."""

from __future__ import annotations

from typing import Any

X_PUBLIC = "x-public"
X_AUDIENCE = "x-audience"
X_CATEGORY = "x-category"
X_SERVERS = "x-servers"

VENDOR_EXTENSIONS = (X_PUBLIC, X_AUDIENCE, X_CATEGORY, X_SERVERS)


def parse_audience_value(value: Any) -> list[str]:
    """Normalize x-audience: a string, a list, or comma-joined strings (e.g. "auth, cross-border")."""
    if not value:
        return []
    items = value if isinstance(value, list) else [value]
    out: list[str] = []
    for item in items:
        if not isinstance(item, str):
            continue
        out.extend(part.strip() for part in item.split(",") if part.strip())
    return out


def is_public(operation: Any) -> bool:
    return isinstance(operation, dict) and operation.get(X_PUBLIC) is True


def should_include_operation(operation: Any, audience: str) -> bool:
    """True iff x-public is exactly true and audience is among the normalized x-audience values."""
    if not is_public(operation):
        return False
    return audience in parse_audience_value(operation.get(X_AUDIENCE))


def exclusion_reason(operation: Any, audience: str) -> str | None:
    """Why an operation is left out for audience, or None if it is included."""
    if not is_public(operation):
        return f"not marked as public ({X_PUBLIC}: true)"
    audiences = parse_audience_value(operation.get(X_AUDIENCE))
    if audience not in audiences:
        return f"audience '{audience}' not in {X_AUDIENCE}: [{', '.join(audiences)}]"
    return None
