"""Aggregate per-service OpenAPI specs into one public spec per audience."""

from spec_aggregator.aggregate import (
    aggregate_specs,
    aggregate_specs_for_audience,
    fetch_all_service_specs,
    run_aggregation,
)
from spec_aggregator.config import (
    AggregatorConfig,
    ConfigError,
    ServiceDescriptor,
    load_config,
)

__all__ = [
    "AggregatorConfig",
    "ConfigError",
    "ServiceDescriptor",
    "aggregate_specs",
    "aggregate_specs_for_audience",
    "fetch_all_service_specs",
    "load_config",
    "run_aggregation",
]
