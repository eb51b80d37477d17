"""Orchestrate audience spec generation: fetch, resolve, filter, merge, prune, order, write.

All services are fetched concurrently (and the files of one service too); the
audiences are then built one after another from the already fetched documents.
A failed file or service contributes nothing; it never aborts the run.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
import yaml

from spec_aggregator.audience import exclusion_reason, should_include_operation
from spec_aggregator.config import AggregatorConfig, ServiceDescriptor, validate_config
from spec_aggregator.github import GitHubClient
from spec_aggregator.helpers import (
    OPENAPI_VERSION,
    capitalize_first,
    dump_yaml_spec,
    output_path_for,
    unique_operation_servers,
)
from spec_aggregator.merge import merge_schemas, merge_security
from spec_aggregator.ordering import sort_paths, sort_tags
from spec_aggregator.prune import remove_unused_schemas
from spec_aggregator.resolve import ReferenceCache, resolve_external_refs
from spec_aggregator.transform import (
    HTTP_METHODS,
    operation_category,
    prefixed_path,
    transform_operation,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpecFile:
    file_name: str
    content: dict[str, Any]


@dataclass(frozen=True)
class ServiceSpecs:
    service_name: str
    specs: tuple[SpecFile, ...] = ()


# --- Fetch ---


async def fetch_spec_file(
    client: GitHubClient,
    service: ServiceDescriptor,
    entry: dict[str, Any],
    branch: str,
    cache: ReferenceCache,
) -> SpecFile | None:
    """Download one listed spec file and inline its relative refs. None on failure."""
    name = entry.get("name", "?")
    download_url = entry.get("download_url")
    if not download_url:
        log.error("No download_url for %s in %s", name, service.repo)
        return None
    try:
        content = await client.download_document(download_url)
    except (httpx.HTTPError, yaml.YAMLError) as e:
        log.error("Error fetching file %s from %s: %s", name, service.repo, e)
        return None
    if not isinstance(content, dict):
        log.error("Skipping %s from %s: not a mapping document", name, service.repo)
        return None

    async def _load(path: str) -> Any:
        return await client.fetch_document(service.repo, path, branch)

    content = await resolve_external_refs(
        content, _load, service.specs_path, cache, source=f"{service.repo}:{name}"
    )
    return SpecFile(file_name=name, content=content)


async def fetch_service_specs(
    client: GitHubClient, service: ServiceDescriptor, branch: str
) -> ServiceSpecs:
    log.info("Fetching specs from %s (branch: %s)...", service.name, branch)
    entries = await client.list_spec_files(service.repo, service.specs_path, branch)
    if not entries:
        if entries is not None:
            log.warning("No spec files found in %s/%s", service.repo, service.specs_path)
        return ServiceSpecs(service_name=service.name)

    for entry in entries:
        log.info("Found spec file: %s", entry["name"])

    cache = ReferenceCache()
    results = await asyncio.gather(
        *(fetch_spec_file(client, service, e, branch, cache) for e in entries)
    )
    return ServiceSpecs(
        service_name=service.name,
        specs=tuple(r for r in results if r is not None),
    )


async def fetch_all_service_specs(
    client: GitHubClient, config: AggregatorConfig, branch: str
) -> list[ServiceSpecs]:
    return list(
        await asyncio.gather(*(fetch_service_specs(client, s, branch) for s in config.services))
    )


# --- Aggregate ---


def create_base_spec(audience: str, config: AggregatorConfig) -> dict[str, Any]:
    info: dict[str, Any] = {
        "title": f"{capitalize_first(audience)} API",
        "version": config.info_version,
        "description": f"Public APIs for {audience} integration",
    }
    if config.contact:
        info["contact"] = dict(config.contact)
    return {
        "openapi": OPENAPI_VERSION,
        "info": info,
        "paths": {},
        "components": {"schemas": {}, "securitySchemes": {}},
        "tags": [],
        "security": [],
    }


def ensure_tag(aggregated: dict[str, Any], tag_names: set[str], category: str | None) -> None:
    if not category or category in tag_names:
        return
    tag_names.add(category)
    aggregated["tags"].append({"name": category, "description": f"{category} operations"})


def process_paths(
    content: dict[str, Any],
    audience: str,
    service_name: str,
    aggregated: dict[str, Any],
    tag_names: set[str],
    config: AggregatorConfig,
    file_name: str = "?",
) -> tuple[int, int]:
    """Add included operations to aggregated["paths"]. Returns (processed, skipped)."""
    paths = content.get("paths")
    if not isinstance(paths, dict) or not paths:
        log.info("No paths found in %s (%s)", file_name, service_name)
        return 0, 0

    spec_servers = content.get("servers") or []
    use_path_prefix = config.use_path_prefix
    use_schema_prefix = config.use_schema_prefix
    processed = skipped = 0

    for path, path_item in paths.items():
        if not isinstance(path_item, dict):
            continue
        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if not operation:
                continue
            if not should_include_operation(operation, audience):
                skipped += 1
                log.info(
                    "Skipped %s %s (%s, %s): %s",
                    method.upper(),
                    path,
                    service_name,
                    file_name,
                    exclusion_reason(operation, audience),
                )
                continue
            ensure_tag(aggregated, tag_names, operation_category(operation))
            out_path = prefixed_path(path, service_name, use_path_prefix)
            aggregated["paths"].setdefault(out_path, {})[method] = transform_operation(
                operation,
                service_name=service_name,
                method=method,
                path=path,
                spec_servers=spec_servers,
                default_servers=config.default_servers,
                prefix_schemas=use_schema_prefix,
                file_name=file_name,
            )
            processed += 1

    log.info(
        "Processed %d operation(s), skipped %d from %d path(s) in %s",
        processed,
        skipped,
        len(paths),
        file_name,
    )
    return processed, skipped


def process_spec(
    content: dict[str, Any],
    service_name: str,
    audience: str,
    aggregated: dict[str, Any],
    tag_names: set[str],
    config: AggregatorConfig,
    file_name: str = "?",
) -> None:
    process_paths(content, audience, service_name, aggregated, tag_names, config, file_name)
    merge_schemas(content, service_name, aggregated, config.use_schema_prefix)
    merge_security(content, aggregated)


def aggregate_specs_for_audience(
    all_specs: list[ServiceSpecs], audience: str, config: AggregatorConfig
) -> dict[str, Any]:
    """Build, prune and order one audience's spec from fetched documents. No I/O."""
    aggregated = create_base_spec(audience, config)
    tag_names: set[str] = set()
    for service_specs in all_specs:
        for spec in service_specs.specs:
            log.info("%s / %s", service_specs.service_name, spec.file_name)
            process_spec(
                spec.content,
                service_specs.service_name,
                audience,
                aggregated,
                tag_names,
                config,
                spec.file_name,
            )

    remove_unused_schemas(aggregated)
    aggregated["tags"] = sort_tags(aggregated["tags"], config.tag_order)
    aggregated["paths"] = sort_paths(aggregated["paths"], config.tag_order)
    return aggregated


# --- Write ---


def write_aggregated_spec(audience: str, spec: dict[str, Any], output_dir: Path) -> Path:
    out = output_path_for(output_dir, audience)
    dump_yaml_spec(spec, out)

    servers = unique_operation_servers(spec)
    log.info("Generated %s", out)
    log.info("Paths: %d", len(spec["paths"]))
    log.info("Schemas: %d", len(spec["components"]["schemas"]))
    log.info("Tags: %d", len(spec["tags"]))
    log.info("Unique servers across operations: %d", len(servers))
    for server in servers:
        log.info("Server: %s", server)
    return out


def generate_audience_specs(all_specs: list[ServiceSpecs], config: AggregatorConfig) -> list[Path]:
    written: list[Path] = []
    for audience in config.audiences:
        log.info("Generating %s spec...", audience)
        spec = aggregate_specs_for_audience(all_specs, audience, config)
        written.append(write_aggregated_spec(audience, spec, config.output_dir))
    return written


def _prefix_mode(value: bool | None) -> str:
    return "auto" if value is None else str(value).lower()


async def aggregate_specs(
    config: AggregatorConfig,
    branch: str = "main",
    token: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[Path]:
    """Validate config, fetch every service, write one spec per audience. Returns written paths.

    Raises ConfigError before any network I/O if the token, services or audiences are missing.
    """
    validate_config(config, token)

    log.info("Configuration:")
    log.info("Services: %d", len(config.services))
    log.info("Audiences: %s", ", ".join(config.audiences))
    log.info("Branch: %s", branch)
    log.info(
        "  Schema prefixing: %s (%s)",
        "enabled" if config.use_schema_prefix else "disabled",
        _prefix_mode(config.prefix_schemas),
    )
    log.info(
        "  Path prefixing: %s (%s)",
        "enabled" if config.use_path_prefix else "disabled",
        _prefix_mode(config.prefix_paths),
    )

    async with GitHubClient(
        token,
        api_url=config.github_api_url,
        timeout=config.request_timeout,
        transport=transport,
    ) as client:
        all_specs = await fetch_all_service_specs(client, config, branch)

    config.output_dir.mkdir(parents=True, exist_ok=True)
    return generate_audience_specs(all_specs, config)


def run_aggregation(
    config: AggregatorConfig,
    branch: str = "main",
    token: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[Path]:
    """Synchronous entry point around aggregate_specs."""
    return asyncio.run(aggregate_specs(config, branch=branch, token=token, transport=transport))
