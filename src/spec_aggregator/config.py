"""Aggregator config loading and validation.

Config YAML format:
- services: list of { name, repo, specs_path }
- audiences: audience names, one output spec each
- output_dir: directory for {audience}-api.openapi.yaml (relative to base_dir)
- prefix_schemas / prefix_paths: true, false or auto (auto = more than one service)
- default_servers: fallback servers for operations whose spec declares none
- tag_order: tags listed here sort first, in this order
- info (optional): version and contact for the generated specs
- github_api_url, request_timeout (optional)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_NAME = "aggregator.yaml"
DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_INFO_VERSION = "1.0.0"
TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN")


class ConfigError(ValueError):
    """Invalid or incomplete configuration; aborts before any network I/O."""


@dataclass(frozen=True)
class ServiceDescriptor:
    name: str
    repo: str
    specs_path: str = "specs"


@dataclass(frozen=True)
class AggregatorConfig:
    services: tuple[ServiceDescriptor, ...]
    audiences: tuple[str, ...]
    output_dir: Path
    prefix_schemas: bool | None = None
    prefix_paths: bool | None = None
    default_servers: tuple[dict[str, Any], ...] = ()
    tag_order: tuple[str, ...] = ()
    info_version: str = DEFAULT_INFO_VERSION
    contact: dict[str, Any] = field(default_factory=dict)
    github_api_url: str = DEFAULT_GITHUB_API_URL
    request_timeout: float = 30.0

    @property
    def use_schema_prefix(self) -> bool:
        return should_prefix(self.prefix_schemas, len(self.services))

    @property
    def use_path_prefix(self) -> bool:
        return should_prefix(self.prefix_paths, len(self.services))


def should_prefix(value: bool | None, service_count: int) -> bool:
    """Forced on/off when set, otherwise on when more than one service contributes."""
    if value is True:
        return True
    if value is False:
        return False
    return service_count > 1


def _parse_prefix(value: Any, key: str) -> bool | None:
    if value is None or value == "auto":
        return None
    if isinstance(value, bool):
        return value
    msg = f"{key} must be true, false or auto, got {value!r}"
    raise ConfigError(msg)


def _parse_services(raw: Any) -> tuple[ServiceDescriptor, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        msg = "services must be a list of {name, repo, specs_path}"
        raise ConfigError(msg)
    services: list[ServiceDescriptor] = []
    for i, svc in enumerate(raw):
        if not isinstance(svc, dict) or not svc.get("name") or not svc.get("repo"):
            msg = f"services[{i}] needs at least name and repo"
            raise ConfigError(msg)
        services.append(
            ServiceDescriptor(
                name=str(svc["name"]),
                repo=str(svc["repo"]),
                specs_path=str(svc.get("specs_path") or "specs").strip("/"),
            )
        )
    names = [s.name for s in services]
    dupes = sorted({n for n in names if names.count(n) > 1})
    if dupes:
        msg = f"Duplicate service names: {', '.join(dupes)}"
        raise ConfigError(msg)
    return tuple(services)


def config_from_dict(data: dict[str, Any], base_dir: Path | None = None) -> AggregatorConfig:
    """Build an AggregatorConfig from parsed YAML. output_dir resolves against base_dir (default cwd)."""
    base = (Path(base_dir) if base_dir else Path.cwd()).resolve()
    output_dir = Path(data.get("output_dir") or "specs")
    if not output_dir.is_absolute():
        output_dir = (base / output_dir).resolve()

    info = data.get("info") or {}
    servers = data.get("default_servers") or []
    if not isinstance(servers, list) or not all(isinstance(s, dict) and "url" in s for s in servers):
        msg = "default_servers must be a list of {url, description}"
        raise ConfigError(msg)

    try:
        timeout = float(data.get("request_timeout", 30.0))
    except (TypeError, ValueError) as e:
        msg = f"request_timeout must be a number: {e}"
        raise ConfigError(msg) from e

    return AggregatorConfig(
        services=_parse_services(data.get("services")),
        audiences=tuple(str(a) for a in (data.get("audiences") or [])),
        output_dir=output_dir,
        prefix_schemas=_parse_prefix(data.get("prefix_schemas"), "prefix_schemas"),
        prefix_paths=_parse_prefix(data.get("prefix_paths"), "prefix_paths"),
        default_servers=tuple(servers),
        tag_order=tuple(str(t) for t in (data.get("tag_order") or [])),
        info_version=str(info.get("version", DEFAULT_INFO_VERSION)),
        contact=dict(info.get("contact") or {}),
        github_api_url=str(data.get("github_api_url") or DEFAULT_GITHUB_API_URL).rstrip("/"),
        request_timeout=timeout,
    )


def load_config(config_path: Path, base_dir: Path | None = None) -> AggregatorConfig:
    """Load aggregator config from YAML. Raises ConfigError if unreadable or malformed."""
    try:
        with config_path.open() as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        msg = f"Cannot read config {config_path}: {e}"
        raise ConfigError(msg) from e
    except yaml.YAMLError as e:
        msg = f"Invalid YAML in config {config_path}: {e}"
        raise ConfigError(msg) from e
    if not isinstance(data, dict):
        msg = f"Config {config_path} must be a mapping"
        raise ConfigError(msg)
    return config_from_dict(data, base_dir=base_dir)


def get_github_token(environ: dict[str, str] | None = None) -> str | None:
    """Token from GITHUB_TOKEN, falling back to GH_TOKEN."""
    env = os.environ if environ is None else environ
    for name in TOKEN_ENV_VARS:
        if env.get(name):
            return env[name]
    return None


def validate_config(config: AggregatorConfig, token: str | None) -> None:
    """Startup checks; everything else degrades per service or file."""
    if not token:
        msg = "GITHUB_TOKEN environment variable is required"
        raise ConfigError(msg)
    if not config.services:
        msg = "At least one service must be configured"
        raise ConfigError(msg)
    if not config.audiences:
        msg = "At least one audience must be configured"
        raise ConfigError(msg)
