"""CLI for spec generation: spec-aggregator generate, spec-aggregator validate."""

from __future__ import annotations

import dataclasses
import logging
import sys
from pathlib import Path

from spec_aggregator.aggregate import run_aggregation
from spec_aggregator.cli.parse_common import parse_flags, path_resolver
from spec_aggregator.config import (
    DEFAULT_CONFIG_NAME,
    AggregatorConfig,
    ConfigError,
    get_github_token,
    load_config,
)
from spec_aggregator.helpers import output_path_for, validate_openapi_spec

GENERATE_USAGE = (
    "Usage: spec-aggregator generate [--config <path>] [--branch|-b <name>] "
    "[--output-dir <path>] [--base-dir <path>] [--verbose]"
)
VALIDATE_USAGE = (
    "Usage: spec-aggregator validate [--config <path>] [--output-dir <path>] [--base-dir <path>]"
)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        stream=sys.stderr,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _load_config_argv(args: list[str], usage: str, extra: set[str]) -> tuple[AggregatorConfig, dict]:
    """Parse the flags shared by generate and validate; exits 1 on bad args or config."""
    parsed, rest = parse_flags(
        args,
        ("config", "--config", lambda: Path.cwd() / DEFAULT_CONFIG_NAME, path_resolver),
        ("base_dir", "--base-dir", None, path_resolver),
        ("output_dir", "--output-dir", None, path_resolver),
        ("branch", ("--branch", "-b"), "main", None),
    )
    for a in rest:
        if a not in extra:
            print(f"Error: Unknown argument: {a}", file=sys.stderr)
            print(usage, file=sys.stderr)
            sys.exit(1)
    parsed["flags"] = set(rest)

    try:
        config = load_config(parsed["config"], base_dir=parsed["base_dir"])
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    if parsed["output_dir"] is not None:
        config = dataclasses.replace(config, output_dir=parsed["output_dir"])
    return config, parsed


def run_generate_argv() -> None:
    """spec-aggregator generate: fetch service specs and write one spec per audience."""
    config, parsed = _load_config_argv(sys.argv[2:], GENERATE_USAGE, {"--verbose"})
    configure_logging(verbose="--verbose" in parsed["flags"])

    print("Starting spec aggregation...")
    try:
        written = run_aggregation(config, branch=parsed["branch"], token=get_github_token())
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except OSError as e:
        print(f"Error: Aggregation failed: {e}", file=sys.stderr)
        sys.exit(1)

    for out in written:
        print(f"Generated {out}")
    print("Aggregation complete!")


def run_validate_argv() -> None:
    """spec-aggregator validate: check each generated {audience}-api.openapi.yaml."""
    config, _parsed = _load_config_argv(sys.argv[2:], VALIDATE_USAGE, set())
    errors: list[tuple[Path, str]] = []
    for audience in config.audiences:
        path = output_path_for(config.output_dir, audience)
        if not path.exists():
            errors.append((path, "not generated"))
            continue
        try:
            validate_openapi_spec(path)
        except (ValueError, OSError) as e:
            errors.append((path, str(e)))

    for path, err in errors:
        print(f"❌ {path}: {err}")
    if errors:
        print(f"\n❌ Found {len(errors)} invalid audience specs")
        sys.exit(1)
    print(f"\n✅ All {len(config.audiences)} audience specs are valid")
    sys.exit(0)
