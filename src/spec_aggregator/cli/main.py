"""Main CLI entry point for spec-aggregator."""

import sys

from spec_aggregator.cli import generate_cmd


def main() -> None:
    """Main CLI entry point."""
    if len(sys.argv) < 2:
        print("Usage: spec-aggregator <command> [args...]", file=sys.stderr)
        print("Commands:", file=sys.stderr)
        print(
            "  generate  - Fetch service specs and write one OpenAPI spec per audience",
            file=sys.stderr,
        )
        print(
            "  validate  - Check the generated audience specs load and are OpenAPI 3.1.0",
            file=sys.stderr,
        )
        sys.exit(1)

    command = sys.argv[1]

    if command == "generate":
        generate_cmd.run_generate_argv()
    elif command == "validate":
        generate_cmd.run_validate_argv()
    else:
        print(f"Error: Unknown command: {command}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
