"""Command line entry point: compare two snapshot files and print the migration."""

from __future__ import annotations

import argparse
import json
from collections.abc import Sequence
from pathlib import Path

from src.logger import LOGGER
from src.schema_migration.generate.reverse import reverse_comparison
from src.schema_migration.io import comparison_to_dict, load_schemas, migration_to_dict
from src.schema_migration.orchestrate.orchestrator import (
    MigrationOrchestrator,
    OrchestrationReport,
    OrchestratorOptions,
    SnapshotSide,
)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="schema-migrate",
        description="Generate SQLite migration SQL from two schema snapshots",
    )
    parser.add_argument("source", help="Source snapshot (YAML or JSON)")
    parser.add_argument("target", help="Target snapshot (YAML or JSON)")
    parser.add_argument("--reverse", action="store_true", help="Migrate target back to source")
    parser.add_argument(
        "--include-drops",
        action="store_true",
        help="Emit DROP statements and rebuild tables that lose columns",
    )
    parser.add_argument(
        "--format", choices=("sql", "json"), default="sql", help="Output format"
    )
    parser.add_argument("--output", help="Write to this file instead of stdout")
    return parser.parse_args(argv)


def render(report: OrchestrationReport, output_format: str, reverse: bool = False) -> str:
    """SQL script, or a JSON report whose comparison reads in the generated direction."""
    if output_format == "json":
        comparison = reverse_comparison(report.comparison) if reverse else report.comparison
        document = {
            "comparison": comparison_to_dict(comparison),
            "migration": migration_to_dict(report.migration),
        }
        return json.dumps(document, indent=2)
    return report.migration.sql + "\n" if report.migration.sql else ""


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        source = SnapshotSide(load_schemas(args.source), id=args.source, name=Path(args.source).stem)
        target = SnapshotSide(load_schemas(args.target), id=args.target, name=Path(args.target).stem)
    except (OSError, ValueError) as exc:
        LOGGER.error("Could not load snapshot: %s", exc)
        return 1

    options = OrchestratorOptions(reverse=args.reverse, include_drop_statements=args.include_drops)
    try:
        report = MigrationOrchestrator().run(source, target, options)
    except ValueError as exc:
        LOGGER.error("Comparison failed: %s", exc)
        return 1

    if not report.success:
        return 1

    output = render(report, args.format, reverse=args.reverse)
    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        LOGGER.info("Migration written to %s", args.output)
    else:
        print(output, end="")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
