"""
End-to-end orchestration for schema migrations.

Flow (one pass):
  1) Compare the source snapshot against the target snapshot.
  2) Generate migration SQL from the comparison (optionally reversed).

Design goals:
- No SQL and no snapshot parsing here: this file glues components together.
- Accepts the comparator and generator via the constructor for testability.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from src.enums import EndpointType
from src.logger import LOGGER
from src.schema_migration.compare.comparator import SchemaComparator
from src.schema_migration.diffs import SchemaComparisonResult
from src.schema_migration.generate.generator import (
    GenerateMigrationSQLRequest,
    GenerateMigrationSQLResponse,
    MigrationGenerator,
)
from src.schema_migration.models import SchemaInfo

# ---------- orchestration inputs/outputs ----------


@dataclass(frozen=True)
class SnapshotSide:
    """One side of a run: its schemas plus the endpoint metadata used in reports."""

    schemas: Sequence[SchemaInfo]
    id: str
    name: str
    type: EndpointType = EndpointType.SNAPSHOT


@dataclass(frozen=True)
class OrchestratorOptions:
    """
    Toggles for a single run.

    reverse:
        Generate the target -> source migration instead of source -> target.
    include_drop_statements:
        Emit destructive drops and rebuild tables that lose columns.
    """

    reverse: bool = False
    include_drop_statements: bool = False


@dataclass(frozen=True)
class OrchestrationReport:
    """Everything a caller would want to inspect or log from a single run."""

    comparison: SchemaComparisonResult
    migration: GenerateMigrationSQLResponse

    @property
    def success(self) -> bool:
        return self.migration.success


# ---------- orchestrator ----------


class MigrationOrchestrator:
    """Glue for compare -> generate. Delegates all work to injected components."""

    def __init__(
        self,
        comparator: SchemaComparator | None = None,
        generator: MigrationGenerator | None = None,
    ) -> None:
        self._comparator = comparator or SchemaComparator()
        self._generator = generator or MigrationGenerator()

    def run(
        self,
        source: SnapshotSide,
        target: SnapshotSide,
        options: OrchestratorOptions = OrchestratorOptions(),
    ) -> OrchestrationReport:
        """Compare both sides and generate the migration once."""
        comparison = self._compare(source, target)
        migration = self._generate(comparison, options)
        return OrchestrationReport(comparison=comparison, migration=migration)

    # ----- steps -----

    def _compare(self, source: SnapshotSide, target: SnapshotSide) -> SchemaComparisonResult:
        LOGGER.info("Comparing %s against %s", source.name, target.name)
        return self._comparator.compare_schemas(
            source_schemas=source.schemas,
            target_schemas=target.schemas,
            source_id=source.id,
            source_name=source.name,
            source_type=source.type,
            target_id=target.id,
            target_name=target.name,
            target_type=target.type,
        )

    def _generate(
        self, comparison: SchemaComparisonResult, options: OrchestratorOptions
    ) -> GenerateMigrationSQLResponse:
        LOGGER.info(
            "Generating migration SQL (reverse=%s, include_drop_statements=%s)",
            options.reverse,
            options.include_drop_statements,
        )
        request = GenerateMigrationSQLRequest(
            comparison_result=comparison,
            reverse=options.reverse,
            include_drop_statements=options.include_drop_statements,
        )
        return self._generator.generate_migration_sql(request)
