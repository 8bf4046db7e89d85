from __future__ import annotations

from salesboard.services.repair.assignments import (
    AssignmentRemovalSummary,
    delete_entity,
    remove_salesperson_assignments,
)
from salesboard.services.repair.backfill import (
    SCOPED_TABLES,
    BackfillSummary,
    backfill_tenants,
    count_unmigrated,
)
from salesboard.services.repair.constraints import ConstraintSummary, ensure_junction_constraints
from salesboard.services.repair.duplicates import (
    DUPLICATE_TARGETS,
    ResolutionSummary,
    choose_survivor,
    resolve_duplicate_objectives,
    resolve_duplicates,
)
from salesboard.services.repair.orphans import OrphanSweepSummary, sweep_orphaned_junctions
from salesboard.services.repair.report import IntegrityReport, integrity_report
from salesboard.services.repair.summary import SoftFailure, format_summary


__all__ = [
    "AssignmentRemovalSummary",
    "BackfillSummary",
    "ConstraintSummary",
    "DUPLICATE_TARGETS",
    "IntegrityReport",
    "OrphanSweepSummary",
    "ResolutionSummary",
    "SCOPED_TABLES",
    "SoftFailure",
    "backfill_tenants",
    "choose_survivor",
    "count_unmigrated",
    "delete_entity",
    "ensure_junction_constraints",
    "format_summary",
    "integrity_report",
    "remove_salesperson_assignments",
    "resolve_duplicate_objectives",
    "resolve_duplicates",
    "sweep_orphaned_junctions",
]
