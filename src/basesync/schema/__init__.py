"""
Schema management package for basesync.

This package provides:
- Source and destination schema models
- Additive delta computation between schemas
- Field conversion into store creation payloads
- Schema reconciliation core logic
- Reports of applied changes
"""

from .models import FieldDefinition, FieldType, SchemaDefinition, SelectChoice, TableDefinition
from .delta import Delta, TableUpdate, compare_schemas, find_missing_fields
from .changes import ChangeRecord, ChangeType, FieldOutcome
from .conversion import FieldConverter
from .reconciler import ReconciliationResult, ReconciliationStatus, SchemaReconciler
from .report import SyncReport, generate_report

__all__ = [
    "FieldDefinition",
    "FieldType",
    "SchemaDefinition",
    "SelectChoice",
    "TableDefinition",
    "Delta",
    "TableUpdate",
    "compare_schemas",
    "find_missing_fields",
    "ChangeRecord",
    "ChangeType",
    "FieldOutcome",
    "FieldConverter",
    "ReconciliationResult",
    "ReconciliationStatus",
    "SchemaReconciler",
    "SyncReport",
    "generate_report",
]
