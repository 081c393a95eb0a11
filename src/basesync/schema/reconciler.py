"""
Schema reconciliation core logic for basesync.

Brings a destination base in line with a source schema using additive
changes only: missing tables are created and missing fields are added.
Existing tables and fields are never removed or altered.
"""

import random
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..context import SyncContext
from ..exceptions import FieldApplicationFailed
from .changes import ChangeRecord, ChangeType, FieldOutcome
from .conversion import FieldConverter
from .delta import Delta, TableUpdate, compare_schemas
from .models import FieldDefinition, SchemaDefinition

if TYPE_CHECKING:
    from ..store.base import SchemaStore


class ReconciliationStatus(str, Enum):
    """Status of reconciliation operations."""

    SUCCESS = "success"
    PARTIAL = "partial"
    SKIPPED = "skipped"
    DRY_RUN = "dry_run"


@dataclass
class ReconciliationResult:
    """Result of a schema reconciliation run."""

    status: ReconciliationStatus
    destination_id: Optional[str]
    changes: List[ChangeRecord] = field(default_factory=list)
    delta: Optional[Delta] = None
    field_outcomes: List[FieldOutcome] = field(default_factory=list)
    execution_time_ms: float = 0.0

    @property
    def failed_fields(self) -> List[FieldOutcome]:
        """Field additions that failed and were skipped."""
        return [o for o in self.field_outcomes if not o.ok]

    @property
    def applied_changes(self) -> int:
        return len(self.changes)

    @property
    def expected_changes(self) -> int:
        """Changes the run set out to make."""
        if self.delta is not None:
            return self.delta.total_changes
        return self.applied_changes

    @property
    def is_complete(self) -> bool:
        """True when every planned change was applied."""
        if self.status == ReconciliationStatus.DRY_RUN:
            return False
        return not self.failed_fields and self.applied_changes >= self.expected_changes


class SchemaReconciler:
    """
    Core schema reconciliation engine for basesync.

    Either provisions a brand-new destination from the full source schema or
    updates an existing destination:
    - fetch the destination schema
    - compute the additive delta against the source
    - create missing tables (a failure aborts the run)
    - add missing fields (a failure is logged and skipped)

    All store calls are issued one at a time, in source order.
    """

    def __init__(
        self,
        store: "SchemaStore",
        context: Optional[SyncContext] = None,
        color_palette: Optional[List[str]] = None,
        rng: Optional[random.Random] = None,
        workspace_id: Optional[str] = None,
        base_name_prefix: str = "Client Base",
    ):
        self.store = store
        self.context = context or SyncContext()
        self.converter = FieldConverter(color_palette, rng)
        self.workspace_id = workspace_id
        self.base_name_prefix = base_name_prefix

    @property
    def logger(self):
        return self.context.logger

    async def reconcile(
        self,
        source: SchemaDefinition,
        destination_id: Optional[str] = None,
        force_create: bool = False,
        dry_run: bool = False,
    ) -> ReconciliationResult:
        """
        Reconcile a destination with a source schema.

        Args:
            source: Desired schema
            destination_id: Existing destination, or None to create a new one
            force_create: Create a new destination even if an id is given
            dry_run: Compute what would change without touching the store

        Returns:
            ReconciliationResult with the change log of this run

        Raises:
            DuplicateNameError: If the source schema has colliding names
            StoreUnavailable: If fetching, destination creation or table creation fails
        """
        start_time = time.time()
        source.validate_unique_names()

        self.logger.info("Starting schema synchronization")

        if not destination_id or force_create:
            result = await self._provision(source, dry_run)
        else:
            result = await self._update(source, destination_id, dry_run)

        result.execution_time_ms = (time.time() - start_time) * 1000

        self.logger.info(
            f"Schema synchronization finished for {result.destination_id or 'new base'}: "
            f"{result.status.value}, {result.applied_changes} changes "
            f"({result.execution_time_ms:.1f}ms)"
        )
        return result

    async def _provision(self, source: SchemaDefinition, dry_run: bool) -> ReconciliationResult:
        """Create a new destination seeded with every table and field."""
        payload = self.build_destination_payload(source)

        if dry_run:
            self.logger.info(
                f"DRY RUN: would create base '{payload['name']}' with "
                f"{len(source.tables)} tables and {source.total_fields()} fields"
            )
            return ReconciliationResult(status=ReconciliationStatus.DRY_RUN, destination_id=None)

        self.logger.info(f"Creating new base '{payload['name']}'")
        self.context.metrics.increment("store_calls")
        destination_id = await self.store.create_destination(payload)
        self.context.metrics.increment("bases_created")

        change = ChangeRecord(
            change_type=ChangeType.BASE_CREATED,
            destination_id=destination_id,
            name=payload["name"],
        )
        self.logger.info(f"New base created: {destination_id}")

        return ReconciliationResult(
            status=ReconciliationStatus.SUCCESS,
            destination_id=destination_id,
            changes=[change],
        )

    async def _update(
        self,
        source: SchemaDefinition,
        destination_id: str,
        dry_run: bool,
    ) -> ReconciliationResult:
        """Bring an existing destination up to date with additive changes."""
        self.logger.info(f"Analyzing existing base: {destination_id}")

        self.context.metrics.increment("store_calls")
        current = await self.store.fetch_schema(destination_id)

        delta = compare_schemas(current, source)

        if not delta.has_changes:
            self.logger.info(f"Base {destination_id} is already up to date")
            return ReconciliationResult(
                status=ReconciliationStatus.SKIPPED,
                destination_id=destination_id,
                delta=delta,
            )

        if dry_run:
            self.logger.info(
                f"DRY RUN: {delta.total_changes} changes pending for {destination_id}"
            )
            return ReconciliationResult(
                status=ReconciliationStatus.DRY_RUN,
                destination_id=destination_id,
                delta=delta,
            )

        self.logger.info(f"Found {delta.total_changes} changes to apply")
        outcomes: List[FieldOutcome] = []
        changes = await self.apply_delta(destination_id, delta, outcomes)

        failed = [o for o in outcomes if not o.ok]
        if failed:
            self.logger.warning(
                f"Applied {len(changes)} of {delta.total_changes} changes; "
                f"{len(failed)} fields could not be added"
            )
        else:
            self.logger.info(f"Applied {len(changes)} changes successfully")

        return ReconciliationResult(
            status=ReconciliationStatus.PARTIAL if failed else ReconciliationStatus.SUCCESS,
            destination_id=destination_id,
            changes=changes,
            delta=delta,
            field_outcomes=outcomes,
        )

    async def apply_delta(
        self,
        destination_id: str,
        delta: Delta,
        outcomes: Optional[List[FieldOutcome]] = None,
    ) -> List[ChangeRecord]:
        """
        Apply a delta to a destination.

        Tables are created first; a failed table creation propagates.  Fields
        are added afterwards, one at a time; a failed field is recorded in
        ``outcomes`` and the next field is attempted.

        Returns:
            Change records in the order the changes were applied
        """
        changes: List[ChangeRecord] = []
        if outcomes is None:
            outcomes = []

        for table in delta.tables_to_create:
            self.logger.info(f"Creating table: {table.name}")
            self.context.metrics.increment("store_calls")
            try:
                table_id = await self.store.create_table(
                    destination_id, self.converter.convert_table(table)
                )
            except Exception as e:
                self.logger.error(
                    f"Error creating table {table.name}: {e} "
                    f"({len(changes)} changes applied before the failure)"
                )
                raise

            self.context.metrics.increment("tables_created")
            changes.append(
                ChangeRecord(
                    change_type=ChangeType.TABLE_CREATED,
                    destination_id=destination_id,
                    name=table.name,
                    table_id=table_id,
                    table_name=table.name,
                )
            )

        for update in delta.tables_to_update:
            self.logger.info(
                f"Adding {len(update.fields)} fields to table {update.table_name} "
                f"({update.table_id})"
            )
            for source_field in update.fields:
                outcome = await self._add_field(destination_id, update, source_field)
                outcomes.append(outcome)

                if outcome.ok:
                    changes.append(
                        ChangeRecord(
                            change_type=ChangeType.FIELD_ADDED,
                            destination_id=destination_id,
                            name=source_field.name,
                            table_id=update.table_id,
                            table_name=update.table_name,
                            field_id=outcome.field_id,
                            field_type=source_field.type.value,
                        )
                    )

        return changes

    async def _add_field(
        self,
        destination_id: str,
        update: TableUpdate,
        source_field: FieldDefinition,
    ) -> FieldOutcome:
        """Add one field, turning a failure into a FieldOutcome instead of raising."""
        self.context.metrics.increment("store_calls")
        try:
            field_id = await self.store.add_field(
                destination_id, update.table_id, self.converter.convert(source_field)
            )
        except Exception as e:
            error = FieldApplicationFailed(
                table_id=update.table_id,
                field_name=source_field.name,
                field_type=source_field.type.value,
                cause=e,
            )
            self.context.metrics.increment("fields_failed")
            self.logger.error(f"Error adding field: {error}")
            return FieldOutcome(
                table_id=update.table_id,
                table_name=update.table_name,
                field=source_field,
                error=error,
            )

        self.context.metrics.increment("fields_added")
        self.logger.info(f"Field added: {update.table_name}.{source_field.name}")
        return FieldOutcome(
            table_id=update.table_id,
            table_name=update.table_name,
            field=source_field,
            field_id=field_id,
        )

    def build_destination_payload(self, source: SchemaDefinition) -> Dict[str, Any]:
        """Creation payload for a new destination holding the whole source schema."""
        name = source.name or (
            f"{self.base_name_prefix} - {datetime.now(timezone.utc).isoformat()}"
        )
        payload: Dict[str, Any] = {"name": name}

        workspace_id = source.workspace_id or self.workspace_id
        if workspace_id:
            payload["workspaceId"] = workspace_id

        payload["tables"] = [self.converter.convert_table(t) for t in source.tables]
        return payload
