"""
Delta computation between a destination schema and a source schema.

The delta is additive only: tables missing from the destination and fields
missing from existing destination tables.  Nothing is ever removed or altered.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from .models import FieldDefinition, SchemaDefinition, TableDefinition


@dataclass
class TableUpdate:
    """Fields to add to a table that already exists in the destination."""

    table_id: str
    table_name: str
    fields: List[FieldDefinition]


@dataclass
class Delta:
    """Additive structural difference from destination to source."""

    tables_to_create: List[TableDefinition] = field(default_factory=list)
    tables_to_update: List[TableUpdate] = field(default_factory=list)

    @property
    def fields_to_add(self) -> Dict[str, List[FieldDefinition]]:
        """Missing fields keyed by destination table id, in delta order."""
        return {u.table_id: u.fields for u in self.tables_to_update}

    @property
    def total_changes(self) -> int:
        return len(self.tables_to_create) + sum(
            len(u.fields) for u in self.tables_to_update
        )

    @property
    def has_changes(self) -> bool:
        return self.total_changes > 0

    def summary(self) -> Dict[str, int]:
        return {
            "tables_to_create": len(self.tables_to_create),
            "tables_to_update": len(self.tables_to_update),
            "fields_to_add": sum(len(u.fields) for u in self.tables_to_update),
            "total_changes": self.total_changes,
        }


def find_missing_fields(
    current_fields: List[FieldDefinition],
    source_fields: List[FieldDefinition],
) -> List[FieldDefinition]:
    """Fields present in the source but absent (ignoring case) from the current list."""
    current_names = {f.name.lower() for f in current_fields}
    return [f for f in source_fields if f.name.lower() not in current_names]


def compare_schemas(current: SchemaDefinition, source: SchemaDefinition) -> Delta:
    """
    Compute the delta that brings ``current`` up to ``source``.

    Tables are matched by lower-cased name; a name shared by several current
    tables resolves to the last of them.  Source order is preserved.
    """
    delta = Delta()

    current_tables = {table.name.lower(): table for table in current.tables}

    for source_table in source.tables:
        current_table = current_tables.get(source_table.name.lower())

        if current_table is None:
            delta.tables_to_create.append(source_table)
            continue

        missing = find_missing_fields(current_table.fields, source_table.fields)
        if missing:
            delta.tables_to_update.append(
                TableUpdate(
                    table_id=current_table.id or current_table.name,
                    table_name=current_table.name,
                    fields=missing,
                )
            )

    return delta
