"""
Change records produced while applying schema changes.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from ..exceptions import FieldApplicationFailed
from .models import FieldDefinition


class ChangeType(str, Enum):
    """Kinds of applied schema changes."""

    BASE_CREATED = "BASE_CREATED"
    TABLE_CREATED = "TABLE_CREATED"
    FIELD_ADDED = "FIELD_ADDED"


@dataclass
class ChangeRecord:
    """One applied mutation of the destination."""

    change_type: ChangeType
    destination_id: str
    name: str

    table_id: Optional[str] = None
    table_name: Optional[str] = None
    field_id: Optional[str] = None
    field_type: Optional[str] = None

    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def describe(self) -> str:
        """One-line description used in reports."""
        if self.change_type == ChangeType.BASE_CREATED:
            return f"{self.name} ({self.destination_id})"
        if self.change_type == ChangeType.FIELD_ADDED:
            prefix = f"{self.table_name}." if self.table_name else ""
            return f"{prefix}{self.name} ({self.field_type})"
        return self.name

    def to_dict(self) -> dict:
        return {
            "type": self.change_type.value,
            "destination_id": self.destination_id,
            "name": self.name,
            "table_id": self.table_id,
            "table_name": self.table_name,
            "field_id": self.field_id,
            "field_type": self.field_type,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class FieldOutcome:
    """Result of adding one field: a new field id or the failure."""

    table_id: str
    table_name: str
    field: FieldDefinition
    field_id: Optional[str] = None
    error: Optional[FieldApplicationFailed] = None

    @property
    def ok(self) -> bool:
        return self.error is None
