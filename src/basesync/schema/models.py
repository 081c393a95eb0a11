"""
Schema definition models for basesync.

Source schemas (what a base should contain) and destination schemas (what the
store reports a base contains) share the same models.  Source schemas are
loaded from JSON or YAML files and may use the store's camelCase keys.
"""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..exceptions import DuplicateNameError, SchemaDefinitionError


logger = logging.getLogger(__name__)


class FieldType(str, Enum):
    """Airtable field type tags."""

    SINGLE_LINE_TEXT = "singleLineText"
    MULTILINE_TEXT = "multilineText"
    RICH_TEXT = "richText"
    EMAIL = "email"
    URL = "url"
    PHONE_NUMBER = "phoneNumber"
    NUMBER = "number"
    CURRENCY = "currency"
    PERCENT = "percent"
    RATING = "rating"
    DURATION = "duration"
    AUTO_NUMBER = "autoNumber"
    CHECKBOX = "checkbox"
    DATE = "date"
    DATE_TIME = "dateTime"
    SINGLE_SELECT = "singleSelect"
    MULTIPLE_SELECTS = "multipleSelects"
    MULTIPLE_RECORD_LINKS = "multipleRecordLinks"
    MULTIPLE_ATTACHMENTS = "multipleAttachments"
    SINGLE_COLLABORATOR = "singleCollaborator"
    MULTIPLE_COLLABORATORS = "multipleCollaborators"
    FORMULA = "formula"
    ROLLUP = "rollup"
    COUNT = "count"
    LOOKUP = "lookup"
    MULTIPLE_LOOKUP_VALUES = "multipleLookupValues"
    CREATED_TIME = "createdTime"
    LAST_MODIFIED_TIME = "lastModifiedTime"
    CREATED_BY = "createdBy"
    LAST_MODIFIED_BY = "lastModifiedBy"
    BARCODE = "barcode"
    BUTTON = "button"
    EXTERNAL_SYNC_SOURCE = "externalSyncSource"
    AI_TEXT = "aiText"
    UNKNOWN = "unknown"

    @classmethod
    def from_tag(cls, tag: Optional[str]) -> "FieldType":
        """Map a store type tag to a FieldType, tolerating tags we don't know."""
        try:
            return cls(tag)
        except ValueError:
            logger.debug(f"Unrecognised field type tag: {tag!r}")
            return cls.UNKNOWN

    @property
    def is_select(self) -> bool:
        return self in (FieldType.SINGLE_SELECT, FieldType.MULTIPLE_SELECTS)

    @property
    def is_numeric(self) -> bool:
        return self in (FieldType.NUMBER, FieldType.CURRENCY, FieldType.PERCENT)


class SelectChoice(BaseModel):
    """A choice of a single or multiple select field."""

    model_config = ConfigDict(extra="ignore")

    name: str
    color: Optional[str] = None


class FieldDefinition(BaseModel):
    """A field of a table, with its type-specific options."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(None, description="Store-assigned field id")
    name: str = Field(..., min_length=1, description="Field name")
    type: FieldType = Field(..., description="Field type tag")
    description: Optional[str] = Field(None, description="Field description")

    # Type-specific options
    options: Optional[List[SelectChoice]] = Field(
        None, description="Choices of a select field"
    )
    precision: Optional[int] = Field(None, description="Numeric precision")
    linked_table_id: Optional[str] = Field(
        None, alias="linkedTableId", description="Table a record link points at"
    )
    prefers_single_record_link: Optional[bool] = Field(
        None, alias="prefersSingleRecordLink"
    )
    formula: Optional[str] = Field(None, description="Formula expression")
    rollup: Optional[Dict[str, Any]] = Field(
        None, description="Rollup options, passed to the store verbatim"
    )

    @field_validator("options", mode="before")
    @classmethod
    def _coerce_choices(cls, v: Any) -> Any:
        # Airtable shape {"choices": [...]} or a plain list of names/choices
        if isinstance(v, dict):
            v = v.get("choices")
        if isinstance(v, list):
            return [{"name": item} if isinstance(item, str) else item for item in v]
        return v


class TableDefinition(BaseModel):
    """A table and its ordered fields."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(None, description="Store-assigned table id")
    name: str = Field(..., min_length=1, description="Table name")
    description: Optional[str] = Field(None, description="Table description")
    fields: List[FieldDefinition] = Field(default_factory=list)

    def field_names(self) -> List[str]:
        """Lower-cased field names in table order."""
        return [f.name.lower() for f in self.fields]


class SchemaDefinition(BaseModel):
    """A named collection of tables."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(None, description="Destination id, when fetched")
    name: Optional[str] = Field(None, description="Base name")
    workspace_id: Optional[str] = Field(None, alias="workspaceId")
    tables: List[TableDefinition] = Field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SchemaDefinition":
        """Build a schema from already-parsed data."""
        if not isinstance(data, dict):
            raise SchemaDefinitionError(
                f"Schema definition must be a mapping, got {type(data).__name__}"
            )
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise SchemaDefinitionError(f"Invalid schema definition: {e}") from e

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "SchemaDefinition":
        """Load a source schema from a JSON or YAML file."""
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                if path.suffix.lower() in (".yaml", ".yml"):
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except FileNotFoundError:
            raise SchemaDefinitionError(f"Schema file not found: {path}")
        except (json.JSONDecodeError, yaml.YAMLError, UnicodeDecodeError) as e:
            raise SchemaDefinitionError(f"Could not parse schema file {path}: {e}")

        return cls.from_dict(data)

    @classmethod
    def from_api(cls, destination_id: str, payload: Dict[str, Any]) -> "SchemaDefinition":
        """
        Build a destination schema from the store's table listing.

        Args:
            destination_id: Base the listing belongs to
            payload: Response body of ``GET /meta/bases/{id}/tables``

        Raises:
            SchemaDefinitionError: If the payload does not look like a table listing
        """
        tables = payload.get("tables") if isinstance(payload, dict) else None
        if not isinstance(tables, list):
            raise SchemaDefinitionError("Table listing has no 'tables' array")

        try:
            return cls(
                id=destination_id,
                tables=[
                    TableDefinition(
                        id=table.get("id"),
                        name=table["name"],
                        description=table.get("description"),
                        fields=[_field_from_api(f) for f in table.get("fields", [])],
                    )
                    for table in tables
                ],
            )
        except (KeyError, TypeError, AttributeError, ValidationError) as e:
            raise SchemaDefinitionError(f"Malformed table listing: {e}") from e

    def table_names(self) -> List[str]:
        return [t.name for t in self.tables]

    def total_fields(self) -> int:
        return sum(len(t.fields) for t in self.tables)

    def validate_unique_names(self) -> None:
        """
        Reject names that collide once case is ignored.

        Raises:
            DuplicateNameError: If two tables, or two fields of one table, collide
            SchemaDefinitionError: If a field uses a type the store can't create
        """
        seen_tables = set()
        for table in self.tables:
            key = table.name.lower()
            if key in seen_tables:
                raise DuplicateNameError("table", table.name)
            seen_tables.add(key)

            seen_fields = set()
            for field in table.fields:
                field_key = field.name.lower()
                if field_key in seen_fields:
                    raise DuplicateNameError("field", field.name, table.name)
                seen_fields.add(field_key)

                if field.type == FieldType.UNKNOWN:
                    raise SchemaDefinitionError(
                        f"Field '{field.name}' in table '{table.name}' has no "
                        f"recognised type"
                    )


def _field_from_api(raw: Dict[str, Any]) -> FieldDefinition:
    """Map a field from the store's table listing onto a FieldDefinition."""
    field_type = FieldType.from_tag(raw.get("type"))
    options = raw.get("options") or {}

    extras: Dict[str, Any] = {}
    if field_type.is_select and options.get("choices"):
        extras["options"] = options["choices"]
    elif field_type.is_numeric and "precision" in options:
        extras["precision"] = options["precision"]
    elif field_type == FieldType.MULTIPLE_RECORD_LINKS:
        extras["linked_table_id"] = options.get("linkedTableId")
        extras["prefers_single_record_link"] = options.get("prefersSingleRecordLink")
    elif field_type == FieldType.FORMULA and "formula" in options:
        extras["formula"] = options["formula"]
    elif field_type == FieldType.ROLLUP and options:
        extras["rollup"] = options

    return FieldDefinition(
        id=raw.get("id"),
        name=raw["name"],
        type=field_type,
        description=raw.get("description"),
        **extras,
    )
