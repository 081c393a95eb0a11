"""
Conversion of field and table definitions into store creation payloads.
"""

import random
from typing import Any, Callable, Dict, List, Optional

from ..config import DEFAULT_COLOR_PALETTE
from .models import FieldDefinition, FieldType, TableDefinition


OptionBuilder = Callable[["FieldConverter", FieldDefinition], Optional[Dict[str, Any]]]


def _select_options(converter: "FieldConverter", field: FieldDefinition) -> Optional[Dict[str, Any]]:
    if not field.options:
        return None
    return {
        "choices": [
            {"name": choice.name, "color": choice.color or converter.random_color()}
            for choice in field.options
        ]
    }


def _numeric_options(converter: "FieldConverter", field: FieldDefinition) -> Optional[Dict[str, Any]]:
    if field.precision is None:
        return None
    return {"precision": field.precision}


def _record_link_options(converter: "FieldConverter", field: FieldDefinition) -> Optional[Dict[str, Any]]:
    if not field.linked_table_id:
        return None
    return {
        "linkedTableId": field.linked_table_id,
        "prefersSingleRecordLink": bool(field.prefers_single_record_link),
    }


def _formula_options(converter: "FieldConverter", field: FieldDefinition) -> Optional[Dict[str, Any]]:
    if not field.formula:
        return None
    return {"formula": field.formula}


def _rollup_options(converter: "FieldConverter", field: FieldDefinition) -> Optional[Dict[str, Any]]:
    if not field.rollup:
        return None
    return dict(field.rollup)


class FieldConverter:
    """
    Shapes field definitions into the payloads the store accepts.

    The same conversion is used for fields of a new table and for fields added
    to an existing table.  Select choices without a color get one picked at
    random from the palette.
    """

    # Registry of option builders per field type; other types carry no options
    _OPTION_BUILDERS: Dict[FieldType, OptionBuilder] = {
        FieldType.SINGLE_SELECT: _select_options,
        FieldType.MULTIPLE_SELECTS: _select_options,
        FieldType.NUMBER: _numeric_options,
        FieldType.CURRENCY: _numeric_options,
        FieldType.PERCENT: _numeric_options,
        FieldType.MULTIPLE_RECORD_LINKS: _record_link_options,
        FieldType.FORMULA: _formula_options,
        FieldType.ROLLUP: _rollup_options,
    }

    def __init__(
        self,
        color_palette: Optional[List[str]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.color_palette = list(color_palette or DEFAULT_COLOR_PALETTE)
        self.rng = rng or random.Random()

    def random_color(self) -> str:
        return self.rng.choice(self.color_palette)

    def convert(self, field: FieldDefinition) -> Dict[str, Any]:
        """Convert a single field into a creation payload."""
        payload: Dict[str, Any] = {
            "name": field.name,
            "type": field.type.value,
        }
        if field.description is not None:
            payload["description"] = field.description

        builder = self._OPTION_BUILDERS.get(field.type)
        if builder is not None:
            options = builder(self, field)
            if options is not None:
                payload["options"] = options

        return payload

    def convert_fields(self, fields: List[FieldDefinition]) -> List[Dict[str, Any]]:
        return [self.convert(f) for f in fields]

    def convert_table(self, table: TableDefinition) -> Dict[str, Any]:
        """Convert a table and all of its fields into a creation payload."""
        payload: Dict[str, Any] = {"name": table.name}
        if table.description is not None:
            payload["description"] = table.description
        payload["fields"] = self.convert_fields(table.fields)
        return payload
