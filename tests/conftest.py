"""
Pytest configuration and shared fixtures for basesync tests.
"""

import copy
import itertools
import random
from typing import Any, Dict, Iterable, List
from unittest.mock import AsyncMock

import pytest

from basesync.config import AirtableConfig, BaseSyncConfig
from basesync.context import SyncContext
from basesync.exceptions import StoreUnavailable
from basesync.schema.models import SchemaDefinition
from basesync.store.base import SchemaStore


# ============================================================================
# In-memory store
# ============================================================================

class FakeSchemaStore(SchemaStore):
    """Schema store that keeps bases in memory and records every call."""

    def __init__(self, fail_fields: Iterable[str] = (), fail_tables: Iterable[str] = ()):
        super().__init__()
        self.bases: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List[tuple] = []
        self.fail_fields = set(fail_fields)
        self.fail_tables = set(fail_tables)
        self.closed = False
        self._ids = itertools.count(1)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}{next(self._ids):04d}"

    def _field_record(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        record = {"id": self._next_id("fld"), "name": payload["name"], "type": payload["type"]}
        if "options" in payload:
            record["options"] = payload["options"]
        return record

    def _table_record(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": self._next_id("tbl"),
            "name": payload["name"],
            "fields": [self._field_record(f) for f in payload.get("fields", [])],
        }

    def seed_base(self, base_id: str, tables: Dict[str, List[str]]) -> None:
        """Create a base whose tables hold single line text fields."""
        self.bases[base_id] = [
            self._table_record(
                {
                    "name": name,
                    "fields": [{"name": f, "type": "singleLineText"} for f in fields],
                }
            )
            for name, fields in tables.items()
        ]

    def mutation_calls(self) -> List[tuple]:
        return [c for c in self.calls if c[0] != "fetch_schema"]

    async def fetch_schema(self, destination_id: str) -> SchemaDefinition:
        self.calls.append(("fetch_schema", destination_id))
        if destination_id not in self.bases:
            raise StoreUnavailable(
                f"Base {destination_id} not found", operation="fetch_schema", status_code=404
            )
        return SchemaDefinition.from_api(
            destination_id, {"tables": copy.deepcopy(self.bases[destination_id])}
        )

    async def create_destination(self, schema_payload: Dict[str, Any]) -> str:
        self.calls.append(("create_destination", schema_payload))
        base_id = self._next_id("app")
        self.bases[base_id] = [self._table_record(t) for t in schema_payload["tables"]]
        return base_id

    async def create_table(self, destination_id: str, table_payload: Dict[str, Any]) -> str:
        self.calls.append(("create_table", destination_id, table_payload))
        if table_payload["name"] in self.fail_tables:
            raise StoreUnavailable("Table creation rejected", operation="create_table", status_code=422)
        record = self._table_record(table_payload)
        self.bases[destination_id].append(record)
        return record["id"]

    async def add_field(
        self,
        destination_id: str,
        table_id: str,
        field_payload: Dict[str, Any],
    ) -> str:
        self.calls.append(("add_field", destination_id, table_id, field_payload))
        if field_payload["name"] in self.fail_fields:
            raise StoreUnavailable("Invalid field options", operation="add_field", status_code=422)
        for table in self.bases[destination_id]:
            if table["id"] == table_id:
                record = self._field_record(field_payload)
                table["fields"].append(record)
                return record["id"]
        raise StoreUnavailable(f"Table {table_id} not found", operation="add_field", status_code=404)

    async def close(self) -> None:
        self.closed = True


# ============================================================================
# Schema fixtures
# ============================================================================

@pytest.fixture
def source_schema_data() -> Dict[str, Any]:
    """Source schema in the camelCase shape schema files use."""
    return {
        "name": "Acme Bookkeeping",
        "workspaceId": "wspTEST",
        "tables": [
            {
                "name": "Accounts",
                "description": "Chart of accounts for expense categorization",
                "fields": [
                    {"name": "Name", "type": "singleLineText"},
                    {
                        "name": "Category",
                        "type": "singleSelect",
                        "options": ["Expense", {"name": "Income", "color": "greenLight2"}],
                    },
                    {"name": "Balance", "type": "currency", "precision": 2},
                ],
            },
            {
                "name": "Vendors",
                "fields": [
                    {"name": "Name", "type": "singleLineText"},
                    {
                        "name": "Default Account",
                        "type": "multipleRecordLinks",
                        "linkedTableId": "tblAccounts",
                        "prefersSingleRecordLink": True,
                    },
                    {
                        "name": "Notes",
                        "type": "multilineText",
                        "description": "Free-form notes",
                    },
                ],
            },
        ],
    }


@pytest.fixture
def source_schema(source_schema_data) -> SchemaDefinition:
    return SchemaDefinition.from_dict(source_schema_data)


@pytest.fixture
def api_tables_payload() -> Dict[str, Any]:
    """Table listing as returned by GET /meta/bases/{id}/tables."""
    return {
        "tables": [
            {
                "id": "tblAccounts",
                "name": "Accounts",
                "primaryFieldId": "fldName",
                "fields": [
                    {"id": "fldName", "name": "Name", "type": "singleLineText"},
                    {
                        "id": "fldCategory",
                        "name": "Category",
                        "type": "singleSelect",
                        "options": {
                            "choices": [
                                {"id": "selExp", "name": "Expense", "color": "redLight2"},
                                {"id": "selInc", "name": "Income", "color": "greenLight2"},
                            ]
                        },
                    },
                    {
                        "id": "fldLegacy",
                        "name": "Legacy Code",
                        "type": "someFutureType",
                    },
                ],
                "views": [{"id": "viwGrid", "name": "Grid view", "type": "grid"}],
            }
        ]
    }


# ============================================================================
# Store and context fixtures
# ============================================================================

@pytest.fixture
def fake_store() -> FakeSchemaStore:
    return FakeSchemaStore()


@pytest.fixture
def mock_store() -> AsyncMock:
    """Store mock whose coroutine methods can be configured per test."""
    store = AsyncMock(spec=SchemaStore)
    store.create_destination.return_value = "appNEW"
    store.create_table.return_value = "tblNEW"
    store.add_field.return_value = "fldNEW"
    return store


@pytest.fixture
def sync_context() -> SyncContext:
    return SyncContext.create("test")


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def airtable_config() -> AirtableConfig:
    return AirtableConfig(
        api_key="patTEST",
        api_url="https://api.airtable.com/v0",
        timeout=5,
        max_retries=2,
        retry_delay=0.01,
    )


@pytest.fixture
def basesync_config(airtable_config) -> BaseSyncConfig:
    return BaseSyncConfig(airtable=airtable_config)


def make_schema(tables: Dict[str, List[str]], with_ids: bool = False) -> SchemaDefinition:
    """Build a schema of single line text fields from a name mapping."""
    return SchemaDefinition.from_dict(
        {
            "tables": [
                {
                    "id": f"tbl{name.replace(' ', '')}" if with_ids else None,
                    "name": name,
                    "fields": [{"name": f, "type": "singleLineText"} for f in fields],
                }
                for name, fields in tables.items()
            ]
        }
    )


@pytest.fixture
def schema_factory():
    return make_schema


@pytest.fixture
def fake_store_factory():
    """The in-memory store class, for tests that need custom failure sets."""
    return FakeSchemaStore
