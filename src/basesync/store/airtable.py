"""
Airtable schema store client implementation.
"""

import asyncio
import json
from typing import Any, Dict, Optional

import aiohttp

from .base import SchemaStore
from ..config import AirtableConfig
from ..exceptions import (
    ConfigurationError,
    RateLimitError,
    SchemaDefinitionError,
    StoreUnavailable,
)
from ..schema.models import SchemaDefinition


class AirtableSchemaStore(SchemaStore):
    """
    Schema store backed by the Airtable metadata API.

    Uses the ``/meta/bases`` endpoints to list tables, create bases, create
    tables and add fields.  Rate-limited requests (HTTP 429) are retried;
    every other failure surfaces as ``StoreUnavailable``.
    """

    def __init__(self, config: AirtableConfig):
        """Initialize Airtable client."""
        super().__init__()

        if not config.api_key:
            raise ConfigurationError("Airtable API key is required")

        self.config = config
        self.api_key = config.api_key
        self.meta_url = config.meta_url

        # Session for connection reuse
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                    "User-Agent": "basesync/0.1",
                },
            )
        return self._session

    async def fetch_schema(self, destination_id: str) -> SchemaDefinition:
        """Fetch the table listing of a base."""
        data = await self._request(
            "GET", f"{self.meta_url}/bases/{destination_id}/tables", "fetch_schema"
        )
        try:
            schema = SchemaDefinition.from_api(destination_id, data)
        except SchemaDefinitionError as e:
            raise StoreUnavailable(
                f"Malformed schema response for base {destination_id}",
                operation="fetch_schema",
                cause=e,
            ) from e

        self.logger.debug(
            f"Fetched schema of {destination_id}: {len(schema.tables)} tables, "
            f"{schema.total_fields()} fields"
        )
        return schema

    async def create_destination(self, schema_payload: Dict[str, Any]) -> str:
        """Create a new base."""
        data = await self._request(
            "POST", f"{self.meta_url}/bases", "create_destination", schema_payload
        )
        return self._extract_id(data, "create_destination")

    async def create_table(self, destination_id: str, table_payload: Dict[str, Any]) -> str:
        """Create a table in an existing base."""
        data = await self._request(
            "POST",
            f"{self.meta_url}/bases/{destination_id}/tables",
            "create_table",
            table_payload,
        )
        return self._extract_id(data, "create_table")

    async def add_field(
        self,
        destination_id: str,
        table_id: str,
        field_payload: Dict[str, Any],
    ) -> str:
        """Add a field to an existing table."""
        data = await self._request(
            "POST",
            f"{self.meta_url}/bases/{destination_id}/tables/{table_id}/fields",
            "add_field",
            field_payload,
        )
        return self._extract_id(data, "add_field")

    async def _request(
        self,
        method: str,
        url: str,
        operation: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Perform a request, retrying while the API rate limits us.

        Raises:
            RateLimitError: If still rate limited after all retries
            StoreUnavailable: On any other HTTP, network or decoding failure
        """
        session = await self._get_session()
        retry_count = 0

        while True:
            try:
                async with session.request(method, url, json=payload) as response:
                    if response.status == 429:
                        retry_after = self._retry_after(response, retry_count)
                        if retry_count < self.config.max_retries:
                            self.logger.warning(
                                f"Rate limit hit during {operation}, retrying after "
                                f"{retry_after}s (attempt {retry_count + 1})"
                            )
                            await asyncio.sleep(retry_after)
                            retry_count += 1
                            continue
                        raise RateLimitError(retry_after=retry_after, operation=operation)

                    if response.status >= 400:
                        body = await response.text()
                        raise StoreUnavailable(
                            f"Airtable API error during {operation}: "
                            f"{self._error_message(body, response.status)}",
                            operation=operation,
                            status_code=response.status,
                            response_body=body,
                        )

                    try:
                        return await response.json()
                    except (aiohttp.ContentTypeError, json.JSONDecodeError) as e:
                        raise StoreUnavailable(
                            f"Invalid JSON in response to {operation}",
                            operation=operation,
                            status_code=response.status,
                            cause=e,
                        ) from e

            except aiohttp.ClientError as e:
                raise StoreUnavailable(
                    f"Network error during {operation}: {e}",
                    operation=operation,
                    cause=e,
                ) from e
            except asyncio.TimeoutError as e:
                raise StoreUnavailable(
                    f"Timeout during {operation} (timeout: {self.config.timeout}s)",
                    operation=operation,
                    cause=e,
                ) from e

    def _retry_after(self, response: aiohttp.ClientResponse, retry_count: int) -> float:
        """Seconds to wait before retrying a rate-limited request."""
        header = response.headers.get("Retry-After")
        if header:
            try:
                return float(header)
            except ValueError:
                pass
        return self.config.retry_delay * (2 ** retry_count)

    @staticmethod
    def _error_message(body: str, status: int) -> str:
        """Pull Airtable's error message out of an error body."""
        try:
            error = json.loads(body).get("error")
        except (ValueError, AttributeError):
            return f"HTTP {status}"

        if isinstance(error, dict):
            return error.get("message") or error.get("type") or f"HTTP {status}"
        if isinstance(error, str):
            return error
        return f"HTTP {status}"

    @staticmethod
    def _extract_id(data: Any, operation: str) -> str:
        if not isinstance(data, dict) or not data.get("id"):
            raise StoreUnavailable(
                f"Response to {operation} has no id", operation=operation
            )
        return data["id"]

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(meta_url={self.meta_url})"
