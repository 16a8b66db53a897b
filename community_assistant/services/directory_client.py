"""Async GraphQL client for the community directory (residents and locations).

The directory is read-only from this service's point of view: three queries,
no mutations.  Results are never cached and failed calls are never retried;
every failure surfaces as a ``DataSourceError``.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from community_assistant.config import GRAPHQL_TIMEOUT_SECONDS, GRAPHQL_URL
from community_assistant.services.metrics import metrics

logger = logging.getLogger(__name__)


# ── Queries ──────────────────────────────────────────────────────────

_RESIDENT_FIELDS = """
    id
    firstName
    lastName
    location {
        id
        name
    }
    devices {
        id
        name
        flavor
    }
    pictureUrl
"""

GET_ALL_RESIDENTS = f"""
query GetAllResidents {{
    residents {{{_RESIDENT_FIELDS}    }}
}}
"""

GET_RESIDENTS_BY_NAME = f"""
query GetResidentsByName($firstName: String, $lastName: String) {{
    residents(filter: {{ firstName: $firstName, lastName: $lastName }}) {{{_RESIDENT_FIELDS}    }}
}}
"""

GET_LOCATIONS_BY_NAME = """
query GetLocationsByName($name: String) {
    locations(filter: { name: $name }) {
        id
        name
        residents {
            id
            firstName
            lastName
            name
        }
        devices {
            id
            name
            flavor
        }
    }
}
"""


# ── Records ──────────────────────────────────────────────────────────


class _Record(BaseModel):
    """Directory record: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Device(_Record):
    id: str
    name: str | None = None
    flavor: str | None = None


class LocationRef(_Record):
    id: str
    name: str | None = None


class ResidentRef(_Record):
    id: str
    first_name: str | None = None
    last_name: str | None = None
    name: str | None = None


class Resident(_Record):
    id: str
    first_name: str | None = None
    last_name: str | None = None
    location: LocationRef | None = None
    devices: list[Device] = []
    picture_url: str | None = None


class Location(_Record):
    id: str
    name: str | None = None
    residents: list[ResidentRef] = []
    devices: list[Device] = []


_RESIDENTS = TypeAdapter(list[Resident])
_LOCATIONS = TypeAdapter(list[Location])


class DataSourceError(Exception):
    """Raised when a directory query fails (transport, HTTP or GraphQL error)."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class DirectoryClient:
    """Thin async wrapper around the community GraphQL endpoint."""

    def __init__(
        self,
        url: str | None = None,
        *,
        timeout: float | None = None,
    ):
        self._url = url or GRAPHQL_URL
        self._client = httpx.AsyncClient(
            headers={"Content-Type": "application/json"},
            timeout=timeout or GRAPHQL_TIMEOUT_SECONDS,
        )

    @property
    def url(self) -> str:
        return self._url

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── Internal helpers ─────────────────────────────────────────────

    async def _query(
        self,
        operation: str,
        query: str,
        variables: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """POST a GraphQL operation and return its ``data`` object."""
        payload: dict[str, Any] = {"operationName": operation, "query": query}
        if variables is not None:
            payload["variables"] = variables

        try:
            with metrics.track("graphql", operation):
                return await self._post(operation, payload)
        except DataSourceError as exc:
            logger.error("Error running %s against %s: %s", operation, self._url, exc)
            raise

    async def _post(self, operation: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._client.post(self._url, json=payload)
        except httpx.HTTPError as exc:
            raise DataSourceError(
                f"GraphQL request {operation} failed: {type(exc).__name__}: {exc}"
            ) from exc

        if response.status_code >= 400:
            raise DataSourceError(
                f"GraphQL endpoint returned {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise DataSourceError(
                f"GraphQL endpoint returned a non-JSON body for {operation}",
                status_code=response.status_code,
            ) from exc

        errors = body.get("errors")
        if errors:
            messages = "; ".join(
                err.get("message", str(err)) if isinstance(err, dict) else str(err)
                for err in errors
            )
            raise DataSourceError(f"GraphQL {operation} failed: {messages}")

        data = body.get("data")
        if not isinstance(data, dict):
            raise DataSourceError(f"GraphQL {operation} returned no data")
        return data

    @staticmethod
    def _parse(adapter: TypeAdapter, data: dict[str, Any], field: str, operation: str) -> list:
        try:
            return adapter.validate_python(data.get(field) or [])
        except PydanticValidationError as exc:
            logger.error("Unexpected %s payload shape: %s", operation, exc)
            raise DataSourceError(f"GraphQL {operation} returned malformed {field}: {exc}") from exc

    # ── Public API ───────────────────────────────────────────────────

    async def get_all_residents(self) -> list[Resident]:
        """Return every resident in the community."""
        data = await self._query("GetAllResidents", GET_ALL_RESIDENTS)
        return self._parse(_RESIDENTS, data, "residents", "GetAllResidents")

    async def get_residents_by_name(
        self,
        first_name: str | None,
        last_name: str | None,
    ) -> list[Resident]:
        """Return residents matching a first and/or last name filter."""
        data = await self._query(
            "GetResidentsByName",
            GET_RESIDENTS_BY_NAME,
            {"firstName": first_name, "lastName": last_name},
        )
        return self._parse(_RESIDENTS, data, "residents", "GetResidentsByName")

    async def get_locations_by_name(self, name: str | None) -> list[Location]:
        """Return locations whose name matches, with their residents and devices."""
        data = await self._query("GetLocationsByName", GET_LOCATIONS_BY_NAME, {"name": name})
        return self._parse(_LOCATIONS, data, "locations", "GetLocationsByName")


# ── Module-level singleton ──────────────────────────────────────────
_client: DirectoryClient | None = None
_client_lock = threading.Lock()


def get_directory_client() -> DirectoryClient:
    """Return the shared DirectoryClient, creating it on first use."""
    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                _client = DirectoryClient()
    return _client


async def close_directory_client() -> None:
    """Close the shared client (if one was created)."""
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
