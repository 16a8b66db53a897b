"""Directory tools exposed to the chat model.

Each tool has a static OpenAI function description (what the model sees) and
a typed handler (what runs when the model calls it).  ``handle_tool_call``
never raises: dispatch and data-source failures come back to the model as the
text of the tool result, so the conversation can carry on.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, NamedTuple

from langchain_core.messages import AIMessage, ToolMessage
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from community_assistant.services.directory_client import (
    DataSourceError,
    DirectoryClient,
    get_directory_client,
)

logger = logging.getLogger(__name__)

UNKNOWN_FUNCTION = "Unknown function"


# ── Descriptions (sent to the model with every request) ──────────────

GET_ALL_RESIDENTS_DESCRIPTION: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": "getAllResidents",
        "description": "Get all residents. Returns a list of all residents.",
        "strict": True,
        "parameters": {
            "type": "object",
            "properties": {},
            "required": [],
            "additionalProperties": False,
        },
    },
}

GET_RESIDENTS_BY_NAME_DESCRIPTION: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": "getResidentsByName",
        "description": (
            "Search for residents by their first name and/or last name. Returns a list "
            "of residents that match the search criteria. In the results we can find "
            "where does the resident live (location)."
        ),
        "strict": True,
        "parameters": {
            "type": "object",
            "properties": {
                "firstName": {
                    "type": "string",
                    "description": "The first name to search for",
                },
                "lastName": {
                    "type": "string",
                    "description": "The last name to search for",
                },
            },
            "required": ["firstName", "lastName"],
            "additionalProperties": False,
        },
    },
}

GET_LOCATIONS_BY_NAME_DESCRIPTION: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": "getLocationsByName",
        "description": (
            "Search for locations by their name. Returns a list of locations that match "
            "the search criteria. In the results we can find who lives in the location "
            "(residents)."
        ),
        "strict": True,
        "parameters": {
            "type": "object",
            "properties": {
                "name": {
                    "type": "string",
                    "description": "The name to search for",
                },
            },
            "required": ["name"],
            "additionalProperties": False,
        },
    },
}

TOOL_DESCRIPTIONS: list[dict[str, Any]] = [
    GET_ALL_RESIDENTS_DESCRIPTION,
    GET_RESIDENTS_BY_NAME_DESCRIPTION,
    GET_LOCATIONS_BY_NAME_DESCRIPTION,
]


# ── Errors ───────────────────────────────────────────────────────────


class DispatchError(Exception):
    """A tool call could not be dispatched (bad arguments, unknown tool)."""


class UnknownToolError(DispatchError):
    """The model asked for a tool that is not registered."""


# ── Typed requests ───────────────────────────────────────────────────


class ToolCallRequest(BaseModel):
    """One tool call as emitted by the model: id, name and raw JSON arguments."""

    id: str
    name: str
    arguments: str = "{}"

    @classmethod
    def from_ai_message(cls, message: AIMessage) -> list[ToolCallRequest]:
        """Extract the message's tool calls in the order the model sent them.

        The provider's raw ``tool_calls`` keep both the original order and the
        unparsed argument string; LangChain's parsed ``tool_calls`` and
        ``invalid_tool_calls`` are used when the raw form is absent.
        """
        raw = message.additional_kwargs.get("tool_calls") or []
        if raw:
            return [
                cls(
                    id=call["id"],
                    name=call.get("function", {}).get("name", ""),
                    arguments=call.get("function", {}).get("arguments") or "{}",
                )
                for call in raw
            ]

        requests = [
            cls(id=call["id"], name=call["name"], arguments=json.dumps(call.get("args") or {}))
            for call in message.tool_calls
        ]
        requests.extend(
            cls(id=call.get("id") or "", name=call.get("name") or "", arguments=call.get("args") or "")
            for call in message.invalid_tool_calls
        )
        return requests


class _Arguments(BaseModel):
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)


class NoArguments(_Arguments):
    pass


class ResidentNameArguments(_Arguments):
    first_name: str
    last_name: str


class LocationNameArguments(_Arguments):
    name: str


# ── Handlers ─────────────────────────────────────────────────────────

Handler = Callable[[DirectoryClient, Any], Awaitable[list[BaseModel]]]


class ToolSpec(NamedTuple):
    arguments: type[_Arguments]
    handler: Handler


async def _get_all_residents(client: DirectoryClient, _: NoArguments) -> list[BaseModel]:
    return await client.get_all_residents()


async def _get_residents_by_name(
    client: DirectoryClient, args: ResidentNameArguments,
) -> list[BaseModel]:
    return await client.get_residents_by_name(args.first_name, args.last_name)


async def _get_locations_by_name(
    client: DirectoryClient, args: LocationNameArguments,
) -> list[BaseModel]:
    return await client.get_locations_by_name(args.name)


TOOLS: dict[str, ToolSpec] = {
    "getAllResidents": ToolSpec(NoArguments, _get_all_residents),
    "getResidentsByName": ToolSpec(ResidentNameArguments, _get_residents_by_name),
    "getLocationsByName": ToolSpec(LocationNameArguments, _get_locations_by_name),
}


def _parse_arguments(request: ToolCallRequest) -> dict[str, Any]:
    try:
        payload = json.loads(request.arguments or "{}")
    except json.JSONDecodeError as exc:
        raise DispatchError(f"Malformed arguments for {request.name}: {exc}") from exc
    if not isinstance(payload, dict):
        raise DispatchError(f"Arguments for {request.name} must be a JSON object")
    return payload


def _serialise(result: Any) -> str:
    if isinstance(result, list):
        return json.dumps([item.to_wire() if hasattr(item, "to_wire") else item for item in result])
    return json.dumps(result)


async def dispatch(request: ToolCallRequest, client: DirectoryClient | None = None) -> Any:
    """Run the tool named by *request* and return its raw result.

    Raises ``DispatchError`` for malformed or invalid arguments and
    ``UnknownToolError`` for unregistered names.  ``DataSourceError`` from the
    directory propagates unchanged.
    """
    payload = _parse_arguments(request)

    spec = TOOLS.get(request.name)
    if spec is None:
        raise UnknownToolError(f"{UNKNOWN_FUNCTION}: {request.name}")

    try:
        args = spec.arguments.model_validate(payload)
    except PydanticValidationError as exc:
        raise DispatchError(f"Invalid arguments for {request.name}: {exc}") from exc

    return await spec.handler(client or get_directory_client(), args)


async def handle_tool_call(
    request: ToolCallRequest,
    client: DirectoryClient | None = None,
) -> ToolMessage:
    """Execute one tool call and wrap the outcome as a tool-result message."""
    try:
        content = _serialise(await dispatch(request, client))
    except UnknownToolError:
        logger.warning("Model requested unknown tool %r (call %s)", request.name, request.id)
        content = json.dumps(UNKNOWN_FUNCTION)
    except (DispatchError, DataSourceError) as exc:
        logger.error("Error handling tool call %s (%s): %s", request.id, request.name, exc)
        content = str(exc)

    return ToolMessage(content=content, tool_call_id=request.id)
