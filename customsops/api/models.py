"""Request/response models shared by the API routes, plus payload structure checks."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

# Limits for free-form JSON bodies (tracking notes)
MAX_DICT_SIZE = 100  # Maximum number of keys in any dict
MAX_STRING_LENGTH = 10_000  # Maximum string length in dict values
MAX_DICT_DEPTH = 5  # Maximum nesting depth


class ErrorResponse(BaseModel):
    """Error body used by the tracking routes in the shape the dashboard already parses."""

    error: str


class BulkCheckRequest(BaseModel):
    """Mark several arrivals as checked in one request."""

    mrns: list[str] = Field(min_length=1, max_length=500)
    note: str | None = Field(default=None, max_length=2000)


class BulkCheckResponse(BaseModel):
    success: bool
    updated: int
    skipped: list[str]


class FlowRequestFile(BaseModel):
    name: str = Field(max_length=255)
    type: str = ""
    size: int = Field(default=0, ge=0)
    content: str = ""  # data URL or base64


class FlowRequest(BaseModel):
    """A request for a new automation flow, as submitted from the request form."""

    principalName: str = Field(min_length=1, max_length=200)
    senderEmail: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    flowType: Literal["import", "export"] = "import"
    volume: str = ""
    frequency: str = "weekly"
    comments: str = Field(default="", max_length=5000)
    hasEmailBody: bool = False
    files: list[FlowRequestFile] = Field(default_factory=list, max_length=20)
    submittedAt: str | None = None


class FlowRequestResponse(BaseModel):
    success: bool
    forwarded: bool


def validate_dict_structure(
    data: dict[str, Any],
    max_keys: int = MAX_DICT_SIZE,
    max_str_len: int = MAX_STRING_LENGTH,
    max_depth: int = MAX_DICT_DEPTH,
    current_depth: int = 0,
) -> None:
    """
    Reject oversized or deeply nested JSON objects.

    Lists and dicts both count towards the depth limit.

    Raises:
        ValueError: If validation fails
    """
    if current_depth > max_depth:
        raise ValueError(f"Dict nesting exceeds maximum depth of {max_depth}")

    if len(data) > max_keys:
        raise ValueError(f"Dict has too many keys: {len(data)} > {max_keys}")

    for key, value in data.items():
        if isinstance(key, str) and len(key) > 100:
            raise ValueError(f"Dict key too long: {len(key)} > 100")
        _validate_value(value, max_keys, max_str_len, max_depth, current_depth)


def _validate_list_structure(
    data: list[Any],
    max_keys: int,
    max_str_len: int,
    max_depth: int,
    current_depth: int,
) -> None:
    if current_depth > max_depth:
        raise ValueError(f"List nesting exceeds maximum depth of {max_depth}")

    if len(data) > max_keys:
        raise ValueError(f"List has too many items: {len(data)} > {max_keys}")

    for item in data:
        _validate_value(item, max_keys, max_str_len, max_depth, current_depth)


def _validate_value(value: Any, max_keys: int, max_str_len: int, max_depth: int, depth: int) -> None:
    if isinstance(value, str):
        if len(value) > max_str_len:
            raise ValueError(f"String value too long: {len(value)} > {max_str_len}")
    elif isinstance(value, dict):
        validate_dict_structure(value, max_keys, max_str_len, max_depth, depth + 1)
    elif isinstance(value, list):
        _validate_list_structure(value, max_keys, max_str_len, max_depth, depth + 1)
