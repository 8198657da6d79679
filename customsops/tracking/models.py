"""
Tracking note models.

Entries are stored as free-form JSON so older files keep loading; these models
describe the fields the dashboard writes and the shapes of the HTTP bodies.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TrackingEntry(BaseModel):
    """One check or note an operator left on an arrival."""

    model_config = ConfigDict(extra="allow")

    user: str | None = Field(default=None, description="Display name of the operator")
    action: str | None = Field(default=None, description="'checked' or 'note'")
    note: str | None = Field(default=None, description="Free text")
    status: str | None = Field(default=None, description="Arrival status when the entry was made")
    saldo: int | float | None = Field(default=None, description="Saldo when the entry was made")
    outbounds_count: int | None = Field(default=None)
    timestamp: str | None = Field(default=None, description="ISO-8601 UTC")


class TrackingPostRequest(BaseModel):
    """Body of POST /api/tracking. Presence is checked by the route (400, not 422)."""

    mrn: str | None = None
    tracking_data: dict[str, Any] | None = None


class BulkTrackingRequest(BaseModel):
    """Body of POST /api/tracking/bulk."""

    records: Any = None


class TrackingListResponse(BaseModel):
    records: list[dict[str, Any]]


class TrackingEntriesResponse(BaseModel):
    tracking_records: list[dict[str, Any]]


class TrackingWriteResponse(BaseModel):
    success: bool
    message: str
