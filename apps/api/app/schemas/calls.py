"""Schemas for the demo request, webhook and call read endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..models.call import SyncState


class DemoRequest(BaseModel):
    """Form submitted from the website's demo request page."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    phone_number: str = Field(alias="phoneNumber", min_length=1)
    company_name: str = Field(default="", alias="companyName")
    role: str = Field(default="")
    use_case: str = Field(default="", alias="useCase")


class DemoResponse(BaseModel):
    message: str
    call_id: str


class WebhookPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    call_id: str
    transcript: str | None = None


class WebhookResponse(BaseModel):
    status: str


class CallRecord(BaseModel):
    """Every stored column of a call record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    call_id: str | None = None
    customer_name: str
    company_name: str | None = None
    phone_number: str
    transcript: str | None = None
    recording_url: str | None = None
    call_status: str | None = None
    duration: float
    revision: int
    sync_state: SyncState
    sync_attempts: int
    sync_error: str | None = None
    created_at: datetime
    updated_at: datetime


class CallMediaSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    customer_name: str
    transcript: str | None = None
    recording_url: str | None = None
    created_at: datetime
    call_status: str | None = None


class FormattedTranscriptResponse(BaseModel):
    formatted_transcript: str
    raw_transcript: str


class TranscriptResponse(BaseModel):
    transcript: Any = None
