"""Schemas for the Bland AI call API."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

COMPLETED_STATUS = "completed"


class CallParameters(BaseModel):
    """Payload for ``POST /call``."""

    phone_number: str
    task: str
    voice_id: int
    reduce_latency: bool = False
    transfer_phone_number: str
    language: str
    record: bool = True
    temperature: float
    first_message: str


class TranscriptTurn(BaseModel):
    model_config = ConfigDict(extra="allow")

    user: str | None = None
    text: str | None = None


class CallDetails(BaseModel):
    """Subset of ``GET /v1/calls/{id}`` this service relies on."""

    model_config = ConfigDict(extra="allow")

    call_id: str | None = None
    status: str | None = None
    completed: bool | None = None
    concatenated_transcript: str | None = None
    transcripts: list[TranscriptTurn] | None = None
    recording_url: str | None = None
    corrected_duration: Any = None

    @property
    def is_completed(self) -> bool:
        return self.status == COMPLETED_STATUS
