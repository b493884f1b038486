"""Read endpoints over stored call records."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings
from ..core.deps import get_app_settings
from ..db.session import get_session
from ..repositories import calls as calls_repo
from ..schemas import calls as schemas
from ..services.transcripts import format_transcript

logger = logging.getLogger(__name__)

router = APIRouter()


def _error(status_code: int, **content: object) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content)


@router.get("/calls", response_model=list[schemas.CallRecord])
async def list_calls(
    session: AsyncSession = Depends(get_session),
) -> list[schemas.CallRecord] | JSONResponse:
    """Return every call, newest first."""

    try:
        calls = await calls_repo.list_calls(session)
    except Exception:  # noqa: BLE001
        logger.exception("Failed to list calls")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, error="Failed to fetch calls")
    return [schemas.CallRecord.model_validate(call) for call in calls]


@router.get("/calls-with-media", response_model=list[schemas.CallMediaSummary])
async def list_calls_with_media(
    session: AsyncSession = Depends(get_session),
) -> list[schemas.CallMediaSummary] | JSONResponse:
    """Return transcript and recording columns for every call, newest first."""

    try:
        rows = await calls_repo.list_calls_with_media(session)
    except Exception:  # noqa: BLE001
        logger.exception("Failed to list calls with media")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, error="Failed to fetch calls")
    return [schemas.CallMediaSummary.model_validate(row) for row in rows]


@router.get("/call/{record_id}", response_model=schemas.CallRecord)
async def get_call(
    record_id: str,
    session: AsyncSession = Depends(get_session),
) -> schemas.CallRecord | JSONResponse:
    """Return a single call by internal id; ids that are not integers are not found."""

    try:
        lookup_id = int(record_id)
    except ValueError:
        return _error(status.HTTP_404_NOT_FOUND, error="Call not found")

    try:
        call = await calls_repo.get_by_id(session, lookup_id)
    except Exception:  # noqa: BLE001
        logger.exception("Failed to fetch call %s", record_id)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, error="Failed to fetch call")
    if call is None:
        return _error(status.HTTP_404_NOT_FOUND, error="Call not found")
    return schemas.CallRecord.model_validate(call)


@router.get("/formatted-transcript/{call_id}", response_model=schemas.FormattedTranscriptResponse)
async def get_formatted_transcript(
    call_id: str,
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
) -> schemas.FormattedTranscriptResponse | JSONResponse:
    """Return the stored transcript together with its annotated rendering."""

    try:
        call = await calls_repo.get_by_call_id(session, call_id)
    except Exception:  # noqa: BLE001
        logger.exception("Failed to fetch transcript for call %s", call_id)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, error="Failed to fetch transcript")

    if call is None or not call.transcript:
        return _error(status.HTTP_404_NOT_FOUND, message="Transcript not found")

    return schemas.FormattedTranscriptResponse(
        formatted_transcript=format_transcript(call.transcript, settings.agent_name),
        raw_transcript=call.transcript,
    )
