"""Pass-through endpoints that query the provider directly."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ..core.deps import get_bland_client
from ..schemas import calls as schemas
from ..services.bland import BlandAPIError, BlandClient

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/get-transcript/{call_id}", response_model=schemas.TranscriptResponse)
async def get_transcript(
    call_id: str,
    client: BlandClient = Depends(get_bland_client),
) -> schemas.TranscriptResponse | JSONResponse:
    """Fetch the transcript straight from the provider."""

    try:
        transcript = await client.get_transcript(call_id)
    except BlandAPIError:
        logger.exception("Error fetching transcript for call %s", call_id)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "Error fetching transcript", "status": "error"},
        )
    return schemas.TranscriptResponse(transcript=transcript)


@router.get("/call-media/{call_id}")
async def get_call_media(
    call_id: str,
    client: BlandClient = Depends(get_bland_client),
) -> Any:
    """Return the provider's media document for a call."""

    logger.info("Fetching call media for %s", call_id)
    try:
        return await client.get_call_media(call_id)
    except BlandAPIError as exc:
        logger.error("Fetching call media for %s failed: %s", call_id, exc)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Failed to fetch call media", "message": str(exc)},
        )


@router.get("/check-call/{call_id}")
async def check_call(
    call_id: str,
    client: BlandClient = Depends(get_bland_client),
) -> Any:
    """Return the raw provider call detail."""

    try:
        return await client.get_call(call_id)
    except BlandAPIError as exc:
        logger.error("Checking call %s failed: %s", call_id, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(exc), "details": exc.body},
        )
