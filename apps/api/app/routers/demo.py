"""Demo request endpoint that triggers the qualification call."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings
from ..core.deps import get_app_settings, get_bland_client, get_call_poller
from ..db.session import get_session
from ..schemas import calls as schemas
from ..services import outreach as outreach_service
from ..services.bland import BlandClient
from ..services.reconciliation import CallPoller

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/request-demo", response_model=schemas.DemoResponse)
async def request_demo(
    payload: schemas.DemoRequest,
    session: AsyncSession = Depends(get_session),
    client: BlandClient = Depends(get_bland_client),
    poller: CallPoller = Depends(get_call_poller),
    settings: Settings = Depends(get_app_settings),
) -> schemas.DemoResponse | JSONResponse:
    """Record the lead and place an outbound qualification call."""

    logger.info("Received demo request for %s at %s", payload.name, payload.company_name)
    try:
        call_id = await outreach_service.request_demo(
            payload, session, client=client, poller=poller, settings=settings
        )
    except Exception:  # noqa: BLE001 - single failure envelope for the form
        logger.exception("Failed to process demo request for %s", payload.name)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to process request"},
        )

    return schemas.DemoResponse(message="Call initiated successfully", call_id=call_id)
