"""Provider webhook receiving transcript pushes."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.session import get_session
from ..models.call import Call
from ..repositories import calls as calls_repo
from ..schemas import calls as schemas

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhook", response_model=schemas.WebhookResponse)
async def receive_webhook(
    payload: schemas.WebhookPayload,
    session: AsyncSession = Depends(get_session),
) -> schemas.WebhookResponse | JSONResponse:
    """Overwrite the stored transcript with the pushed one."""

    transcript = payload.transcript
    if not transcript or not transcript.strip():
        logger.info("Webhook for call %s carried no transcript; ignoring", payload.call_id)
        return schemas.WebhookResponse(status="ignored")

    def mutate(call: Call) -> None:
        call.transcript = transcript
        call.updated_at = datetime.now(timezone.utc)

    try:
        call = await calls_repo.apply_update(session, mutate, call_id=payload.call_id)
    except Exception:  # noqa: BLE001
        logger.exception("Error saving transcript for call %s", payload.call_id)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"status": "error"})

    if call is None:
        logger.warning("Webhook for unknown call %s; ignoring", payload.call_id)
        return schemas.WebhookResponse(status="ignored")

    logger.info("Transcript saved for call %s (revision %s)", payload.call_id, call.revision)
    return schemas.WebhookResponse(status="success")
