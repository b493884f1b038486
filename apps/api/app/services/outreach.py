"""Demo request handling: record the lead, place the call, start reconciliation."""
from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings
from ..models.call import Call, SyncState
from ..repositories import calls as calls_repo
from ..schemas.calls import DemoRequest
from .bland import BlandAPIError, BlandClient
from .prompts import build_call_parameters
from .reconciliation import CallPoller

logger = logging.getLogger(__name__)


async def request_demo(
    payload: DemoRequest,
    session: AsyncSession,
    *,
    client: BlandClient,
    poller: CallPoller,
    settings: Settings,
) -> str:
    """Create the call record, place the outbound call and return its provider id.

    The record is committed before the provider is contacted. If placement
    fails the row keeps a null ``call_id`` and is marked ``failed``.
    """

    parameters = build_call_parameters(
        settings,
        name=payload.name,
        phone_number=payload.phone_number,
        company_name=payload.company_name,
        role=payload.role,
        use_case=payload.use_case,
    )

    async with session.begin():
        call = await calls_repo.create_call(
            session,
            customer_name=payload.name,
            company_name=payload.company_name,
            phone_number=payload.phone_number,
        )
    record_id = call.id

    try:
        call_id = await client.place_call(parameters)
    except BlandAPIError as exc:
        logger.error("Placing call for record %s failed (status=%s, body=%s)", record_id, exc.status_code, exc.body)
        await _mark_placement_failed(session, record_id, str(exc))
        raise

    await calls_repo.assign_call_id(session, record_id, call_id)
    logger.info("Call %s placed for record %s", call_id, record_id)

    poller.schedule(call_id)
    return call_id


async def _mark_placement_failed(session: AsyncSession, record_id: int, message: str) -> None:
    def mutate(call: Call) -> None:
        call.sync_state = SyncState.FAILED
        call.sync_error = message

    try:
        await calls_repo.apply_update(session, mutate, record_id=record_id)
    except Exception:  # noqa: BLE001 - the placement error is the one reported
        logger.exception("Could not mark record %s as failed", record_id)
