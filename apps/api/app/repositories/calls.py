"""Call repository helpers."""
from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from sqlalchemy import Row, Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from ..models.call import ACTIVE_SYNC_STATES, Call, SyncState

logger = logging.getLogger(__name__)

MAX_WRITE_ATTEMPTS = 3

CallMutation = Callable[[Call], None]


class CallIdAlreadyAssignedError(RuntimeError):
    """Raised when a record already carries an external call identifier."""


class ConcurrentUpdateError(RuntimeError):
    """Raised when a versioned write keeps losing to concurrent writers."""


def _newest_first(stmt: Select) -> Select:
    return stmt.order_by(Call.created_at.desc(), Call.id.desc())


async def create_call(
    session: AsyncSession,
    *,
    customer_name: str,
    company_name: str | None,
    phone_number: str,
) -> Call:
    """Insert a call record for a fresh demo request."""

    call = Call(
        customer_name=customer_name,
        company_name=company_name,
        phone_number=phone_number,
        duration=0.0,
        sync_state=SyncState.PENDING,
        sync_attempts=0,
    )
    session.add(call)
    await session.flush()
    return call


async def get_by_id(session: AsyncSession, record_id: int) -> Call | None:
    """Return a call record by internal identifier."""

    stmt = select(Call).where(Call.id == record_id).execution_options(populate_existing=True)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_by_call_id(session: AsyncSession, call_id: str) -> Call | None:
    """Return a call record by the provider's call identifier."""

    stmt = select(Call).where(Call.call_id == call_id).execution_options(populate_existing=True)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_calls(session: AsyncSession) -> Sequence[Call]:
    """Return every call, newest first."""

    result = await session.execute(_newest_first(select(Call)))
    return result.scalars().all()


async def list_calls_with_media(session: AsyncSession) -> Sequence[Row]:
    """Return the media projection of every call, newest first."""

    stmt = _newest_first(
        select(
            Call.customer_name,
            Call.transcript,
            Call.recording_url,
            Call.created_at,
            Call.call_status,
        )
    )
    result = await session.execute(stmt)
    return result.all()


async def list_unfinished_call_ids(session: AsyncSession) -> list[str]:
    """Return provider ids whose reconciliation has not reached a terminal state."""

    stmt = select(Call.call_id).where(
        Call.call_id.is_not(None),
        Call.sync_state.in_(ACTIVE_SYNC_STATES),
    )
    result = await session.execute(stmt)
    return [call_id for call_id in result.scalars().all() if call_id]


async def assign_call_id(session: AsyncSession, record_id: int, call_id: str) -> Call:
    """Attach the provider call identifier to a record exactly once."""

    def _assign(call: Call) -> None:
        if call.call_id is not None:
            raise CallIdAlreadyAssignedError(f"Call {call.id} already has call_id {call.call_id}")
        call.call_id = call_id

    call = await apply_update(session, _assign, record_id=record_id)
    if call is None:
        raise LookupError(f"Call {record_id} does not exist")
    return call


async def apply_update(
    session: AsyncSession,
    mutate: CallMutation,
    *,
    record_id: int | None = None,
    call_id: str | None = None,
) -> Call | None:
    """Load a call, apply ``mutate`` and commit it as one versioned write.

    The mutation is re-run against a freshly loaded row whenever the commit
    loses to a concurrent writer, so rules such as "only fill an empty
    transcript" are always evaluated against the latest revision. Returns
    ``None`` when no matching row exists.
    """

    if (record_id is None) == (call_id is None):
        raise ValueError("Pass exactly one of record_id or call_id")

    for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
        try:
            async with session.begin():
                if record_id is not None:
                    call = await get_by_id(session, record_id)
                else:
                    call = await get_by_call_id(session, call_id)  # type: ignore[arg-type]
                if call is None:
                    return None
                mutate(call)
            return call
        except StaleDataError:
            logger.warning(
                "Stale revision writing call %s (attempt %s/%s); retrying",
                record_id if record_id is not None else call_id,
                attempt,
                MAX_WRITE_ATTEMPTS,
            )

    raise ConcurrentUpdateError(
        f"Call {record_id if record_id is not None else call_id} changed concurrently {MAX_WRITE_ATTEMPTS} times"
    )
