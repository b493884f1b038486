"""Background reconciliation of provider call status into stored call records."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import partial

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.config import Settings
from ..models.call import Call, SyncState
from ..repositories import calls as calls_repo
from ..schemas.bland import CallDetails
from .bland import BlandAPIError, BlandClient
from .transcripts import derive_transcript, parse_duration

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def apply_completed(call: Call, details: CallDetails, transcript: str | None) -> None:
    """Store the final provider view of a finished call."""

    if transcript:
        call.transcript = transcript
    call.recording_url = details.recording_url
    call.call_status = details.status
    call.duration = parse_duration(details.corrected_duration)
    call.sync_state = SyncState.COMPLETED
    call.sync_error = None


def apply_partial(call: Call, transcript: str | None, attempt: int) -> None:
    """Record an in-flight poll; a partial transcript only fills an empty slot."""

    if transcript and not call.transcript:
        call.transcript = transcript
    if call.sync_state is not SyncState.COMPLETED:
        call.sync_state = SyncState.POLLING
    call.sync_attempts = attempt


class CallPoller:
    """Polls the provider for each placed call until it reports completion.

    One asyncio task runs per provider call id. Each task waits the initial
    delay, then polls with a capped, optionally exponential backoff until the
    call completes, an error occurs, or the attempt budget runs out. Failure
    and exhaustion are written to the record's ``sync_state``.
    """

    def __init__(
        self,
        client: BlandClient,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        settings: Settings,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._session_factory = session_factory
        self._settings = settings
        self._sleep = sleep
        self._tasks: dict[str, asyncio.Task[SyncState]] = {}

    @property
    def active_call_ids(self) -> list[str]:
        return [call_id for call_id, task in self._tasks.items() if not task.done()]

    def schedule(self, call_id: str) -> asyncio.Task[SyncState]:
        """Start polling ``call_id`` unless a task for it is already running."""

        existing = self._tasks.get(call_id)
        if existing is not None and not existing.done():
            logger.info("Reconciliation for call %s already running", call_id)
            return existing

        task = asyncio.create_task(self.run(call_id), name=f"reconcile-{call_id}")
        self._tasks[call_id] = task
        task.add_done_callback(lambda done, key=call_id: self._forget(key, done))
        logger.info(
            "Scheduled reconciliation for call %s in %.0fs",
            call_id,
            self._settings.poll_initial_delay_seconds,
        )
        return task

    async def resume_pending(self) -> list[str]:
        """Restart polling for calls left unfinished by a previous process."""

        async with self._session_factory() as session:
            call_ids = await calls_repo.list_unfinished_call_ids(session)
        for call_id in call_ids:
            self.schedule(call_id)
        if call_ids:
            logger.info("Resumed reconciliation for %s unfinished call(s)", len(call_ids))
        return call_ids

    async def shutdown(self) -> None:
        """Cancel every running reconciliation task."""

        tasks = [task for task in self._tasks.values() if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    def next_delay(self, attempt: int) -> float:
        """Delay before the poll that follows ``attempt``."""

        delay = self._settings.poll_interval_seconds * self._settings.poll_backoff_factor ** (attempt - 1)
        return min(delay, self._settings.poll_max_interval_seconds)

    async def run(self, call_id: str) -> SyncState:
        """Poll until a terminal state and return it."""

        max_attempts = self._settings.poll_max_attempts
        delay = self._settings.poll_initial_delay_seconds

        for attempt in range(1, max_attempts + 1):
            await self._sleep(delay)
            try:
                state = await self.reconcile_once(call_id, attempt=attempt)
            except BlandAPIError as exc:
                logger.error(
                    "Fetching call %s failed (status=%s, body=%s): %s",
                    call_id,
                    exc.status_code,
                    exc.body,
                    exc,
                )
                await self._record_terminal(call_id, SyncState.FAILED, str(exc))
                return SyncState.FAILED
            except Exception as exc:  # noqa: BLE001 - background task, nothing awaits it
                logger.exception("Reconciliation of call %s failed", call_id)
                await self._record_terminal(call_id, SyncState.FAILED, str(exc) or type(exc).__name__)
                return SyncState.FAILED

            if state is not SyncState.POLLING:
                return state
            logger.info("Call %s still in progress (attempt %s/%s)", call_id, attempt, max_attempts)
            delay = self.next_delay(attempt)

        message = f"Call did not complete after {max_attempts} polls"
        logger.warning("Giving up on call %s: %s", call_id, message)
        await self._record_terminal(call_id, SyncState.EXHAUSTED, message)
        return SyncState.EXHAUSTED

    async def reconcile_once(self, call_id: str, *, attempt: int = 1) -> SyncState:
        """Fetch the provider view of ``call_id`` once and merge it into the record."""

        details = await self._client.get_call_details(call_id)
        transcript = derive_transcript(details, self._settings.agent_name)

        mutate: calls_repo.CallMutation
        if details.is_completed:
            mutate = partial(apply_completed, details=details, transcript=transcript)
            state = SyncState.COMPLETED
        else:
            mutate = partial(apply_partial, transcript=transcript, attempt=attempt)
            state = SyncState.POLLING

        async with self._session_factory() as session:
            call = await calls_repo.apply_update(session, mutate, call_id=call_id)

        if call is None:
            logger.warning("No stored call for provider id %s; stopping reconciliation", call_id)
            return SyncState.FAILED
        if state is SyncState.COMPLETED:
            logger.info("Call %s completed (duration=%ss)", call_id, call.duration)
        else:
            logger.debug("Call %s status: %s", call_id, details.status)
        return state

    async def _record_terminal(self, call_id: str, state: SyncState, message: str) -> None:
        def mutate(call: Call) -> None:
            if call.sync_state is SyncState.COMPLETED:
                return
            call.sync_state = state
            call.sync_error = message

        try:
            async with self._session_factory() as session:
                await calls_repo.apply_update(session, mutate, call_id=call_id)
        except Exception:  # noqa: BLE001 - already on the failure path
            logger.exception("Could not record %s state for call %s", state.value, call_id)

    def _forget(self, call_id: str, task: asyncio.Task[SyncState]) -> None:
        if self._tasks.get(call_id) is task:
            del self._tasks[call_id]
