"""Tests for the bounded call status poller."""
from __future__ import annotations

import asyncio

import pytest

from app.models.call import SyncState
from app.repositories import calls as calls_repo
from app.services.reconciliation import CallPoller

AGENT = "👨‍💼 Jonathan: "
CUSTOMER = "👤 Customer: "


async def _seed(session_factory, call_id: str = "abc", transcript: str | None = None):
    async with session_factory() as session:
        async with session.begin():
            call = await calls_repo.create_call(
                session, customer_name="Ada", company_name="Engines", phone_number="+15555550100"
            )
        await calls_repo.assign_call_id(session, call.id, call_id)
        if transcript is not None:
            await calls_repo.apply_update(
                session, lambda c: setattr(c, "transcript", transcript), call_id=call_id
            )


async def _load(session_factory, call_id: str = "abc"):
    async with session_factory() as session:
        return await calls_repo.get_by_call_id(session, call_id)


@pytest.fixture
def delays() -> list[float]:
    return []


@pytest.fixture
def poller(bland_client, session_factory, settings, delays) -> CallPoller:
    async def fake_sleep(delay: float) -> None:
        delays.append(delay)

    return CallPoller(bland_client, session_factory, settings=settings, sleep=fake_sleep)


def _completed(**overrides):
    payload = {
        "status": "completed",
        "concatenated_transcript": "assistant: Hi there\nuser: I'm interested",
        "recording_url": "https://media.test/abc.mp3",
        "corrected_duration": "95.5",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_completed_overwrites_transcript_and_stores_media(poller, bland, session_factory):
    await _seed(session_factory, transcript="old partial")
    bland.queue_details("abc", _completed())

    state = await poller.reconcile_once("abc")

    call = await _load(session_factory)
    assert state is SyncState.COMPLETED
    assert call.transcript == f"{AGENT}Hi there\n{CUSTOMER}I'm interested"
    assert call.recording_url == "https://media.test/abc.mp3"
    assert call.call_status == "completed"
    assert call.duration == 95.5
    assert call.sync_state is SyncState.COMPLETED


@pytest.mark.asyncio
async def test_completed_without_transcript_preserves_stored_one(poller, bland, session_factory):
    await _seed(session_factory, transcript="kept")
    bland.queue_details("abc", _completed(concatenated_transcript=None, corrected_duration="n/a"))

    await poller.reconcile_once("abc")

    call = await _load(session_factory)
    assert call.transcript == "kept"
    assert call.duration == 0


@pytest.mark.asyncio
async def test_in_progress_fills_empty_transcript(poller, bland, session_factory):
    await _seed(session_factory)
    bland.queue_details(
        "abc", {"status": "in-progress", "transcripts": [{"user": "assistant", "text": "Hello"}]}
    )

    state = await poller.reconcile_once("abc", attempt=2)

    call = await _load(session_factory)
    assert state is SyncState.POLLING
    assert call.transcript == f"{AGENT}Hello"
    assert call.sync_state is SyncState.POLLING
    assert call.sync_attempts == 2
    assert call.call_status is None


@pytest.mark.asyncio
async def test_in_progress_leaves_existing_transcript(poller, bland, session_factory):
    await _seed(session_factory, transcript="first write")
    bland.queue_details("abc", {"status": "in-progress", "concatenated_transcript": "assistant: newer"})

    await poller.reconcile_once("abc")

    call = await _load(session_factory)
    assert call.transcript == "first write"


@pytest.mark.asyncio
async def test_unknown_record_stops(poller, bland, session_factory):
    bland.queue_details("ghost", _completed())

    assert await poller.reconcile_once("ghost") is SyncState.FAILED


@pytest.mark.asyncio
async def test_run_polls_until_completed(poller, bland, session_factory, delays):
    await _seed(session_factory)
    bland.queue_details("abc", {"status": "queued"}, {"status": "in-progress"}, _completed())

    state = await poller.run("abc")

    call = await _load(session_factory)
    assert state is SyncState.COMPLETED
    assert delays == [30, 30, 30]
    assert call.sync_state is SyncState.COMPLETED
    assert call.sync_attempts == 2


@pytest.mark.asyncio
async def test_run_gives_up_after_max_attempts(poller, bland, session_factory, delays):
    await _seed(session_factory)
    bland.queue_details("abc", {"status": "in-progress"})

    state = await poller.run("abc")

    call = await _load(session_factory)
    assert state is SyncState.EXHAUSTED
    assert len(delays) == 4
    assert call.sync_state is SyncState.EXHAUSTED
    assert "4 polls" in call.sync_error


@pytest.mark.asyncio
async def test_run_records_provider_failure(poller, bland, session_factory, delays):
    await _seed(session_factory)
    bland.queue_details("abc", {"status": "in-progress"}, 503)

    state = await poller.run("abc")

    call = await _load(session_factory)
    assert state is SyncState.FAILED
    assert len(delays) == 2
    assert call.sync_state is SyncState.FAILED
    assert "503" in call.sync_error


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "in_progress",
    [
        {"status": "queued", "transcripts": None},
        {"status": "in-progress", "transcripts": [{"user": "assistant", "text": None}]},
        {"status": "in-progress", "concatenated_transcript": None, "recording_url": None},
    ],
)
async def test_run_tolerates_null_provider_fields(poller, bland, session_factory, in_progress):
    await _seed(session_factory, transcript="kept")
    bland.queue_details(
        "abc",
        in_progress,
        {
            "status": "completed",
            "transcripts": None,
            "concatenated_transcript": None,
            "recording_url": "https://media.test/abc.mp3",
            "corrected_duration": 12,
        },
    )

    state = await poller.run("abc")

    call = await _load(session_factory)
    assert state is SyncState.COMPLETED
    assert call.sync_state is SyncState.COMPLETED
    assert call.transcript == "kept"
    assert call.recording_url == "https://media.test/abc.mp3"
    assert call.call_status == "completed"
    assert call.duration == 12


def test_backoff_is_capped(bland_client, session_factory, settings):
    config = settings.model_copy(
        update={"poll_interval_seconds": 10, "poll_backoff_factor": 2.0, "poll_max_interval_seconds": 60}
    )
    poller = CallPoller(bland_client, session_factory, settings=config)

    assert [poller.next_delay(attempt) for attempt in range(1, 6)] == [10, 20, 40, 60, 60]


@pytest.mark.asyncio
async def test_schedule_deduplicates_running_tasks(bland_client, session_factory, settings):
    gate = asyncio.Event()

    async def blocked_sleep(delay: float) -> None:
        await gate.wait()

    poller = CallPoller(bland_client, session_factory, settings=settings, sleep=blocked_sleep)

    first = poller.schedule("abc")
    second = poller.schedule("abc")

    assert first is second
    assert poller.active_call_ids == ["abc"]

    await poller.shutdown()

    assert first.cancelled()
    assert poller.active_call_ids == []


@pytest.mark.asyncio
async def test_resume_pending_schedules_unfinished_calls(bland_client, session_factory, settings):
    await _seed(session_factory, call_id="abc")
    await _seed(session_factory, call_id="def")
    async with session_factory() as session:
        await calls_repo.apply_update(
            session, lambda c: setattr(c, "sync_state", SyncState.COMPLETED), call_id="def"
        )

    gate = asyncio.Event()

    async def blocked_sleep(delay: float) -> None:
        await gate.wait()

    poller = CallPoller(bland_client, session_factory, settings=settings, sleep=blocked_sleep)

    resumed = await poller.resume_pending()

    assert resumed == ["abc"]
    assert poller.active_call_ids == ["abc"]
    await poller.shutdown()
