import asyncio
import re
import threading

import pytest

from wizard.errors import ConcurrentSubmissionRejected, SubmissionError
from wizard.state import Rejection
from wizard.submission import SubmissionPipeline, generate_resource_id, simulated_create


@pytest.mark.asyncio
async def test_success_publishes_status_events(fake_status):
    async def create(payload):
        return "vpc-123"

    pipeline = SubmissionPipeline(create, resource_type="vpc", status_publisher=fake_status)

    outcome = await pipeline.submit({"name": "main"})

    assert outcome.succeeded
    assert outcome.resource_id == "vpc-123"
    assert [e["status"] for e in fake_status.status_events] == ["in_progress", "success"]
    assert all(e["type"] == "submission" for e in fake_status.status_events)
    assert fake_status.status_events[1]["data"] == {"resource_type": "vpc", "resource_id": "vpc-123"}
    # Both events belong to the same request
    assert len({e["request_id"] for e in fake_status.status_events}) == 1


@pytest.mark.asyncio
async def test_failure_is_returned_not_raised(fake_status):
    async def create(payload):
        raise RuntimeError("Deploy failed")

    pipeline = SubmissionPipeline(create, resource_type="bucket", status_publisher=fake_status)

    outcome = await pipeline.submit({"bucket_name": "demo"})

    assert not outcome.succeeded
    assert isinstance(outcome.error, SubmissionError)
    assert outcome.error.resource_type == "bucket"
    assert outcome.error.fields == ("bucket_name",)
    assert not pipeline.in_flight
    assert any(
        event.get("status") == "error" and "Deploy failed" in event["data"].get("error", "")
        for event in fake_status.status_events
    )


@pytest.mark.asyncio
async def test_second_submit_while_in_flight_is_rejected():
    gate = asyncio.Event()

    async def create(payload):
        await gate.wait()
        return "res-1"

    pipeline = SubmissionPipeline(create)
    first = asyncio.create_task(pipeline.submit({}))
    await asyncio.sleep(0)

    second = await pipeline.submit({})
    gate.set()
    first_outcome = await first

    assert second.rejection == Rejection.BUSY
    assert isinstance(second.error, ConcurrentSubmissionRejected)
    assert first_outcome.succeeded
    assert pipeline.calls == 1


@pytest.mark.asyncio
async def test_cancelled_create_publishes_error_and_releases_pipeline(fake_status):
    gate = asyncio.Event()

    async def create(payload):
        await gate.wait()
        return "res-1"

    pipeline = SubmissionPipeline(create, resource_type="vpc", status_publisher=fake_status)
    task = asyncio.create_task(pipeline.submit({"name": "main"}))
    await asyncio.sleep(0)
    assert pipeline.in_flight

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert not pipeline.in_flight
    assert [e["status"] for e in fake_status.status_events] == ["in_progress", "error"]
    assert fake_status.status_events[1]["data"]["error"] == "cancelled"


@pytest.mark.asyncio
async def test_sync_create_runs_in_worker_thread():
    threads = []

    def create(payload):
        threads.append(threading.current_thread())
        return "res-sync"

    outcome = await SubmissionPipeline(create).submit({})

    assert outcome.resource_id == "res-sync"
    assert threads[0] is not threading.main_thread()


@pytest.mark.asyncio
async def test_missing_resource_id_is_a_failure():
    async def create(payload):
        return None

    outcome = await SubmissionPipeline(create).submit({})

    assert not outcome.succeeded
    assert "no resource id" in str(outcome.error)


@pytest.mark.asyncio
async def test_publisher_errors_do_not_break_submission():
    class _Broken:
        def publish_status(self, *args, **kwargs):
            raise ConnectionError("redis down")

    async def create(payload):
        return "res-1"

    outcome = await SubmissionPipeline(create, status_publisher=_Broken()).submit({})

    assert outcome.succeeded


@pytest.mark.asyncio
async def test_simulated_create_generates_prefixed_id():
    create = simulated_create("vpc", delay=0)

    resource_id = await create({"name": "main"})

    assert re.fullmatch(r"vpc-[0-9a-f]{17}", resource_id)


def test_generate_resource_id_is_unique():
    ids = {generate_resource_id("sg") for _ in range(50)}

    assert len(ids) == 50
