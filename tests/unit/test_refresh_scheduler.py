import asyncio

import pytest

from portfolio_core.scheduler.refresh_scheduler import RefreshScheduler, RefreshState


class GatedJob:
    """Job whose first run blocks until release is set."""

    def __init__(self):
        self.runs = 0
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def __call__(self):
        self.runs += 1
        self.started.set()
        await self.release.wait()


@pytest.mark.asyncio
async def test_triggers_during_run_coalesce_into_one_rerun():
    job = GatedJob()
    scheduler = RefreshScheduler(job, enabled=False)

    first = scheduler.trigger()
    await job.started.wait()
    assert scheduler.state == RefreshState.RECONCILING

    for _ in range(5):
        assert scheduler.trigger() is first
    assert scheduler.has_pending

    job.release.set()
    await first

    assert job.runs == 2
    assert scheduler.completed_runs == 2
    assert scheduler.state == RefreshState.IDLE
    assert not scheduler.has_pending


@pytest.mark.asyncio
async def test_trigger_when_idle_runs_once():
    calls = []

    async def job():
        calls.append(1)

    scheduler = RefreshScheduler(job, enabled=False)
    await scheduler.refresh_now()

    assert calls == [1]
    assert scheduler.state == RefreshState.IDLE


@pytest.mark.asyncio
async def test_refresh_now_waits_for_rerun_requested_mid_flight():
    job = GatedJob()
    scheduler = RefreshScheduler(job, enabled=False)

    scheduler.trigger()
    await job.started.wait()

    waiter = asyncio.create_task(scheduler.refresh_now())
    await asyncio.sleep(0)
    assert not waiter.done()

    job.release.set()
    await asyncio.wait_for(waiter, timeout=1)
    assert job.runs == 2


@pytest.mark.asyncio
async def test_failing_job_does_not_stop_later_runs():
    calls = []

    async def job():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")

    scheduler = RefreshScheduler(job, enabled=False)
    await scheduler.refresh_now()
    await scheduler.refresh_now()

    assert len(calls) == 2
    assert scheduler.completed_runs == 2


@pytest.mark.asyncio
async def test_closed_scheduler_ignores_triggers():
    calls = []

    async def job():
        calls.append(1)

    scheduler = RefreshScheduler(job, enabled=False)
    await scheduler.shutdown()

    assert scheduler.is_closed
    assert scheduler.trigger() is None
    await scheduler.refresh_now()
    assert calls == []
    with pytest.raises(RuntimeError):
        scheduler.start()


@pytest.mark.asyncio
async def test_shutdown_drops_pending_rerun():
    job = GatedJob()
    scheduler = RefreshScheduler(job, enabled=False)

    task = scheduler.trigger()
    await job.started.wait()
    scheduler.trigger()

    await scheduler.shutdown()
    job.release.set()
    await task

    assert job.runs == 1


@pytest.mark.asyncio
async def test_start_registers_interval_job_and_shutdown_clears_it():
    async def job():
        return None

    scheduler = RefreshScheduler(job, interval_seconds=30, timezone="Asia/Kolkata")
    scheduler.start()
    try:
        registered = scheduler._scheduler.get_job(RefreshScheduler.JOB_ID)
        assert registered is not None
        assert registered.trigger.interval.total_seconds() == 30
        assert registered.max_instances == 1
        assert registered.coalesce is True
    finally:
        await scheduler.shutdown()

    assert scheduler._scheduler is None


@pytest.mark.asyncio
async def test_disabled_timer_does_not_create_scheduler():
    async def job():
        return None

    scheduler = RefreshScheduler(job, enabled=False)
    scheduler.start()

    assert scheduler._scheduler is None


def test_trigger_without_running_loop_is_noop():
    async def job():
        return None

    scheduler = RefreshScheduler(job, enabled=False)
    assert scheduler.trigger() is None
