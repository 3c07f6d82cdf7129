import asyncio
import json
import threading

import pytest

from conftest import GatedProvider, StaticProvider, make_reconciler
from portfolio_core.infrastructure.repositories.position_store import PositionStore
from portfolio_core.infrastructure.storage.kv_store import InMemoryKeyValueStore, JsonFileKeyValueStore
from portfolio_core.services.portfolio_service import PortfolioService


def _gated_service(prices):
    provider = GatedProvider(prices)
    kv = InMemoryKeyValueStore()
    store = PositionStore(kv, seed=())
    service = PortfolioService(store=store, reconciler=make_reconciler(provider), timer_enabled=False)
    return service, store, kv, provider


@pytest.mark.asyncio
async def test_snapshot_is_empty_before_first_reconciliation(service):
    snapshot = service.get_snapshot()

    assert snapshot.is_empty
    assert snapshot.total_value == 0


@pytest.mark.asyncio
async def test_add_then_refresh_values_position(service):
    result = await service.add_position("xyz", 10, 100)
    assert result.ok

    snapshot = await service.refresh()

    xyz = snapshot.get_position("XYZ")
    assert xyz is not None
    assert xyz.current_price == 120.0
    assert snapshot.total_value == pytest.approx(1200.0)
    assert snapshot.total_gain == pytest.approx(10 * (120.0 - 100.0))
    assert snapshot.total_gain_percent == pytest.approx(20.0)


@pytest.mark.asyncio
async def test_refresh_writes_back_last_known_valuation(service, empty_store):
    await service.add_position("AAA", 5, 50)
    await service.refresh()

    [stored] = empty_store.load()
    assert stored.current_price == 60.0
    assert stored.value == 300.0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "symbol, shares, price, field",
    [("", 1, 1, "symbol"), ("AAA", 0, 1, "shares"), ("AAA", 1, -1, "price")],
)
async def test_invalid_add_returns_failure_without_state_change(service, empty_store, symbol, shares, price, field):
    result = await service.add_position(symbol, shares, price)

    assert not result.ok
    assert result.field == field
    assert result.error
    assert empty_store.load() == []
    assert service.scheduler.state.value == "idle"


@pytest.mark.asyncio
async def test_remove_unknown_symbol_is_noop(service):
    await service.remove_position("NOPE")
    await service.remove_position("")

    assert service.scheduler.completed_runs == 0


@pytest.mark.asyncio
async def test_remove_position_triggers_reconciliation(service):
    await service.add_position("AAA", 1, 10)
    await service.add_position("BBB", 1, 10)
    await service.refresh()

    await service.remove_position("aaa")
    await service.scheduler.wait_idle()

    assert [p.symbol for p in service.get_snapshot().positions] == ["BBB"]


@pytest.mark.asyncio
async def test_sync_and_async_subscribers_are_notified(service):
    seen = []
    async_seen = []

    def on_change(snapshot):
        seen.append(snapshot)

    async def on_change_async(snapshot):
        async_seen.append(snapshot)

    service.on_snapshot_changed(on_change)
    unsubscribe = service.on_snapshot_changed(on_change_async)

    await service.add_position("AAA", 1, 10)
    await service.refresh()
    assert len(seen) == len(async_seen) >= 1
    assert seen[-1] is service.get_snapshot()

    unsubscribe()
    unsubscribe()
    before = len(async_seen)
    await service.refresh()
    assert len(async_seen) == before
    assert len(seen) > before


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_block_others(service):
    seen = []

    def broken(snapshot):
        raise RuntimeError("subscriber bug")

    service.on_snapshot_changed(broken)
    service.on_snapshot_changed(seen.append)

    await service.refresh()
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_close_during_flight_discards_result():
    service, store, kv, provider = _gated_service({"AAA": 60.0})
    store.add_position("AAA", 5, 50)
    before = kv.get_str("portfolio")
    seen = []
    service.on_snapshot_changed(seen.append)

    task = service.scheduler.trigger()
    await provider.started.wait()
    await service.close()

    provider.release.set()
    await task

    assert service.get_snapshot().is_empty
    assert seen == []
    assert kv.get_str("portfolio") == before
    assert not (await service.add_position("BBB", 1, 1)).ok


@pytest.mark.asyncio
async def test_add_during_flight_is_not_overwritten_and_reruns():
    service, store, kv, provider = _gated_service({"AAA": 60.0, "BBB": 20.0})
    store.add_position("AAA", 5, 50)

    task = service.scheduler.trigger()
    await provider.started.wait()

    assert (await service.add_position("BBB", 2, 10)).ok
    assert (await service.add_position("AAA", 5, 70)).ok
    provider.release.set()
    await asyncio.wait_for(task, timeout=2)

    assert service.scheduler.completed_runs == 2
    aaa, bbb = store.load()
    assert aaa.shares == 10 and aaa.avg_cost == pytest.approx(60.0)
    assert bbb.shares == 2
    snapshot = service.get_snapshot()
    assert snapshot.total_value == pytest.approx(10 * 60.0 + 2 * 20.0)

    await service.close(wait=True)


@pytest.mark.asyncio
async def test_start_runs_first_reconciliation():
    kv = InMemoryKeyValueStore()
    store = PositionStore(kv)
    service = PortfolioService(store=store, reconciler=make_reconciler(), timer_enabled=False)

    await service.start()
    try:
        snapshot = service.get_snapshot()
        assert [p.symbol for p in snapshot.positions] == ["RELIANCE", "TCS", "HDFCBANK", "INFY"]
        assert all(p.price_source == "synthetic" for p in snapshot.positions)
        assert sum(w.percent for w in snapshot.sector_allocation) == 100
    finally:
        await service.close(wait=True)


class ThreadRecordingStore(InMemoryKeyValueStore):
    def __init__(self):
        super().__init__()
        self.threads = set()

    def get_str(self, key):
        self.threads.add(threading.get_ident())
        return super().get_str(key)

    def set_str(self, key, value):
        self.threads.add(threading.get_ident())
        super().set_str(key, value)


@pytest.mark.asyncio
async def test_store_access_runs_off_the_event_loop_thread():
    kv = ThreadRecordingStore()
    service = PortfolioService(
        store=PositionStore(kv, seed=()),
        reconciler=make_reconciler(StaticProvider({"AAA": 60.0})),
        timer_enabled=False,
    )

    await service.add_position("AAA", 1, 10)
    await service.refresh()
    await service.remove_position("AAA")
    await service.close(wait=True)

    assert kv.threads
    assert threading.get_ident() not in kv.threads


@pytest.mark.asyncio
async def test_corrupt_store_file_yields_empty_snapshot_and_is_kept(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{not json")
    service = PortfolioService(
        store=PositionStore(JsonFileKeyValueStore(path)),
        reconciler=make_reconciler(),
        timer_enabled=False,
    )

    await service.start()
    try:
        assert service.get_snapshot().is_empty
        assert path.read_text() == "{not json"
    finally:
        await service.close(wait=True)


@pytest.mark.asyncio
async def test_duplicate_stored_rows_are_consolidated_on_write_back():
    rows = [
        {"symbol": "AAA", "shares": 1, "avg_cost": 10},
        {"symbol": "BBB", "shares": 2, "avg_cost": 5},
        {"symbol": "AAA", "shares": 3, "avg_cost": 30},
    ]
    kv = InMemoryKeyValueStore({"portfolio": json.dumps(rows)})
    store = PositionStore(kv, seed=())
    service = PortfolioService(
        store=store,
        reconciler=make_reconciler(StaticProvider({"AAA": 40.0, "BBB": 8.0})),
        timer_enabled=False,
    )

    snapshot = await service.refresh()
    await service.close(wait=True)

    assert [p.symbol for p in snapshot.positions] == ["AAA", "BBB"]
    aaa, bbb = store.load()
    assert aaa.shares == 4 and aaa.avg_cost == pytest.approx(25.0)
    assert aaa.current_price == 40.0
    assert bbb.current_price == 8.0
