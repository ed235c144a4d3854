import pytest

from hocpay_api.services.rewards import AggregationUnavailableError, StoreQueryError
from hocpay_api.services.rewards.fallback import Strategy, constant, first_success


def _failing(name: str, events: list[str]) -> Strategy[int]:
    async def _run() -> int:
        events.append(f"{name}:start")
        events.append(f"{name}:end")
        raise StoreQueryError(f"{name} failed")

    return Strategy(name, _run)


def _returning(name: str, value: int, events: list[str]) -> Strategy[int]:
    async def _run() -> int:
        events.append(f"{name}:start")
        events.append(f"{name}:end")
        return value

    return Strategy(name, _run)


@pytest.mark.asyncio
async def test_first_success_stops_at_first_result(rewards_store) -> None:
    events: list[str] = []

    result = await first_success(
        "count_all",
        [_returning("primary", 4, events), _returning("secondary", 9, events)],
        telemetry=rewards_store,
    )

    assert result == 4
    assert events == ["primary:start", "primary:end"]
    assert rewards_store.snapshot().strategies == {"count_all": {"primary": 1}}


@pytest.mark.asyncio
async def test_store_failures_fall_through_in_order(rewards_store) -> None:
    events: list[str] = []

    result = await first_success(
        "count_active",
        [_failing("server_count", events), _returning("scan", 7, events), constant("zero", 0)],
        telemetry=rewards_store,
    )

    assert result == 7
    assert events == ["server_count:start", "server_count:end", "scan:start", "scan:end"]
    snapshot = rewards_store.snapshot()
    assert snapshot.failures == {"count_active": {"server_count": 1}}
    assert snapshot.strategies == {"count_active": {"scan": 1}}


@pytest.mark.asyncio
async def test_constant_default_after_all_reads_fail() -> None:
    events: list[str] = []

    result = await first_success(
        "count_all",
        [_failing("server_count", events), _failing("scan", events), constant("zero", 0)],
    )

    assert result == 0


@pytest.mark.asyncio
async def test_exhausted_strategies_raise(rewards_store) -> None:
    events: list[str] = []

    with pytest.raises(AggregationUnavailableError) as excinfo:
        await first_success(
            "recent_active",
            [_failing("ordered_query", events), _failing("bounded_scan", events)],
            telemetry=rewards_store,
        )

    assert excinfo.value.operation == "recent_active"
    assert excinfo.value.attempts == ["ordered_query", "bounded_scan"]
    assert isinstance(excinfo.value.__cause__, StoreQueryError)
    assert rewards_store.snapshot().exhausted == {"recent_active": 1}


@pytest.mark.asyncio
async def test_programming_errors_are_not_swallowed() -> None:
    events: list[str] = []

    async def _broken() -> int:
        raise TypeError("bad strategy")

    with pytest.raises(TypeError):
        await first_success(
            "count_all",
            [Strategy("broken", _broken), _returning("scan", 3, events)],
        )

    assert events == []
