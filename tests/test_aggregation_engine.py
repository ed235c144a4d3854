from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from stubs import StubReferralStore, make_referral

from hocpay_api.services.rewards import (
    AggregationUnavailableError,
    ReferralAggregationEngine,
    ReferralQuery,
)

NOW = datetime(2026, 10, 21, 12, 0, tzinfo=timezone.utc)


def _october_mix() -> list:
    return [
        make_referral("Ada", active=True, joined_at=NOW - timedelta(days=1), cashback="150.00"),
        make_referral("Bola", active=True, joined_at=NOW - timedelta(days=3), cashback="50.00"),
        make_referral("Chi", active=False, joined_at=NOW - timedelta(days=2), cashback="999.00"),
        make_referral("Dayo", active=True, joined_at=datetime(2026, 9, 20, tzinfo=timezone.utc), cashback="70.00"),
        make_referral(None, active=False, joined_at=None, created_at=NOW - timedelta(days=40)),
    ]


def _engine(store: StubReferralStore, **kwargs) -> ReferralAggregationEngine:
    return ReferralAggregationEngine(store, "merchant-1", clock=lambda: NOW, **kwargs)


OCTOBER = ReferralQuery(
    joined_from=datetime(2026, 9, 30, 23, 0, tzinfo=timezone.utc),
    joined_before=datetime(2026, 10, 31, 23, 0, tzinfo=timezone.utc),
)


@pytest.mark.asyncio
async def test_server_count_and_scan_agree() -> None:
    records = _october_mix()
    server = _engine(StubReferralStore(records))
    scanning = _engine(StubReferralStore(records, fail_count=True))

    assert await server.count_all() == await scanning.count_all() == 5
    assert await server.count_active() == await scanning.count_active() == 3
    assert await server.count_active(OCTOBER) == await scanning.count_active(OCTOBER) == 2


@pytest.mark.asyncio
async def test_count_falls_back_to_scan_when_aggregate_unsupported(rewards_store) -> None:
    store = StubReferralStore(_october_mix(), fail_count=True)
    engine = _engine(store, telemetry=rewards_store)

    assert await engine.count_active() == 3

    snapshot = rewards_store.snapshot()
    assert snapshot.failures["count_active"] == {"server_count": 1}
    assert snapshot.strategies["count_active"] == {"scan": 1}
    scan_queries = [query for kind, query in store.calls if kind == "query"]
    assert scan_queries and all(query.active is None for query in scan_queries)


@pytest.mark.asyncio
async def test_counts_default_to_zero_when_store_is_down(rewards_store) -> None:
    engine = _engine(StubReferralStore(_october_mix(), fail_count=True, fail_query=True), telemetry=rewards_store)

    assert await engine.count_all() == 0
    assert await engine.count_active() == 0
    assert await engine.sum_active_cashback() == Decimal("0")
    assert rewards_store.snapshot().strategies["count_all"] == {"zero": 1}


@pytest.mark.asyncio
async def test_sum_active_cashback_only_counts_active_in_window() -> None:
    records = _october_mix()
    filtered = _engine(StubReferralStore(records))
    scanning = _engine(StubReferralStore(records, fail_filtered_query=True))

    assert await filtered.sum_active_cashback(OCTOBER) == Decimal("200.00")
    assert await scanning.sum_active_cashback(OCTOBER) == Decimal("200.00")
    assert await filtered.sum_active_cashback() == Decimal("270.00")


@pytest.mark.asyncio
async def test_recent_active_is_newest_first_and_limited() -> None:
    records = [
        make_referral(f"R{index}", active=index % 2 == 0, joined_at=NOW - timedelta(hours=index))
        for index in range(14)
    ]
    engine = _engine(StubReferralStore(records))

    recent = await engine.recent_active(5)

    assert [item.name for item in recent] == ["R0", "R2", "R4", "R6", "R8"]
    assert all(item.status == "Active" for item in recent)
    assert await engine.recent_active(0) == []


@pytest.mark.asyncio
async def test_recent_active_defaults_name_and_date() -> None:
    created = NOW - timedelta(days=2)
    engine = _engine(StubReferralStore([make_referral(None, joined_at=None, created_at=created)]))

    (item,) = await engine.recent_active(5)

    assert item.name == "Unknown"
    assert item.joined_at == created


@pytest.mark.asyncio
async def test_recent_active_bounded_scan_fallback(rewards_store) -> None:
    records = [
        make_referral(f"Active{index}", active=True, joined_at=NOW - timedelta(hours=index))
        for index in range(3)
    ] + [
        make_referral(f"Idle{index}", active=False, joined_at=NOW - timedelta(minutes=30 + index))
        for index in range(2)
    ]
    engine = _engine(StubReferralStore(records, fail_filtered_query=True), telemetry=rewards_store)

    recent = await engine.recent_active(2)

    assert [item.name for item in recent] == ["Active0", "Active1"]
    assert rewards_store.snapshot().strategies["recent_active"] == {"bounded_scan": 1}


@pytest.mark.asyncio
async def test_bounded_scan_only_inspects_newest_records() -> None:
    newest_inactive = [
        make_referral(f"Idle{index}", active=False, joined_at=NOW - timedelta(minutes=index))
        for index in range(20)
    ]
    older_active = [
        make_referral(f"Old{index}", active=True, joined_at=NOW - timedelta(days=5 + index))
        for index in range(5)
    ]
    engine = _engine(StubReferralStore(newest_inactive + older_active, fail_filtered_query=True))

    assert await engine.recent_active(5) == []


@pytest.mark.asyncio
async def test_recent_active_raises_when_every_read_fails(rewards_store) -> None:
    engine = _engine(StubReferralStore(_october_mix(), fail_query=True), telemetry=rewards_store)

    with pytest.raises(AggregationUnavailableError):
        await engine.recent_active(5)

    assert rewards_store.snapshot().exhausted == {"recent_active": 1}
