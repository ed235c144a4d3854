from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from stubs import StubReferralStore, make_referral

from hocpay_api.services.rewards import ReferralLedgerService, StoreQueryError

NOW = datetime(2026, 10, 21, 12, 0, tzinfo=timezone.utc)


def _records() -> list:
    records = [
        make_referral(
            f"Customer {index:02d}",
            active=True,
            joined_at=NOW - timedelta(days=index),
            cashback="10.00",
            total_tx=2,
        )
        for index in range(23)
    ]
    records.append(make_referral("Dormant Dele", active=False, joined_at=NOW - timedelta(hours=1), cashback="5.00", total_tx=1))
    records.append(make_referral(None, active=False, joined_at=None, created_at=NOW - timedelta(days=90)))
    return records


def _service(records=None, **kwargs) -> ReferralLedgerService:
    return ReferralLedgerService(
        StubReferralStore(_records() if records is None else records, **kwargs),
        timezone_name="Africa/Lagos",
        page_size=10,
    )


@pytest.mark.asyncio
async def test_totals_cover_every_referral_regardless_of_filters() -> None:
    page = await _service().list_referrals("merchant-1", search="zzz", now=NOW)

    assert page.rows == []
    assert page.matching == 0
    assert page.totals.total_referrals == 25
    assert page.totals.active_referrals == 23
    assert page.totals.total_transactions == 47
    assert page.totals.total_cashback == Decimal("235.00")


@pytest.mark.asyncio
async def test_default_filter_shows_active_newest_first_paginated() -> None:
    service = _service()

    first = await service.list_referrals("merchant-1", now=NOW)
    third = await service.list_referrals("merchant-1", page=3, now=NOW)

    assert first.total_pages == 3
    assert first.matching == 23
    assert [row.name for row in first.rows[:2]] == ["Customer 00", "Customer 01"]
    assert len(first.rows) == 10
    assert [row.name for row in third.rows] == ["Customer 20", "Customer 21", "Customer 22"]


@pytest.mark.asyncio
async def test_out_of_range_page_resets_to_first() -> None:
    page = await _service().list_referrals("merchant-1", page=9, now=NOW)

    assert page.page == 1
    assert page.rows[0].name == "Customer 00"


@pytest.mark.asyncio
async def test_search_status_and_month_filters() -> None:
    service = _service()

    inactive = await service.list_referrals("merchant-1", status="Inactive", now=NOW)
    assert [row.name for row in inactive.rows] == ["Dormant Dele", "Unknown User"]
    assert inactive.rows[1].joined_at == NOW - timedelta(days=90)

    searched = await service.list_referrals("merchant-1", search="  dele ", status="All", now=NOW)
    assert [row.name for row in searched.rows] == ["Dormant Dele"]

    september = await service.list_referrals("merchant-1", month=9, now=NOW)
    assert {row.joined_at.month for row in september.rows} == {9}
    assert september.matching == 2


@pytest.mark.asyncio
async def test_invalid_month_is_rejected() -> None:
    with pytest.raises(ValueError):
        await _service().list_referrals("merchant-1", month=13, now=NOW)


@pytest.mark.asyncio
async def test_store_failures_propagate() -> None:
    with pytest.raises(StoreQueryError):
        await _service(fail_query=True).list_referrals("merchant-1", now=NOW)
