"""Referral counts and cashback sums that degrade instead of failing."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Literal

from hocpay_api.core.settings import settings
from hocpay_api.observability.rewards import RewardsObservabilityStore
from hocpay_api.services.rewards.fallback import Strategy, constant, first_success
from hocpay_api.services.rewards.stores import ReferralQuery, ReferralRecord, ReferralRecordStore


@dataclass(frozen=True, slots=True)
class RecentReferral:
    """Row of the dashboard's recent referrals table."""

    id: str
    name: str
    joined_at: datetime
    status: Literal["Active"] = "Active"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReferralAggregationEngine:
    """Aggregates one merchant's referrals through ordered fallback strategies.

    Every operation first asks the store for the narrowest server-side answer,
    then re-reads the records without the active filter and computes locally.
    Counts and sums end with a zero default; ``recent_active`` has no default
    and raises ``AggregationUnavailableError`` when both reads fail.
    """

    def __init__(
        self,
        referrals: ReferralRecordStore,
        merchant_id: str,
        *,
        telemetry: RewardsObservabilityStore | None = None,
        recent_fallback_cap: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._referrals = referrals
        self._merchant_id = merchant_id
        self._telemetry = telemetry
        self._recent_fallback_cap = recent_fallback_cap or settings.rewards_recent_fallback_cap
        self._clock = clock

    @property
    def merchant_id(self) -> str:
        return self._merchant_id

    async def count_all(self, query: ReferralQuery | None = None) -> int:
        query = query or ReferralQuery()

        async def server_count() -> int:
            return await self._referrals.count_matching(self._merchant_id, query)

        async def scan_count() -> int:
            return len(await self._referrals.query(self._merchant_id, query))

        return await first_success(
            "count_all",
            [
                Strategy("server_count", server_count),
                Strategy("scan", scan_count),
                constant("zero", 0),
            ],
            telemetry=self._telemetry,
        )

    async def count_active(self, query: ReferralQuery | None = None) -> int:
        query = query or ReferralQuery()

        async def server_count() -> int:
            return await self._referrals.count_matching(self._merchant_id, query.with_active(True))

        async def scan_count() -> int:
            records = await self._referrals.query(self._merchant_id, query.without_active())
            return sum(1 for record in records if record.is_active is True)

        return await first_success(
            "count_active",
            [
                Strategy("server_count", server_count),
                Strategy("scan", scan_count),
                constant("zero", 0),
            ],
            telemetry=self._telemetry,
        )

    async def sum_active_cashback(self, query: ReferralQuery | None = None) -> Decimal:
        query = query or ReferralQuery()

        async def filtered_sum() -> Decimal:
            records = await self._referrals.query(self._merchant_id, query.with_active(True))
            return sum((record.cashback for record in records), Decimal("0"))

        async def scan_sum() -> Decimal:
            records = await self._referrals.query(self._merchant_id, query.without_active())
            return sum(
                (record.cashback for record in records if record.is_active is True),
                Decimal("0"),
            )

        return await first_success(
            "sum_active_cashback",
            [
                Strategy("filtered_query", filtered_sum),
                Strategy("scan", scan_sum),
                constant("zero", Decimal("0")),
            ],
            telemetry=self._telemetry,
        )

    async def recent_active(self, limit: int) -> list[RecentReferral]:
        if limit <= 0:
            return []

        async def ordered_query() -> list[RecentReferral]:
            records = await self._referrals.query(
                self._merchant_id,
                ReferralQuery(active=True, newest_first=True, limit=limit),
            )
            return self._to_recent(records)

        async def bounded_scan() -> list[RecentReferral]:
            records = await self._referrals.query(
                self._merchant_id,
                ReferralQuery(newest_first=True, limit=self._recent_fallback_cap),
            )
            active = [record for record in records if record.is_active is True]
            return self._to_recent(active[:limit])

        return await first_success(
            "recent_active",
            [
                Strategy("ordered_query", ordered_query),
                Strategy("bounded_scan", bounded_scan),
            ],
            telemetry=self._telemetry,
        )

    def _to_recent(self, records: list[ReferralRecord]) -> list[RecentReferral]:
        now = self._clock()
        return [
            RecentReferral(
                id=str(record.id),
                name=record.name or "Unknown",
                joined_at=record.resolved_date(now),
            )
            for record in records
        ]


__all__ = ["RecentReferral", "ReferralAggregationEngine"]
