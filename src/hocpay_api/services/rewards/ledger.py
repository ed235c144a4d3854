"""Searchable referral listing behind the merchant referrals page."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal
from zoneinfo import ZoneInfo

from hocpay_api.core.settings import settings
from hocpay_api.services.rewards.stores import ReferralQuery, ReferralRecordStore

StatusFilter = Literal["All", "Active", "Inactive"]


@dataclass(frozen=True, slots=True)
class ReferralLedgerRow:
    id: str
    name: str
    joined_at: datetime
    total_tx: int
    cashback: Decimal
    status: Literal["Active", "Inactive"]


@dataclass(frozen=True, slots=True)
class ReferralLedgerTotals:
    total_referrals: int
    active_referrals: int
    total_transactions: int
    total_cashback: Decimal


@dataclass(frozen=True, slots=True)
class ReferralLedgerPage:
    rows: list[ReferralLedgerRow]
    totals: ReferralLedgerTotals
    page: int
    page_size: int
    total_pages: int
    matching: int


class ReferralLedgerService:
    """Lists every referral of a merchant with client-style filters.

    Totals cover all referrals regardless of the filters applied to the rows.
    Store failures propagate to the caller.
    """

    def __init__(
        self,
        referrals: ReferralRecordStore,
        *,
        timezone_name: str | None = None,
        page_size: int | None = None,
    ) -> None:
        self._referrals = referrals
        self._tz = ZoneInfo(timezone_name or settings.rewards_timezone)
        self._page_size = page_size or settings.rewards_ledger_page_size

    async def list_referrals(
        self,
        merchant_id: str,
        *,
        search: str | None = None,
        status: StatusFilter = "Active",
        month: int | None = None,
        page: int = 1,
        now: datetime | None = None,
    ) -> ReferralLedgerPage:
        if month is not None and not 1 <= month <= 12:
            raise ValueError("month must be between 1 and 12")

        now = now or datetime.now(timezone.utc)
        records = await self._referrals.query(merchant_id, ReferralQuery(newest_first=True))
        rows = [
            ReferralLedgerRow(
                id=str(record.id),
                name=record.name or "Unknown User",
                joined_at=record.resolved_date(now),
                total_tx=int(record.total_tx or 0),
                cashback=Decimal(record.cashback or 0),
                status="Active" if record.is_active is True else "Inactive",
            )
            for record in records
        ]

        totals = ReferralLedgerTotals(
            total_referrals=len(rows),
            active_referrals=sum(1 for row in rows if row.status == "Active"),
            total_transactions=sum(row.total_tx for row in rows),
            total_cashback=sum((row.cashback for row in rows), Decimal("0")),
        )

        needle = (search or "").strip().lower()
        if needle:
            rows = [row for row in rows if needle in row.name.lower()]
        if status != "All":
            rows = [row for row in rows if row.status == status]
        if month is not None:
            rows = [row for row in rows if row.joined_at.astimezone(self._tz).month == month]
        rows.sort(key=lambda row: row.joined_at, reverse=True)

        total_pages = max(1, math.ceil(len(rows) / self._page_size))
        if page < 1 or page > total_pages:
            page = 1
        start = (page - 1) * self._page_size

        return ReferralLedgerPage(
            rows=rows[start : start + self._page_size],
            totals=totals,
            page=page,
            page_size=self._page_size,
            total_pages=total_pages,
            matching=len(rows),
        )


__all__ = [
    "ReferralLedgerPage",
    "ReferralLedgerRow",
    "ReferralLedgerService",
    "ReferralLedgerTotals",
]
