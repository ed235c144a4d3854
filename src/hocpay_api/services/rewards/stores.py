"""Store contracts the rewards engine depends on, plus the records they return.

Adapters are responsible for handing back timezone-aware UTC datetimes so the
engine never branches on timestamp shape.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping, Protocol
from uuid import UUID

from hocpay_api.models.cycle import CyclePayoutStatusEnum
from hocpay_api.models.merchant import MerchantStatusEnum, RewardPeriodEnum, RewardTierEnum


def ensure_utc(value: datetime | None) -> datetime | None:
    """Normalise a stored timestamp; naive values are taken to be UTC."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True, slots=True)
class RewardPlan:
    """Chosen incentive; always written as a complete triple."""

    period: RewardPeriodEnum
    tier: RewardTierEnum
    selected_at: datetime


@dataclass(frozen=True, slots=True)
class MerchantProfile:
    merchant_id: str
    full_name: str | None = None
    email: str | None = None
    status: MerchantStatusEnum = MerchantStatusEnum.CREATED
    cashback_earned: Decimal = Decimal("0")
    referral_code: str | None = None
    reward_plan: RewardPlan | None = None
    current_cycle_id: UUID | None = None
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class CycleRecord:
    id: UUID
    period: RewardPeriodEnum
    tier: RewardTierEnum
    start: datetime
    end: datetime
    threshold: int
    amount_due: Decimal = Decimal("0")
    payout_status: CyclePayoutStatusEnum = CyclePayoutStatusEnum.UNPAID


@dataclass(frozen=True, slots=True)
class ReferralRecord:
    id: UUID
    name: str | None = None
    joined_at: datetime | None = None
    created_at: datetime | None = None
    cashback: Decimal = Decimal("0")
    is_active: bool = False
    total_tx: int = 0

    def resolved_date(self, now: datetime) -> datetime:
        """Joined date, falling back to creation time and then ``now``."""

        return self.joined_at or self.created_at or now


@dataclass(frozen=True, slots=True)
class ReferralQuery:
    """Conjunction of constraints over one merchant's referrals.

    The joined range is half-open: ``joined_from`` inclusive, ``joined_before``
    exclusive. ``active=None`` leaves the active flag unconstrained.
    """

    joined_from: datetime | None = None
    joined_before: datetime | None = None
    active: bool | None = None
    newest_first: bool = False
    limit: int | None = None

    def with_active(self, active: bool = True) -> "ReferralQuery":
        return replace(self, active=active)

    def without_active(self) -> "ReferralQuery":
        return replace(self, active=None)

    def matches(self, record: ReferralRecord) -> bool:
        """Evaluate the filter part of the query against a loaded record."""

        if self.active is not None and record.is_active is not self.active:
            return False
        if self.joined_from is None and self.joined_before is None:
            return True
        joined_at = record.joined_at
        if joined_at is None:
            return False
        if self.joined_from is not None and joined_at < self.joined_from:
            return False
        if self.joined_before is not None and joined_at >= self.joined_before:
            return False
        return True


@dataclass(frozen=True, slots=True)
class VirtualAccount:
    """Payout account provisioned for the user by the banking partner."""

    number: str | None = None
    provider: str | None = None
    provider_env: str | None = None
    status: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def summary(self) -> dict[str, str | None]:
        return {
            "number": self.number,
            "provider": self.provider,
            "provider_env": self.provider_env,
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True, slots=True)
class UserAccountRecord:
    account_id: str
    display_name: str | None = None
    email: str | None = None
    wallet_balance: Decimal = Decimal("0")
    virtual_account: VirtualAccount | None = None
    is_merchant: bool = False
    merchant_status: MerchantStatusEnum | None = None


class MerchantProfileStore(Protocol):
    """Reads merchant profiles and applies profile writes."""

    async def get(self, merchant_id: str) -> MerchantProfile | None:
        """Return the profile or ``None`` when the merchant has not onboarded."""

    async def put(self, merchant_id: str, fields: Mapping[str, Any], *, merge: bool = True) -> None:
        """Write ``fields`` (``MerchantProfile`` attribute names plus onboarding extras)."""


class ReferralRecordStore(Protocol):
    """Query access to a merchant's referral records."""

    async def query(self, merchant_id: str, query: ReferralQuery) -> list[ReferralRecord]:
        """Return records matching every constraint of ``query``."""

    async def count_matching(self, merchant_id: str, query: ReferralQuery) -> int:
        """Server-side count; may raise ``AggregateUnsupportedError``."""


class UserAccountStore(Protocol):
    """The base account every merchant is created from."""

    async def get(self, account_id: str) -> UserAccountRecord | None:
        """Return the account or ``None`` when the user never signed up."""

    async def mark_merchant(self, account_id: str, *, status: MerchantStatusEnum, at: datetime) -> None:
        """Flag the account as a merchant with the given review status."""


class CycleStore(Protocol):
    """Read-only access to explicit measurement cycles."""

    async def get(self, merchant_id: str, cycle_id: UUID) -> CycleRecord | None:
        """Return the cycle or ``None`` when it does not exist."""


__all__ = [
    "CycleRecord",
    "CycleStore",
    "MerchantProfile",
    "MerchantProfileStore",
    "ReferralQuery",
    "ReferralRecord",
    "ReferralRecordStore",
    "RewardPlan",
    "UserAccountRecord",
    "UserAccountStore",
    "VirtualAccount",
    "ensure_utc",
]
