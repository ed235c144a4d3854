"""Reward plan selection with a cooldown between changes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from loguru import logger

from hocpay_api.core.settings import settings
from hocpay_api.models.merchant import MerchantStatusEnum, RewardPeriodEnum, RewardTierEnum
from hocpay_api.observability.rewards import RewardsObservabilityStore
from hocpay_api.services.rewards import catalog
from hocpay_api.services.rewards.errors import (
    MerchantAlreadyOnboardedError,
    MerchantNotFoundError,
    PlanChangeLockedError,
    UserAccountNotFoundError,
)
from hocpay_api.services.rewards.stores import (
    MerchantProfileStore,
    RewardPlan,
    UserAccountStore,
    ensure_utc,
)


@dataclass(frozen=True, slots=True)
class PlanLockStatus:
    locked: bool
    locked_until: datetime | None = None

    @property
    def can_change(self) -> bool:
        return not self.locked


class PlanChangeLock:
    """Locked while ``now < selected_at + lock window``; unlocked otherwise.

    There is no unlock event: the lock lapses with time. Onboarding (no profile
    yet) is always unlocked.
    """

    def __init__(self, *, lock_days: int | None = None) -> None:
        days = settings.rewards_plan_lock_days if lock_days is None else lock_days
        self._window = timedelta(days=days)

    @property
    def window(self) -> timedelta:
        return self._window

    def locked_until(self, plan: RewardPlan | None) -> datetime | None:
        if plan is None:
            return None
        return ensure_utc(plan.selected_at) + self._window

    def status(self, plan: RewardPlan | None, *, now: datetime, onboarding: bool = False) -> PlanLockStatus:
        if onboarding:
            return PlanLockStatus(locked=False)
        until = self.locked_until(plan)
        if until is None:
            return PlanLockStatus(locked=False)
        return PlanLockStatus(locked=ensure_utc(now) < until, locked_until=until)

    def is_locked(self, plan: RewardPlan | None, *, now: datetime, onboarding: bool = False) -> bool:
        return self.status(plan, now=now, onboarding=onboarding).locked


@dataclass(frozen=True, slots=True)
class PlanSelection:
    plan: RewardPlan | None
    lock: PlanLockStatus


@dataclass(frozen=True, slots=True)
class MerchantApplication:
    """KYC intake captured by the signup form; documents are already stored.

    The payout account number is not part of the intake: it comes from the
    virtual account on the user's base account.
    """

    full_name: str
    email: str
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    bvn: str | None = None
    gov_id_path: str | None = None
    utility_path: str | None = None

    def as_fields(self) -> dict[str, Any]:
        return {
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "bvn": self.bvn,
            "gov_id_path": self.gov_id_path,
            "utility_path": self.utility_path,
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RewardPlanService:
    """Onboarding and plan-change writes, guarded by ``PlanChangeLock``."""

    def __init__(
        self,
        profiles: MerchantProfileStore,
        accounts: UserAccountStore,
        *,
        lock: PlanChangeLock | None = None,
        telemetry: RewardsObservabilityStore | None = None,
    ) -> None:
        self._profiles = profiles
        self._accounts = accounts
        self._lock = lock or PlanChangeLock()
        self._telemetry = telemetry

    async def plan_status(self, merchant_id: str, *, now: datetime | None = None) -> PlanSelection:
        now = now or _utcnow()
        profile = await self._profiles.get(merchant_id)
        if profile is None:
            return PlanSelection(plan=None, lock=self._lock.status(None, now=now, onboarding=True))
        return PlanSelection(plan=profile.reward_plan, lock=self._lock.status(profile.reward_plan, now=now))

    async def complete_onboarding(
        self,
        merchant_id: str,
        application: MerchantApplication,
        *,
        period: RewardPeriodEnum,
        tier: RewardTierEnum,
        now: datetime | None = None,
    ) -> RewardPlan:
        """Create the merchant profile on top of the user's base account.

        The base account must exist. Its virtual account supplies the payout
        account number, and the account is flagged as a merchant afterwards.
        """

        now = now or _utcnow()
        catalog.tier_terms(period, tier)

        account = await self._accounts.get(merchant_id)
        if account is None:
            raise UserAccountNotFoundError(merchant_id)

        existing = await self._profiles.get(merchant_id)
        if existing is not None:
            raise MerchantAlreadyOnboardedError(merchant_id)

        plan = RewardPlan(period=RewardPeriodEnum(period), tier=RewardTierEnum(tier), selected_at=ensure_utc(now))
        virtual_account = account.virtual_account
        fields: dict[str, Any] = {
            **application.as_fields(),
            "account_number": virtual_account.number if virtual_account else None,
            "virtual_account_summary": virtual_account.summary() if virtual_account else None,
            "status": MerchantStatusEnum.CREATED,
            "reward_plan": plan,
        }
        await self._profiles.put(merchant_id, fields, merge=True)
        await self._accounts.mark_merchant(merchant_id, status=MerchantStatusEnum.CREATED, at=now)
        self._record("onboarded")
        logger.info(
            "Merchant onboarding completed",
            merchant_id=merchant_id,
            period=plan.period.value,
            tier=plan.tier.value,
        )
        return plan

    async def change_plan(
        self,
        merchant_id: str,
        *,
        period: RewardPeriodEnum,
        tier: RewardTierEnum,
        now: datetime | None = None,
    ) -> RewardPlan:
        """Replace the whole plan, or raise ``PlanChangeLockedError`` inside the window."""

        now = now or _utcnow()
        catalog.tier_terms(period, tier)

        profile = await self._profiles.get(merchant_id)
        if profile is None:
            raise MerchantNotFoundError(merchant_id)

        status = self._lock.status(profile.reward_plan, now=now)
        if status.locked:
            self._record("rejected_locked")
            logger.info(
                "Reward plan change rejected during lock window",
                merchant_id=merchant_id,
                locked_until=status.locked_until.isoformat() if status.locked_until else None,
            )
            raise PlanChangeLockedError(merchant_id, status.locked_until)

        plan = RewardPlan(period=RewardPeriodEnum(period), tier=RewardTierEnum(tier), selected_at=ensure_utc(now))
        await self._profiles.put(merchant_id, {"reward_plan": plan}, merge=True)
        self._record("accepted")
        logger.info(
            "Reward plan changed",
            merchant_id=merchant_id,
            period=plan.period.value,
            tier=plan.tier.value,
        )
        return plan

    def _record(self, outcome: str) -> None:
        if self._telemetry is not None:
            self._telemetry.record_plan_change(outcome)


__all__ = [
    "MerchantApplication",
    "PlanChangeLock",
    "PlanLockStatus",
    "PlanSelection",
    "RewardPlanService",
]
