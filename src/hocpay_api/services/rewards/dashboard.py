"""Merchant dashboard summary."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from loguru import logger

from hocpay_api.core.settings import settings
from hocpay_api.models.merchant import MerchantStatusEnum
from hocpay_api.observability.rewards import RewardsObservabilityStore
from hocpay_api.services.rewards.aggregation import RecentReferral, ReferralAggregationEngine
from hocpay_api.services.rewards.cycles import CycleResolver, month_bounds
from hocpay_api.services.rewards.errors import MerchantNotFoundError
from hocpay_api.services.rewards.fallback import Strategy, constant, first_success
from hocpay_api.services.rewards.goals import GoalProgress, measure_goal
from hocpay_api.services.rewards.stores import (
    MerchantProfile,
    MerchantProfileStore,
    ReferralQuery,
    ReferralRecordStore,
    UserAccountStore,
)


@dataclass
class MerchantDashboard:
    merchant_id: str
    display_name: str
    first_name: str
    status: MerchantStatusEnum
    referral_code: str | None
    share_link: str | None
    wallet_balance: Decimal
    lifetime_cashback: Decimal
    monthly_cashback: Decimal
    total_referrals: int
    active_referrals: int
    recent_referrals: list[RecentReferral]
    goal: GoalProgress


def share_link_for(code: str | None, base_url: str | None = None) -> str | None:
    if not code:
        return None
    base = (base_url if base_url is not None else settings.invite_base_url) or settings.frontend_url
    return f"{base.rstrip('/')}/r/{code}"


class DashboardService:
    """Loads everything the dashboard shows for one merchant, in one pass.

    Aggregations run through a ``ReferralAggregationEngine`` built for the
    requested merchant, so a dashboard never mixes another merchant's referrals.
    """

    def __init__(
        self,
        profiles: MerchantProfileStore,
        referrals: ReferralRecordStore,
        *,
        accounts: UserAccountStore,
        resolver: CycleResolver,
        telemetry: RewardsObservabilityStore | None = None,
        recent_limit: int | None = None,
    ) -> None:
        self._profiles = profiles
        self._referrals = referrals
        self._accounts = accounts
        self._resolver = resolver
        self._telemetry = telemetry
        self._recent_limit = recent_limit or settings.rewards_recent_limit

    def engine_for(self, merchant_id: str, now: datetime) -> ReferralAggregationEngine:
        return ReferralAggregationEngine(
            self._referrals,
            merchant_id,
            telemetry=self._telemetry,
            clock=lambda: now,
        )

    async def load_profile(self, merchant_id: str) -> MerchantProfile:
        profile = await self._profiles.get(merchant_id)
        if profile is None:
            raise MerchantNotFoundError(merchant_id)
        return profile

    async def wallet_balance(self, merchant_id: str) -> Decimal:
        async def from_account() -> Decimal:
            account = await self._accounts.get(merchant_id)
            return account.wallet_balance if account is not None else Decimal("0")

        return await first_success(
            "wallet_balance",
            [Strategy("account", from_account), constant("zero", Decimal("0"))],
            telemetry=self._telemetry,
        )

    async def goal(self, merchant_id: str, *, now: datetime | None = None) -> GoalProgress:
        now = now or datetime.now(timezone.utc)
        profile = await self.load_profile(merchant_id)
        engine = self.engine_for(merchant_id, now)
        return await measure_goal(profile, resolver=self._resolver, engine=engine, now=now)

    async def load(self, merchant_id: str, *, now: datetime | None = None) -> MerchantDashboard:
        now = now or datetime.now(timezone.utc)
        profile = await self.load_profile(merchant_id)
        engine = self.engine_for(merchant_id, now)

        display_name = profile.full_name or profile.email or "Merchant"
        first_name = display_name.split()[0] if display_name.split() else "Merchant"

        # referral codes are only shown once the review process activates the merchant
        referral_code: str | None = None
        if profile.status == MerchantStatusEnum.ACTIVE:
            referral_code = profile.referral_code

        month_start, next_month_start = month_bounds(now, self._resolver.tz)
        month_query = ReferralQuery(joined_from=month_start, joined_before=next_month_start)

        wallet_balance = await self.wallet_balance(merchant_id)
        total_referrals = await engine.count_all()
        active_referrals = await engine.count_active()
        monthly_cashback = await engine.sum_active_cashback(month_query)
        recent = await engine.recent_active(self._recent_limit)
        goal = await measure_goal(profile, resolver=self._resolver, engine=engine, now=now)

        logger.bind(
            merchant_id=merchant_id,
            total_referrals=total_referrals,
            active_referrals=active_referrals,
            goal_target=goal.target,
            goal_progress=goal.progress,
        ).debug("Dashboard computed")

        return MerchantDashboard(
            merchant_id=merchant_id,
            display_name=display_name,
            first_name=first_name,
            status=profile.status,
            referral_code=referral_code,
            share_link=share_link_for(referral_code),
            wallet_balance=wallet_balance,
            lifetime_cashback=profile.cashback_earned,
            monthly_cashback=monthly_cashback,
            total_referrals=total_referrals,
            active_referrals=active_referrals,
            recent_referrals=recent,
            goal=goal,
        )


__all__ = ["DashboardService", "MerchantDashboard", "share_link_for"]
