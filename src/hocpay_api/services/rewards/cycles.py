"""Resolve which window and threshold a merchant's goal is measured against."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Literal
from uuid import UUID
from zoneinfo import ZoneInfo

from loguru import logger

from hocpay_api.core.settings import settings
from hocpay_api.models.merchant import RewardPeriodEnum, RewardTierEnum
from hocpay_api.services.rewards import catalog
from hocpay_api.services.rewards.stores import CycleStore, MerchantProfile, ReferralQuery, ensure_utc

GoalSource = Literal["cycle", "plan", "none"]


@dataclass(frozen=True, slots=True)
class GoalWindow:
    """Measurement window; ``end`` of ``None`` means open-ended up to now."""

    source: GoalSource
    target: int
    period: RewardPeriodEnum | None = None
    tier: RewardTierEnum | None = None
    start: datetime | None = None
    end: datetime | None = None
    cycle_id: UUID | None = None

    @property
    def has_goal(self) -> bool:
        return self.target > 0

    @property
    def period_label(self) -> str:
        return "Month" if self.period == RewardPeriodEnum.MONTHLY else "Week"

    def referral_query(self) -> ReferralQuery:
        return ReferralQuery(joined_from=self.start, joined_before=self.end)

    @classmethod
    def none(cls) -> "GoalWindow":
        return cls(source="none", target=0)


def week_start(now: datetime, tz: ZoneInfo) -> datetime:
    """Most recent Sunday 00:00 in ``tz`` (today when ``now`` is a Sunday)."""

    local = now.astimezone(tz)
    days_since_sunday = (local.weekday() + 1) % 7
    day = local.date() - timedelta(days=days_since_sunday)
    return datetime(day.year, day.month, day.day, tzinfo=tz)


def month_bounds(now: datetime, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """``[first of this month, first of next month)`` in ``tz``."""

    local = now.astimezone(tz)
    start = datetime(local.year, local.month, 1, tzinfo=tz)
    if local.month == 12:
        end = datetime(local.year + 1, 1, 1, tzinfo=tz)
    else:
        end = datetime(local.year, local.month + 1, 1, tzinfo=tz)
    return start, end


class CycleResolver:
    """Pick the goal window: explicit cycle first, then the reward plan."""

    def __init__(self, cycles: CycleStore, *, timezone_name: str | None = None) -> None:
        self._cycles = cycles
        self._tz = ZoneInfo(timezone_name or settings.rewards_timezone)

    @property
    def tz(self) -> ZoneInfo:
        return self._tz

    async def resolve(self, profile: MerchantProfile, now: datetime) -> GoalWindow:
        """Return the active window for ``profile``.

        Raises ``StoreQueryError`` when the cycle lookup fails; callers decide
        how to degrade.
        """

        if profile.current_cycle_id is not None:
            cycle = await self._cycles.get(profile.merchant_id, profile.current_cycle_id)
            if cycle is not None:
                return GoalWindow(
                    source="cycle",
                    target=int(cycle.threshold or 0),
                    period=cycle.period,
                    tier=cycle.tier,
                    start=ensure_utc(cycle.start),
                    end=ensure_utc(cycle.end),
                    cycle_id=cycle.id,
                )
            logger.warning(
                "Current cycle not found, falling back to reward plan",
                merchant_id=profile.merchant_id,
                cycle_id=str(profile.current_cycle_id),
            )

        plan = profile.reward_plan
        if plan is not None:
            return self.plan_window(plan.period, plan.tier, now)

        return GoalWindow.none()

    def plan_window(self, period: RewardPeriodEnum, tier: RewardTierEnum, now: datetime) -> GoalWindow:
        target = catalog.threshold(period, tier)
        if period == RewardPeriodEnum.WEEKLY:
            start = week_start(now, self._tz)
            end = None
        else:
            start, end = month_bounds(now, self._tz)
        return GoalWindow(
            source="plan",
            target=target,
            period=RewardPeriodEnum(period),
            tier=RewardTierEnum(tier),
            start=ensure_utc(start),
            end=ensure_utc(end),
        )


__all__ = ["CycleResolver", "GoalWindow", "month_bounds", "week_start"]
