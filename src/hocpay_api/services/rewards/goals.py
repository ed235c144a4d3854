"""Referral goal progress for the dashboard widget."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from loguru import logger

from hocpay_api.models.merchant import RewardPeriodEnum
from hocpay_api.services.rewards.aggregation import ReferralAggregationEngine
from hocpay_api.services.rewards.cycles import CycleResolver, GoalWindow
from hocpay_api.services.rewards.errors import StoreQueryError
from hocpay_api.services.rewards.stores import MerchantProfile


@dataclass(frozen=True, slots=True)
class GoalProgress:
    target: int
    progress: int
    window: GoalWindow

    @property
    def has_goal(self) -> bool:
        """A zero target means there is no goal and the widget is hidden."""

        return self.target > 0

    @property
    def ratio_percent(self) -> float:
        if not self.has_goal:
            return 0.0
        return self.progress / self.target * 100

    @property
    def bar_width(self) -> float:
        """Fill width in percent, clamped but not rounded."""

        return min(100.0, self.ratio_percent)

    @property
    def percentage(self) -> int:
        # half-up, so 12.5 shows as 13
        return int(math.floor(self.bar_width + 0.5))

    @property
    def period(self) -> RewardPeriodEnum | None:
        return self.window.period

    @property
    def period_label(self) -> str:
        return self.window.period_label

    @classmethod
    def empty(cls) -> "GoalProgress":
        return cls(target=0, progress=0, window=GoalWindow.none())


async def measure_goal(
    profile: MerchantProfile,
    *,
    resolver: CycleResolver,
    engine: ReferralAggregationEngine,
    now: datetime,
) -> GoalProgress:
    """Resolve the window and count active referrals inside it.

    Target and progress are produced together; if the cycle lookup fails both
    stay at zero.
    """

    try:
        window = await resolver.resolve(profile, now)
    except StoreQueryError as exc:
        logger.warning(
            "Goal window unavailable",
            merchant_id=profile.merchant_id,
            error=exc.__class__.__name__,
        )
        return GoalProgress.empty()

    if not window.has_goal:
        return GoalProgress(target=0, progress=0, window=window)

    progress = await engine.count_active(window.referral_query())
    return GoalProgress(target=window.target, progress=progress, window=window)


__all__ = ["GoalProgress", "measure_goal"]
