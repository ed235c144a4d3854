"""Static referral thresholds and bonuses per (period, tier)."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping

from hocpay_api.models.merchant import RewardPeriodEnum, RewardTierEnum
from hocpay_api.services.rewards.errors import UnknownRewardTierError


@dataclass(frozen=True, slots=True)
class TierTerms:
    """Display and payout terms for one tier of one period."""

    period: RewardPeriodEnum
    tier: RewardTierEnum
    title: str
    threshold: int
    bonus: Decimal
    description: str
    highlight: bool = False


_CATALOG: Mapping[RewardPeriodEnum, Mapping[RewardTierEnum, TierTerms]] = {
    RewardPeriodEnum.WEEKLY: {
        RewardTierEnum.STARTER: TierTerms(
            period=RewardPeriodEnum.WEEKLY,
            tier=RewardTierEnum.STARTER,
            title="Starter",
            threshold=5,
            bonus=Decimal("500"),
            description="Bring 5 customers weekly, earn a starter bonus and badge",
        ),
        RewardTierEnum.BRONZE: TierTerms(
            period=RewardPeriodEnum.WEEKLY,
            tier=RewardTierEnum.BRONZE,
            title="Bronze",
            threshold=10,
            bonus=Decimal("1500"),
            description="Bring 10 customers weekly and unlock the bronze bonus and badge",
            highlight=True,
        ),
        RewardTierEnum.GOLD: TierTerms(
            period=RewardPeriodEnum.WEEKLY,
            tier=RewardTierEnum.GOLD,
            title="Gold",
            threshold=30,
            bonus=Decimal("10000"),
            description="30+ weekly customers earn the gold bonus and recognition",
        ),
    },
    RewardPeriodEnum.MONTHLY: {
        RewardTierEnum.STARTER: TierTerms(
            period=RewardPeriodEnum.MONTHLY,
            tier=RewardTierEnum.STARTER,
            title="Starter monthly",
            threshold=20,
            bonus=Decimal("2000"),
            description="Bring 20 customers monthly, earn a starter bonus and badge",
        ),
        RewardTierEnum.BRONZE: TierTerms(
            period=RewardPeriodEnum.MONTHLY,
            tier=RewardTierEnum.BRONZE,
            title="Silver",
            threshold=101,
            bonus=Decimal("5000"),
            description="Bring 101 customers monthly for the silver bonus and recognition",
            highlight=True,
        ),
        RewardTierEnum.GOLD: TierTerms(
            period=RewardPeriodEnum.MONTHLY,
            tier=RewardTierEnum.GOLD,
            title="Elite",
            threshold=1000,
            bonus=Decimal("50000"),
            description="Bring 1,000 customers monthly and unlock elite status",
        ),
    },
}


def tier_terms(period: RewardPeriodEnum, tier: RewardTierEnum) -> TierTerms:
    """Return the terms for a pair, failing fast on anything outside the catalog."""

    try:
        return _CATALOG[RewardPeriodEnum(period)][RewardTierEnum(tier)]
    except (KeyError, ValueError) as exc:
        raise UnknownRewardTierError(f"No reward tier {tier!r} for period {period!r}") from exc


def threshold(period: RewardPeriodEnum, tier: RewardTierEnum) -> int:
    return tier_terms(period, tier).threshold


def bonus(period: RewardPeriodEnum, tier: RewardTierEnum) -> Decimal:
    return tier_terms(period, tier).bonus


def list_tier_terms(period: RewardPeriodEnum) -> list[TierTerms]:
    """Tiers of a period, ordered by threshold."""

    try:
        tiers = _CATALOG[RewardPeriodEnum(period)]
    except (KeyError, ValueError) as exc:
        raise UnknownRewardTierError(f"No reward period {period!r}") from exc
    return sorted(tiers.values(), key=lambda terms: terms.threshold)


__all__ = ["TierTerms", "bonus", "list_tier_terms", "threshold", "tier_terms"]
