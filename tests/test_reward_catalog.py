from decimal import Decimal

import pytest

from hocpay_api.models.merchant import RewardPeriodEnum, RewardTierEnum
from hocpay_api.services.rewards import (
    UnknownRewardTierError,
    bonus,
    list_tier_terms,
    threshold,
    tier_terms,
)


@pytest.mark.parametrize(
    ("period", "tier", "expected_threshold", "expected_bonus"),
    [
        ("weekly", "starter", 5, "500"),
        ("weekly", "bronze", 10, "1500"),
        ("weekly", "gold", 30, "10000"),
        ("monthly", "starter", 20, "2000"),
        ("monthly", "bronze", 101, "5000"),
        ("monthly", "gold", 1000, "50000"),
    ],
)
def test_catalog_terms(period: str, tier: str, expected_threshold: int, expected_bonus: str) -> None:
    assert threshold(RewardPeriodEnum(period), RewardTierEnum(tier)) == expected_threshold
    assert bonus(RewardPeriodEnum(period), RewardTierEnum(tier)) == Decimal(expected_bonus)


def test_catalog_accepts_raw_string_values() -> None:
    terms = tier_terms("monthly", "bronze")

    assert terms.title == "Silver"
    assert terms.highlight is True


def test_unknown_tier_fails_fast() -> None:
    with pytest.raises(UnknownRewardTierError):
        tier_terms("weekly", "platinum")

    with pytest.raises(UnknownRewardTierError):
        threshold("fortnightly", "gold")


def test_list_tier_terms_orders_by_threshold() -> None:
    weekly = list_tier_terms(RewardPeriodEnum.WEEKLY)

    assert [terms.tier for terms in weekly] == [
        RewardTierEnum.STARTER,
        RewardTierEnum.BRONZE,
        RewardTierEnum.GOLD,
    ]
    assert all(terms.period == RewardPeriodEnum.WEEKLY for terms in weekly)
