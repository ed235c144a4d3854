"""Public catalog of reward tiers shown on the plan selection screen."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel

from hocpay_api.models.merchant import RewardPeriodEnum
from hocpay_api.services.rewards import TierTerms, list_tier_terms


router = APIRouter(prefix="/rewards", tags=["rewards"])


class TierTermsResponse(BaseModel):
    period: str
    tier: str
    title: str
    threshold: int
    bonus: float
    description: str
    highlight: bool


def _serialize_terms(terms: TierTerms) -> TierTermsResponse:
    return TierTermsResponse(
        period=terms.period.value,
        tier=terms.tier.value,
        title=terms.title,
        threshold=terms.threshold,
        bonus=float(terms.bonus),
        description=terms.description,
        highlight=terms.highlight,
    )


@router.get("/tiers", response_model=List[TierTermsResponse])
async def list_reward_tiers(
    period: Optional[RewardPeriodEnum] = Query(None, description="Restrict to one period"),
) -> List[TierTermsResponse]:
    """Return tier thresholds and bonuses, weekly first."""

    periods = [period] if period else list(RewardPeriodEnum)
    return [_serialize_terms(terms) for item in periods for terms in list_tier_terms(item)]
