"""Request-scoped construction of the rewards stores and services."""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hocpay_api.db.session import get_session
from hocpay_api.observability.rewards import get_rewards_store
from hocpay_api.services.rewards import (
    CycleResolver,
    DashboardService,
    ReferralLedgerService,
    RewardPlanService,
)
from hocpay_api.services.rewards.sql_stores import (
    SqlCycleStore,
    SqlMerchantProfileStore,
    SqlReferralRecordStore,
    SqlUserAccountStore,
)


def get_referral_store(db: AsyncSession = Depends(get_session)) -> SqlReferralRecordStore:
    return SqlReferralRecordStore(db)


def get_plan_service(db: AsyncSession = Depends(get_session)) -> RewardPlanService:
    return RewardPlanService(
        SqlMerchantProfileStore(db),
        SqlUserAccountStore(db),
        telemetry=get_rewards_store(),
    )


def get_dashboard_service(
    referrals: SqlReferralRecordStore = Depends(get_referral_store),
    db: AsyncSession = Depends(get_session),
) -> DashboardService:
    return DashboardService(
        SqlMerchantProfileStore(db),
        referrals,
        accounts=SqlUserAccountStore(db),
        resolver=CycleResolver(SqlCycleStore(db)),
        telemetry=get_rewards_store(),
    )


def get_ledger_service(
    referrals: SqlReferralRecordStore = Depends(get_referral_store),
) -> ReferralLedgerService:
    return ReferralLedgerService(referrals)
