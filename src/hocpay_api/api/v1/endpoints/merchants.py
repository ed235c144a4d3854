"""Merchant onboarding, dashboard, referral ledger, and reward plan endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from pydantic import BaseModel, Field

from hocpay_api.api.dependencies.rewards import (
    get_dashboard_service,
    get_ledger_service,
    get_plan_service,
)
from hocpay_api.models.merchant import RewardPeriodEnum, RewardTierEnum
from hocpay_api.services.rewards import (
    AggregationUnavailableError,
    DashboardService,
    GoalProgress,
    MerchantAlreadyOnboardedError,
    MerchantApplication,
    MerchantDashboard,
    MerchantNotFoundError,
    PlanChangeLockedError,
    PlanSelection,
    ReferralLedgerPage,
    ReferralLedgerService,
    RewardPlanService,
    StoreQueryError,
    UserAccountNotFoundError,
)


router = APIRouter(prefix="/merchants", tags=["merchants"])

MerchantId = Annotated[str, Path(min_length=1, max_length=128, description="Account id of the merchant")]


class OnboardingRequest(BaseModel):
    fullName: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    bvn: Optional[str] = Field(None, max_length=16)
    govIdPath: Optional[str] = Field(None, description="Storage path of the uploaded government ID")
    utilityPath: Optional[str] = Field(None, description="Storage path of the proof of address")
    period: RewardPeriodEnum
    tier: RewardTierEnum


class RewardPlanChangeRequest(BaseModel):
    period: RewardPeriodEnum
    tier: RewardTierEnum


class RewardPlanResponse(BaseModel):
    period: str
    tier: str
    selectedAt: datetime


class RewardPlanStatusResponse(BaseModel):
    plan: Optional[RewardPlanResponse]
    locked: bool
    canChange: bool
    lockedUntil: Optional[datetime]


class GoalResponse(BaseModel):
    hasGoal: bool
    target: int
    progress: int
    percentage: int
    barWidth: float
    periodLabel: str
    source: Literal["cycle", "plan", "none"]
    windowStart: Optional[datetime]
    windowEnd: Optional[datetime]
    cycleId: Optional[str]


class RecentReferralResponse(BaseModel):
    id: str
    name: str
    joinedAt: datetime
    status: Literal["Active"]


class DashboardResponse(BaseModel):
    merchantId: str
    displayName: str
    firstName: str
    status: str
    referralCode: Optional[str]
    shareLink: Optional[str]
    walletBalance: float
    lifetimeCashback: float
    monthlyCashback: float
    totalReferrals: int
    activeReferrals: int
    recentReferrals: List[RecentReferralResponse]
    goal: GoalResponse


class ReferralLedgerRowResponse(BaseModel):
    id: str
    name: str
    joinedAt: datetime
    totalTx: int
    cashback: float
    status: Literal["Active", "Inactive"]


class ReferralLedgerResponse(BaseModel):
    referrals: List[ReferralLedgerRowResponse]
    totalReferrals: int
    activeReferrals: int
    totalTransactions: int
    totalCashback: float
    page: int
    pageSize: int
    totalPages: int
    matching: int


def _serialize_selection(selection: PlanSelection) -> RewardPlanStatusResponse:
    plan = selection.plan
    return RewardPlanStatusResponse(
        plan=(
            RewardPlanResponse(
                period=plan.period.value,
                tier=plan.tier.value,
                selectedAt=plan.selected_at,
            )
            if plan
            else None
        ),
        locked=selection.lock.locked,
        canChange=selection.lock.can_change,
        lockedUntil=selection.lock.locked_until,
    )


def _serialize_goal(goal: GoalProgress) -> GoalResponse:
    window = goal.window
    return GoalResponse(
        hasGoal=goal.has_goal,
        target=goal.target,
        progress=goal.progress,
        percentage=goal.percentage,
        barWidth=goal.bar_width,
        periodLabel=goal.period_label,
        source=window.source,
        windowStart=window.start,
        windowEnd=window.end,
        cycleId=str(window.cycle_id) if window.cycle_id else None,
    )


def _serialize_dashboard(dashboard: MerchantDashboard) -> DashboardResponse:
    return DashboardResponse(
        merchantId=dashboard.merchant_id,
        displayName=dashboard.display_name,
        firstName=dashboard.first_name,
        status=dashboard.status.value,
        referralCode=dashboard.referral_code,
        shareLink=dashboard.share_link,
        walletBalance=float(dashboard.wallet_balance),
        lifetimeCashback=float(dashboard.lifetime_cashback),
        monthlyCashback=float(dashboard.monthly_cashback),
        totalReferrals=dashboard.total_referrals,
        activeReferrals=dashboard.active_referrals,
        recentReferrals=[
            RecentReferralResponse(id=item.id, name=item.name, joinedAt=item.joined_at, status=item.status)
            for item in dashboard.recent_referrals
        ],
        goal=_serialize_goal(dashboard.goal),
    )


def _serialize_ledger(page: ReferralLedgerPage) -> ReferralLedgerResponse:
    return ReferralLedgerResponse(
        referrals=[
            ReferralLedgerRowResponse(
                id=row.id,
                name=row.name,
                joinedAt=row.joined_at,
                totalTx=row.total_tx,
                cashback=float(row.cashback),
                status=row.status,
            )
            for row in page.rows
        ],
        totalReferrals=page.totals.total_referrals,
        activeReferrals=page.totals.active_referrals,
        totalTransactions=page.totals.total_transactions,
        totalCashback=float(page.totals.total_cashback),
        page=page.page,
        pageSize=page.page_size,
        totalPages=page.total_pages,
        matching=page.matching,
    )


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Merchant not found")


def _unavailable(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


@router.post(
    "/{merchant_id}/onboarding",
    response_model=RewardPlanStatusResponse,
    status_code=status.HTTP_201_CREATED,
)
async def complete_onboarding(
    payload: OnboardingRequest,
    merchant_id: MerchantId,
    service: RewardPlanService = Depends(get_plan_service),
) -> RewardPlanStatusResponse:
    """Create the merchant profile and record the first reward plan."""

    application = MerchantApplication(
        full_name=payload.fullName,
        email=payload.email,
        phone=payload.phone,
        address=payload.address,
        city=payload.city,
        state=payload.state,
        country=payload.country,
        bvn=payload.bvn,
        gov_id_path=payload.govIdPath,
        utility_path=payload.utilityPath,
    )
    try:
        await service.complete_onboarding(
            merchant_id,
            application,
            period=payload.period,
            tier=payload.tier,
        )
        selection = await service.plan_status(merchant_id)
    except MerchantAlreadyOnboardedError as error:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Merchant already onboarded") from error
    except UserAccountNotFoundError as error:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User account not found, complete signup in the mobile app first",
        ) from error
    except StoreQueryError as error:
        raise _unavailable("Could not complete onboarding, please try again") from error
    return _serialize_selection(selection)


@router.get("/{merchant_id}/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    merchant_id: MerchantId,
    service: DashboardService = Depends(get_dashboard_service),
) -> DashboardResponse:
    """Return counts, cashback, recent referrals, and goal progress."""

    try:
        dashboard = await service.load(merchant_id)
    except MerchantNotFoundError as error:
        raise _not_found() from error
    except AggregationUnavailableError as error:
        raise _unavailable("Recent referrals are temporarily unavailable") from error
    except StoreQueryError as error:
        raise _unavailable("Merchant profile is temporarily unavailable") from error
    return _serialize_dashboard(dashboard)


@router.get("/{merchant_id}/goal", response_model=GoalResponse)
async def get_goal(
    merchant_id: MerchantId,
    service: DashboardService = Depends(get_dashboard_service),
) -> GoalResponse:
    """Return only the referral goal widget values."""

    try:
        goal = await service.goal(merchant_id)
    except MerchantNotFoundError as error:
        raise _not_found() from error
    except StoreQueryError as error:
        raise _unavailable("Merchant profile is temporarily unavailable") from error
    return _serialize_goal(goal)


@router.get("/{merchant_id}/referrals", response_model=ReferralLedgerResponse)
async def list_referrals(
    merchant_id: MerchantId,
    search: Optional[str] = Query(None, description="Case-insensitive name filter"),
    status_filter: Literal["All", "Active", "Inactive"] = Query("Active", alias="status"),
    month: Optional[int] = Query(None, ge=1, le=12, description="Joined month, 1-12"),
    page: int = Query(1, ge=1),
    service: ReferralLedgerService = Depends(get_ledger_service),
) -> ReferralLedgerResponse:
    """Return a page of referrals plus totals over all of them."""

    try:
        ledger = await service.list_referrals(
            merchant_id,
            search=search,
            status=status_filter,
            month=month,
            page=page,
        )
    except StoreQueryError as error:
        raise _unavailable("Referrals are temporarily unavailable") from error
    return _serialize_ledger(ledger)


@router.get("/{merchant_id}/reward-plan", response_model=RewardPlanStatusResponse)
async def get_reward_plan(
    merchant_id: MerchantId,
    service: RewardPlanService = Depends(get_plan_service),
) -> RewardPlanStatusResponse:
    """Return the current plan and whether it may be changed now."""

    try:
        selection = await service.plan_status(merchant_id)
    except StoreQueryError as error:
        raise _unavailable("Merchant profile is temporarily unavailable") from error
    return _serialize_selection(selection)


@router.put("/{merchant_id}/reward-plan", response_model=RewardPlanStatusResponse)
async def change_reward_plan(
    payload: RewardPlanChangeRequest,
    merchant_id: MerchantId,
    service: RewardPlanService = Depends(get_plan_service),
) -> RewardPlanStatusResponse:
    """Replace the reward plan once the lock window has passed."""

    try:
        await service.change_plan(merchant_id, period=payload.period, tier=payload.tier)
        selection = await service.plan_status(merchant_id)
    except MerchantNotFoundError as error:
        raise _not_found() from error
    except PlanChangeLockedError as error:
        raise HTTPException(
            status_code=status.HTTP_423_LOCKED,
            detail={
                "message": "Reward plan can only be changed after the lock window",
                "lockedUntil": error.locked_until.isoformat(),
            },
        ) from error
    except StoreQueryError as error:
        raise _unavailable("Could not update reward plan, please try again") from error
    return _serialize_selection(selection)
