"""Referral cashback cycle and goal-tracking engine."""

from .aggregation import RecentReferral, ReferralAggregationEngine  # noqa: F401
from .catalog import TierTerms, bonus, list_tier_terms, threshold, tier_terms  # noqa: F401
from .cycles import CycleResolver, GoalWindow  # noqa: F401
from .dashboard import DashboardService, MerchantDashboard  # noqa: F401
from .errors import (  # noqa: F401
    AggregateUnsupportedError,
    AggregationUnavailableError,
    MerchantAlreadyOnboardedError,
    MerchantNotFoundError,
    PlanChangeLockedError,
    StoreQueryError,
    UnknownRewardTierError,
    UserAccountNotFoundError,
)
from .goals import GoalProgress, measure_goal  # noqa: F401
from .ledger import ReferralLedgerPage, ReferralLedgerService  # noqa: F401
from .plan_lock import (  # noqa: F401
    MerchantApplication,
    PlanChangeLock,
    PlanLockStatus,
    PlanSelection,
    RewardPlanService,
)
from .stores import (  # noqa: F401
    CycleRecord,
    MerchantProfile,
    ReferralQuery,
    ReferralRecord,
    RewardPlan,
    UserAccountRecord,
    VirtualAccount,
)
