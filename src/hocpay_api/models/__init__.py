"""SQLAlchemy models package."""

from .merchant import (  # noqa: F401
    Merchant,
    MerchantStatusEnum,
    RewardPeriodEnum,
    RewardTierEnum,
)
from .referral import MerchantReferral  # noqa: F401
from .cycle import CyclePayoutStatusEnum, MerchantCycle  # noqa: F401
from .user_account import UserAccount  # noqa: F401
