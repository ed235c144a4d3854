"""Merchant profile model with the embedded reward plan."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Enum as SqlEnum,
    Numeric,
    String,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from hocpay_api.db.base import Base


class MerchantStatusEnum(str, Enum):
    """Review status set by the external KYC process."""

    CREATED = "created"
    ACTIVE = "Active"
    SUSPENDED = "Suspended"


class RewardPeriodEnum(str, Enum):
    """Cadence a referral goal is measured over."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"


class RewardTierEnum(str, Enum):
    """Incentive level chosen by the merchant."""

    STARTER = "starter"
    BRONZE = "bronze"
    GOLD = "gold"


class Merchant(Base):
    """Merchant account, keyed by the upstream account id."""

    __tablename__ = "merchants"
    __table_args__ = (
        CheckConstraint(
            "(reward_plan_period IS NULL AND reward_plan_tier IS NULL AND reward_plan_selected_at IS NULL)"
            " OR (reward_plan_period IS NOT NULL AND reward_plan_tier IS NOT NULL"
            " AND reward_plan_selected_at IS NOT NULL)",
            name="ck_merchants_reward_plan_complete",
        ),
    )

    id = Column(String(128), primary_key=True)
    full_name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    phone = Column(String(32), nullable=True)
    address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True)
    country = Column(String, nullable=True)
    bvn = Column(String(16), nullable=True)
    gov_id_path = Column(String, nullable=True)
    utility_path = Column(String, nullable=True)
    account_number = Column(String(32), nullable=True)
    virtual_account_summary = Column(JSON, nullable=True)
    status = Column(
        SqlEnum(MerchantStatusEnum, name="merchant_status", values_callable=lambda enum: [item.value for item in enum]),
        nullable=False,
        default=MerchantStatusEnum.CREATED,
        server_default=MerchantStatusEnum.CREATED.value,
    )
    cashback_earned = Column(Numeric(14, 2), nullable=False, default=0, server_default="0")
    referral_code = Column(String(32), nullable=True, unique=True)
    reward_plan_period = Column(
        SqlEnum(RewardPeriodEnum, name="reward_period", values_callable=lambda enum: [item.value for item in enum]),
        nullable=True,
    )
    reward_plan_tier = Column(
        SqlEnum(RewardTierEnum, name="reward_tier", values_callable=lambda enum: [item.value for item in enum]),
        nullable=True,
    )
    reward_plan_selected_at = Column(DateTime(timezone=True), nullable=True)
    current_cycle_id = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    referrals = relationship(
        "MerchantReferral", back_populates="merchant", cascade="all, delete-orphan"
    )
    cycles = relationship(
        "MerchantCycle", back_populates="merchant", cascade="all, delete-orphan"
    )
