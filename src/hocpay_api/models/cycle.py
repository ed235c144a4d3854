"""Explicit measurement cycles assigned to merchants."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    Column,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from hocpay_api.db.base import Base
from hocpay_api.models.merchant import RewardPeriodEnum, RewardTierEnum


class CyclePayoutStatusEnum(str, Enum):
    PAID = "paid"
    UNPAID = "unpaid"


class MerchantCycle(Base):
    """Half-open window ``[start_date, end_date)`` with its own threshold."""

    __tablename__ = "merchant_cycles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    merchant_id = Column(
        String(128),
        ForeignKey("merchants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    period = Column(
        SqlEnum(RewardPeriodEnum, name="reward_period", values_callable=lambda enum: [item.value for item in enum]),
        nullable=False,
    )
    tier = Column(
        SqlEnum(RewardTierEnum, name="reward_tier", values_callable=lambda enum: [item.value for item in enum]),
        nullable=False,
    )
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    threshold = Column(Integer, nullable=False, default=0)
    amount_due = Column(Numeric(14, 2), nullable=False, default=0, server_default="0")
    payout_status = Column(
        SqlEnum(CyclePayoutStatusEnum, name="cycle_payout_status", values_callable=lambda enum: [item.value for item in enum]),
        nullable=False,
        default=CyclePayoutStatusEnum.UNPAID,
        server_default=CyclePayoutStatusEnum.UNPAID.value,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    merchant = relationship("Merchant", back_populates="cycles")
