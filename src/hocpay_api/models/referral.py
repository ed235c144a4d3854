"""Referrals credited to a merchant by the ingestion pipeline."""

from __future__ import annotations

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from hocpay_api.db.base import Base


class MerchantReferral(Base):
    """A customer brought in by exactly one merchant."""

    __tablename__ = "merchant_referrals"
    __table_args__ = (
        CheckConstraint("cashback >= 0", name="ck_merchant_referrals_cashback_non_negative"),
        Index("ix_merchant_referrals_merchant_active_joined", "merchant_id", "is_active", "joined_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    merchant_id = Column(
        String(128),
        ForeignKey("merchants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String, nullable=True)
    joined_at = Column(DateTime(timezone=True), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    cashback = Column(Numeric(14, 2), nullable=False, default=0, server_default="0")
    is_active = Column(Boolean, nullable=False, default=False, server_default="false")
    total_tx = Column(Integer, nullable=False, default=0, server_default="0")

    merchant = relationship("Merchant", back_populates="referrals")
