"""Base account record shared with the HocPay mobile app."""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum as SqlEnum,
    Numeric,
    String,
    func,
)

from hocpay_api.db.base import Base
from hocpay_api.models.merchant import MerchantStatusEnum


class UserAccount(Base):
    """Signed-up HocPay user; a merchant profile may only be created on top of one."""

    __tablename__ = "user_accounts"

    id = Column(String(128), primary_key=True)
    display_name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    # {"balance": ...}; older app builds wrote only the flat column below
    wallet = Column(JSON, nullable=True)
    wallet_balance = Column(Numeric(14, 2), nullable=True)
    virtual_account = Column(JSON, nullable=True)
    is_merchant = Column(Boolean, nullable=False, default=False, server_default="false")
    merchant_status = Column(
        SqlEnum(MerchantStatusEnum, name="merchant_status", values_callable=lambda enum: [item.value for item in enum]),
        nullable=True,
    )
    merchant_created_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
