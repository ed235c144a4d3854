"""SQLAlchemy-backed implementations of the rewards store contracts."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping
from uuid import UUID

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hocpay_api.models.cycle import MerchantCycle
from hocpay_api.models.merchant import Merchant, MerchantStatusEnum
from hocpay_api.models.referral import MerchantReferral
from hocpay_api.models.user_account import UserAccount
from hocpay_api.services.rewards.errors import StoreQueryError, UserAccountNotFoundError
from hocpay_api.services.rewards.stores import (
    CycleRecord,
    MerchantProfile,
    ReferralQuery,
    ReferralRecord,
    RewardPlan,
    UserAccountRecord,
    VirtualAccount,
    ensure_utc,
)


# Onboarding-only columns accepted by ``SqlMerchantProfileStore.put``.
_PROFILE_EXTRA_COLUMNS = (
    "phone",
    "address",
    "city",
    "state",
    "country",
    "bvn",
    "gov_id_path",
    "utility_path",
    "account_number",
    "virtual_account_summary",
)
_WRITABLE_FIELDS = frozenset(
    {
        "full_name",
        "email",
        "status",
        "cashback_earned",
        "referral_code",
        "current_cycle_id",
        "reward_plan",
        *_PROFILE_EXTRA_COLUMNS,
    }
)


def _to_profile(merchant: Merchant) -> MerchantProfile:
    plan: RewardPlan | None = None
    if merchant.reward_plan_period and merchant.reward_plan_tier and merchant.reward_plan_selected_at:
        plan = RewardPlan(
            period=merchant.reward_plan_period,
            tier=merchant.reward_plan_tier,
            selected_at=ensure_utc(merchant.reward_plan_selected_at),
        )
    return MerchantProfile(
        merchant_id=merchant.id,
        full_name=merchant.full_name,
        email=merchant.email,
        status=merchant.status or MerchantStatusEnum.CREATED,
        cashback_earned=Decimal(merchant.cashback_earned or 0),
        referral_code=merchant.referral_code,
        reward_plan=plan,
        current_cycle_id=merchant.current_cycle_id,
        created_at=ensure_utc(merchant.created_at),
    )


def _to_referral(row: MerchantReferral) -> ReferralRecord:
    return ReferralRecord(
        id=row.id,
        name=row.name,
        joined_at=ensure_utc(row.joined_at),
        created_at=ensure_utc(row.created_at),
        cashback=Decimal(row.cashback or 0),
        is_active=bool(row.is_active),
        total_tx=int(row.total_tx or 0),
    )


def _to_cycle(row: MerchantCycle) -> CycleRecord:
    return CycleRecord(
        id=row.id,
        period=row.period,
        tier=row.tier,
        start=ensure_utc(row.start_date),
        end=ensure_utc(row.end_date),
        threshold=int(row.threshold or 0),
        amount_due=Decimal(row.amount_due or 0),
        payout_status=row.payout_status,
    )


def _to_decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        logger.warning("Unreadable wallet balance", value=repr(value))
        return Decimal("0")


def _wallet_balance(account: UserAccount) -> Decimal:
    """Nested ``wallet.balance`` first, then the flat legacy column, else zero."""

    if isinstance(account.wallet, dict) and account.wallet.get("balance") is not None:
        return _to_decimal(account.wallet["balance"])
    return _to_decimal(account.wallet_balance)


def _to_virtual_account(raw: Any) -> VirtualAccount | None:
    if not isinstance(raw, dict):
        return None
    return VirtualAccount(
        number=raw.get("number") or raw.get("accountNumber"),
        provider=raw.get("provider"),
        provider_env=raw.get("providerEnv"),
        status=raw.get("status"),
        created_at=raw.get("createdAt"),
        updated_at=raw.get("updatedAt"),
    )


def _to_user_account(account: UserAccount) -> UserAccountRecord:
    return UserAccountRecord(
        account_id=account.id,
        display_name=account.display_name,
        email=account.email,
        wallet_balance=_wallet_balance(account),
        virtual_account=_to_virtual_account(account.virtual_account),
        is_merchant=bool(account.is_merchant),
        merchant_status=account.merchant_status,
    )


class SqlMerchantProfileStore:
    """Merchant profiles persisted in the ``merchants`` table."""

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def get(self, merchant_id: str) -> MerchantProfile | None:
        try:
            merchant = await self._db.get(Merchant, merchant_id, populate_existing=True)
        except SQLAlchemyError as exc:
            raise StoreQueryError(f"Failed to load merchant {merchant_id}") from exc
        if merchant is None:
            return None
        return _to_profile(merchant)

    async def put(self, merchant_id: str, fields: Mapping[str, Any], *, merge: bool = True) -> None:
        """Upsert a merchant row.

        Without ``merge`` every profile column not named in ``fields`` is reset.
        A ``reward_plan`` entry always rewrites period, tier, and timestamp
        together.
        """

        unknown = [key for key in fields if key not in _WRITABLE_FIELDS]
        if unknown:
            raise ValueError(f"Unsupported merchant fields: {', '.join(sorted(unknown))}")

        try:
            merchant = await self._db.get(Merchant, merchant_id)
            if merchant is None:
                merchant = Merchant(id=merchant_id)
                self._db.add(merchant)
            elif not merge:
                self._reset(merchant)

            for key, value in fields.items():
                if key == "reward_plan":
                    self._apply_plan(merchant, value)
                else:
                    setattr(merchant, key, value)

            await self._db.commit()
            await self._db.refresh(merchant)
        except SQLAlchemyError as exc:
            await self._db.rollback()
            raise StoreQueryError(f"Failed to write merchant {merchant_id}") from exc

        logger.debug("Merchant profile written", merchant_id=merchant_id, fields=sorted(fields), merge=merge)

    @staticmethod
    def _apply_plan(merchant: Merchant, plan: RewardPlan | None) -> None:
        if plan is None:
            merchant.reward_plan_period = None
            merchant.reward_plan_tier = None
            merchant.reward_plan_selected_at = None
            return
        merchant.reward_plan_period = plan.period
        merchant.reward_plan_tier = plan.tier
        merchant.reward_plan_selected_at = ensure_utc(plan.selected_at)

    @staticmethod
    def _reset(merchant: Merchant) -> None:
        for column in ("full_name", "email", "referral_code", "current_cycle_id", *_PROFILE_EXTRA_COLUMNS):
            setattr(merchant, column, None)
        merchant.status = MerchantStatusEnum.CREATED
        merchant.cashback_earned = Decimal("0")
        SqlMerchantProfileStore._apply_plan(merchant, None)


class SqlReferralRecordStore:
    """Referral records in ``merchant_referrals`` scoped to one merchant per call."""

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    @staticmethod
    def _apply_filters(stmt, merchant_id: str, query: ReferralQuery):
        stmt = stmt.where(MerchantReferral.merchant_id == merchant_id)
        if query.active is not None:
            stmt = stmt.where(MerchantReferral.is_active.is_(query.active))
        if query.joined_from is not None:
            stmt = stmt.where(MerchantReferral.joined_at >= ensure_utc(query.joined_from))
        if query.joined_before is not None:
            stmt = stmt.where(MerchantReferral.joined_at < ensure_utc(query.joined_before))
        return stmt

    @classmethod
    def statement_for(cls, merchant_id: str, query: ReferralQuery):
        """SELECT for ``query``; undated referrals sort after dated ones on every backend."""

        stmt = cls._apply_filters(
            select(MerchantReferral).execution_options(populate_existing=True), merchant_id, query
        )
        if query.newest_first:
            stmt = stmt.order_by(
                MerchantReferral.joined_at.desc().nulls_last(),
                MerchantReferral.created_at.desc(),
            )
        if query.limit is not None:
            stmt = stmt.limit(query.limit)
        return stmt

    async def query(self, merchant_id: str, query: ReferralQuery) -> list[ReferralRecord]:
        stmt = self.statement_for(merchant_id, query)
        try:
            result = await self._db.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreQueryError(f"Referral query failed for merchant {merchant_id}") from exc
        return [_to_referral(row) for row in result.scalars().all()]

    async def count_matching(self, merchant_id: str, query: ReferralQuery) -> int:
        stmt = self._apply_filters(
            select(func.count()).select_from(MerchantReferral), merchant_id, query
        )
        try:
            result = await self._db.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreQueryError(f"Referral count failed for merchant {merchant_id}") from exc
        return int(result.scalar_one() or 0)


class SqlUserAccountStore:
    """Base user accounts in ``user_accounts``."""

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def get(self, account_id: str) -> UserAccountRecord | None:
        try:
            account = await self._db.get(UserAccount, account_id, populate_existing=True)
        except SQLAlchemyError as exc:
            raise StoreQueryError(f"Failed to load user account {account_id}") from exc
        if account is None:
            return None
        return _to_user_account(account)

    async def mark_merchant(self, account_id: str, *, status: MerchantStatusEnum, at: datetime) -> None:
        try:
            account = await self._db.get(UserAccount, account_id)
            if account is None:
                raise UserAccountNotFoundError(account_id)
            account.is_merchant = True
            account.merchant_status = status
            account.merchant_created_at = ensure_utc(at)
            await self._db.commit()
        except SQLAlchemyError as exc:
            await self._db.rollback()
            raise StoreQueryError(f"Failed to mark user account {account_id} as merchant") from exc

        logger.debug("User account marked as merchant", account_id=account_id, status=status.value)


class SqlCycleStore:
    """Explicit cycles in ``merchant_cycles``."""

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session

    async def get(self, merchant_id: str, cycle_id: UUID) -> CycleRecord | None:
        stmt = select(MerchantCycle).execution_options(populate_existing=True).where(
            MerchantCycle.id == cycle_id,
            MerchantCycle.merchant_id == merchant_id,
        )
        try:
            result = await self._db.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreQueryError(f"Cycle lookup failed for merchant {merchant_id}") from exc
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return _to_cycle(row)


__all__ = [
    "SqlCycleStore",
    "SqlMerchantProfileStore",
    "SqlReferralRecordStore",
    "SqlUserAccountStore",
]
