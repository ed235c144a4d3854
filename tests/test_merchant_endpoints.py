from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient

from stubs import StubReferralStore

from hocpay_api.api.dependencies.rewards import get_referral_store
from hocpay_api.models import (
    Merchant,
    MerchantReferral,
    MerchantStatusEnum,
    RewardPeriodEnum,
    RewardTierEnum,
    UserAccount,
)

ONBOARDING_PAYLOAD = {
    "fullName": "Kemi Adeyemi",
    "email": "kemi@example.com",
    "phone": "+2348000000000",
    "city": "Lagos",
    "country": "Nigeria",
    "bvn": "12345678901",
    "govIdPath": "kyc/merchant-1/gov-id.png",
    "utilityPath": "kyc/merchant-1/utility.pdf",
    "period": "weekly",
    "tier": "bronze",
}


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


async def _seed_user_account(session_factory, account_id: str = "merchant-1", **fields) -> None:
    async with session_factory() as session:
        session.add(UserAccount(id=account_id, **fields))
        await session.commit()


async def _seed_merchant(session_factory, *, selected_at: datetime) -> None:
    async with session_factory() as session:
        session.add(UserAccount(id="merchant-1", wallet={"balance": "1500.00"}))
        session.add(
            Merchant(
                id="merchant-1",
                full_name="Kemi Adeyemi",
                status=MerchantStatusEnum.ACTIVE,
                referral_code="KEMI01",
                reward_plan_period=RewardPeriodEnum.WEEKLY,
                reward_plan_tier=RewardTierEnum.STARTER,
                reward_plan_selected_at=selected_at,
            )
        )
        await session.flush()
        now = datetime.now(timezone.utc)
        session.add_all(
            [
                MerchantReferral(
                    merchant_id="merchant-1",
                    name=f"Customer {index}",
                    is_active=index != 0,
                    joined_at=now - timedelta(minutes=index + 1),
                    cashback=Decimal("25.00"),
                    total_tx=index,
                )
                for index in range(4)
            ]
        )
        await session.commit()


@pytest.mark.asyncio
async def test_onboarding_then_plan_is_locked(app_with_db, rewards_store) -> None:
    app, session_factory = app_with_db
    await _seed_user_account(
        session_factory,
        virtual_account={"accountNumber": "9930012345", "provider": "providus", "status": "active"},
    )

    async with _client(app) as client:
        created = await client.post("/api/v1/merchants/merchant-1/onboarding", json=ONBOARDING_PAYLOAD)
        assert created.status_code == 201
        body = created.json()
        assert body["plan"]["period"] == "weekly"
        assert body["plan"]["tier"] == "bronze"
        assert body["locked"] is True
        assert body["canChange"] is False

        selected_at = datetime.fromisoformat(body["plan"]["selectedAt"])
        locked_until = datetime.fromisoformat(body["lockedUntil"])
        assert locked_until - selected_at == timedelta(days=30)

        duplicate = await client.post("/api/v1/merchants/merchant-1/onboarding", json=ONBOARDING_PAYLOAD)
        assert duplicate.status_code == 409

        change = await client.put(
            "/api/v1/merchants/merchant-1/reward-plan",
            json={"period": "monthly", "tier": "gold"},
        )
        assert change.status_code == 423
        detail = change.json()["detail"]
        assert datetime.fromisoformat(detail["lockedUntil"]) == locked_until

        current = await client.get("/api/v1/merchants/merchant-1/reward-plan")
        assert current.json()["plan"]["tier"] == "bronze"

    assert rewards_store.snapshot().plan_changes == {"onboarded": 1, "rejected_locked": 1}

    async with session_factory() as session:
        merchant = await session.get(Merchant, "merchant-1")
        account = await session.get(UserAccount, "merchant-1")
        assert merchant.account_number == "9930012345"
        assert merchant.virtual_account_summary["provider"] == "providus"
        assert account.is_merchant is True
        assert account.merchant_status == MerchantStatusEnum.CREATED


@pytest.mark.asyncio
async def test_onboarding_requires_signed_up_user(app_with_db) -> None:
    app, session_factory = app_with_db

    async with _client(app) as client:
        response = await client.post("/api/v1/merchants/stranger/onboarding", json=ONBOARDING_PAYLOAD)

    assert response.status_code == 404
    assert "complete signup" in response.json()["detail"]

    async with session_factory() as session:
        assert await session.get(Merchant, "stranger") is None


@pytest.mark.asyncio
async def test_onboarding_rejects_tier_outside_catalog(app_with_db) -> None:
    app, session_factory = app_with_db
    await _seed_user_account(session_factory)

    async with _client(app) as client:
        response = await client.post(
            "/api/v1/merchants/merchant-1/onboarding",
            json={**ONBOARDING_PAYLOAD, "tier": "platinum"},
        )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_reward_plan_for_new_merchant_is_open(app_with_db) -> None:
    app, _ = app_with_db

    async with _client(app) as client:
        response = await client.get("/api/v1/merchants/newcomer/reward-plan")

    assert response.status_code == 200
    assert response.json() == {"plan": None, "locked": False, "canChange": True, "lockedUntil": None}


@pytest.mark.asyncio
async def test_plan_change_accepted_after_lock_window(app_with_db) -> None:
    app, session_factory = app_with_db
    await _seed_merchant(session_factory, selected_at=datetime.now(timezone.utc) - timedelta(days=31))

    async with _client(app) as client:
        response = await client.put(
            "/api/v1/merchants/merchant-1/reward-plan",
            json={"period": "monthly", "tier": "bronze"},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["plan"]["period"] == "monthly"
    assert body["plan"]["tier"] == "bronze"
    assert body["locked"] is True


@pytest.mark.asyncio
async def test_plan_change_for_unknown_merchant(app_with_db) -> None:
    app, _ = app_with_db

    async with _client(app) as client:
        response = await client.put(
            "/api/v1/merchants/ghost/reward-plan",
            json={"period": "weekly", "tier": "gold"},
        )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_dashboard_endpoint(app_with_db) -> None:
    app, session_factory = app_with_db
    await _seed_merchant(session_factory, selected_at=datetime.now(timezone.utc) - timedelta(days=3))

    async with _client(app) as client:
        response = await client.get("/api/v1/merchants/merchant-1/dashboard")

    assert response.status_code == 200
    payload = response.json()
    assert payload["firstName"] == "Kemi"
    assert payload["referralCode"] == "KEMI01"
    assert payload["shareLink"].endswith("/r/KEMI01")
    assert payload["walletBalance"] == 1500.0
    assert payload["totalReferrals"] == 4
    assert payload["activeReferrals"] == 3
    assert [item["name"] for item in payload["recentReferrals"]] == ["Customer 1", "Customer 2", "Customer 3"]
    goal = payload["goal"]
    assert goal["target"] == 5
    assert goal["progress"] == 3
    assert goal["percentage"] == 60
    assert goal["periodLabel"] == "Week"
    assert goal["source"] == "plan"


@pytest.mark.asyncio
async def test_goal_endpoint(app_with_db) -> None:
    app, session_factory = app_with_db
    await _seed_merchant(session_factory, selected_at=datetime.now(timezone.utc) - timedelta(days=3))

    async with _client(app) as client:
        response = await client.get("/api/v1/merchants/merchant-1/goal")

    assert response.status_code == 200
    assert response.json()["hasGoal"] is True
    assert response.json()["target"] == 5


@pytest.mark.asyncio
async def test_dashboard_unknown_merchant(app_with_db) -> None:
    app, _ = app_with_db

    async with _client(app) as client:
        response = await client.get("/api/v1/merchants/ghost/dashboard")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_dashboard_unavailable_when_recent_referrals_fail(app_with_db, rewards_store) -> None:
    app, session_factory = app_with_db
    await _seed_merchant(session_factory, selected_at=datetime.now(timezone.utc) - timedelta(days=3))

    def failing_store() -> StubReferralStore:
        return StubReferralStore(fail_query=True, fail_count=True)

    app.dependency_overrides[get_referral_store] = failing_store

    async with _client(app) as client:
        response = await client.get("/api/v1/merchants/merchant-1/dashboard")

    assert response.status_code == 503
    snapshot = rewards_store.snapshot()
    assert snapshot.strategies["count_all"] == {"zero": 1}
    assert snapshot.exhausted == {"recent_active": 1}


@pytest.mark.asyncio
async def test_referral_ledger_endpoint(app_with_db) -> None:
    app, session_factory = app_with_db
    await _seed_merchant(session_factory, selected_at=datetime.now(timezone.utc) - timedelta(days=3))

    async with _client(app) as client:
        default = await client.get("/api/v1/merchants/merchant-1/referrals")
        everyone = await client.get(
            "/api/v1/merchants/merchant-1/referrals",
            params={"status": "All", "search": "customer 0"},
        )
        invalid = await client.get("/api/v1/merchants/merchant-1/referrals", params={"month": 0})

    assert default.status_code == 200
    body = default.json()
    assert body["totalReferrals"] == 4
    assert body["activeReferrals"] == 3
    assert body["totalTransactions"] == 6
    assert body["totalCashback"] == 100.0
    assert [row["name"] for row in body["referrals"]] == ["Customer 1", "Customer 2", "Customer 3"]
    assert body["pageSize"] == 10

    assert [row["status"] for row in everyone.json()["referrals"]] == ["Inactive"]
    assert invalid.status_code == 422


@pytest.mark.asyncio
async def test_reward_tiers_catalog(app_with_db) -> None:
    app, _ = app_with_db

    async with _client(app) as client:
        response = await client.get("/api/v1/rewards/tiers", params={"period": "monthly"})

    assert response.status_code == 200
    assert [(item["tier"], item["threshold"]) for item in response.json()] == [
        ("starter", 20),
        ("bronze", 101),
        ("gold", 1000),
    ]
