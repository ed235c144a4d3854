"""Exceptions raised by the rewards engine and its store adapters."""

from __future__ import annotations

from datetime import datetime


class StoreQueryError(RuntimeError):
    """A data-store call failed (missing index, quota, connectivity)."""


class AggregateUnsupportedError(StoreQueryError):
    """The store cannot compute the requested aggregate server-side."""


class AggregationUnavailableError(RuntimeError):
    """Every strategy of an aggregation operation failed."""

    def __init__(self, operation: str, attempts: list[str]) -> None:
        self.operation = operation
        self.attempts = attempts
        super().__init__(f"All strategies failed for {operation}: {', '.join(attempts)}")


class UnknownRewardTierError(LookupError):
    """A period/tier pair outside the catalog reached a lookup."""


class MerchantNotFoundError(LookupError):
    """No merchant profile exists for the requested id."""

    def __init__(self, merchant_id: str) -> None:
        self.merchant_id = merchant_id
        super().__init__(f"Merchant {merchant_id} not found")


class UserAccountNotFoundError(LookupError):
    """No base user account exists, so a merchant profile cannot be created."""

    def __init__(self, account_id: str) -> None:
        self.account_id = account_id
        super().__init__(f"User account {account_id} not found")


class MerchantAlreadyOnboardedError(RuntimeError):
    """Onboarding was attempted for a merchant whose profile already exists."""

    def __init__(self, merchant_id: str) -> None:
        self.merchant_id = merchant_id
        super().__init__(f"Merchant {merchant_id} has already completed onboarding")


class PlanChangeLockedError(RuntimeError):
    """The reward plan is inside its lock window."""

    def __init__(self, merchant_id: str, locked_until: datetime) -> None:
        self.merchant_id = merchant_id
        self.locked_until = locked_until
        super().__init__(
            f"Reward plan for merchant {merchant_id} is locked until {locked_until.isoformat()}"
        )


__all__ = [
    "AggregateUnsupportedError",
    "AggregationUnavailableError",
    "MerchantAlreadyOnboardedError",
    "MerchantNotFoundError",
    "PlanChangeLockedError",
    "StoreQueryError",
    "UnknownRewardTierError",
    "UserAccountNotFoundError",
]
