"""Ordered fallback execution for aggregation strategies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Sequence, TypeVar

from loguru import logger

from hocpay_api.observability.rewards import RewardsObservabilityStore
from hocpay_api.services.rewards.errors import AggregationUnavailableError, StoreQueryError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Strategy(Generic[T]):
    """A named way of computing a result; ``run`` raises ``StoreQueryError`` on failure."""

    name: str
    run: Callable[[], Awaitable[T]]


def constant(name: str, value: T) -> Strategy[T]:
    """Terminal strategy that always yields ``value``."""

    async def _run() -> T:
        return value

    return Strategy(name=name, run=_run)


async def first_success(
    operation: str,
    strategies: Sequence[Strategy[T]],
    *,
    telemetry: RewardsObservabilityStore | None = None,
) -> T:
    """Await each strategy in order and return the first result.

    Strategies run strictly one after another. Only ``StoreQueryError`` moves
    on to the next strategy; any other exception propagates untouched.
    """

    attempts: list[str] = []
    last_error: StoreQueryError | None = None
    for strategy in strategies:
        try:
            result = await strategy.run()
        except StoreQueryError as exc:
            attempts.append(strategy.name)
            last_error = exc
            if telemetry is not None:
                telemetry.record_failure(operation, strategy.name)
            logger.warning(
                "Aggregation strategy failed",
                operation=operation,
                strategy=strategy.name,
                error=exc.__class__.__name__,
            )
            continue

        if telemetry is not None:
            telemetry.record_strategy(operation, strategy.name)
        if attempts:
            logger.info(
                "Aggregation served by fallback strategy",
                operation=operation,
                strategy=strategy.name,
                failed=attempts,
            )
        return result

    if telemetry is not None:
        telemetry.record_exhausted(operation)
    logger.error("Aggregation strategies exhausted", operation=operation, failed=attempts)
    raise AggregationUnavailableError(operation, attempts) from last_error


__all__ = ["Strategy", "constant", "first_success"]
