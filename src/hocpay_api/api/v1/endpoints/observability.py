"""Operator-facing telemetry for the rewards engine."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from hocpay_api.api.dependencies.security import require_internal_api_key
from hocpay_api.observability.rewards import get_rewards_store


router = APIRouter(prefix="/observability", tags=["Observability"])


@router.get(
    "/rewards",
    dependencies=[Depends(require_internal_api_key)],
    summary="Aggregation strategy and plan change counters",
)
async def get_rewards_snapshot() -> dict[str, object]:
    """Which strategies served each aggregation, and plan change outcomes."""
    return get_rewards_store().snapshot().as_dict()


def _format_metric(name: str, description: str, value: int | float, labels: dict[str, str] | None = None) -> list[str]:
    label_fragment = ""
    if labels:
        formatted = ",".join(f'{key}="{val}"' for key, val in sorted(labels.items()))
        label_fragment = f"{{{formatted}}}"
    return [
        f"# HELP {name} {description}",
        f"# TYPE {name} counter",
        f"{name}{label_fragment} {value}",
    ]


@router.get(
    "/prometheus",
    dependencies=[Depends(require_internal_api_key)],
    summary="Prometheus-formatted rewards metrics",
    response_class=PlainTextResponse,
)
async def get_prometheus_metrics() -> PlainTextResponse:
    snapshot = get_rewards_store().snapshot()
    lines: list[str] = []
    for operation, strategies in sorted(snapshot.strategies.items()):
        for strategy, count in sorted(strategies.items()):
            lines.extend(
                _format_metric(
                    "hocpay_rewards_aggregation_served_total",
                    "Aggregations served per strategy",
                    count,
                    {"operation": operation, "strategy": strategy},
                )
            )
    for operation, strategies in sorted(snapshot.failures.items()):
        for strategy, count in sorted(strategies.items()):
            lines.extend(
                _format_metric(
                    "hocpay_rewards_aggregation_failures_total",
                    "Failed aggregation strategy attempts",
                    count,
                    {"operation": operation, "strategy": strategy},
                )
            )
    for operation, count in sorted(snapshot.exhausted.items()):
        lines.extend(
            _format_metric(
                "hocpay_rewards_aggregation_exhausted_total",
                "Aggregations where every strategy failed",
                count,
                {"operation": operation},
            )
        )
    for outcome, count in sorted(snapshot.plan_changes.items()):
        lines.extend(
            _format_metric(
                "hocpay_rewards_plan_changes_total",
                "Reward plan writes by outcome",
                count,
                {"outcome": outcome},
            )
        )
    return PlainTextResponse("\n".join(lines) + "\n")
