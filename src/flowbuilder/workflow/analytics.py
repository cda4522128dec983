"""Per-workspace usage summary over saved packages."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable, Literal

from pydantic import BaseModel

from .schema import ComplexityTier, GeneratedPackage, TriggerKind

Timeframe = Literal["week", "month", "quarter"]

TIMEFRAME_DAYS: dict[str, int] = {"week": 7, "month": 30, "quarter": 90}
TOP_INTEGRATIONS = 5


class IntegrationUsage(BaseModel):
    integration: str
    count: int


class WorkflowAnalyticsSummary(BaseModel):
    timeframe: Timeframe
    total_workflows: int
    dominant_complexity: ComplexityTier = "simple"
    average_node_count: int = 0
    most_used_trigger: TriggerKind = "scheduled"
    most_used_integrations: list[IntegrationUsage] = []
    complexity_distribution: dict[str, int] = {}
    trigger_distribution: dict[str, int] = {}
    integration_usage: dict[str, int] = {}


def timeframe_start(timeframe: Timeframe, now: datetime) -> datetime:
    return now - timedelta(days=TIMEFRAME_DAYS[timeframe])


def summarize_packages(
    packages: Iterable[GeneratedPackage], timeframe: Timeframe = "month"
) -> WorkflowAnalyticsSummary:
    """Distributions and averages over the given packages.

    Ties in the "most used" fields go to whichever value was seen first.
    """
    packages = list(packages)
    if not packages:
        return WorkflowAnalyticsSummary(timeframe=timeframe, total_workflows=0)

    complexity = Counter(p.analysis.complexity_tier for p in packages)
    triggers = Counter(p.request.trigger_kind for p in packages)
    integrations = Counter(name for p in packages for name in p.request.integrations)
    total_nodes = sum(p.analysis.node_count for p in packages)

    return WorkflowAnalyticsSummary(
        timeframe=timeframe,
        total_workflows=len(packages),
        dominant_complexity=complexity.most_common(1)[0][0],
        # half rounds up
        average_node_count=int(total_nodes / len(packages) + 0.5),
        most_used_trigger=triggers.most_common(1)[0][0],
        most_used_integrations=[
            IntegrationUsage(integration=name, count=count)
            for name, count in integrations.most_common(TOP_INTEGRATIONS)
        ],
        complexity_distribution=dict(complexity),
        trigger_distribution=dict(triggers),
        integration_usage=dict(integrations),
    )
