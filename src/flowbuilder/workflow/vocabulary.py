"""Keyword vocabularies and tuning constants shared by synthesis and analysis.

The numeric values are product tuning, not correctness requirements, so they
live in one model that settings can override.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from pydantic import BaseModel

# Word-prefix match so "information" does not count as "format"
TRANSFORM_PATTERN = re.compile(
    r"\b(transform|re-?format|format|convert|reshap|normaliz|clean\s+up)\w*",
    re.IGNORECASE,
)

# Node kinds that introduce branching or iteration
BRANCHING_KINDS = frozenset(
    {
        "n8n-nodes-base.if",
        "n8n-nodes-base.switch",
        "n8n-nodes-base.splitInBatches",
    }
)

ERROR_HANDLING_KINDS = frozenset(
    {
        "n8n-nodes-base.errorTrigger",
        "n8n-nodes-base.stopAndError",
    }
)

DATA_SHAPING_KINDS = frozenset(
    {
        "n8n-nodes-base.set",
        "n8n-nodes-base.code",
        "n8n-nodes-base.function",
        "n8n-nodes-base.itemLists",
    }
)


class AnalysisTuning(BaseModel):
    """Thresholds, latency weights and keyword lists used by the analyzer."""

    simple_max_nodes: int = 5
    simple_max_connections: int = 4
    complex_min_nodes: int = 16
    complex_min_connections: int = 21

    base_execution_seconds: int = 5
    per_node_seconds: int = 2
    enterprise_penalty_seconds: int = 15
    database_penalty_seconds: int = 10

    error_handling_min_nodes: int = 4
    subworkflow_min_nodes: int = 11
    batching_min_integrations: int = 6
    queue_mode_min_nodes: int = 9

    enterprise_keywords: list[str] = [
        "salesforce",
        "sap",
        "workday",
        "oracle",
        "servicenow",
        "dynamics",
    ]
    database_keywords: list[str] = [
        "postgres",
        "mysql",
        "mongo",
        "mariadb",
        "microsoft sql",
    ]
    # Integrations that run locally and are not exposed to third-party rate limits
    local_keywords: list[str] = [
        "postgres",
        "mysql",
        "mongo",
        "mariadb",
        "file",
    ]
    payment_keywords: list[str] = [
        "stripe",
        "paypal",
        "square",
        "braintree",
    ]


def mentions_transform(text: str | None) -> bool:
    """True when the text asks for reshaping or converting data."""
    return bool(text) and TRANSFORM_PATTERN.search(text) is not None


def matches_keyword(name: str, keywords: Iterable[str]) -> bool:
    """Case-insensitive word-prefix match of any keyword inside ``name``."""
    lowered = name.lower()
    return any(
        re.search(rf"\b{re.escape(keyword.lower())}", lowered) for keyword in keywords
    )


def any_matches(names: Iterable[str], keywords: Iterable[str]) -> bool:
    keywords = list(keywords)
    return any(matches_keyword(name, keywords) for name in names)
