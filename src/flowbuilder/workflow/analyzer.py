"""Structural analysis of a workflow graph.

Every output is a pure function of ``(graph, request, tuning)``; packages are
cached on the strength of that, so nothing here may read clocks or randomness.
"""

from __future__ import annotations

from .resolver import resolve
from .schema import ComplexityTier, WorkflowAnalysis, WorkflowGraph, WorkflowRequest
from .trigger import default_schedule_applied
from .vocabulary import (
    BRANCHING_KINDS,
    DATA_SHAPING_KINDS,
    ERROR_HANDLING_KINDS,
    AnalysisTuning,
    any_matches,
    matches_keyword,
    mentions_transform,
)

DEFAULT_TUNING = AnalysisTuning()


def complexity_tier(graph: WorkflowGraph, tuning: AnalysisTuning = DEFAULT_TUNING) -> ComplexityTier:
    """Classify graph shape; integration difficulty plays no part."""
    node_count = len(graph.nodes)
    connection_count = graph.connection_count

    if (
        node_count <= tuning.simple_max_nodes
        and connection_count <= tuning.simple_max_connections
        and not graph.has_kind(BRANCHING_KINDS)
    ):
        return "simple"
    if node_count >= tuning.complex_min_nodes or connection_count >= tuning.complex_min_connections:
        return "complex"
    return "moderate"


def estimate_execution_seconds(
    graph: WorkflowGraph, request: WorkflowRequest, tuning: AnalysisTuning = DEFAULT_TUNING
) -> int:
    """Additive heuristic; an estimate for UX, not a guarantee."""
    seconds = tuning.base_execution_seconds + tuning.per_node_seconds * len(graph.nodes)
    if any_matches(request.integrations, tuning.enterprise_keywords):
        seconds += tuning.enterprise_penalty_seconds
    if any_matches(request.integrations, tuning.database_keywords):
        seconds += tuning.database_penalty_seconds
    return seconds


def identify_issues(
    graph: WorkflowGraph, request: WorkflowRequest, tuning: AnalysisTuning = DEFAULT_TUNING
) -> list[str]:
    issues: list[str] = []

    if len(graph.nodes) >= tuning.error_handling_min_nodes and not graph.has_kind(ERROR_HANDLING_KINDS):
        issues.append("No error handling nodes detected - consider adding an error workflow")

    if any(not matches_keyword(name, tuning.local_keywords) for name in request.integrations):
        issues.append("API rate limiting may affect execution - consider implementing delays")

    if mentions_transform(request.action_narrative) and not graph.has_kind(DATA_SHAPING_KINDS):
        issues.append("Data transformation mentioned but no Set or Code node found")

    if request.trigger_kind == "scheduled" and default_schedule_applied(graph, request.trigger_detail):
        if request.trigger_detail:
            issues.append(
                f"Schedule '{request.trigger_detail}' was not recognised - default schedule used "
                "(daily at 09:00); confirm the timing and timezone"
            )
        else:
            issues.append("Default schedule used (daily at 09:00) - confirm the timing and timezone")

    for name in request.integrations:
        if not resolve(name).matched:
            issues.append(
                f"No dedicated node found for '{name}' - using a generic HTTP Request node; "
                "verify the endpoint and authentication"
            )

    return issues


def suggest_optimizations(
    graph: WorkflowGraph, request: WorkflowRequest, tuning: AnalysisTuning = DEFAULT_TUNING
) -> list[str]:
    suggestions: list[str] = []
    if len(graph.nodes) >= tuning.subworkflow_min_nodes:
        suggestions.append(
            "Consider breaking large workflows into sub-workflows for better maintainability"
        )
    if len(request.integrations) >= tuning.batching_min_integrations:
        suggestions.append(
            "Multiple integrations detected - consider batching operations where possible"
        )
    suggestions.append("Add descriptive names and notes to nodes for better documentation")
    suggestions.append("Set up monitoring and alerting for critical workflow paths")
    return suggestions


def security_considerations(
    request: WorkflowRequest, tuning: AnalysisTuning = DEFAULT_TUNING
) -> list[str]:
    considerations = [
        "Store all sensitive data in n8n credentials, never in node parameters",
        "Use environment variables for configuration that may change between environments",
    ]
    if any_matches(request.integrations, tuning.payment_keywords):
        considerations.append(
            "Payment integrations detected - ensure PCI compliance and proper webhook validation"
        )
    if request.trigger_kind == "inbound-request":
        considerations.append(
            "Webhook triggers should include proper authentication and input validation"
        )
    return considerations


def scalability_notes(graph: WorkflowGraph, tuning: AnalysisTuning = DEFAULT_TUNING) -> list[str]:
    notes: list[str] = []
    if len(graph.nodes) >= tuning.queue_mode_min_nodes:
        notes.append(
            "Large workflows may benefit from queue-based processing for high-volume scenarios"
        )
    notes.append(
        "Monitor execution times and consider horizontal scaling for high-frequency workflows"
    )
    notes.append("Implement proper logging and metrics collection for production monitoring")
    return notes


def analyze(
    graph: WorkflowGraph, request: WorkflowRequest, tuning: AnalysisTuning | None = None
) -> WorkflowAnalysis:
    """Compute the full analysis snapshot for a graph."""
    tuning = tuning or DEFAULT_TUNING
    return WorkflowAnalysis(
        node_count=len(graph.nodes),
        connection_count=graph.connection_count,
        complexity_tier=complexity_tier(graph, tuning),
        estimated_execution_seconds=estimate_execution_seconds(graph, request, tuning),
        potential_issues=identify_issues(graph, request, tuning),
        optimization_suggestions=suggest_optimizations(graph, request, tuning),
        security_considerations=security_considerations(request, tuning),
        scalability_notes=scalability_notes(graph, tuning),
    )


def _merged(rule_based: list[str], suggested: list[str]) -> list[str]:
    seen = {item.casefold() for item in rule_based}
    extra = []
    for item in suggested:
        if item.strip() and item.casefold() not in seen:
            seen.add(item.casefold())
            extra.append(item)
    return rule_based + extra


def merge_suggested_analysis(computed: WorkflowAnalysis, suggested: WorkflowAnalysis) -> WorkflowAnalysis:
    """Keep the computed metrics and rule-based notes, appending any extra
    notes from a model-suggested analysis of the same graph."""
    return computed.model_copy(
        update={
            "potential_issues": _merged(computed.potential_issues, suggested.potential_issues),
            "optimization_suggestions": _merged(
                computed.optimization_suggestions, suggested.optimization_suggestions
            ),
            "security_considerations": _merged(
                computed.security_considerations, suggested.security_considerations
            ),
            "scalability_notes": _merged(computed.scalability_notes, suggested.scalability_notes),
        }
    )
