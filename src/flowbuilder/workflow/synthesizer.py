"""Deterministic graph construction used when generation is unavailable."""

from __future__ import annotations

from .ids import IdGenerator
from .resolver import resolve
from .schema import Connection, NodeDescriptor, WorkflowGraph, WorkflowRequest
from .trigger import LAYOUT_ORIGIN, build_trigger
from .vocabulary import mentions_transform

X_SPACING = 200
ERROR_BRANCH_Y = LAYOUT_ORIGIN[1] + 200
SIMPLIFIED_MIN_INTEGRATIONS = 4
SIMPLIFIED_KEEP = 2


def _position(index: int) -> tuple[int, int]:
    return (LAYOUT_ORIGIN[0] + index * X_SPACING, LAYOUT_ORIGIN[1])


def _integration_node(integration: str, index: int, position: tuple[int, int]) -> NodeDescriptor:
    binding = resolve(integration)
    return NodeDescriptor(
        id=f"integration_{index}",
        display_name=integration,
        kind=binding.kind,
        parameters=binding.default_parameters,
        credential_ref=binding.credential_class,
        position=position,
    )


def _transform_node(position: tuple[int, int]) -> NodeDescriptor:
    return NodeDescriptor(
        id="transform_data",
        display_name="Transform Data",
        kind="n8n-nodes-base.set",
        position=position,
        parameters={
            "values": {
                "string": [
                    {"name": "processedAt", "value": "={{ new Date().toISOString() }}"},
                ]
            },
            "options": {},
        },
    )


def build_nodes(request: WorkflowRequest, ids: IdGenerator) -> list[NodeDescriptor]:
    """Trigger, one node per integration in input order, optional transform node."""
    nodes = [build_trigger(request.trigger_kind, request.trigger_detail, ids)]
    for index, integration in enumerate(request.integrations):
        nodes.append(_integration_node(integration, index, _position(len(nodes))))
    if mentions_transform(request.action_narrative):
        nodes.append(_transform_node(_position(len(nodes))))
    return nodes


def chain_connections(nodes: list[NodeDescriptor]) -> dict[str, list[Connection]]:
    """Connect node i to node i+1; no branching, no fan-out."""
    return {
        current.id: [Connection(target=following.id, port=0)]
        for current, following in zip(nodes, nodes[1:])
    }


def synthesize(request: WorkflowRequest, ids: IdGenerator) -> WorkflowGraph:
    """Build the fallback graph for a request."""
    nodes = build_nodes(request, ids)
    return WorkflowGraph(
        nodes=nodes,
        connections=chain_connections(nodes),
        tags=["generated", request.trigger_kind, "automation"],
    )


def synthesize_simplified(request: WorkflowRequest, ids: IdGenerator) -> WorkflowGraph | None:
    """A reduced graph over the first integrations, or None when already small."""
    if len(request.integrations) < SIMPLIFIED_MIN_INTEGRATIONS:
        return None

    narrative = request.action_narrative
    if len(narrative) > 100:
        narrative = narrative[:100] + "..."
    reduced = request.model_copy(
        update={
            "integrations": request.integrations[:SIMPLIFIED_KEEP],
            "action_narrative": f"Simplified version: {narrative}",
        }
    )
    nodes = build_nodes(reduced, ids)
    return WorkflowGraph(
        nodes=nodes,
        connections=chain_connections(nodes),
        tags=["simplified", "generated"],
    )


def synthesize_advanced(request: WorkflowRequest, ids: IdGenerator) -> WorkflowGraph:
    """The fallback graph plus an error trigger that notifies on failure."""
    nodes = build_nodes(request, ids)
    connections = chain_connections(nodes)

    error_node = NodeDescriptor(
        id="error_handler",
        display_name="Error Handler",
        kind="n8n-nodes-base.errorTrigger",
        position=(LAYOUT_ORIGIN[0], ERROR_BRANCH_Y),
    )
    notification_node = NodeDescriptor(
        id="error_notification",
        display_name="Error Notification",
        kind="n8n-nodes-base.httpRequest",
        position=(LAYOUT_ORIGIN[0] + X_SPACING, ERROR_BRANCH_Y),
        parameters={
            "method": "POST",
            "url": "https://hooks.slack.com/services/YOUR/WEBHOOK/URL",
            "sendBody": True,
            "specifyBody": "json",
            "jsonBody": (
                "={{ JSON.stringify({ text: 'Workflow ' + $workflow.name + ' failed: '"
                " + $json.execution.error.message }) }}"
            ),
        },
    )
    nodes.extend([error_node, notification_node])
    connections[error_node.id] = [Connection(target=notification_node.id, port=0)]

    return WorkflowGraph(
        nodes=nodes,
        connections=connections,
        tags=["advanced", "error-handling", "generated"],
    )
