"""Pydantic models defining workflow requests, graphs and generated packages."""

from __future__ import annotations

from collections import defaultdict, deque
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TriggerKind = Literal["scheduled", "inbound-request", "ad-hoc"]
ComplexityTier = Literal["simple", "moderate", "complex"]
PackageSource = Literal["generated", "fallback"]


class WorkflowRequest(BaseModel):
    """Normalized description of the automation a user wants built."""

    name: str = Field(..., min_length=1, max_length=100)
    trigger_kind: TriggerKind
    trigger_detail: Optional[str] = Field(None, max_length=200)
    trigger_data: Optional[str] = Field(None, max_length=1000)
    description: Optional[str] = Field(None, max_length=500)
    integrations: list[str] = Field(..., min_length=1, max_length=20)
    action_narrative: str = Field(..., min_length=1, max_length=2000)
    additional_context: Optional[str] = Field(None, max_length=1000)
    specific_requirements: list[str] = Field(default_factory=list, max_length=10)
    goals: list[str] = Field(default_factory=list, max_length=5)

    @field_validator("name", "action_narrative", mode="before")
    @classmethod
    def _strip_required_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator(
        "trigger_detail", "trigger_data", "description", "additional_context", mode="before"
    )
    @classmethod
    def _strip_optional_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("integrations", mode="after")
    @classmethod
    def _normalize_integrations(cls, value: list[str]) -> list[str]:
        seen: set[str] = set()
        normalized: list[str] = []
        for item in value:
            name = item.strip()
            if not name or name.casefold() in seen:
                continue
            if len(name) > 100:
                raise ValueError(f"Integration name is too long: {name[:20]}...")
            seen.add(name.casefold())
            normalized.append(name)
        if not normalized:
            raise ValueError("At least one integration is required")
        return normalized

    @field_validator("specific_requirements", "goals", mode="after")
    @classmethod
    def _drop_blank_items(cls, value: list[str]) -> list[str]:
        return [item.strip() for item in value if item.strip()]


class NodeDescriptor(BaseModel):
    """A single vertex of the workflow graph, shaped after an n8n node."""

    id: str
    display_name: str
    kind: str  # n8n node type, e.g. "n8n-nodes-base.slack"
    type_version: int = 1
    parameters: dict[str, Any] = {}
    credential_ref: Optional[str] = None  # credential class, e.g. "slackApi"
    position: tuple[int, int] = (0, 0)
    webhook_id: Optional[str] = None
    notes: Optional[str] = None
    disabled: bool = False


class Connection(BaseModel):
    """An outgoing edge to ``target`` on output port ``port``."""

    target: str
    port: int = 0


class WorkflowGraph(BaseModel):
    """Nodes plus a connection map keyed by source node id."""

    nodes: list[NodeDescriptor]
    connections: dict[str, list[Connection]] = {}
    tags: list[str] = []

    @model_validator(mode="after")
    def _check_structure(self) -> WorkflowGraph:
        ids = [node.id for node in self.nodes]
        duplicates = sorted({nid for nid in ids if ids.count(nid) > 1})
        if duplicates:
            raise ValueError(f"Duplicate node ids: {', '.join(duplicates)}")

        known = set(ids)
        for source, edges in self.connections.items():
            if source not in known:
                raise ValueError(f"Connection source '{source}' is not a node")
            for edge in edges:
                if edge.target not in known:
                    raise ValueError(f"Connection target '{edge.target}' is not a node")
                if edge.target == source:
                    raise ValueError(f"Self-loop on node '{source}'")

        self._topological_order()
        return self

    def _topological_order(self) -> list[str]:
        """Return node ids in topological order, raising on cycles."""
        in_degree: dict[str, int] = {node.id: 0 for node in self.nodes}
        dependents: dict[str, list[str]] = defaultdict(list)
        for source, edges in self.connections.items():
            for edge in edges:
                dependents[source].append(edge.target)
                in_degree[edge.target] += 1

        queue: deque[str] = deque(nid for nid, deg in in_degree.items() if deg == 0)
        order: list[str] = []
        while queue:
            nid = queue.popleft()
            order.append(nid)
            for dependent in dependents[nid]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        if len(order) != len(in_degree):
            missing = sorted(set(in_degree) - set(order))
            raise ValueError(f"Cycle detected in workflow graph involving nodes: {missing}")
        return order

    @property
    def connection_count(self) -> int:
        return sum(len(edges) for edges in self.connections.values())

    def node_kinds(self) -> set[str]:
        return {node.kind for node in self.nodes}

    def has_kind(self, kinds: set[str] | frozenset[str]) -> bool:
        return any(node.kind in kinds for node in self.nodes)

    def get_node(self, node_id: str) -> NodeDescriptor | None:
        return next((node for node in self.nodes if node.id == node_id), None)


class WorkflowAnalysis(BaseModel):
    """Structural and operational metrics computed once per graph."""

    model_config = ConfigDict(frozen=True)

    node_count: int
    connection_count: int
    complexity_tier: ComplexityTier
    estimated_execution_seconds: int  # heuristic estimate, not a measurement
    potential_issues: list[str] = []
    optimization_suggestions: list[str] = []
    security_considerations: list[str] = []
    scalability_notes: list[str] = []


class CredentialRequirement(BaseModel):
    """A credential class a user must configure before activating the workflow."""

    name: str
    credential_class: str
    related_service: str
    priority: Literal["required", "optional"] = "required"
    auth_type: str = "API Key"
    setup_link: str = "https://docs.n8n.io/integrations/builtin/credentials/"
    description: str = ""


class WorkflowAlternatives(BaseModel):
    simplified: Optional[WorkflowGraph] = None
    advanced: Optional[WorkflowGraph] = None


class GeneratedPackage(BaseModel):
    """The deliverable handed back to callers, persisted and exported."""

    model_config = ConfigDict(frozen=True)

    id: str
    request: WorkflowRequest
    graph: WorkflowGraph
    analysis: WorkflowAnalysis
    setup_steps: list[str]
    credential_requirements: list[CredentialRequirement] = []
    testing_guidance: list[str] = []
    troubleshooting: list[str] = []
    alternatives: WorkflowAlternatives = WorkflowAlternatives()
    source: PackageSource
    tokens_used: int = 0
    processing_time_ms: int = 0
