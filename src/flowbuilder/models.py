"""API models for FlowBuilder."""

from typing import Optional

from pydantic import BaseModel, Field

from .workflow.schema import ComplexityTier, GeneratedPackage, PackageSource, TriggerKind, WorkflowRequest

WORKSPACE_ID_PATTERN = r"^[A-Za-z0-9_-]+$"


class GenerateWorkflowRequest(WorkflowRequest):
    """Request to generate a workflow package."""

    workspace_id: str = Field(
        "default",
        min_length=1,
        max_length=64,
        pattern=WORKSPACE_ID_PATTERN,
        description="Workspace the package belongs to; also namespaces the cache",
    )

    def to_workflow_request(self) -> WorkflowRequest:
        return WorkflowRequest.model_validate(self.model_dump(exclude={"workspace_id"}))


class UpdateWorkflowRequest(BaseModel):
    """Partial request changes; omitted fields keep their saved values.

    Limits are enforced when the changes are merged into the saved request.
    """

    name: Optional[str] = None
    trigger_kind: Optional[TriggerKind] = None
    trigger_detail: Optional[str] = None
    trigger_data: Optional[str] = None
    description: Optional[str] = None
    integrations: Optional[list[str]] = None
    action_narrative: Optional[str] = None
    additional_context: Optional[str] = None
    specific_requirements: Optional[list[str]] = None
    goals: Optional[list[str]] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class WorkflowListItem(BaseModel):
    """Compact listing entry for a saved package."""

    id: str
    name: str
    trigger_kind: TriggerKind
    integrations: list[str]
    complexity_tier: ComplexityTier
    node_count: int
    source: PackageSource

    @classmethod
    def from_package(cls, package: GeneratedPackage) -> "WorkflowListItem":
        return cls(
            id=package.id,
            name=package.request.name,
            trigger_kind=package.request.trigger_kind,
            integrations=package.request.integrations,
            complexity_tier=package.analysis.complexity_tier,
            node_count=package.analysis.node_count,
            source=package.source,
        )


class ExportResponse(BaseModel):
    workflow_id: str
    format: str
    content: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str = "FlowBuilder Backend"
