from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Query
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from .agents.completion import create_completion_client
from .config import get_settings
from .logging_config import configure_logging
from .models import (
    WORKSPACE_ID_PATTERN,
    ExportResponse,
    GenerateWorkflowRequest,
    HealthResponse,
    UpdateWorkflowRequest,
    WorkflowListItem,
)
from .workflow.analytics import Timeframe, WorkflowAnalyticsSummary, summarize_packages, timeframe_start
from .workflow.cache import create_package_cache
from .workflow.export import render_export, to_n8n_workflow
from .workflow.pipeline import WorkflowGenerator
from .workflow.store import PackageStore

load_dotenv()

settings = get_settings()
configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await generator.aclose()


app = FastAPI(
    title="FlowBuilder API",
    description="Generate importable n8n workflows from natural language",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

package_store = PackageStore(settings.workflows_dir)
generator = WorkflowGenerator.from_settings(
    settings,
    client=create_completion_client(settings),
    cache=create_package_cache(settings),
)

WorkspaceId = Annotated[str, Query(min_length=1, max_length=64, pattern=WORKSPACE_ID_PATTERN)]


def _load_or_404(workflow_id: str, workspace_id: str):
    package = package_store.load(workflow_id, namespace=workspace_id)
    if package is None:
        raise HTTPException(status_code=404, detail="Workflow not found")
    return package


@app.get("/api/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


@app.post("/api/workflows/generate")
async def generate_workflow_endpoint(request: GenerateWorkflowRequest):
    """Generate a workflow package and save it to the caller's workspace."""
    package = await generator.generate(request.to_workflow_request(), namespace=request.workspace_id)
    package_store.save(package, namespace=request.workspace_id)
    return package.model_dump(mode="json")


@app.get("/api/workflows")
def list_workflows(workspace_id: WorkspaceId = "default"):
    packages = package_store.list_by_namespace(workspace_id)
    return [WorkflowListItem.from_package(p).model_dump() for p in packages]


@app.get("/api/workflows/analytics", response_model=WorkflowAnalyticsSummary)
def workflow_analytics(workspace_id: WorkspaceId = "default", timeframe: Timeframe = "month"):
    """Usage summary over packages saved in the workspace within the timeframe."""
    since = timeframe_start(timeframe, datetime.now(timezone.utc))
    return summarize_packages(package_store.list_by_namespace(workspace_id, since=since), timeframe)


@app.get("/api/workflows/{workflow_id}")
def get_workflow(workflow_id: str, workspace_id: WorkspaceId = "default"):
    return _load_or_404(workflow_id, workspace_id).model_dump(mode="json")


@app.put("/api/workflows/{workflow_id}")
async def update_workflow(
    workflow_id: str, changes: UpdateWorkflowRequest, workspace_id: WorkspaceId = "default"
):
    """Apply request changes, regenerating the graph when its inputs changed."""
    package = _load_or_404(workflow_id, workspace_id)
    try:
        updated = await generator.update(package, changes.changes(), namespace=workspace_id)
    except ValidationError as e:
        raise RequestValidationError(e.errors())
    package_store.save(updated, namespace=workspace_id)
    return updated.model_dump(mode="json")


@app.get("/api/workflows/{workflow_id}/n8n")
def get_workflow_n8n(workflow_id: str, workspace_id: WorkspaceId = "default"):
    """The n8n import document for a saved package."""
    return to_n8n_workflow(_load_or_404(workflow_id, workspace_id))


@app.get("/api/workflows/{workflow_id}/export", response_model=ExportResponse)
def export_workflow(workflow_id: str, format: str = "summary", workspace_id: WorkspaceId = "default"):
    package = _load_or_404(workflow_id, workspace_id)
    try:
        content = render_export(package, format)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ExportResponse(workflow_id=workflow_id, format=format, content=content)


@app.delete("/api/workflows/{workflow_id}")
def delete_workflow(workflow_id: str, workspace_id: WorkspaceId = "default"):
    deleted = package_store.delete(workflow_id, namespace=workspace_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Workflow not found")
    return {"status": "deleted", "workflow_id": workflow_id}
