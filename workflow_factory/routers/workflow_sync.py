"""
File: workflow_sync.py
Purpose: HTTP surface for the workflow sync pipeline -- list discovered applications, show the
    definition files found for one application, and trigger a full (or dry) sync run.
When Used: Mounted by workflow_factory.main under /api/v1/workflow-sync when the service runs as
    a long-lived API instead of a one-shot workflow step.
Why Created: Lets operators inspect what a run would pick up and re-run the sync on demand
    without pushing to the source repository.
"""
from typing import AsyncIterator, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from workflow_factory.config import settings
from workflow_factory.integrations.github import GitHubIntegration
from workflow_factory.models.schemas import RepositoryCoordinates, RunStatus, ScanResult, SyncReport
from workflow_factory.services.workflow_sync.dispatcher import default_registry
from workflow_factory.services.workflow_sync.errors import ErrorKind, WorkflowSyncError
from workflow_factory.services.workflow_sync.service import WorkflowSyncService

router = APIRouter(prefix="/workflow-sync", tags=["Workflow Sync"])


# ============================================================================
# Request/Response Models
# ============================================================================

class AppsResponse(BaseModel):
    apps: List[str]


class RunRequest(BaseModel):
    dry_run: bool = False


# ============================================================================
# Dependencies
# ============================================================================

def _status_code(kind: ErrorKind) -> int:
    if kind == ErrorKind.NOT_FOUND:
        return 404
    if kind == ErrorKind.CONFIGURATION_ERROR:
        return 500
    return 502


def get_coordinates() -> RepositoryCoordinates:
    try:
        return settings.coordinates()
    except WorkflowSyncError as e:
        raise HTTPException(status_code=_status_code(e.kind), detail=e.message)


async def get_github_client() -> AsyncIterator[GitHubIntegration]:
    client = GitHubIntegration(settings.github_tool())
    try:
        yield client
    finally:
        await client.close()


# ============================================================================
# Endpoints
# ============================================================================

@router.get("/apps", response_model=AppsResponse)
async def list_apps(
    coordinates: RepositoryCoordinates = Depends(get_coordinates),
    client: GitHubIntegration = Depends(get_github_client)
):
    """List application directories under the apps root"""
    service = WorkflowSyncService(client, settings)
    try:
        return AppsResponse(apps=await service.list_apps(coordinates))
    except WorkflowSyncError as e:
        raise HTTPException(status_code=_status_code(e.kind), detail=e.message)


@router.get("/apps/{app}/definitions", response_model=ScanResult)
async def list_definitions(
    app: str,
    coordinates: RepositoryCoordinates = Depends(get_coordinates),
    client: GitHubIntegration = Depends(get_github_client)
):
    """Dev and deploy definition files found under one application"""
    service = WorkflowSyncService(client, settings)
    try:
        return await service.scan_app(coordinates, app)
    except WorkflowSyncError as e:
        raise HTTPException(status_code=_status_code(e.kind), detail=e.message)


@router.post("/run", response_model=SyncReport)
async def run_sync(
    request: RunRequest,
    coordinates: RepositoryCoordinates = Depends(get_coordinates),
    client: GitHubIntegration = Depends(get_github_client)
):
    """Scan, render and sync every application's workflows"""
    service = WorkflowSyncService(client, settings, dry_run=request.dry_run)
    report = await service.run(coordinates)
    if report.status == RunStatus.FAILED:
        raise HTTPException(
            status_code=_status_code(ErrorKind(report.error_kind)),
            detail=report.message,
        )
    return report


@router.get("/template-kinds")
async def template_kinds() -> Dict[str, List[str]]:
    """Template kinds this deployment can render"""
    return {"template_kinds": default_registry().tags()}
