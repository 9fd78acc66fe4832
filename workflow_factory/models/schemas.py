"""
File: workflow_factory/models/schemas.py
Purpose: Pydantic schemas for the workflow sync pipeline -- repository coordinates, remote
    contents-API entries, per-application scan results, parsed pipeline descriptors, render
    contexts, sync targets and the per-item / per-run report returned to callers.
When Used: Imported by the GitHub integration, every stage of the workflow sync service and the
    FastAPI router that exposes run reports.
Why Created: Keeps the data contracts that flow scan -> parse -> render -> sync in one place so
    each stage and the HTTP surface share the same types.
"""
from typing import Dict, Any, Optional, List
from pydantic import BaseModel, Field, ConfigDict
from enum import Enum


# ============================================================================
# Common Schemas
# ============================================================================

class ToolStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class RepositoryCoordinates(BaseModel):
    """Source tree being scanned; fixed for the whole run"""
    model_config = ConfigDict(frozen=True)

    owner: str
    repo: str
    ref: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


# ============================================================================
# Contents API
# ============================================================================

class EntryType(str, Enum):
    FILE = "file"
    DIRECTORY = "dir"
    SYMLINK = "symlink"
    SUBMODULE = "submodule"


class FileEntry(BaseModel):
    """One item of a contents-API response"""
    type: EntryType
    name: str
    path: str
    sha: Optional[str] = None
    content: Optional[str] = None
    encoding: Optional[str] = None


# ============================================================================
# Pipeline
# ============================================================================

class ScanResult(BaseModel):
    """Definition paths found under one application subtree"""
    dev_definition_paths: List[str] = Field(default_factory=list)
    deploy_definition_paths: List[str] = Field(default_factory=list)


class PipelineDescriptor(BaseModel):
    """Typed view of one dev definition file"""
    model_config = ConfigDict(frozen=True)

    template_kind: str
    module_name: str
    path: str
    stage_graph: Dict[str, Any] = Field(default_factory=dict)


class RenderContext(BaseModel):
    """Variables handed to the template of one kind"""
    template_kind: str
    module_name: str
    target_branch: str
    params: Dict[str, Any] = Field(default_factory=dict)

    def variables(self) -> Dict[str, Any]:
        """Flat variable set for template rendering"""
        return {
            **self.params,
            "template_kind": self.template_kind,
            "module_name": self.module_name,
            "target_branch": self.target_branch,
        }


class SyncTarget(BaseModel):
    """Resolved destination plus the rendered bytes to place there"""
    owner: str
    repo: str
    branch: str
    path: str
    content: bytes


# ============================================================================
# Reporting
# ============================================================================

class ItemStatus(str, Enum):
    SYNCED = "synced"
    RENDERED = "rendered"  # dry run, nothing written
    FAILED = "failed"


class ItemResult(BaseModel):
    """Outcome for one definition file"""
    path: str
    status: ItemStatus
    module_name: Optional[str] = None
    template_kind: Optional[str] = None
    destination: Optional[str] = None
    error_kind: Optional[str] = None
    message: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)


class RunStatus(str, Enum):
    SUCCEEDED = "succeeded"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"


class SyncReport(BaseModel):
    """Terminal outcome of one full scan -> render -> sync run"""
    status: RunStatus
    message: Optional[str] = None
    error_kind: Optional[str] = None
    apps: List[str] = Field(default_factory=list)
    dev_definition_paths: List[str] = Field(default_factory=list)
    deploy_definition_paths: List[str] = Field(default_factory=list)
    items: List[ItemResult] = Field(default_factory=list)

    @property
    def failed_items(self) -> List[ItemResult]:
        return [item for item in self.items if item.status == ItemStatus.FAILED]
