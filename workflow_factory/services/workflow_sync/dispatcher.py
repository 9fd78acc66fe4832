"""
File: dispatcher.py
Purpose: Open registry of template kinds. Each kind pairs a render-context builder with a
    destination resolver and names the template it renders; the registry looks a descriptor's
    'template.type' up and reports unknown kinds as UnmatchedTemplateKindError.
When Used: Called by WorkflowSyncService for every parsed dev definition, before rendering.
Why Created: Adding a target platform is one register() call with its own context and
    destination rules instead of another branch in a central conditional.
"""
import posixpath
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from workflow_factory.models.schemas import PipelineDescriptor, RenderContext, SyncTarget
from workflow_factory.services.workflow_sync.errors import (
    MalformedDefinitionError,
    UnmatchedTemplateKindError,
)


@dataclass(frozen=True)
class DestinationDefaults:
    """Where workflows go unless a kind decides otherwise"""
    owner: str
    repo: str
    branch: str
    workflows_dir: str = ".github/workflows"


@dataclass(frozen=True)
class Destination:
    owner: str
    repo: str
    branch: str
    path: str

    def with_content(self, content: bytes) -> SyncTarget:
        return SyncTarget(owner=self.owner, repo=self.repo, branch=self.branch, path=self.path, content=content)

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}@{self.branch}:{self.path}"


ContextBuilder = Callable[[PipelineDescriptor], RenderContext]
DestinationResolver = Callable[[PipelineDescriptor, RenderContext, DestinationDefaults], Destination]


@dataclass(frozen=True)
class TemplateKind:
    tag: str
    template_name: str
    build_context: ContextBuilder
    resolve_destination: DestinationResolver


class TemplateKindRegistry:
    """Maps template kind tags to their render and destination rules"""

    def __init__(self, kinds: Optional[List[TemplateKind]] = None):
        self._kinds: Dict[str, TemplateKind] = {}
        for kind in kinds or []:
            self.register(kind)

    def register(self, kind: TemplateKind):
        if kind.tag in self._kinds:
            raise ValueError(f"Template kind '{kind.tag}' is already registered")
        self._kinds[kind.tag] = kind

    def tags(self) -> List[str]:
        return sorted(self._kinds)

    def get(self, descriptor: PipelineDescriptor) -> TemplateKind:
        kind = self._kinds.get(descriptor.template_kind)
        if kind is None:
            raise UnmatchedTemplateKindError(descriptor.template_kind, path=descriptor.path)
        return kind

    def dispatch(self, descriptor: PipelineDescriptor) -> RenderContext:
        """Build the render context for the descriptor's kind"""
        return self.get(descriptor).build_context(descriptor)


# ============================================================================
# Built-in kinds
# ============================================================================

def _pull_code_target(descriptor: PipelineDescriptor, target: str) -> Dict[str, str]:
    """Read pullCode.spec.<target>.{projectId,branch} from the stage graph"""
    try:
        spec = descriptor.stage_graph["pullCode"]["spec"][target]
        project_id = spec["projectId"]
        branch = spec["branch"]
    except (KeyError, TypeError) as e:
        raise MalformedDefinitionError(
            f"Missing 'pullCode.spec.{target}.projectId/branch'",
            path=descriptor.path,
            operation="dispatch",
            cause=e,
        ) from e
    # GitLab project ids are either numeric or a "group/project" path
    if isinstance(project_id, int) and not isinstance(project_id, bool):
        project_id = str(project_id)
    if not isinstance(project_id, str) or not isinstance(branch, str):
        raise MalformedDefinitionError(
            f"'pullCode.spec.{target}.projectId' must be a number or string and 'branch' a string",
            path=descriptor.path,
            operation="dispatch",
        )
    return {"project_id": project_id, "branch": branch}


def build_openshift_context(descriptor: PipelineDescriptor) -> RenderContext:
    pull_code = _pull_code_target(descriptor, "gitlab")
    return RenderContext(
        template_kind=descriptor.template_kind,
        module_name=descriptor.module_name,
        target_branch=pull_code["branch"],
        params={
            "project_id": pull_code["project_id"],
            "definition_path": descriptor.path,
            "source_path": posixpath.dirname(descriptor.path),
        },
    )


def resolve_workflow_destination(
    descriptor: PipelineDescriptor,
    context: RenderContext,
    defaults: DestinationDefaults
) -> Destination:
    """One workflow file per module in the default destination"""
    return Destination(
        owner=defaults.owner,
        repo=defaults.repo,
        branch=defaults.branch,
        path=posixpath.join(defaults.workflows_dir, f"{context.module_name}.yml"),
    )


OPENSHIFT = TemplateKind(
    tag="openshift",
    template_name="openshift.yml.j2",
    build_context=build_openshift_context,
    resolve_destination=resolve_workflow_destination,
)


def default_registry() -> TemplateKindRegistry:
    return TemplateKindRegistry([OPENSHIFT])
