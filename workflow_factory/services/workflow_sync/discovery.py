"""
Application discovery: every immediate subdirectory of the apps root is one application.
"""
import logging
from typing import List

from workflow_factory.integrations.github import GitHubIntegration
from workflow_factory.models.schemas import EntryType, RepositoryCoordinates
from workflow_factory.services.workflow_sync.errors import (
    NotFoundError,
    UnexpectedError,
    WorkflowSyncError,
)

logger = logging.getLogger(__name__)


async def list_apps(
    client: GitHubIntegration,
    coordinates: RepositoryCoordinates,
    root: str = "apps"
) -> List[str]:
    """List application directory names directly under root"""
    try:
        entries = await client.get_content(coordinates.owner, coordinates.repo, root, coordinates.ref)
    except WorkflowSyncError as e:
        raise UnexpectedError(
            f"Could not list applications under '{root}'",
            path=root,
            operation="list_apps",
            cause=e,
        ) from e

    if entries is not None and not isinstance(entries, list):
        raise UnexpectedError(
            f"'{root}' is a file, expected a directory",
            path=root,
            operation="list_apps",
        )

    apps = [entry.name for entry in entries or [] if entry.type == EntryType.DIRECTORY]
    if not apps:
        raise NotFoundError(
            f"No application directories found under '{root}' in {coordinates.full_name}@{coordinates.ref}",
            path=root,
            operation="list_apps",
        )

    logger.info(f"Discovered {len(apps)} application(s) under {root}: {', '.join(apps)}")
    return apps
