"""
File: scanner.py
Purpose: Recursive repository-tree scanner. Walks one application's subtree through the contents
    API, depth first in listing order, and sorts definition files into the dev and deploy buckets
    of a ScanResult by filename suffix.
When Used: Called once per discovered application by WorkflowSyncService.scan_app().
Why Created: Isolates the traversal so each application gets its own accumulator and the
    "no dev definitions" check happens at each application's top-level call.
"""
import logging
import posixpath
from typing import Optional

from workflow_factory.integrations.github import GitHubIntegration
from workflow_factory.models.schemas import EntryType, RepositoryCoordinates, ScanResult
from workflow_factory.services.workflow_sync.errors import (
    NotFoundError,
    UnexpectedError,
    WorkflowSyncError,
)

logger = logging.getLogger(__name__)


class TreeScanner:
    """Classifies definition files under a directory by suffix"""

    def __init__(
        self,
        client: GitHubIntegration,
        coordinates: RepositoryCoordinates,
        dev_suffix: str = "factory-dev.yaml",
        deploy_suffix: str = "factory-deploy.yaml"
    ):
        self.client = client
        self.coordinates = coordinates
        self.dev_suffix = dev_suffix
        self.deploy_suffix = deploy_suffix

    async def scan(self, path: str, accumulator: ScanResult) -> ScanResult:
        """Walk path recursively, appending matches to accumulator in place"""
        try:
            entries = await self.client.get_content(
                self.coordinates.owner, self.coordinates.repo, path, self.coordinates.ref
            )
        except WorkflowSyncError as e:
            raise UnexpectedError(
                f"Could not list '{path}'", path=path, operation="scan", cause=e
            ) from e

        if not isinstance(entries, list):
            raise UnexpectedError(
                f"Expected a directory listing for '{path}'", path=path, operation="scan"
            )

        for entry in entries:
            if entry.type == EntryType.FILE:
                full_path = posixpath.join(path, entry.name)
                if entry.name.endswith(self.dev_suffix):
                    accumulator.dev_definition_paths.append(full_path)
                elif entry.name.endswith(self.deploy_suffix):
                    accumulator.deploy_definition_paths.append(full_path)
            elif entry.type == EntryType.DIRECTORY:
                await self.scan(posixpath.join(path, entry.name), accumulator)

        return accumulator

    async def scan_app(self, app_path: str, accumulator: Optional[ScanResult] = None) -> ScanResult:
        """Scan one application subtree and require at least one dev definition"""
        result = await self.scan(app_path, accumulator if accumulator is not None else ScanResult())
        if not result.dev_definition_paths:
            raise NotFoundError(
                f"No '*{self.dev_suffix}' definition found under '{app_path}'",
                path=app_path,
                operation="scan",
            )
        logger.info(
            f"{app_path}: {len(result.dev_definition_paths)} dev, "
            f"{len(result.deploy_definition_paths)} deploy definition(s)"
        )
        return result
