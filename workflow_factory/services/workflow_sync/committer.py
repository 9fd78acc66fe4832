"""
File: committer.py
Purpose: Idempotent remote file sync. Puts exactly the rendered bytes at a destination path:
    probe the path, delete an existing file by its blob SHA, then create-or-update the file.
    Delete and write failures are logged with path, destination and operation, and returned in
    the SyncOutcome instead of aborting sibling items.
When Used: Called by WorkflowSyncService once per rendered workflow.
Why Created: Every run re-renders and re-writes all workflows, so the write has to be safe to
    repeat against a branch that already holds the previous output.
"""
import base64
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from workflow_factory.integrations.github import GitHubIntegration
from workflow_factory.models.schemas import EntryType, FileEntry, SyncTarget
from workflow_factory.services.workflow_sync.errors import TransportError

logger = logging.getLogger(__name__)


@dataclass
class SyncOutcome:
    """What happened to one SyncTarget"""
    deleted: bool = False
    written: bool = False
    warnings: List[str] = field(default_factory=list)
    error: Optional[TransportError] = None

    @property
    def ok(self) -> bool:
        return self.written and self.error is None


def _describe(target: SyncTarget) -> str:
    return f"{target.owner}/{target.repo}@{target.branch}:{target.path}"


class RemoteFileSync:
    """Probe -> delete-if-exists -> create-or-update"""

    def __init__(
        self,
        client: GitHubIntegration,
        commit_message: str = "add/update file from action",
        delete_commit_message: str = ""
    ):
        self.client = client
        self.commit_message = commit_message
        self.delete_commit_message = delete_commit_message

    async def sync(self, target: SyncTarget) -> SyncOutcome:
        outcome = SyncOutcome()
        destination = _describe(target)

        # 1. Probe. A 404 comes back as None; anything else that fails is a real error.
        try:
            existing = await self.client.get_content(target.owner, target.repo, target.path, target.branch)
        except TransportError as e:
            logger.error(f"Probe failed for {destination}, not writing: {e}")
            outcome.error = e
            return outcome

        # 2. Delete a single existing file first.
        stale_sha = None
        if isinstance(existing, FileEntry) and existing.type == EntryType.FILE and existing.sha:
            try:
                await self.client.delete_file(
                    target.owner,
                    target.repo,
                    target.path,
                    target.branch,
                    existing.sha,
                    self.delete_commit_message,
                )
                outcome.deleted = True
                logger.debug(f"Deleted {destination} (sha {existing.sha})")
            except TransportError as e:
                logger.warning(f"Delete failed for {destination}, continuing with update: {e}")
                outcome.warnings.append(f"delete failed: {e}")
                stale_sha = existing.sha
        elif isinstance(existing, list):
            logger.warning(f"{destination} is a directory, skipping delete")
            outcome.warnings.append("destination path is a directory")

        # 3. Create or update unconditionally.
        encoded = base64.b64encode(target.content).decode("ascii")
        try:
            await self.client.create_or_update_file_contents(
                target.owner,
                target.repo,
                target.path,
                target.branch,
                encoded,
                self.commit_message,
                sha=stale_sha,
            )
            outcome.written = True
            logger.info(f"Synced {destination}")
        except TransportError as e:
            logger.error(f"Create-or-update failed for {destination}: {e}")
            outcome.error = e

        return outcome
