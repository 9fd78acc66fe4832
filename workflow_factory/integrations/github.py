"""
File: github.py
Purpose: GitHub REST API client for the repository contents endpoints -- read a file or
    directory listing, delete a file by blob SHA and create-or-update a file on a branch.
    Works against GitHub.com, GitHub Enterprise (/api/v3) and Gitea's compatible surface.
When Used: Called by the app discovery and tree scanner to list the source tree, by the service
    to fetch definition files, and by the committer to probe/delete/write workflow files.
Why Created: Gives the sync pipeline one typed client whose failures are TransportError values
    carrying the operation and path, so callers can log and isolate them per item.
"""
import logging
from typing import List, Optional, Dict, Any, Union
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from workflow_factory.integrations.base import BaseIntegration
from workflow_factory.models.schemas import FileEntry, ToolStatus
from workflow_factory.services.workflow_sync.errors import TransportError

logger = logging.getLogger(__name__)


class GitHubIntegration(BaseIntegration):
    """GitHub API integration for repository contents"""

    @property
    def name(self) -> str:
        return "github"

    def _get_headers(self) -> Dict[str, str]:
        headers = super()._get_headers()
        headers.update({
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28"
        })
        return headers

    async def health_check(self) -> ToolStatus:
        """Check if GitHub API is accessible"""
        try:
            response = await self.get("/zen")
            if response.status_code == 200:
                return ToolStatus.HEALTHY
            # Gitea has no /zen
            response = await self.get("/version")
            if response.status_code == 200:
                return ToolStatus.HEALTHY
            return ToolStatus.UNHEALTHY
        except httpx.HTTPError as e:
            logger.warning(f"GitHub health check failed: {e}")
            return ToolStatus.UNHEALTHY

    async def _call(self, operation: str, path: str, method: str, endpoint: str, **kwargs) -> httpx.Response:
        try:
            return await self._request(method, endpoint, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(
                f"{method} {endpoint} failed",
                path=path,
                operation=operation,
                cause=e,
            ) from e

    @staticmethod
    def _raise_for_status(response: httpx.Response, operation: str, path: str):
        if response.is_success:
            return
        raise TransportError(
            f"GitHub API returned {response.status_code}: {response.text[:200]}",
            path=path,
            operation=operation,
            status_code=response.status_code,
        )

    @staticmethod
    def _json(response: httpx.Response, operation: str, path: str) -> Dict[str, Any]:
        """Decode a write response; an empty body (204) decodes to {}"""
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                f"Unreadable response body (HTTP {response.status_code})",
                path=path,
                operation=operation,
                cause=e,
            ) from e

    @staticmethod
    def _contents_endpoint(owner: str, repo: str, path: str) -> str:
        return f"/repos/{owner}/{repo}/contents/{quote(path, safe='/')}"

    # ========================================================================
    # Contents
    # ========================================================================

    async def get_content(
        self,
        owner: str,
        repo: str,
        path: str,
        ref: Optional[str] = None
    ) -> Optional[Union[FileEntry, List[FileEntry]]]:
        """Get a file or a directory listing; None when the path does not exist"""
        params = {"ref": ref} if ref else None
        response = await self._call(
            "get_content", path, "GET", self._contents_endpoint(owner, repo, path), params=params
        )
        if response.status_code == 404:
            logger.debug(f"{owner}/{repo}:{path}@{ref} not found")
            return None
        self._raise_for_status(response, "get_content", path)

        try:
            data = response.json()
            if isinstance(data, list):
                return [FileEntry.model_validate(item) for item in data]
            return FileEntry.model_validate(data)
        except (ValueError, ValidationError) as e:
            raise TransportError(
                "Unreadable contents response",
                path=path,
                operation="get_content",
                cause=e,
            ) from e

    async def delete_file(
        self,
        owner: str,
        repo: str,
        path: str,
        branch: str,
        sha: str,
        message: str
    ) -> Dict[str, Any]:
        """Delete a file; sha must be the blob SHA currently at path"""
        payload = {"message": message, "sha": sha, "branch": branch}
        response = await self._call(
            "delete_file", path, "DELETE", self._contents_endpoint(owner, repo, path), json=payload
        )
        self._raise_for_status(response, "delete_file", path)
        return self._json(response, "delete_file", path)

    async def create_or_update_file_contents(
        self,
        owner: str,
        repo: str,
        path: str,
        branch: str,
        content: str,
        message: str,
        sha: Optional[str] = None
    ) -> Dict[str, Any]:
        """Create or update a file; content must already be base64 encoded"""
        payload = {
            "message": message,
            "content": content,
            "branch": branch
        }
        if sha:
            payload["sha"] = sha

        response = await self._call(
            "create_or_update_file_contents", path, "PUT", self._contents_endpoint(owner, repo, path), json=payload
        )
        self._raise_for_status(response, "create_or_update_file_contents", path)
        return self._json(response, "create_or_update_file_contents", path)
