"""Shared fixtures: an in-memory GitHub contents API served through httpx.MockTransport."""

from __future__ import annotations

import base64
import hashlib
import json
import re
import textwrap
from typing import Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest

from workflow_factory.config import Settings, ToolConfig
from workflow_factory.integrations.github import GitHubIntegration
from workflow_factory.models.schemas import RepositoryCoordinates

BASE_URL = "https://api.github.test"
CONTENTS_PATH = re.compile(r"^/repos/([^/]+)/([^/]+)/contents/?(.*)$")


class FakeGitHub:
    """Just enough of the contents API: GET file/dir, DELETE by sha, PUT create-or-update."""

    def __init__(self, owner: str = "acme", repo: str = "mono", branch: str = "main") -> None:
        self.owner = owner
        self.repo = repo
        self.default_branch = branch
        self.files: Dict[Tuple[str, str, str, str], bytes] = {}
        self.calls: List[Tuple[str, str]] = []
        self.messages: List[Tuple[str, str, str]] = []
        self._failures: Dict[Tuple[str, str], int] = {}
        self._replies: Dict[Tuple[str, str], httpx.Response] = {}

    # --- test helpers ---

    def add_file(self, path: str, content: Union[str, bytes], owner: Optional[str] = None,
                 repo: Optional[str] = None, branch: Optional[str] = None) -> None:
        if isinstance(content, str):
            content = content.encode("utf-8")
        self.files[self._key(path, owner, repo, branch)] = content

    def read(self, path: str, owner: Optional[str] = None, repo: Optional[str] = None,
             branch: Optional[str] = None) -> Optional[bytes]:
        return self.files.get(self._key(path, owner, repo, branch))

    def fail(self, method: str, path: str, status: int = 500) -> None:
        self._failures[(method, path)] = status

    def reply(self, method: str, path: str, response: httpx.Response) -> None:
        """Answer method+path with a canned response instead of the simulated API"""
        self._replies[(method, path)] = response

    def writes(self) -> List[Tuple[str, str]]:
        return [(method, path) for method, path in self.calls if method in ("PUT", "DELETE")]

    def calls_for(self, path: str) -> List[str]:
        return [method for method, called in self.calls if called == path]

    # --- transport ---

    def _key(self, path, owner=None, repo=None, branch=None):
        return (owner or self.owner, repo or self.repo, branch or self.default_branch, path)

    @staticmethod
    def _sha(content: bytes) -> str:
        return hashlib.sha1(content).hexdigest()

    def handler(self, request: httpx.Request) -> httpx.Response:
        match = CONTENTS_PATH.match(request.url.path)
        if not match:
            return httpx.Response(404, json={"message": "Not Found"})
        owner, repo, path = match.groups()
        self.calls.append((request.method, path))

        status = self._failures.get((request.method, path))
        if status is not None:
            return httpx.Response(status, json={"message": "injected failure"})
        reply = self._replies.get((request.method, path))
        if reply is not None:
            return reply

        if request.method == "GET":
            ref = request.url.params.get("ref", self.default_branch)
            return self._get(owner, repo, ref, path)
        body = json.loads(request.content or b"{}")
        if request.method == "DELETE":
            return self._delete(owner, repo, path, body)
        if request.method == "PUT":
            return self._put(owner, repo, path, body)
        return httpx.Response(405)

    def _get(self, owner, repo, ref, path):
        content = self.files.get((owner, repo, ref, path))
        if content is not None:
            encoded = base64.b64encode(content).decode("ascii")
            return httpx.Response(200, json={
                "type": "file",
                "name": path.rsplit("/", 1)[-1],
                "path": path,
                "sha": self._sha(content),
                "encoding": "base64",
                # GitHub wraps base64 content at 60 columns
                "content": "\n".join(textwrap.wrap(encoded, 60)) + "\n",
            })

        prefix = f"{path}/" if path else ""
        children: Dict[str, str] = {}
        for (o, r, b, p) in self.files:
            if (o, r, b) != (owner, repo, ref) or not p.startswith(prefix):
                continue
            head, sep, _ = p[len(prefix):].partition("/")
            children.setdefault(head, "dir" if sep else "file")
        if not children:
            return httpx.Response(404, json={"message": "Not Found"})
        return httpx.Response(200, json=[
            {"type": kind, "name": name, "path": prefix + name, "sha": "0" * 40}
            for name, kind in children.items()
        ])

    def _delete(self, owner, repo, path, body):
        key = (owner, repo, body.get("branch") or self.default_branch, path)
        content = self.files.get(key)
        if content is None:
            return httpx.Response(404, json={"message": "Not Found"})
        if body.get("sha") != self._sha(content):
            return httpx.Response(409, json={"message": "sha mismatch"})
        del self.files[key]
        self.messages.append(("DELETE", path, body.get("message")))
        return httpx.Response(200, json={"content": None, "commit": {"sha": "d" * 40}})

    def _put(self, owner, repo, path, body):
        key = (owner, repo, body.get("branch") or self.default_branch, path)
        existing = self.files.get(key)
        if existing is not None and body.get("sha") is None:
            return httpx.Response(422, json={"message": "\"sha\" wasn't supplied"})
        if existing is not None and body["sha"] != self._sha(existing):
            return httpx.Response(409, json={"message": "sha mismatch"})
        content = base64.b64decode(body["content"])
        self.files[key] = content
        self.messages.append(("PUT", path, body.get("message")))
        return httpx.Response(200 if existing is not None else 201, json={
            "content": {"path": path, "sha": self._sha(content)},
            "commit": {"sha": "c" * 40},
        })


def definition_yaml(kind: str = "openshift", project_id: str = "org/checkout", branch: str = "main") -> str:
    return textwrap.dedent(
        f"""
        template:
          type: {kind}
          spec:
            stages:
              pullCode:
                spec:
                  gitlab:
                    projectId: {project_id}
                    branch: {branch}
              build:
                spec:
                  image: registry.example.com/base:1.2
                  args: [--verbose, --no-cache]
        """
    ).lstrip("\n")


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def make_client(fake_github: FakeGitHub) -> Callable[[], GitHubIntegration]:
    """Build a GitHubIntegration wired to fake_github; call inside the test's event loop."""

    def factory() -> GitHubIntegration:
        config = ToolConfig(base_url=BASE_URL, token="test-token")
        return GitHubIntegration(config, transport=httpx.MockTransport(fake_github.handler))

    return factory


@pytest.fixture
def coordinates() -> RepositoryCoordinates:
    return RepositoryCoordinates(owner="acme", repo="mono", ref="main")


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        github_url=BASE_URL,
        github_token="test-token",
        github_repository="acme/mono",
        github_ref_name="main",
        apps_root="apps",
        max_concurrency=2,
    )


@pytest.fixture
def make_definition() -> Callable[..., str]:
    return definition_yaml
