"""
File: workflow_factory/config.py
Purpose: Central configuration management -- loads settings from environment variables and an
    optional .env file. Covers the GitHub API connection, the source repository coordinates
    supplied by the Actions runner, the definition-file naming conventions and the sync tunables.
When Used: Imported at startup by the CLI entrypoint, the FastAPI app and the workflow sync
    service to access the global 'settings' singleton.
Why Created: Keeps every knob of the scan -> render -> sync pipeline in a single Pydantic
    Settings class instead of scattered os.environ reads.
"""
import os
from typing import Optional
from pydantic import BaseModel
from pydantic_settings import BaseSettings

from workflow_factory.models.schemas import RepositoryCoordinates
from workflow_factory.services.workflow_sync.errors import ConfigurationError


PACKAGE_TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "templates")


class ToolConfig(BaseModel):
    """Connection settings for a single remote API"""
    base_url: str
    token: Optional[str] = None
    timeout: float = 30.0


class Settings(BaseSettings):
    """Application settings"""
    app_name: str = "Workflow Factory"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # API Settings
    api_prefix: str = "/api/v1"
    cors_origins: list = ["*"]

    # GitHub API. The runner exports GITHUB_REPOSITORY and GITHUB_REF_NAME.
    github_url: str = "https://api.github.com"
    github_token: Optional[str] = None
    github_repository: Optional[str] = None  # owner/repo
    github_ref_name: Optional[str] = None

    # Definition discovery
    apps_root: str = "apps"
    dev_suffix: str = "factory-dev.yaml"
    deploy_suffix: str = "factory-deploy.yaml"

    # Rendering and sync
    templates_dir: str = PACKAGE_TEMPLATES_DIR
    workflows_dir: str = ".github/workflows"
    commit_message: str = "add/update file from action"
    delete_commit_message: str = ""
    max_concurrency: int = 5
    request_timeout: float = 30.0

    # Optional destination overrides; default is the source repository and ref
    destination_owner: Optional[str] = None
    destination_repository: Optional[str] = None
    destination_branch: Optional[str] = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    def coordinates(self) -> RepositoryCoordinates:
        """Resolve the source repository coordinates for this run"""
        repository = (self.github_repository or "").strip()
        owner, _, name = repository.partition("/")
        if not owner or not name or "/" in name:
            raise ConfigurationError(
                f"GITHUB_REPOSITORY must be 'owner/repo', got {repository!r}"
            )
        if not self.github_ref_name:
            raise ConfigurationError("GITHUB_REF_NAME is not set")
        return RepositoryCoordinates(owner=owner, repo=name, ref=self.github_ref_name)

    def github_tool(self) -> ToolConfig:
        """Connection settings for the GitHub API client"""
        return ToolConfig(
            base_url=self.github_url,
            token=self.github_token,
            timeout=self.request_timeout,
        )


# Global instance
settings = Settings()
