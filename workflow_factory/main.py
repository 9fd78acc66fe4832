"""
File: workflow_factory/main.py
Purpose: Entry points -- the FastAPI application (health, GitHub API status, workflow sync
    router) and the one-shot CLI run used from a GitHub Actions step.
When Used: 'uvicorn workflow_factory.main:app' for the API; 'python -m workflow_factory' or the
    'workflow-factory' console script inside a workflow run.
Why Created: Single composition root wiring settings, logging, the GitHub client and the workflow
    sync service for both ways of running it.
"""
import argparse
import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from workflow_factory.config import Settings, settings
from workflow_factory.integrations.github import GitHubIntegration
from workflow_factory.models.schemas import RunStatus, SyncReport
from workflow_factory.routers import workflow_sync
from workflow_factory.services.workflow_sync.service import WorkflowSyncService

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str = "INFO"):
    """Install one stream handler on the root logger"""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, stream=sys.stderr, force=True)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    configure_logging(settings.log_level)
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"GitHub API: {settings.github_url} (token {'set' if settings.github_token else 'missing'})")
    yield
    logger.info("Shutting down...")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=__doc__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Root endpoints
# ============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "version": settings.app_version}


@app.get("/api/v1/status")
async def api_status():
    """Status of the GitHub API connection"""
    async with GitHubIntegration(settings.github_tool()) as client:
        status = await client.health_check()
    return {
        "api_version": "v1",
        "github": {
            "base_url": settings.github_url,
            "enabled": bool(settings.github_token),
            "status": status.value,
        },
    }


app.include_router(workflow_sync.router, prefix=settings.api_prefix)


# ============================================================================
# CLI
# ============================================================================

async def run_once(config: Settings, dry_run: bool = False, client: Optional[GitHubIntegration] = None) -> SyncReport:
    """One full scan -> render -> sync run"""
    if client is not None:
        return await WorkflowSyncService(client, config, dry_run=dry_run).run()
    async with GitHubIntegration(config.github_tool()) as owned:
        return await WorkflowSyncService(owned, config, dry_run=dry_run).run()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-factory",
        description="Render and sync GitHub workflows from factory pipeline definitions.",
    )
    parser.add_argument("--apps-root", help="directory holding one folder per application")
    parser.add_argument("--log-level", help="logging level (default from LOG_LEVEL or INFO)")
    parser.add_argument("--dry-run", action="store_true", help="render workflows without writing them")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    overrides = {}
    if args.apps_root:
        overrides["apps_root"] = args.apps_root
    if args.log_level:
        overrides["log_level"] = args.log_level
    config = settings.model_copy(update=overrides) if overrides else settings

    configure_logging(config.log_level)
    report = asyncio.run(run_once(config, dry_run=args.dry_run))

    print(f"{report.status.value}: {report.message}")
    for item in report.failed_items:
        print(f"  {item.path}: [{item.error_kind}] {item.message}")
    return 0 if report.status == RunStatus.SUCCEEDED else 1


def serve():
    """Run the HTTP API"""
    import uvicorn

    uvicorn.run("workflow_factory.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
