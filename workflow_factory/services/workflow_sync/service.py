"""
File: service.py
Purpose: Orchestrates one full workflow sync run -- discover applications, scan each one for
    definition files, then fetch, parse, dispatch, render and sync every dev definition. Items
    are rendered through a bounded-concurrency map, checked for destination collisions, then synced;
    items are isolated from each other. Fatal errors (no apps, no dev definitions, unexpected
    failures) abort the run.
When Used: Invoked by the CLI entrypoint (python -m workflow_factory) from a workflow step, and
    by the /workflow-sync router for on-demand runs.
Why Created: Single propagation boundary that turns the error taxonomy into a SyncReport with a
    terminal status, per-item results and the first fatal message.
"""
import asyncio
import logging
import posixpath
from collections import defaultdict
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from workflow_factory.config import Settings, settings as default_settings
from workflow_factory.integrations.github import GitHubIntegration
from workflow_factory.models.schemas import (
    FileEntry,
    ItemResult,
    ItemStatus,
    RepositoryCoordinates,
    RunStatus,
    ScanResult,
    SyncReport,
    SyncTarget,
)
from workflow_factory.services.workflow_sync.committer import RemoteFileSync
from workflow_factory.services.workflow_sync.definition import parse_definition
from workflow_factory.services.workflow_sync.discovery import list_apps
from workflow_factory.services.workflow_sync.dispatcher import (
    DestinationDefaults,
    TemplateKindRegistry,
    default_registry,
)
from workflow_factory.services.workflow_sync.errors import (
    DestinationConflictError,
    MalformedDefinitionError,
    UnexpectedError,
    WorkflowSyncError,
)
from workflow_factory.services.workflow_sync.renderer import TemplateRenderer
from workflow_factory.services.workflow_sync.scanner import TreeScanner

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def bounded_map(items: Iterable[T], func: Callable[[T], Awaitable[R]], limit: int) -> List[R]:
    """Run func over items with at most `limit` in flight; results keep input order.

    Every task is awaited before the first exception (in input order) is re-raised.
    """
    semaphore = asyncio.Semaphore(max(1, limit))

    async def _run(item: T) -> R:
        async with semaphore:
            return await func(item)

    results = await asyncio.gather(*(_run(item) for item in items), return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


class WorkflowSyncService:
    """Scan -> parse -> dispatch -> render -> sync for every application"""

    def __init__(
        self,
        client: GitHubIntegration,
        config: Settings = default_settings,
        registry: Optional[TemplateKindRegistry] = None,
        renderer: Optional[TemplateRenderer] = None,
        dry_run: bool = False
    ):
        self.client = client
        self.config = config
        self.registry = registry or default_registry()
        self.renderer = renderer or TemplateRenderer(config.templates_dir)
        self.committer = RemoteFileSync(client, config.commit_message, config.delete_commit_message)
        self.dry_run = dry_run

    def _scanner(self, coordinates: RepositoryCoordinates) -> TreeScanner:
        return TreeScanner(self.client, coordinates, self.config.dev_suffix, self.config.deploy_suffix)

    def _destination_defaults(self, coordinates: RepositoryCoordinates) -> DestinationDefaults:
        return DestinationDefaults(
            owner=self.config.destination_owner or coordinates.owner,
            repo=self.config.destination_repository or coordinates.repo,
            branch=self.config.destination_branch or coordinates.ref,
            workflows_dir=self.config.workflows_dir,
        )

    # --- Discovery ---

    async def list_apps(self, coordinates: RepositoryCoordinates) -> List[str]:
        return await list_apps(self.client, coordinates, self.config.apps_root)

    async def scan_app(self, coordinates: RepositoryCoordinates, app: str) -> ScanResult:
        """Scan one application with its own accumulator"""
        return await self._scanner(coordinates).scan_app(posixpath.join(self.config.apps_root, app))

    # --- Per definition ---

    async def prepare_definition(
        self,
        coordinates: RepositoryCoordinates,
        path: str,
        defaults: Optional[DestinationDefaults] = None
    ) -> Tuple[ItemResult, Optional[SyncTarget]]:
        """Fetch, parse, dispatch and render one dev definition; never raises WorkflowSyncError.

        Returns the item result and the target to write, or None when the item already failed.
        """
        defaults = defaults or self._destination_defaults(coordinates)
        result = ItemResult(path=path, status=ItemStatus.FAILED)
        try:
            entry = await self.client.get_content(coordinates.owner, coordinates.repo, path, coordinates.ref)
            if not isinstance(entry, FileEntry) or entry.content is None:
                raise MalformedDefinitionError("Definition has no file content", path=path, operation="fetch")

            descriptor = parse_definition(entry.content, path, self.config.dev_suffix)
            result.module_name = descriptor.module_name
            result.template_kind = descriptor.template_kind

            kind = self.registry.get(descriptor)
            context = kind.build_context(descriptor)
            destination = kind.resolve_destination(descriptor, context, defaults)
            result.destination = str(destination)
            content = self.renderer.render(kind.template_name, context)
        except WorkflowSyncError as e:
            logger.error(f"Skipping {path}: [{e.kind.value}] {e}")
            result.error_kind = e.kind.value
            result.message = e.message
            return result, None

        return result, destination.with_content(content)

    async def sync_definition(self, result: ItemResult, target: Optional[SyncTarget]) -> ItemResult:
        """Write a prepared item; failed items pass through untouched"""
        if target is None:
            return result

        if self.dry_run:
            logger.info(f"Dry run: rendered {result.path} -> {result.destination} ({len(target.content)} bytes)")
            result.status = ItemStatus.RENDERED
            return result

        outcome = await self.committer.sync(target)
        result.warnings = outcome.warnings
        if outcome.ok:
            result.status = ItemStatus.SYNCED
        else:
            result.error_kind = outcome.error.kind.value
            result.message = outcome.error.message
        return result

    @staticmethod
    def reject_conflicts(
        prepared: List[Tuple[ItemResult, Optional[SyncTarget]]]
    ) -> List[Tuple[ItemResult, Optional[SyncTarget]]]:
        """Fail every item whose destination is claimed by another item"""
        claims: Dict[str, List[ItemResult]] = defaultdict(list)
        for result, target in prepared:
            if target is not None:
                claims[result.destination].append(result)

        conflicting = set()
        for destination, results in claims.items():
            if len(results) < 2:
                continue
            paths = ", ".join(result.path for result in results)
            for result in results:
                error = DestinationConflictError(
                    f"Destination {destination} is claimed by {paths}",
                    path=result.path,
                    operation="resolve_destination",
                )
                logger.error(f"Skipping {result.path}: [{error.kind.value}] {error}")
                result.error_kind = error.kind.value
                result.message = error.message
                conflicting.add(id(result))

        return [
            (result, None if id(result) in conflicting else target)
            for result, target in prepared
        ]

    # --- Full run ---

    async def run(self, coordinates: Optional[RepositoryCoordinates] = None) -> SyncReport:
        report = SyncReport(status=RunStatus.SUCCEEDED)
        limit = self.config.max_concurrency
        try:
            coordinates = coordinates or self.config.coordinates()
            logger.info(f"Syncing workflows for {coordinates.full_name}@{coordinates.ref}")

            report.apps = await self.list_apps(coordinates)
            scans = await bounded_map(report.apps, lambda app: self.scan_app(coordinates, app), limit)
            for scan in scans:
                report.dev_definition_paths.extend(scan.dev_definition_paths)
                report.deploy_definition_paths.extend(scan.deploy_definition_paths)

            defaults = self._destination_defaults(coordinates)
            prepared = await bounded_map(
                report.dev_definition_paths,
                lambda path: self.prepare_definition(coordinates, path, defaults),
                limit,
            )
            report.items = await bounded_map(
                self.reject_conflicts(prepared),
                lambda item: self.sync_definition(*item),
                limit,
            )
        except WorkflowSyncError as e:
            return self._fail(report, e)
        except Exception as e:
            error = UnexpectedError(f"Run aborted: {type(e).__name__}: {e}", operation="run", cause=e)
            return self._fail(report, error)

        failed = report.failed_items
        if failed:
            report.status = RunStatus.COMPLETED_WITH_ERRORS
            report.message = f"{len(failed)} of {len(report.items)} definition(s) failed"
        else:
            report.message = f"{len(report.items)} definition(s) processed"
        logger.info(f"Run {report.status.value}: {report.message}")
        return report

    @staticmethod
    def _fail(report: SyncReport, error: WorkflowSyncError) -> SyncReport:
        logger.error(f"Run failed: [{error.kind.value}] {error}")
        report.status = RunStatus.FAILED
        report.error_kind = error.kind.value
        report.message = error.message
        return report
