"""End-to-end tests for WorkflowSyncService against the fake contents API."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from workflow_factory.models.schemas import ItemStatus, RunStatus
from workflow_factory.services.workflow_sync.dispatcher import (
    TemplateKind,
    TemplateKindRegistry,
    resolve_workflow_destination,
)
from workflow_factory.services.workflow_sync.service import WorkflowSyncService, bounded_map

WORKFLOW = ".github/workflows/pipeline.yml"


def _run(make_client, settings, **kwargs):
    async def scenario():
        async with make_client() as client:
            return await WorkflowSyncService(client, settings, **kwargs).run()

    return asyncio.run(scenario())


def test_checkout_scenario(fake_github, make_client, test_settings, make_definition) -> None:
    fake_github.add_file("apps/checkout/pipeline.factory-dev.yaml", make_definition())
    fake_github.add_file("apps/checkout/pipeline.factory-deploy.yaml", "template: {}\n")

    report = _run(make_client, test_settings)

    assert report.status == RunStatus.SUCCEEDED
    assert report.apps == ["checkout"]
    assert report.dev_definition_paths == ["apps/checkout/pipeline.factory-dev.yaml"]
    assert report.deploy_definition_paths == ["apps/checkout/pipeline.factory-deploy.yaml"]
    [item] = report.items
    assert item.status == ItemStatus.SYNCED
    assert item.module_name == "pipeline"
    assert item.destination == "acme/mono@main:.github/workflows/pipeline.yml"

    written = fake_github.read(WORKFLOW)
    assert b"MODULE_NAME=pipeline" in written
    assert b"TARGET_BRANCH=main" in written


def test_rerun_leaves_workflow_byte_identical(fake_github, make_client, test_settings, make_definition) -> None:
    fake_github.add_file("apps/checkout/pipeline.factory-dev.yaml", make_definition())

    first = _run(make_client, test_settings)
    after_first = fake_github.read(WORKFLOW)
    second = _run(make_client, test_settings)

    assert first.status == second.status == RunStatus.SUCCEEDED
    assert fake_github.read(WORKFLOW) == after_first


def test_unknown_kind_is_isolated(fake_github, make_client, test_settings, make_definition, caplog) -> None:
    fake_github.add_file("apps/checkout/pipeline.factory-dev.yaml", make_definition())
    fake_github.add_file("apps/billing/billing.factory-dev.yaml", make_definition(kind="unknown-kind"))

    report = _run(make_client, test_settings)

    assert report.status == RunStatus.COMPLETED_WITH_ERRORS
    [failed] = report.failed_items
    assert failed.path == "apps/billing/billing.factory-dev.yaml"
    assert failed.error_kind == "unmatched_template_kind"
    assert "unknown-kind" in failed.message
    assert "unknown-kind" in caplog.text
    assert fake_github.read(".github/workflows/billing.yml") is None
    assert fake_github.read(WORKFLOW) is not None


def test_malformed_definition_is_isolated(fake_github, make_client, test_settings, make_definition) -> None:
    fake_github.add_file("apps/checkout/pipeline.factory-dev.yaml", make_definition())
    fake_github.add_file("apps/broken/broken.factory-dev.yaml", "template: [unclosed\n")

    report = _run(make_client, test_settings)

    assert report.status == RunStatus.COMPLETED_WITH_ERRORS
    by_path = {item.path: item for item in report.items}
    assert by_path["apps/broken/broken.factory-dev.yaml"].error_kind == "malformed_definition"
    assert by_path["apps/checkout/pipeline.factory-dev.yaml"].status == ItemStatus.SYNCED


def test_zero_apps_aborts_before_any_write(fake_github, make_client, test_settings) -> None:
    fake_github.add_file("apps/README.md", "no apps yet")

    report = _run(make_client, test_settings)

    assert report.status == RunStatus.FAILED
    assert report.error_kind == "not_found"
    assert "No application directories" in report.message
    assert report.items == []
    assert fake_github.writes() == []


def test_app_without_dev_definitions_aborts_run(fake_github, make_client, test_settings, make_definition) -> None:
    fake_github.add_file("apps/checkout/pipeline.factory-dev.yaml", make_definition())
    fake_github.add_file("apps/legacy/src/app.py", "print('hi')")

    report = _run(make_client, test_settings)

    assert report.status == RunStatus.FAILED
    assert report.error_kind == "not_found"
    assert "apps/legacy" in report.message
    assert fake_github.writes() == []


def test_write_failure_marks_item_failed(fake_github, make_client, test_settings, make_definition) -> None:
    fake_github.add_file("apps/checkout/pipeline.factory-dev.yaml", make_definition())
    fake_github.add_file("apps/billing/billing.factory-dev.yaml", make_definition(project_id="org/billing"))
    fake_github.fail("PUT", ".github/workflows/billing.yml", 500)

    report = _run(make_client, test_settings)

    assert report.status == RunStatus.COMPLETED_WITH_ERRORS
    [failed] = report.failed_items
    assert failed.module_name == "billing"
    assert failed.error_kind == "transport_error"
    assert fake_github.read(WORKFLOW) is not None


def test_dry_run_renders_without_writing(fake_github, make_client, test_settings, make_definition) -> None:
    fake_github.add_file("apps/checkout/pipeline.factory-dev.yaml", make_definition())

    report = _run(make_client, test_settings, dry_run=True)

    assert report.status == RunStatus.SUCCEEDED
    assert [item.status for item in report.items] == [ItemStatus.RENDERED]
    assert fake_github.writes() == []


def test_destination_overrides(fake_github, make_client, test_settings, make_definition) -> None:
    fake_github.add_file("apps/checkout/pipeline.factory-dev.yaml", make_definition())
    settings = test_settings.model_copy(update={
        "destination_owner": "ops",
        "destination_repository": "deployments",
        "destination_branch": "main",
    })

    report = _run(make_client, settings)

    assert report.status == RunStatus.SUCCEEDED
    assert fake_github.read(WORKFLOW, owner="ops", repo="deployments") is not None
    assert fake_github.read(WORKFLOW) is None


def test_missing_coordinates_fail_the_run(make_client, test_settings) -> None:
    settings = test_settings.model_copy(update={"github_repository": None})

    report = _run(make_client, settings)

    assert report.status == RunStatus.FAILED
    assert report.error_kind == "configuration_error"


def test_shared_module_name_fails_every_claimant(fake_github, make_client, test_settings, make_definition) -> None:
    fake_github.add_file("apps/checkout/pipeline.factory-dev.yaml", make_definition(project_id="org/checkout"))
    fake_github.add_file("apps/billing/pipeline.factory-dev.yaml", make_definition(project_id="org/billing"))
    fake_github.add_file("apps/search/search.factory-dev.yaml", make_definition(project_id="org/search"))

    report = _run(make_client, test_settings)

    assert report.status == RunStatus.COMPLETED_WITH_ERRORS
    by_path = {item.path: item for item in report.items}
    for path in ("apps/checkout/pipeline.factory-dev.yaml", "apps/billing/pipeline.factory-dev.yaml"):
        item = by_path[path]
        assert item.status == ItemStatus.FAILED
        assert item.error_kind == "destination_conflict"
        assert "apps/checkout/pipeline.factory-dev.yaml" in item.message
        assert "apps/billing/pipeline.factory-dev.yaml" in item.message
    assert by_path["apps/search/search.factory-dev.yaml"].status == ItemStatus.SYNCED
    assert fake_github.read(WORKFLOW) is None
    assert fake_github.calls_for(WORKFLOW) == []


def test_numeric_project_id_renders(fake_github, make_client, test_settings, make_definition) -> None:
    fake_github.add_file("apps/checkout/pipeline.factory-dev.yaml", make_definition(project_id="1234"))

    report = _run(make_client, test_settings)

    assert report.status == RunStatus.SUCCEEDED
    assert b"GITLAB_PROJECT_ID=1234" in fake_github.read(WORKFLOW)


def test_empty_write_response_counts_as_synced(fake_github, make_client, test_settings, make_definition) -> None:
    fake_github.add_file("apps/checkout/pipeline.factory-dev.yaml", make_definition())
    fake_github.reply("PUT", WORKFLOW, httpx.Response(204))

    report = _run(make_client, test_settings)

    assert report.status == RunStatus.SUCCEEDED
    assert [item.status for item in report.items] == [ItemStatus.SYNCED]


def test_unreadable_write_response_fails_only_that_item(fake_github, make_client, test_settings,
                                                        make_definition) -> None:
    fake_github.add_file("apps/checkout/pipeline.factory-dev.yaml", make_definition())
    fake_github.add_file("apps/billing/billing.factory-dev.yaml", make_definition(project_id="org/billing"))
    fake_github.reply("PUT", ".github/workflows/billing.yml", httpx.Response(200, text="<html>proxy</html>"))

    report = _run(make_client, test_settings)

    assert report.status == RunStatus.COMPLETED_WITH_ERRORS
    [failed] = report.failed_items
    assert failed.module_name == "billing"
    assert failed.error_kind == "transport_error"
    assert fake_github.read(WORKFLOW) is not None


def test_foreign_exception_becomes_unexpected_error(fake_github, make_client, test_settings, make_definition) -> None:
    fake_github.add_file("apps/checkout/pipeline.factory-dev.yaml", make_definition())

    def explode(descriptor):
        raise RuntimeError("context builder crashed")

    registry = TemplateKindRegistry([TemplateKind(
        tag="openshift",
        template_name="openshift.yml.j2",
        build_context=explode,
        resolve_destination=resolve_workflow_destination,
    )])

    report = _run(make_client, test_settings, registry=registry)

    assert report.status == RunStatus.FAILED
    assert report.error_kind == "unexpected_error"
    assert "context builder crashed" in report.message
    assert fake_github.writes() == []


def test_bounded_map_limits_concurrency_and_keeps_order() -> None:
    in_flight = 0
    peak = 0

    async def work(n: int) -> int:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0)
        in_flight -= 1
        return n * 10

    results = asyncio.run(bounded_map(range(6), work, limit=2))

    assert results == [0, 10, 20, 30, 40, 50]
    assert peak == 2


def test_bounded_map_finishes_siblings_before_raising() -> None:
    finished = []

    async def work(n: int) -> int:
        await asyncio.sleep(0)
        if n == 1:
            raise ValueError("boom")
        finished.append(n)
        return n

    with pytest.raises(ValueError):
        asyncio.run(bounded_map(range(4), work, limit=4))
    assert sorted(finished) == [0, 2, 3]
