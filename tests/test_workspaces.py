from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from pharma_analyst.application import WorkspaceOrchestrator
from pharma_analyst.core.errors import (
    CollaboratorUnavailable,
    InvalidTransition,
    WorkspaceNotFound,
    WorkspaceNotReady,
)
from pharma_analyst.core.schema import ClientDocument, Insights, KnowledgeBundle, KnowledgeSource
from pharma_analyst.domain import Workspace, WorkspaceStatus
from pharma_analyst.infrastructure import (
    InMemoryWorkspaceRepository,
    StaticInsightCollaborator,
    UnconfiguredCollaborator,
    configure_insight_collaborator,
)

FIXED_NOW = datetime(2024, 5, 2, 12, 0, tzinfo=timezone.utc)

INSIGHTS = Insights(
    summary="Dossier is broadly aligned with current rules.",
    key_findings=("Labelling follows RDC 71/2009",),
    recommendations=("Review raw material specifications",),
    risk_factors=("Stability data older than 12 months",),
    compliance_status="Compliant with restrictions",
    next_steps=("Update stability protocol",),
    confidence=0.8,
    source_references=("RDC 71/2009",),
)


def _source(source_id: str, count: int) -> KnowledgeSource:
    return KnowledgeSource(
        id=source_id,
        name=source_id,
        category="regulatory",
        document_count=count,
        last_updated=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


BUNDLE = KnowledgeBundle(
    selected_sources=(_source("regulatory_pharma", 150), _source("ich_guidelines", 85)),
    total_document_count=235,
    estimated_processing_seconds=660,
)
DOCUMENTS = [ClientDocument(name="dossier.pdf"), ClientDocument(name="annex.xlsx")]


@pytest.fixture(autouse=True)
def reset_collaborator():
    configure_insight_collaborator(UnconfiguredCollaborator())
    yield
    configure_insight_collaborator(UnconfiguredCollaborator())


def _orchestrator(collaborator=None) -> WorkspaceOrchestrator:
    return WorkspaceOrchestrator(InMemoryWorkspaceRepository(), collaborator, clock=lambda: FIXED_NOW)


# ----------------------------------------------------------------------
# lifecycle state machine
# ----------------------------------------------------------------------
def _workspace() -> Workspace:
    return Workspace(id="ws-1", name="demo", created_at=FIXED_NOW)


def test_happy_path_transitions_record_history():
    workspace = _workspace()
    workspace.transition(WorkspaceStatus.UPLOADING)
    workspace.transition(WorkspaceStatus.PROCESSING)
    assert workspace.processed_at is None

    workspace.transition(WorkspaceStatus.READY, at=FIXED_NOW)

    assert workspace.processed_at == FIXED_NOW
    assert workspace.history == [
        WorkspaceStatus.CREATING,
        WorkspaceStatus.UPLOADING,
        WorkspaceStatus.PROCESSING,
        WorkspaceStatus.READY,
    ]


@pytest.mark.parametrize(
    "path",
    [
        [WorkspaceStatus.READY],
        [WorkspaceStatus.PROCESSING],
        [WorkspaceStatus.UPLOADING, WorkspaceStatus.CREATING],
        [WorkspaceStatus.ERROR, WorkspaceStatus.UPLOADING],
    ],
)
def test_illegal_transitions_raise(path):
    workspace = _workspace()
    *allowed, illegal = path
    for status in allowed:
        workspace.transition(status, error="boom")

    with pytest.raises(InvalidTransition):
        workspace.transition(illegal, at=FIXED_NOW)


def test_ready_requires_timestamp():
    workspace = _workspace()
    workspace.transition(WorkspaceStatus.UPLOADING)
    workspace.transition(WorkspaceStatus.PROCESSING)

    with pytest.raises(InvalidTransition):
        workspace.transition(WorkspaceStatus.READY)
    assert workspace.status is WorkspaceStatus.PROCESSING


def test_ready_is_terminal():
    workspace = _workspace()
    for status in (WorkspaceStatus.UPLOADING, WorkspaceStatus.PROCESSING):
        workspace.transition(status)
    workspace.transition(WorkspaceStatus.READY, at=FIXED_NOW)

    with pytest.raises(InvalidTransition):
        workspace.fail("late failure")
    assert workspace.error is None


# ----------------------------------------------------------------------
# orchestrator
# ----------------------------------------------------------------------
def test_create_workspace_reaches_ready():
    collaborator = StaticInsightCollaborator(INSIGHTS)
    orchestrator = _orchestrator(collaborator)

    snapshot = asyncio.run(orchestrator.create_workspace("dossier", BUNDLE, DOCUMENTS))

    assert snapshot.status is WorkspaceStatus.READY
    assert snapshot.id == "ws-00001"
    assert snapshot.name == "dossier_2024-05-02"
    assert snapshot.processed_at == FIXED_NOW
    assert snapshot.error is None
    assert snapshot.total_document_count == 235 + 2
    assert snapshot.client_document_refs == ("dossier.pdf", "annex.xlsx")
    assert snapshot.knowledge_source_ids == ("regulatory_pharma", "ich_guidelines")
    assert snapshot.history == (
        WorkspaceStatus.CREATING,
        WorkspaceStatus.UPLOADING,
        WorkspaceStatus.PROCESSING,
        WorkspaceStatus.READY,
    )

    names = [name for name, _ in collaborator.calls]
    assert sorted(names[:2]) == ["register_document", "register_document"]
    assert collaborator.calls[2:] == [
        ("register_source", "regulatory_pharma"),
        ("register_source", "ich_guidelines"),
        ("process", "ws-00001"),
    ]


def test_plain_document_names_are_accepted():
    collaborator = StaticInsightCollaborator(INSIGHTS)
    orchestrator = _orchestrator(collaborator)

    snapshot = asyncio.run(orchestrator.create_workspace("names", BUNDLE, ["a.pdf"]))

    assert snapshot.client_document_refs == ("a.pdf",)
    assert snapshot.status is WorkspaceStatus.READY


def test_processing_failure_ends_in_error():
    collaborator = StaticInsightCollaborator(INSIGHTS, failures={"process": RuntimeError("index crashed")})
    orchestrator = _orchestrator(collaborator)

    snapshot = asyncio.run(orchestrator.create_workspace("dossier", BUNDLE, DOCUMENTS))

    assert snapshot.status is WorkspaceStatus.ERROR
    assert snapshot.processed_at is None
    assert snapshot.error == "processing failed: RuntimeError: index crashed"
    assert snapshot.history[-1] is WorkspaceStatus.ERROR
    assert WorkspaceStatus.READY not in snapshot.history


def test_upload_failure_stops_before_processing():
    collaborator = StaticInsightCollaborator(
        INSIGHTS,
        failures={"register_document": CollaboratorUnavailable("connection refused")},
    )
    orchestrator = _orchestrator(collaborator)

    snapshot = asyncio.run(orchestrator.create_workspace("dossier", BUNDLE, DOCUMENTS))

    assert snapshot.status is WorkspaceStatus.ERROR
    assert snapshot.error == "Collaborator unavailable: connection refused"
    assert all(name == "register_document" for name, _ in collaborator.calls)


def test_missing_collaborator_is_reported_on_the_workspace():
    orchestrator = _orchestrator()

    snapshot = asyncio.run(orchestrator.create_workspace("dossier", BUNDLE, DOCUMENTS))

    assert snapshot.status is WorkspaceStatus.ERROR
    assert snapshot.error == "Collaborator unavailable: no insight collaborator configured"


def test_global_collaborator_is_used_when_none_injected():
    collaborator = StaticInsightCollaborator(INSIGHTS)
    configure_insight_collaborator(collaborator)
    orchestrator = _orchestrator()

    snapshot = asyncio.run(orchestrator.create_workspace("dossier", BUNDLE, DOCUMENTS))

    assert snapshot.status is WorkspaceStatus.READY
    assert collaborator.calls


@pytest.mark.parametrize(
    ("slow_step", "phase"),
    [("register_document", WorkspaceStatus.UPLOADING), ("process", WorkspaceStatus.PROCESSING)],
)
def test_cancellation_marks_workspace_as_error(slow_step, phase):
    collaborator = StaticInsightCollaborator(INSIGHTS, delays={slow_step: 5.0})
    orchestrator = _orchestrator(collaborator)

    async def scenario():
        task = asyncio.create_task(orchestrator.create_workspace("dossier", BUNDLE, DOCUMENTS))
        for _ in range(100):
            await asyncio.sleep(0.01)
            current = orchestrator.get_workspace("ws-00001")
            if current is not None and current.status is phase:
                break
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    snapshot = orchestrator.get_workspace("ws-00001")
    assert snapshot.status is WorkspaceStatus.ERROR
    assert snapshot.error == f"Workspace creation cancelled during {phase.value}"
    assert snapshot.processed_at is None


def test_extract_insights_requires_ready_workspace():
    failing = StaticInsightCollaborator(INSIGHTS, failures={"process": RuntimeError("boom")})
    orchestrator = _orchestrator(failing)
    snapshot = asyncio.run(orchestrator.create_workspace("dossier", BUNDLE, DOCUMENTS))

    with pytest.raises(WorkspaceNotReady):
        asyncio.run(orchestrator.extract_insights(snapshot.id, "prompt"))
    with pytest.raises(WorkspaceNotFound):
        asyncio.run(orchestrator.extract_insights("ws-missing", "prompt"))


def test_extract_insights_returns_collaborator_answer():
    collaborator = StaticInsightCollaborator(INSIGHTS)
    orchestrator = _orchestrator(collaborator)
    snapshot = asyncio.run(orchestrator.create_workspace("dossier", BUNDLE, DOCUMENTS))

    insights = asyncio.run(orchestrator.extract_insights(snapshot.id, "Which rules apply?"))

    assert insights == INSIGHTS
    assert collaborator.calls[-1] == ("extract_insights", "Which rules apply?")


def test_cleanup_reports_success_and_failure():
    collaborator = StaticInsightCollaborator(INSIGHTS)
    orchestrator = _orchestrator(collaborator)
    snapshot = asyncio.run(orchestrator.create_workspace("dossier", BUNDLE, DOCUMENTS))

    assert asyncio.run(orchestrator.cleanup_workspace(snapshot.id)) is True
    assert collaborator.released == [snapshot.id]
    assert asyncio.run(orchestrator.cleanup_workspace("ws-missing")) is False

    collaborator.failures["release"] = RuntimeError("remote gone")
    assert asyncio.run(orchestrator.cleanup_workspace(snapshot.id)) is False


def test_list_workspaces_newest_first():
    moments = iter(
        [
            datetime(2024, 5, 1, tzinfo=timezone.utc),
            datetime(2024, 5, 1, 1, tzinfo=timezone.utc),
            datetime(2024, 5, 3, tzinfo=timezone.utc),
            datetime(2024, 5, 3, 1, tzinfo=timezone.utc),
        ]
    )
    orchestrator = WorkspaceOrchestrator(
        InMemoryWorkspaceRepository(),
        StaticInsightCollaborator(INSIGHTS),
        clock=lambda: next(moments),
    )

    first = asyncio.run(orchestrator.create_workspace("first", BUNDLE, DOCUMENTS))
    second = asyncio.run(orchestrator.create_workspace("second", BUNDLE, DOCUMENTS))

    assert [item.id for item in orchestrator.list_workspaces()] == [second.id, first.id]
