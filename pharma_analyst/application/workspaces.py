"""Application service driving the analysis workspace lifecycle."""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, Sequence

from pharma_analyst.core.errors import (
    CollaboratorUnavailable,
    WorkspaceFailure,
    WorkspaceNotFound,
    WorkspaceNotReady,
)
from pharma_analyst.core.logger import get_logger
from pharma_analyst.core.schema import (
    AnalysisReport,
    ClientDocument,
    Insights,
    KnowledgeBundle,
    WorkspaceSnapshot,
)
from pharma_analyst.domain import Workspace, WorkspaceStatus
from pharma_analyst.infrastructure import (
    InMemoryWorkspaceRepository,
    InsightCollaborator,
    WorkspaceRepository,
    get_insight_collaborator,
)

LOGGER = get_logger("workspaces")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_document(item: ClientDocument | str) -> ClientDocument:
    if isinstance(item, ClientDocument):
        return item
    return ClientDocument(name=str(item))


def failure_message(phase: str, exc: Exception) -> str:
    """Message recorded for a failed phase; collaborator errors keep their own text."""

    if isinstance(exc, WorkspaceFailure):
        return str(exc)
    return f"{phase} failed: {exc.__class__.__name__}: {exc}"


async def _gather_or_cancel(coroutines: Iterable[Awaitable[None]]) -> None:
    """Run coroutines concurrently; the first failure cancels the rest."""

    tasks = [asyncio.ensure_future(coroutine) for coroutine in coroutines]
    try:
        await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class WorkspaceOrchestrator:
    """Coordinates the per-request workspace through its lifecycle.

    ``creating → uploading → processing → ready`` is enforced by the domain
    state machine; any failure or cancellation while uploading or processing
    ends in ``error`` and no later phase runs.
    """

    def __init__(
        self,
        repository: WorkspaceRepository,
        collaborator: InsightCollaborator | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repository = repository
        self._collaborator = collaborator
        self._clock = clock

    @property
    def collaborator(self) -> InsightCollaborator:
        return self._collaborator or get_insight_collaborator()

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _require(self, workspace_id: str) -> Workspace:
        workspace = self._repository.get_workspace(workspace_id)
        if workspace is None:
            raise WorkspaceNotFound(workspace_id)
        return workspace

    def _advance(self, workspace: Workspace, target: WorkspaceStatus) -> WorkspaceSnapshot:
        at = self._clock() if target is WorkspaceStatus.READY else None
        workspace.transition(target, at=at)
        self._repository.save_workspace(workspace)
        LOGGER.info("Workspace %s -> %s", workspace.id, target.value)
        return WorkspaceSnapshot.from_workspace(workspace)

    def _fail(self, workspace: Workspace, message: str) -> None:
        if workspace.status.is_terminal:
            LOGGER.error("Workspace %s already %s; dropping failure: %s", workspace.id, workspace.status.value, message)
            return
        workspace.fail(message)
        self._repository.save_workspace(workspace)
        LOGGER.warning("Workspace %s failed: %s", workspace.id, message)

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    async def create_workspace(
        self,
        name: str,
        bundle: KnowledgeBundle,
        client_docs: Sequence[ClientDocument | str],
    ) -> WorkspaceSnapshot:
        """Assemble a workspace and drive it to ``ready`` or ``error``.

        Collaborator failures are recorded on the returned workspace rather than
        raised.  Cancellation is recorded the same way and then re-raised.
        """

        documents = [_as_document(item) for item in client_docs]
        created_at = self._clock()
        workspace = Workspace(
            id=self._repository.next_workspace_id(),
            name=f"{name}_{created_at.date().isoformat()}",
            created_at=created_at,
            client_document_refs=[document.name for document in documents],
            knowledge_source_ids=bundle.source_ids,
            total_document_count=bundle.total_document_count + len(documents),
        )
        self._repository.save_workspace(workspace)
        LOGGER.info(
            "Workspace %s created with %d client documents and %d knowledge sources",
            workspace.id,
            len(documents),
            len(bundle.selected_sources),
        )

        collaborator = self.collaborator
        try:
            snapshot = self._advance(workspace, WorkspaceStatus.UPLOADING)
            await _gather_or_cancel(collaborator.register_document(snapshot, document) for document in documents)
            for source in bundle.selected_sources:
                await collaborator.register_source(snapshot, source)

            snapshot = self._advance(workspace, WorkspaceStatus.PROCESSING)
            await collaborator.process(snapshot)

            self._advance(workspace, WorkspaceStatus.READY)
        except asyncio.CancelledError:
            self._fail(workspace, f"Workspace creation cancelled during {workspace.status.value}")
            raise
        except Exception as exc:
            self._fail(workspace, failure_message(workspace.status.value, exc))

        return WorkspaceSnapshot.from_workspace(workspace)

    async def extract_insights(self, workspace_id: str, analysis_prompt: str) -> Insights:
        workspace = self._require(workspace_id)
        if workspace.status is not WorkspaceStatus.READY:
            raise WorkspaceNotReady(f"workspace {workspace_id} is {workspace.status.value}, expected ready")
        return await self.collaborator.extract_insights(WorkspaceSnapshot.from_workspace(workspace), analysis_prompt)

    async def cleanup_workspace(self, workspace_id: str) -> bool:
        """Release collaborator-side resources; failures are logged, never raised."""

        if self._repository.get_workspace(workspace_id) is None:
            LOGGER.warning("Cleanup requested for unknown workspace %s", workspace_id)
            return False
        try:
            await self.collaborator.release(workspace_id)
        except CollaboratorUnavailable as exc:
            LOGGER.warning("Cleanup of workspace %s skipped: %s", workspace_id, exc)
            return False
        except Exception:
            LOGGER.error("Cleanup of workspace %s failed", workspace_id, exc_info=True)
            return False
        LOGGER.info("Cleanup completed for workspace %s", workspace_id)
        return True

    # ------------------------------------------------------------------
    # queries & reports
    # ------------------------------------------------------------------
    def get_workspace(self, workspace_id: str) -> WorkspaceSnapshot | None:
        workspace = self._repository.get_workspace(workspace_id)
        return WorkspaceSnapshot.from_workspace(workspace) if workspace else None

    def list_workspaces(self) -> list[WorkspaceSnapshot]:
        return [WorkspaceSnapshot.from_workspace(item) for item in self._repository.list_workspaces()]

    def save_report(self, workspace_id: str, report: AnalysisReport) -> None:
        self._require(workspace_id)
        self._repository.save_report(workspace_id, report)

    def get_report(self, workspace_id: str) -> AnalysisReport | None:
        return self._repository.get_report(workspace_id)

    # ------------------------------------------------------------------
    # testing helpers
    # ------------------------------------------------------------------
    def reset(self) -> None:
        self._repository.reset()


_repository = InMemoryWorkspaceRepository()
_orchestrator = WorkspaceOrchestrator(_repository)


def get_workspace_orchestrator() -> WorkspaceOrchestrator:
    """Return the singleton orchestrator for the process."""

    return _orchestrator


def reset_workspace_state() -> None:
    """Reset the in-memory store (used in tests)."""

    _orchestrator.reset()
