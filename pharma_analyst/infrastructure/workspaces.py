"""Infrastructure layer for workspace and report persistence."""
from __future__ import annotations

from typing import Protocol

from pharma_analyst.core.schema import AnalysisReport
from pharma_analyst.domain import Workspace


class WorkspaceRepository(Protocol):
    """Persistence contract standing in for the durable store."""

    def next_workspace_id(self) -> str: ...

    def save_workspace(self, workspace: Workspace) -> None: ...

    def get_workspace(self, workspace_id: str) -> Workspace | None: ...

    def list_workspaces(self) -> list[Workspace]: ...

    def save_report(self, workspace_id: str, report: AnalysisReport) -> None: ...

    def get_report(self, workspace_id: str) -> AnalysisReport | None: ...

    def reset(self) -> None: ...


class InMemoryWorkspaceRepository:
    """Simple in-memory repository for fast iteration and tests."""

    def __init__(self) -> None:
        self._workspaces: dict[str, Workspace] = {}
        self._reports: dict[str, AnalysisReport] = {}
        self._counter = 0

    def next_workspace_id(self) -> str:
        self._counter += 1
        return f"ws-{self._counter:05d}"

    def save_workspace(self, workspace: Workspace) -> None:
        self._workspaces[workspace.id] = workspace

    def get_workspace(self, workspace_id: str) -> Workspace | None:
        return self._workspaces.get(workspace_id)

    def list_workspaces(self) -> list[Workspace]:
        return sorted(self._workspaces.values(), key=lambda item: item.created_at, reverse=True)

    def save_report(self, workspace_id: str, report: AnalysisReport) -> None:
        self._reports[workspace_id] = report

    def get_report(self, workspace_id: str) -> AnalysisReport | None:
        return self._reports.get(workspace_id)

    def reset(self) -> None:
        self._workspaces.clear()
        self._reports.clear()
        self._counter = 0
