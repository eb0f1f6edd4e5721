"""Insight-extraction collaborator hooks.

All language understanding happens in an external service that hosts the
analysis workspace: it receives the client documents and the selected
knowledge sources, indexes them and answers analysis prompts with structured
insights.  This module defines the contract the orchestrator drives, the
default used when nothing is configured, and a deterministic fixture-backed
implementation for tests and local runs.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Protocol

from pharma_analyst.core.errors import CollaboratorUnavailable
from pharma_analyst.core.schema import ClientDocument, Insights, KnowledgeSource, WorkspaceSnapshot


class InsightCollaborator(Protocol):
    """Contract for the external workspace/insight service.

    Every method is a suspension point and may be cancelled by the caller.
    """

    async def register_document(self, workspace: WorkspaceSnapshot, document: ClientDocument) -> None:
        """Attach one client document to the workspace."""

    async def register_source(self, workspace: WorkspaceSnapshot, source: KnowledgeSource) -> None:
        """Attach one knowledge source corpus to the workspace."""

    async def process(self, workspace: WorkspaceSnapshot) -> None:
        """Index the assembled workspace; returns once it can answer prompts."""

    async def extract_insights(self, workspace: WorkspaceSnapshot, prompt: str) -> Insights:
        """Answer an analysis prompt against a processed workspace."""

    async def release(self, workspace_id: str) -> None:
        """Drop every remote resource tied to the workspace."""


class UnconfiguredCollaborator:
    """Fallback used when no insight service is configured."""

    reason = "no insight collaborator configured"

    async def register_document(self, workspace: WorkspaceSnapshot, document: ClientDocument) -> None:
        raise CollaboratorUnavailable(self.reason)

    async def register_source(self, workspace: WorkspaceSnapshot, source: KnowledgeSource) -> None:
        raise CollaboratorUnavailable(self.reason)

    async def process(self, workspace: WorkspaceSnapshot) -> None:
        raise CollaboratorUnavailable(self.reason)

    async def extract_insights(self, workspace: WorkspaceSnapshot, prompt: str) -> Insights:
        raise CollaboratorUnavailable(self.reason)

    async def release(self, workspace_id: str) -> None:
        return None


@dataclass
class StaticInsightCollaborator:
    """Deterministic collaborator answering every prompt with fixed insights.

    ``failures`` maps a method name to the exception it should raise and
    ``delays`` to a number of seconds to wait first, which lets callers
    exercise failure and cancellation paths.
    """

    insights: Insights
    failures: dict[str, BaseException] = field(default_factory=dict)
    delays: dict[str, float] = field(default_factory=dict)
    calls: list[tuple[str, str]] = field(default_factory=list)
    released: list[str] = field(default_factory=list)

    async def _step(self, name: str, subject: str) -> None:
        self.calls.append((name, subject))
        delay = self.delays.get(name)
        if delay:
            await asyncio.sleep(delay)
        error = self.failures.get(name)
        if error is not None:
            raise error

    async def register_document(self, workspace: WorkspaceSnapshot, document: ClientDocument) -> None:
        await self._step("register_document", document.name)

    async def register_source(self, workspace: WorkspaceSnapshot, source: KnowledgeSource) -> None:
        await self._step("register_source", source.id)

    async def process(self, workspace: WorkspaceSnapshot) -> None:
        await self._step("process", workspace.id)

    async def extract_insights(self, workspace: WorkspaceSnapshot, prompt: str) -> Insights:
        await self._step("extract_insights", prompt)
        return self.insights

    async def release(self, workspace_id: str) -> None:
        await self._step("release", workspace_id)
        self.released.append(workspace_id)


_collaborator: InsightCollaborator = UnconfiguredCollaborator()


def configure_insight_collaborator(collaborator: InsightCollaborator) -> None:
    """Install the collaborator used by the workspace orchestrator."""

    global _collaborator
    _collaborator = collaborator


def get_insight_collaborator() -> InsightCollaborator:
    """Return the currently configured collaborator."""

    return _collaborator
