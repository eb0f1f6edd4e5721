"""Domain entities for analysis workspace orchestration."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from pharma_analyst.core.errors import InvalidTransition


class WorkspaceStatus(str, Enum):
    CREATING = "creating"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({WorkspaceStatus.READY, WorkspaceStatus.ERROR})

TRANSITIONS: dict[WorkspaceStatus, frozenset[WorkspaceStatus]] = {
    WorkspaceStatus.CREATING: frozenset({WorkspaceStatus.UPLOADING, WorkspaceStatus.ERROR}),
    WorkspaceStatus.UPLOADING: frozenset({WorkspaceStatus.PROCESSING, WorkspaceStatus.ERROR}),
    WorkspaceStatus.PROCESSING: frozenset({WorkspaceStatus.READY, WorkspaceStatus.ERROR}),
    WorkspaceStatus.READY: frozenset(),
    WorkspaceStatus.ERROR: frozenset(),
}


@dataclass(slots=True)
class Workspace:
    """Transient container pairing client documents with knowledge sources.

    Status only moves forward along ``creating → uploading → processing →
    ready``; ``error`` is reachable from every non-terminal state.  Both
    ``ready`` and ``error`` are terminal.
    """

    id: str
    name: str
    created_at: datetime
    client_document_refs: list[str] = field(default_factory=list)
    knowledge_source_ids: list[str] = field(default_factory=list)
    total_document_count: int = 0
    status: WorkspaceStatus = WorkspaceStatus.CREATING
    processed_at: datetime | None = None
    error: str | None = None
    history: list[WorkspaceStatus] = field(default_factory=lambda: [WorkspaceStatus.CREATING])

    def can_transition(self, target: WorkspaceStatus) -> bool:
        return target in TRANSITIONS[self.status]

    def transition(self, target: WorkspaceStatus, *, at: datetime | None = None, error: str | None = None) -> None:
        if not self.can_transition(target):
            raise InvalidTransition(f"workspace {self.id}: {self.status.value} -> {target.value} is not allowed")
        if target is WorkspaceStatus.READY:
            if at is None:
                raise InvalidTransition(f"workspace {self.id}: entering ready requires a timestamp")
            self.processed_at = at
        if target is WorkspaceStatus.ERROR:
            self.error = error or "unknown error"
        self.status = target
        self.history.append(target)

    def fail(self, message: str) -> None:
        self.transition(WorkspaceStatus.ERROR, error=message)
