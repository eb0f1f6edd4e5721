"""Domain layer definitions."""

from .workspaces import TERMINAL_STATES, TRANSITIONS, Workspace, WorkspaceStatus

__all__ = [
    "TERMINAL_STATES",
    "TRANSITIONS",
    "Workspace",
    "WorkspaceStatus",
]
