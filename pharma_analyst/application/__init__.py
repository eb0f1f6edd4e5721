"""Application services."""

from .workspaces import WorkspaceOrchestrator, failure_message, get_workspace_orchestrator, reset_workspace_state
from .analysis import AnalysisPipeline, get_analysis_pipeline, reset_analysis_state

__all__ = [
    "AnalysisPipeline",
    "WorkspaceOrchestrator",
    "failure_message",
    "get_analysis_pipeline",
    "get_workspace_orchestrator",
    "reset_analysis_state",
    "reset_workspace_state",
]
