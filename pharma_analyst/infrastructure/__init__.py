"""Infrastructure layer exports."""

from .extraction import (
    ContentExtractionClient,
    UnconfiguredExtractionClient,
    configure_extraction_client,
    get_extraction_client,
)
from .insights import (
    InsightCollaborator,
    StaticInsightCollaborator,
    UnconfiguredCollaborator,
    configure_insight_collaborator,
    get_insight_collaborator,
)
from .notebook import NotebookHTTPCollaborator
from .workspaces import InMemoryWorkspaceRepository, WorkspaceRepository

__all__ = [
    "ContentExtractionClient",
    "InMemoryWorkspaceRepository",
    "InsightCollaborator",
    "NotebookHTTPCollaborator",
    "StaticInsightCollaborator",
    "UnconfiguredCollaborator",
    "UnconfiguredExtractionClient",
    "WorkspaceRepository",
    "configure_extraction_client",
    "configure_insight_collaborator",
    "get_extraction_client",
    "get_insight_collaborator",
]
