"""Error taxonomy shared by the analysis layers."""

from __future__ import annotations


class PharmaAnalystError(Exception):
    """Base class for domain errors raised by this package."""


class ClassificationFailure(PharmaAnalystError):
    """Raised inside the classifier; always recovered into ``unknown``."""


class ContentExtractionError(PharmaAnalystError):
    """Raised when no text could be extracted from a client document."""


class ExtractionNotConfigured(ContentExtractionError):
    """No extraction service is installed for binary documents."""

    def __str__(self) -> str:
        detail = f" ({self.args[0]})" if self.args else ""
        return f"content extraction not configured{detail}"


class WorkspaceFailure(PharmaAnalystError):
    """A workspace phase failed; the message is recorded on the workspace."""


class CollaboratorUnavailable(WorkspaceFailure):
    """The insight-extraction collaborator could not be reached."""

    prefix = "Collaborator unavailable"

    def __str__(self) -> str:
        detail = super().__str__()
        return f"{self.prefix}: {detail}" if detail else self.prefix


class CollaboratorError(WorkspaceFailure):
    """The collaborator answered with an error or a malformed payload."""


class InvalidTransition(PharmaAnalystError):
    """A workspace status change that the lifecycle does not allow."""


class WorkspaceNotFound(PharmaAnalystError):
    """No workspace is registered under the requested id."""

    def __str__(self) -> str:
        return f"workspace not found: {self.args[0]}" if self.args else "workspace not found"


class WorkspaceNotReady(PharmaAnalystError):
    """Insights were requested from a workspace that is not ``ready``."""


class UnsupportedAnalysisType(PharmaAnalystError, ValueError):
    """The requested analysis type has no report template."""

    def __init__(self, analysis_type: str) -> None:
        super().__init__(f"unsupported analysis type: {analysis_type}")
        self.analysis_type = analysis_type
