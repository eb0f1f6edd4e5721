"""End-to-end analysis of a single client document."""
from __future__ import annotations

from pathlib import Path
from typing import Callable, Sequence

from pharma_analyst.application.workspaces import WorkspaceOrchestrator, failure_message, get_workspace_orchestrator
from pharma_analyst.core.logger import get_logger
from pharma_analyst.core.registry import KnowledgeBaseRegistry, get_registry
from pharma_analyst.core.reporting import ReportSynthesizer, build_analysis_prompt, resolve_template
from pharma_analyst.core.routing import KnowledgeBaseRouter
from pharma_analyst.core.schema import AnalysisOutcome, AnalysisType, ClientDocument
from pharma_analyst.domain import WorkspaceStatus
from pharma_analyst.extractors.classifier import classify

LOGGER = get_logger("analysis")


class AnalysisPipeline:
    """Runs classify → route → workspace → insights → report for one document.

    Workspace failures come back inside the :class:`AnalysisOutcome`; only an
    unsupported analysis type (a caller error) is raised, before any
    workspace is created.
    """

    def __init__(
        self,
        orchestrator: WorkspaceOrchestrator,
        registry_provider: Callable[[], KnowledgeBaseRegistry] = get_registry,
        synthesizer: ReportSynthesizer | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._registry_provider = registry_provider
        self._synthesizer = synthesizer or ReportSynthesizer()

    async def run(
        self,
        *,
        text: str,
        filename: str,
        analysis_type: str | AnalysisType,
        client_documents: Sequence[ClientDocument | str] | None = None,
        project_name: str | None = None,
    ) -> AnalysisOutcome:
        parsed_type, _ = resolve_template(analysis_type)

        classification = classify(text, filename)
        router = KnowledgeBaseRouter(self._registry_provider())
        bundle = router.route(classification, parsed_type)

        documents = list(client_documents) if client_documents else [ClientDocument(name=filename, text=text)]
        name = project_name or Path(filename).stem or "analysis"
        workspace = await self._orchestrator.create_workspace(name, bundle, documents)

        insights = report = error = None
        try:
            if workspace.status is WorkspaceStatus.READY:
                prompt = build_analysis_prompt(parsed_type, classification)
                try:
                    insights = await self._orchestrator.extract_insights(workspace.id, prompt)
                except Exception as exc:
                    error = failure_message("insight extraction", exc)
                    LOGGER.warning("Insight extraction failed for workspace %s: %s", workspace.id, exc)
                else:
                    report = self._synthesizer.synthesize(parsed_type, classification, insights)
                    self._orchestrator.save_report(workspace.id, report)
            else:
                error = workspace.error
        finally:
            cleaned_up = await self._orchestrator.cleanup_workspace(workspace.id)

        return AnalysisOutcome(
            classification=classification,
            bundle=bundle,
            workspace=self._orchestrator.get_workspace(workspace.id) or workspace,
            insights=insights,
            report=report,
            cleaned_up=cleaned_up,
            error=error,
        )


_pipeline: AnalysisPipeline | None = None


def get_analysis_pipeline() -> AnalysisPipeline:
    """Return the pipeline bound to the process orchestrator and registry."""

    global _pipeline
    if _pipeline is None:
        _pipeline = AnalysisPipeline(get_workspace_orchestrator())
    return _pipeline


def reset_analysis_state() -> None:
    global _pipeline
    _pipeline = None
