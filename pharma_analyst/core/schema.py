from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from pharma_analyst.domain import Workspace, WorkspaceStatus


class DocumentType(str, Enum):
    REGULATORY = "regulatory"
    FORMULATION = "formulation"
    VETERINARY = "veterinary"
    SUPPLEMENTS = "supplements"
    LYOPHILIZATION = "lyophilization"
    TECHNICAL = "technical"
    UNKNOWN = "unknown"


class AnalysisType(str, Enum):
    """Caller-selected specializations; each picks extra sources and a report template."""

    REGULATORY_COMPLIANCE = "compliance-regulatorio"
    FORMULATION_OPTIMIZATION = "otimizacao-formulacao"
    VETERINARY_ANALYSIS = "analise-veterinaria"
    SUPPLEMENTS_COMPLIANCE = "compliance-suplementos"
    LYOPHILIZATION_OPTIMIZATION = "otimizacao-liofilizacao"
    ANALYTICAL_METHODS = "metodos-analiticos"

    @classmethod
    def parse(cls, value: str | AnalysisType | None) -> AnalysisType | None:
        if value is None or isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip())
        except ValueError:
            return None


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class DetectedElements(_Frozen):
    has_regulations: bool = False
    has_formulations: bool = False
    has_animal_content: bool = False
    has_supplement_data: bool = False
    has_lyophilization_content: bool = False
    has_technical_specs: bool = False


class Classification(_Frozen):
    type: DocumentType
    confidence: float = Field(default=0.0, ge=0.0, le=0.95)
    subtype: str | None = None
    detected_elements: DetectedElements = Field(default_factory=DetectedElements)
    required_knowledge_bases: tuple[str, ...] = ()
    recommended_analysis: tuple[str, ...] = ()


class KnowledgeSource(_Frozen):
    id: str = Field(min_length=1)
    name: str
    description: str = ""
    category: str
    document_count: int = Field(default=0, ge=0)
    last_updated: datetime
    is_active: bool = True
    tags: frozenset[str] = frozenset()
    notebook_id: str | None = None

    @field_serializer("tags", when_used="json")
    def _sorted_tags(self, tags: frozenset[str]) -> list[str]:
        return sorted(tags)


class KnowledgeBundle(_Frozen):
    selected_sources: tuple[KnowledgeSource, ...] = ()
    cross_references: tuple[str, ...] = ()
    total_document_count: int = 0
    estimated_processing_seconds: int = 0

    @property
    def source_ids(self) -> list[str]:
        return [source.id for source in self.selected_sources]


class ClientDocument(_Frozen):
    """Reference to a client upload handed to the workspace."""

    name: str = Field(min_length=1)
    content_type: str | None = None
    reference: str | None = None
    text: str | None = None


class Insights(_Frozen):
    summary: str = ""
    key_findings: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()
    risk_factors: tuple[str, ...] = ()
    compliance_status: str = ""
    next_steps: tuple[str, ...] = ()
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    source_references: tuple[str, ...] = ()


Importance = Literal["high", "medium", "low"]
RiskLevel = Literal["low", "medium", "high", "critical"]
ChecklistStatus = Literal["compliant", "non-compliant", "needs-review", "not-applicable"]
Priority = Literal["immediate", "short-term", "long-term"]


class AnalysisSection(_Frozen):
    section: str
    content: str
    importance: Importance
    action_required: bool


class RiskAssessment(_Frozen):
    level: RiskLevel
    factors: tuple[str, ...] = ()
    mitigation: tuple[str, ...] = ()


class ChecklistItem(_Frozen):
    item: str
    status: ChecklistStatus
    details: str | None = None


class Recommendation(_Frozen):
    priority: Priority
    action: str
    rationale: str
    estimated_cost: str | None = None
    timeline: str | None = None


class RoiMetrics(_Frozen):
    potential_savings: int
    implementation_cost: int
    payback_period: str
    risk_reduction: str


class AnalysisReport(_Frozen):
    analysis_type: AnalysisType
    executive_summary: str
    detailed_analysis: tuple[AnalysisSection, ...]
    risk_assessment: RiskAssessment
    compliance_checklist: tuple[ChecklistItem, ...]
    recommendations: tuple[Recommendation, ...]
    roi_metrics: RoiMetrics
    next_steps: tuple[str, ...]
    confidence: float = Field(ge=0.5, le=0.95)
    sources: tuple[str, ...] = ()
    generated_at: datetime


class WorkspaceSnapshot(_Frozen):
    id: str
    name: str
    client_document_refs: tuple[str, ...] = ()
    knowledge_source_ids: tuple[str, ...] = ()
    total_document_count: int = 0
    status: WorkspaceStatus
    created_at: datetime
    processed_at: datetime | None = None
    error: str | None = None
    history: tuple[WorkspaceStatus, ...] = ()

    @classmethod
    def from_workspace(cls, workspace: Workspace) -> WorkspaceSnapshot:
        return cls(
            id=workspace.id,
            name=workspace.name,
            client_document_refs=tuple(workspace.client_document_refs),
            knowledge_source_ids=tuple(workspace.knowledge_source_ids),
            total_document_count=workspace.total_document_count,
            status=workspace.status,
            created_at=workspace.created_at,
            processed_at=workspace.processed_at,
            error=workspace.error,
            history=tuple(workspace.history),
        )


class AnalysisOutcome(_Frozen):
    """Everything produced for one document by the end-to-end pipeline."""

    classification: Classification
    bundle: KnowledgeBundle
    workspace: WorkspaceSnapshot
    insights: Insights | None = None
    report: AnalysisReport | None = None
    cleaned_up: bool = False
    error: str | None = None
