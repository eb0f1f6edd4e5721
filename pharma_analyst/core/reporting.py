"""Template-driven synthesis of the final analysis report."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable

from pharma_analyst.core.errors import UnsupportedAnalysisType
from pharma_analyst.core.schema import (
    AnalysisReport,
    AnalysisSection,
    AnalysisType,
    ChecklistItem,
    ChecklistStatus,
    Classification,
    Insights,
    Recommendation,
    RiskAssessment,
    RoiMetrics,
)

CONFIDENCE_FLOOR = 0.5
CONFIDENCE_CEILING = 0.95
SOURCE_BONUS = 0.02
SOURCE_BONUS_CAP = 0.1
MAX_NEXT_STEPS = 5

COST_LOW = "R$ 5.000 - R$ 15.000"
COST_MEDIUM = "R$ 15.000 - R$ 35.000"
COST_HIGH = "R$ 35.000 - R$ 75.000"
MEDIUM_COST_KEYWORDS = ("study", "studies", "estudo", "validation", "validação")
HIGH_COST_KEYWORDS = ("implement", "develop", "desenvolver")

PRIORITIES = ("immediate", "short-term", "long-term")
TIMELINES = ("2-4 weeks", "1-3 months", "3-6 months")
RECOMMENDATION_RATIONALE = "Based on the specialized analysis of the documents and the relevant knowledge bases"

GENERIC_MITIGATION = (
    "Implement continuous monitoring",
    "Establish a contingency plan",
    "Review processes regularly",
)

GENERIC_CHECKLIST: tuple[tuple[str, ChecklistStatus], ...] = (
    ("Complete technical documentation", "needs-review"),
    ("Conformity with applicable standards", "compliant"),
    ("Validation of required methods", "needs-review"),
)


@dataclass(frozen=True)
class ReportTemplate:
    display_name: str
    focus_areas: tuple[str, ...]
    key_questions: tuple[str, ...]
    # str.format pattern; fields: summary, source_count, risk_count, finding_count, compliance_status
    summary_pattern: str
    potential_savings: int
    implementation_cost: int
    payback_period: str
    mitigation: tuple[str, ...] = GENERIC_MITIGATION
    checklist: tuple[tuple[str, ChecklistStatus], ...] = ()
    next_steps: tuple[str, ...] = ()


REPORT_TEMPLATES: dict[AnalysisType, ReportTemplate] = {
    AnalysisType.REGULATORY_COMPLIANCE: ReportTemplate(
        display_name="Regulatory Compliance Analysis",
        focus_areas=("compliance", "regulatory risks", "remediation timeline"),
        key_questions=(
            "Which regulations apply?",
            "Were any non-conformities identified?",
            "What is the deadline for the required adjustments?",
            "What are the risks of non-compliance?",
        ),
        summary_pattern=(
            "Regulatory analysis performed against {source_count} specialized knowledge bases. {summary} "
            "Identified {risk_count} areas of regulatory attention with overall compliance level: "
            "{compliance_status}."
        ),
        potential_savings=50000,
        implementation_cost=15000,
        payback_period="8-12 months",
        mitigation=(
            "Implement a regulatory monitoring system",
            "Establish a remediation schedule",
            "Appoint a compliance owner",
        ),
        checklist=(
            ("Applicable RDCs identified", "compliant"),
            ("Remediation deadlines mapped", "needs-review"),
            ("Submission documentation", "needs-review"),
        ),
        next_steps=(
            "Schedule a regulatory meeting with the team",
            "Prepare the implementation schedule",
            "Assign owners per area",
        ),
    ),
    AnalysisType.FORMULATION_OPTIMIZATION: ReportTemplate(
        display_name="Formulation Optimization",
        focus_areas=("compatibility", "stability", "bioavailability"),
        key_questions=(
            "Are there incompatibilities between components?",
            "How can the stability of the formulation be improved?",
            "Which studies are needed to prove it?",
            "Are there more effective excipient alternatives?",
        ),
        summary_pattern=(
            "Technical evaluation of the formulation identified {finding_count} optimization points. {summary} "
            "Recommendations are implementable with significant potential to improve product quality and efficiency."
        ),
        potential_savings=80000,
        implementation_cost=25000,
        payback_period="6-9 months",
        mitigation=(
            "Run compatibility studies",
            "Implement process controls",
            "Validate analytical methods",
        ),
        checklist=(
            ("Excipient compatibility", "needs-review"),
            ("Stability studies", "needs-review"),
            ("Specifications defined", "compliant"),
        ),
        next_steps=(
            "Start stability studies",
            "Validate the revised analytical methods",
            "Implement process improvements",
        ),
    ),
    AnalysisType.VETERINARY_ANALYSIS: ReportTemplate(
        display_name="Veterinary Regulatory Analysis",
        focus_areas=("MAPA compliance", "animal safety", "efficacy"),
        key_questions=(
            "Does the product meet MAPA requirements?",
            "Is there enough safety data for the target species?",
            "Does the labelling follow the specific legislation?",
            "Which clinical studies are required?",
        ),
        summary_pattern=(
            "Veterinary analysis under MAPA regulations. {summary} The product shows basic compliance and "
            "needs specific validations before commercial approval."
        ),
        potential_savings=40000,
        implementation_cost=20000,
        payback_period="10-14 months",
        mitigation=(
            "Conduct species-specific safety studies",
            "Validate efficacy for the target species",
            "Update the technical documentation",
        ),
    ),
    AnalysisType.SUPPLEMENTS_COMPLIANCE: ReportTemplate(
        display_name="Supplements Compliance",
        focus_areas=("RDC 27/2010", "claims", "composition"),
        key_questions=(
            "Is the composition within the RDC 27/2010 limits?",
            "Are the functional claims scientifically substantiated?",
            "Does the labelling meet the specific requirements?",
            "Are additional safety studies needed?",
        ),
        summary_pattern=(
            "RDC 27/2010 compliance check completed. {summary} Composition and claims assessed against the "
            "specific requirements for food supplements."
        ),
        potential_savings=30000,
        implementation_cost=12000,
        payback_period="4-6 months",
    ),
    AnalysisType.LYOPHILIZATION_OPTIMIZATION: ReportTemplate(
        display_name="Lyophilization Optimization",
        focus_areas=("lyophilization cycle", "formulation", "quality"),
        key_questions=(
            "Is the current cycle optimized for this formulation?",
            "Can the process time be reduced?",
            "Can the quality of the final product be improved?",
            "Which critical parameters must be monitored?",
        ),
        summary_pattern=(
            "Specialized analysis of the lyophilization process. {summary} Cycle optimization potential "
            "identified, with quality improvement and cost reduction."
        ),
        potential_savings=100000,
        implementation_cost=35000,
        payback_period="8-12 months",
    ),
}


def resolve_template(analysis_type: str | AnalysisType) -> tuple[AnalysisType, ReportTemplate]:
    parsed = AnalysisType.parse(analysis_type)
    template = REPORT_TEMPLATES.get(parsed) if parsed is not None else None
    if template is None:
        raise UnsupportedAnalysisType(str(getattr(analysis_type, "value", analysis_type)))
    return parsed, template


def list_available_analysis_types() -> list[dict[str, str]]:
    return [
        {
            "id": analysis_type.value,
            "name": template.display_name,
            "description": f"Specialized analysis focused on: {', '.join(template.focus_areas)}",
        }
        for analysis_type, template in REPORT_TEMPLATES.items()
    ]


def build_analysis_prompt(analysis_type: str | AnalysisType, classification: Classification) -> str:
    """Compose the prompt sent to the insight collaborator for a report."""

    _, template = resolve_template(analysis_type)
    document = classification.type.value
    if classification.subtype:
        document = f"{document} ({classification.subtype})"
    lines = [
        template.display_name,
        f"Document type: {document}",
        f"Focus areas: {', '.join(template.focus_areas)}",
        "Answer the following questions:",
    ]
    lines.extend(f"{index}. {question}" for index, question in enumerate(template.key_questions, start=1))
    return "\n".join(lines)


def estimate_cost(recommendation: str) -> str:
    lowered = recommendation.lower()
    if any(keyword in lowered for keyword in MEDIUM_COST_KEYWORDS):
        return COST_MEDIUM
    if any(keyword in lowered for keyword in HIGH_COST_KEYWORDS):
        return COST_HIGH
    return COST_LOW


def blended_confidence(insights: Insights, classification: Classification) -> float:
    """Average both confidences and reward corroboration across knowledge sources."""

    source_bonus = min(len(classification.required_knowledge_bases) * SOURCE_BONUS, SOURCE_BONUS_CAP)
    confidence = (insights.confidence + classification.confidence) / 2 + source_bonus
    return min(max(confidence, CONFIDENCE_FLOOR), CONFIDENCE_CEILING)


def _percent(value: float) -> int:
    return int((Decimal(str(value)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReportSynthesizer:
    """Turns classifier output and collaborator insights into an :class:`AnalysisReport`.

    Report content is a pure function of its inputs; only ``generated_at``
    comes from the injected clock.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock

    @staticmethod
    def executive_summary(template: ReportTemplate, classification: Classification, insights: Insights) -> str:
        return template.summary_pattern.format(
            summary=insights.summary,
            source_count=len(classification.required_knowledge_bases),
            risk_count=len(insights.risk_factors),
            finding_count=len(insights.key_findings),
            compliance_status=insights.compliance_status,
        )

    @staticmethod
    def detailed_analysis(template: ReportTemplate, insights: Insights) -> list[AnalysisSection]:
        sections: list[AnalysisSection] = []
        for index, area in enumerate(template.focus_areas):
            if index < len(insights.key_findings):
                content = insights.key_findings[index]
            else:
                content = f"Analysis of {area} in progress based on the provided documents."
            sections.append(
                AnalysisSection(
                    section=area[:1].upper() + area[1:],
                    content=content,
                    importance="high" if index == 0 else "medium" if index == 1 else "low",
                    action_required=len(insights.risk_factors) > index,
                )
            )
        return sections

    @staticmethod
    def risk_assessment(template: ReportTemplate, insights: Insights) -> RiskAssessment:
        risk_count = len(insights.risk_factors)
        level = "high" if risk_count > 2 else "medium" if risk_count > 0 else "low"
        return RiskAssessment(level=level, factors=insights.risk_factors, mitigation=template.mitigation)

    @staticmethod
    def compliance_checklist(template: ReportTemplate) -> list[ChecklistItem]:
        return [ChecklistItem(item=item, status=status) for item, status in (*GENERIC_CHECKLIST, *template.checklist)]

    @staticmethod
    def recommendations(insights: Insights) -> list[Recommendation]:
        items: list[Recommendation] = []
        for index, action in enumerate(insights.recommendations):
            slot = min(index, len(PRIORITIES) - 1)
            items.append(
                Recommendation(
                    priority=PRIORITIES[slot],
                    action=action,
                    rationale=RECOMMENDATION_RATIONALE,
                    estimated_cost=estimate_cost(action),
                    timeline=TIMELINES[slot],
                )
            )
        return items

    @staticmethod
    def roi_metrics(template: ReportTemplate, insights: Insights) -> RoiMetrics:
        return RoiMetrics(
            potential_savings=template.potential_savings,
            implementation_cost=template.implementation_cost,
            payback_period=template.payback_period,
            risk_reduction=f"{_percent(insights.confidence)}% reduction in regulatory risk",
        )

    @staticmethod
    def next_steps(template: ReportTemplate, insights: Insights) -> list[str]:
        return [*insights.next_steps, *template.next_steps][:MAX_NEXT_STEPS]

    def synthesize(
        self,
        analysis_type: str | AnalysisType,
        classification: Classification,
        insights: Insights,
    ) -> AnalysisReport:
        parsed, template = resolve_template(analysis_type)
        return AnalysisReport(
            analysis_type=parsed,
            executive_summary=self.executive_summary(template, classification, insights),
            detailed_analysis=tuple(self.detailed_analysis(template, insights)),
            risk_assessment=self.risk_assessment(template, insights),
            compliance_checklist=tuple(self.compliance_checklist(template)),
            recommendations=tuple(self.recommendations(insights)),
            roi_metrics=self.roi_metrics(template, insights),
            next_steps=tuple(self.next_steps(template, insights)),
            confidence=blended_confidence(insights, classification),
            sources=insights.source_references,
            generated_at=self._clock(),
        )


_default_synthesizer = ReportSynthesizer()


def synthesize(
    analysis_type: str | AnalysisType,
    classification: Classification,
    insights: Insights,
) -> AnalysisReport:
    return _default_synthesizer.synthesize(analysis_type, classification, insights)


__all__ = [
    "REPORT_TEMPLATES",
    "ReportSynthesizer",
    "ReportTemplate",
    "blended_confidence",
    "build_analysis_prompt",
    "estimate_cost",
    "list_available_analysis_types",
    "resolve_template",
    "synthesize",
]
