"""Knowledge source selection for a classified document."""

from __future__ import annotations

from typing import Iterable

from pharma_analyst.core.logger import get_logger
from pharma_analyst.core.registry import KnowledgeBaseRegistry
from pharma_analyst.core.schema import (
    AnalysisType,
    Classification,
    DocumentType,
    KnowledgeBundle,
    KnowledgeSource,
)

LOGGER = get_logger("routing")

SECONDS_PER_SOURCE = 120
CLIENT_DOCUMENT_SECONDS = 180
SPECIALIZED_ANALYSIS_SECONDS = 240

PRIMARY_SOURCES: dict[DocumentType, tuple[str, ...]] = {
    DocumentType.REGULATORY: ("regulatory_pharma", "ich_guidelines"),
    DocumentType.FORMULATION: ("formulation_guidelines", "analytical_methods"),
    DocumentType.VETERINARY: ("veterinary_regulations", "regulatory_pharma"),
    DocumentType.SUPPLEMENTS: ("supplements_rdc27", "regulatory_pharma"),
    DocumentType.LYOPHILIZATION: ("lyophilization_expertise", "formulation_guidelines"),
    DocumentType.TECHNICAL: ("regulatory_pharma",),
    DocumentType.UNKNOWN: ("regulatory_pharma",),
}

# Jurisdiction-specific anchors keyed by (document type, subtype).
SUBTYPE_SOURCES: dict[tuple[DocumentType, str], tuple[str, ...]] = {
    (DocumentType.REGULATORY, "FDA"): ("fda_regulations",),
}

# Overlaps PRIMARY_SOURCES; route() keeps the first occurrence.
ELEMENT_SOURCES: dict[str, str] = {
    "has_regulations": "regulatory_pharma",
    "has_formulations": "formulation_guidelines",
    "has_animal_content": "veterinary_regulations",
    "has_supplement_data": "supplements_rdc27",
    "has_lyophilization_content": "lyophilization_expertise",
    "has_technical_specs": "analytical_methods",
}

ANALYSIS_SOURCES: dict[AnalysisType, tuple[str, ...]] = {
    AnalysisType.REGULATORY_COMPLIANCE: ("regulatory_pharma", "ich_guidelines"),
    AnalysisType.FORMULATION_OPTIMIZATION: ("formulation_guidelines", "lyophilization_expertise"),
    AnalysisType.VETERINARY_ANALYSIS: ("veterinary_regulations", "regulatory_pharma"),
    AnalysisType.SUPPLEMENTS_COMPLIANCE: ("supplements_rdc27", "regulatory_pharma"),
    AnalysisType.LYOPHILIZATION_OPTIMIZATION: ("lyophilization_expertise", "formulation_guidelines"),
    AnalysisType.ANALYTICAL_METHODS: ("analytical_methods", "regulatory_pharma"),
}

TYPE_CROSS_REFERENCES: dict[DocumentType, tuple[str, ...]] = {
    DocumentType.REGULATORY: (
        "Verify compliance with the current RDC",
        "Consult related ICH guidelines",
        "Validate against international standards",
    ),
    DocumentType.FORMULATION: (
        "Verify excipient compatibility",
        "Consult stability data",
        "Validate analytical methods",
    ),
}

for _table, _keys in ((PRIMARY_SOURCES, DocumentType), (ANALYSIS_SOURCES, AnalysisType)):
    _missing = set(_keys) - set(_table)
    if _missing:  # pragma: no cover - guards edits to the tables above
        raise RuntimeError(f"routing table misses: {sorted(item.value for item in _missing)}")


def estimate_processing_seconds(source_count: int) -> int:
    """Linear cost model: per-source ingestion plus two fixed stages."""

    return source_count * SECONDS_PER_SOURCE + CLIENT_DOCUMENT_SECONDS + SPECIALIZED_ANALYSIS_SECONDS


def _unique(items: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(items))


class KnowledgeBaseRouter:
    """Builds the :class:`KnowledgeBundle` for a classification.

    The router only reads from the registry it is given; routing the same
    classification twice against an unchanged registry yields the same bundle.
    """

    def __init__(self, registry: KnowledgeBaseRegistry) -> None:
        self._registry = registry

    # ------------------------------------------------------------------
    # candidate selection
    # ------------------------------------------------------------------
    @staticmethod
    def primary_ids(classification: Classification) -> list[str]:
        ids = list(PRIMARY_SOURCES[classification.type])
        if classification.subtype:
            ids.extend(SUBTYPE_SOURCES.get((classification.type, classification.subtype), ()))
        return ids

    @staticmethod
    def complementary_ids(classification: Classification) -> list[str]:
        elements = classification.detected_elements
        return [source_id for flag, source_id in ELEMENT_SOURCES.items() if getattr(elements, flag)]

    @staticmethod
    def analysis_ids(analysis_type: str | AnalysisType | None) -> list[str]:
        parsed = AnalysisType.parse(analysis_type)
        if parsed is None:
            if analysis_type:
                LOGGER.debug("No extra sources for analysis type %r", analysis_type)
            return []
        return list(ANALYSIS_SOURCES[parsed])

    def _resolve(self, candidate_ids: Iterable[str]) -> list[KnowledgeSource]:
        snapshot = self._registry.snapshot()
        selected: list[KnowledgeSource] = []
        for source_id in _unique(candidate_ids):
            source = snapshot.get(source_id)
            if source is None:
                LOGGER.warning("Routing skipped unknown knowledge source %s", source_id)
                continue
            if source.is_active:
                selected.append(source)
        return selected

    @staticmethod
    def cross_references(sources: Iterable[KnowledgeSource], document_type: DocumentType) -> list[str]:
        hints = list(TYPE_CROSS_REFERENCES.get(document_type, ()))
        hints.extend(f"Check for updates in {source.name}" for source in sources if source.category == "regulatory")
        return _unique(hints)

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    def route(
        self,
        classification: Classification,
        analysis_type: str | AnalysisType | None = None,
    ) -> KnowledgeBundle:
        candidates = [
            *self.primary_ids(classification),
            *self.complementary_ids(classification),
            *self.analysis_ids(analysis_type),
        ]
        sources = self._resolve(candidates)
        bundle = KnowledgeBundle(
            selected_sources=tuple(sources),
            cross_references=tuple(self.cross_references(sources, classification.type)),
            total_document_count=sum(source.document_count for source in sources),
            estimated_processing_seconds=estimate_processing_seconds(len(sources)),
        )
        LOGGER.debug(
            "Routed %s document to %s (%d documents)",
            classification.type.value,
            ", ".join(bundle.source_ids),
            bundle.total_document_count,
        )
        return bundle


__all__ = [
    "ANALYSIS_SOURCES",
    "ELEMENT_SOURCES",
    "PRIMARY_SOURCES",
    "KnowledgeBaseRouter",
    "estimate_processing_seconds",
]
