"""Domain classification for client documents.

The classifier scores the lower-cased document text (plus the filename) against
a keyword list and a phrase list per candidate domain:

* regulatory dossiers (ANVISA, FDA, ICH submissions) → ``regulatory``
* formulation development reports → ``formulation``
* veterinary products → ``veterinary``
* food supplements / nutraceuticals → ``supplements``
* freeze-drying cycles → ``lyophilization``

Keywords weigh 1 and phrases weigh 2; the raw score is normalised by the best
possible score of the pattern so that long keyword lists are not favoured.
The goal is not to be bullet proof but to pick the knowledge sources worth
attaching; the reported confidence therefore never exceeds 0.95.  Unreadable
content falls back to the generic ``unknown`` classification instead of
raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pharma_analyst.core.errors import ClassificationFailure, ContentExtractionError, ExtractionNotConfigured
from pharma_analyst.core.logger import get_logger
from pharma_analyst.core.schema import Classification, DetectedElements, DocumentType
from pharma_analyst.extractors.content import extract_document_text
from pharma_analyst.infrastructure import ContentExtractionClient

LOGGER = get_logger("classifier")

CONFIDENCE_FACTOR = 0.9
CONFIDENCE_CAP = 0.95
ELEMENT_THRESHOLD = 0.1
FALLBACK_CONFIDENCE = 0.1
GENERAL_KNOWLEDGE_BASE = "general_pharma_knowledge"
GENERAL_ANALYSIS = "General analysis"


@dataclass(frozen=True)
class DomainPattern:
    keywords: tuple[str, ...]
    phrases: tuple[str, ...]
    element: str

    @property
    def max_score(self) -> int:
        return len(self.keywords) + 2 * len(self.phrases)

    def score(self, content: str) -> float:
        hits = sum(1 for keyword in self.keywords if keyword in content)
        hits += sum(2 for phrase in self.phrases if phrase in content)
        return hits / self.max_score


# Declaration order breaks ties: the first domain reaching the best score wins.
PATTERNS: dict[DocumentType, DomainPattern] = {
    DocumentType.REGULATORY: DomainPattern(
        keywords=("anvisa", "fda", "rdc", "cfr", "ich", "regulamentação", "compliance", "registro", "licença"),
        phrases=("boas práticas", "good manufacturing practices", "validação analítica", "regulatory compliance"),
        element="has_regulations",
    ),
    DocumentType.FORMULATION: DomainPattern(
        keywords=("formulação", "excipiente", "ativo", "solubilidade", "estabilidade", "dissolução", "bioequivalência"),
        phrases=("desenvolvimento farmacêutico", "otimização de formulação", "pharmaceutical development"),
        element="has_formulations",
    ),
    DocumentType.VETERINARY: DomainPattern(
        keywords=("veterinário", "animal", "bovino", "suíno", "equino", "canino", "felino", "aves"),
        phrases=("medicamento veterinário", "uso veterinário", "animal health"),
        element="has_animal_content",
    ),
    DocumentType.SUPPLEMENTS: DomainPattern(
        keywords=("suplemento", "nutracêutico", "vitamina", "mineral", "rdc 27", "alimento funcional"),
        phrases=("suplemento alimentar", "dietary supplement", "food supplement"),
        element="has_supplement_data",
    ),
    DocumentType.LYOPHILIZATION: DomainPattern(
        keywords=("liofilização", "freeze", "drying", "sublimação", "cristalização", "ciclo de liofilização"),
        phrases=("lyophilization cycle", "freeze drying", "liofilizado"),
        element="has_lyophilization_content",
    ),
}

TECHNICAL_MARKERS = ("especificação", "specification", "método analítico")

SUBTYPES: dict[DocumentType, tuple[tuple[str, str], ...]] = {
    DocumentType.REGULATORY: (("anvisa", "ANVISA"), ("fda", "FDA"), ("ich", "ICH")),
    DocumentType.FORMULATION: (("sólido", "Solid Dosage"), ("líquido", "Liquid"), ("injetável", "Injectable")),
    DocumentType.VETERINARY: (("bovino", "Bovine"), ("canino", "Canine"), ("equino", "Equine")),
}

REQUIRED_KNOWLEDGE_BASES: dict[DocumentType, tuple[str, ...]] = {
    DocumentType.REGULATORY: ("regulatory_pharma", "ich_guidelines", "anvisa_regulations"),
    DocumentType.FORMULATION: ("formulation_guidelines", "excipients_database", "stability_protocols"),
    DocumentType.VETERINARY: ("veterinary_rules", "animal_health_regulations", "veterinary_pharmacology"),
    DocumentType.SUPPLEMENTS: ("supplements_regulations", "rdc27_guidelines", "nutraceuticals_standards"),
    DocumentType.LYOPHILIZATION: ("lyophilization_knowledge", "freeze_drying_protocols", "formulation_guidelines"),
    DocumentType.TECHNICAL: ("analytical_methods", "quality_standards", "technical_specifications"),
    DocumentType.UNKNOWN: (GENERAL_KNOWLEDGE_BASE,),
}

_missing = set(DocumentType) - set(REQUIRED_KNOWLEDGE_BASES)
if _missing:  # pragma: no cover - guards edits to the tables above
    raise RuntimeError(f"knowledge base table misses document types: {sorted(t.value for t in _missing)}")


def _normalise(text: str | bytes | None) -> str:
    if text is None:
        return ""
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ClassificationFailure("document content is not valid UTF-8") from exc
    if not isinstance(text, str):
        raise ClassificationFailure(f"unsupported content type: {type(text).__name__}")
    return text


def _subtype(doc_type: DocumentType, content: str) -> str | None:
    options = SUBTYPES.get(doc_type)
    if options is None:
        return None
    for needle, label in options:
        if needle in content:
            return label
    return "General"


def _recommended_analysis(doc_type: DocumentType, elements: DetectedElements) -> tuple[str, ...]:
    recommendations: list[str] = []
    if doc_type is DocumentType.REGULATORY:
        recommendations.append("Regulatory compliance analysis")
        if elements.has_formulations:
            recommendations.append("Formulation analysis")
    elif doc_type is DocumentType.FORMULATION:
        recommendations.append("Formulation optimization")
        if elements.has_regulations:
            recommendations.append("Regulatory compliance")
        if elements.has_lyophilization_content:
            recommendations.append("Lyophilization optimization")
    elif doc_type is DocumentType.VETERINARY:
        recommendations.append("Veterinary regulatory analysis")
        if elements.has_formulations:
            recommendations.append("Veterinary development")
    elif doc_type is DocumentType.SUPPLEMENTS:
        recommendations.extend(["Supplements compliance", "Nutraceutical analysis"])
    elif doc_type is DocumentType.LYOPHILIZATION:
        recommendations.extend(["Lyophilization optimization", "Cycle development"])
    else:
        recommendations.append(GENERAL_ANALYSIS)
    return tuple(recommendations)


def default_classification() -> Classification:
    """Classification returned whenever the content could not be analysed."""

    return Classification(
        type=DocumentType.UNKNOWN,
        confidence=FALLBACK_CONFIDENCE,
        subtype=None,
        detected_elements=DetectedElements(),
        required_knowledge_bases=(GENERAL_KNOWLEDGE_BASE,),
        recommended_analysis=(GENERAL_ANALYSIS,),
    )


def _analyse(text: str | bytes | None, filename: str | None) -> Classification:
    content = f"{_normalise(text)} {_normalise(filename)}".lower()

    best_type = DocumentType.UNKNOWN
    best_score = 0.0
    flags: dict[str, bool] = {}
    for doc_type, pattern in PATTERNS.items():
        score = pattern.score(content)
        if score > best_score:
            best_type, best_score = doc_type, score
        if score > ELEMENT_THRESHOLD:
            flags[pattern.element] = True

    if any(marker in content for marker in TECHNICAL_MARKERS):
        flags["has_technical_specs"] = True

    elements = DetectedElements(**flags)
    return Classification(
        type=best_type,
        confidence=min(best_score * CONFIDENCE_FACTOR, CONFIDENCE_CAP),
        subtype=_subtype(best_type, content),
        detected_elements=elements,
        required_knowledge_bases=REQUIRED_KNOWLEDGE_BASES[best_type],
        recommended_analysis=_recommended_analysis(best_type, elements),
    )


def classify(text: str | bytes | None, filename: str | None = "") -> Classification:
    """Infer the document domain from its text and filename.  Never raises."""

    try:
        classification = _analyse(text, filename)
    except Exception:
        LOGGER.warning("Classification failed for %s; using generic fallback", filename, exc_info=True)
        return default_classification()

    LOGGER.debug(
        "Classified %s as %s (confidence=%.3f, subtype=%s)",
        filename,
        classification.type.value,
        classification.confidence,
        classification.subtype,
    )
    return classification


def classify_file(path: Path, client: ContentExtractionClient | None = None) -> Classification:
    """Classify a file on disk, degrading to filename-only signal when extraction fails."""

    try:
        text = extract_document_text(path, client)
    except ExtractionNotConfigured:
        LOGGER.debug("No extraction service configured; classifying %s by filename", path.name)
    except ContentExtractionError as exc:
        LOGGER.info("Text extraction failed for %s (%s); classifying by filename", path.name, exc)
    else:
        return classify(text, path.name)

    by_name = classify("", path.name)
    if by_name.type is DocumentType.UNKNOWN:
        return default_classification()
    return by_name


__all__ = [
    "PATTERNS",
    "REQUIRED_KNOWLEDGE_BASES",
    "classify",
    "classify_file",
    "default_classification",
]
