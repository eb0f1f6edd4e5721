from __future__ import annotations

import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from itertools import product
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from pharma_analyst.core.config import DEFAULT_KNOWLEDGE_SOURCES
from pharma_analyst.core.registry import KnowledgeBaseRegistry, load_registry, load_sources
from pharma_analyst.core.routing import ELEMENT_SOURCES, KnowledgeBaseRouter, estimate_processing_seconds
from pharma_analyst.core.schema import (
    AnalysisType,
    Classification,
    DetectedElements,
    DocumentType,
    KnowledgeSource,
)

FIXED_NOW = datetime(2024, 5, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def registry() -> KnowledgeBaseRegistry:
    return KnowledgeBaseRegistry(load_sources(DEFAULT_KNOWLEDGE_SOURCES), clock=lambda: FIXED_NOW)


def _source(source_id: str, **overrides) -> KnowledgeSource:
    data = {
        "id": source_id,
        "name": source_id.replace("_", " ").title(),
        "category": "regulatory",
        "document_count": 10,
        "last_updated": datetime(2024, 1, 1, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return KnowledgeSource(**data)


# ----------------------------------------------------------------------
# registry
# ----------------------------------------------------------------------
def test_default_catalogue_loads_all_sources(registry):
    assert len(registry) == 8
    assert "regulatory_pharma" in registry
    assert registry.get_by_id("fda_regulations").notebook_id is None
    assert registry.get_by_id("regulatory_pharma").last_updated.tzinfo is not None
    assert len(registry.list_active()) == 8


def test_load_registry_honours_explicit_path(tmp_path):
    path = tmp_path / "sources.yaml"
    path.write_text(
        "sources:\n"
        "  - id: only_one\n"
        "    name: Only One\n"
        "    category: analytical\n"
        "    document_count: 3\n"
        "    last_updated: 2024-03-01\n",
        encoding="utf-8",
    )

    loaded = load_registry(path)

    assert len(loaded) == 1
    assert loaded.get_by_id("only_one").last_updated == datetime(2024, 3, 1, tzinfo=timezone.utc)


def test_load_sources_rejects_missing_sources_list(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("items: []\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_sources(path)


def test_duplicate_ids_are_rejected():
    with pytest.raises(ValueError):
        KnowledgeBaseRegistry([_source("dup"), _source("dup")])


def test_update_merges_patch_and_stamps_last_updated(registry):
    assert registry.update("ich_guidelines", {"document_count": 90}) is True

    source = registry.get_by_id("ich_guidelines")
    assert source.document_count == 90
    assert source.name == "ICH Guidelines"
    assert source.last_updated == FIXED_NOW


def test_update_unknown_source_returns_false(registry):
    assert registry.update("does_not_exist", {"is_active": False}) is False


@pytest.mark.parametrize("patch", [{"colour": "blue"}, {"id": "renamed"}, {}])
def test_unknown_source_returns_false_before_patch_checks(registry, patch):
    assert registry.update("does_not_exist", patch) is False


@pytest.mark.parametrize("patch", [{"id": "renamed"}, {"colour": "blue"}])
def test_update_rejects_id_and_unknown_fields(registry, patch):
    with pytest.raises(ValueError):
        registry.update("ich_guidelines", patch)


def test_deactivated_source_leaves_list_active(registry):
    registry.update("ich_guidelines", {"is_active": False})

    active_ids = [source.id for source in registry.list_active()]
    assert "ich_guidelines" not in active_ids
    assert registry.get_by_id("ich_guidelines") is not None


def test_concurrent_updates_keep_every_field(registry):
    barrier = threading.Barrier(2)

    def set_description():
        barrier.wait()
        return registry.update("analytical_methods", {"description": "Pharmacopoeial methods"})

    def set_count():
        barrier.wait()
        return registry.update("analytical_methods", {"document_count": 99})

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = [pool.submit(set_description), pool.submit(set_count)]

    assert all(future.result() for future in results)
    source = registry.get_by_id("analytical_methods")
    assert source.description == "Pharmacopoeial methods"
    assert source.document_count == 99


def test_tags_serialise_in_sorted_order(registry):
    source = registry.get_by_id("regulatory_pharma")

    assert source.model_dump(mode="json")["tags"] == ["anvisa", "brasil", "compliance", "rdc"]
    assert '"tags":["anvisa","brasil","compliance","rdc"]' in source.model_dump_json()


def test_snapshot_is_read_only(registry):
    snapshot = registry.snapshot()

    with pytest.raises(TypeError):
        snapshot["new"] = _source("new")  # type: ignore[index]


# ----------------------------------------------------------------------
# router
# ----------------------------------------------------------------------
def test_formulation_with_regulations_adds_regulatory_source(registry):
    classification = Classification(
        type=DocumentType.FORMULATION,
        confidence=0.6,
        detected_elements=DetectedElements(has_regulations=True),
    )

    bundle = KnowledgeBaseRouter(registry).route(classification)

    assert bundle.source_ids == ["formulation_guidelines", "analytical_methods", "regulatory_pharma"]
    assert bundle.total_document_count == 110 + 80 + 150
    assert bundle.estimated_processing_seconds == 3 * 120 + 180 + 240
    assert bundle.cross_references == (
        "Verify excipient compatibility",
        "Consult stability data",
        "Validate analytical methods",
        "Check for updates in Brazilian Pharmaceutical Legislation",
    )


def test_fda_subtype_and_analysis_type_are_deduplicated(registry):
    classification = Classification(
        type=DocumentType.REGULATORY,
        confidence=0.4,
        subtype="FDA",
        detected_elements=DetectedElements(has_regulations=True),
    )

    bundle = KnowledgeBaseRouter(registry).route(classification, AnalysisType.REGULATORY_COMPLIANCE)

    assert bundle.source_ids == ["regulatory_pharma", "ich_guidelines", "fda_regulations"]
    assert bundle.total_document_count == 150 + 85 + 120
    assert bundle.cross_references[:3] == (
        "Verify compliance with the current RDC",
        "Consult related ICH guidelines",
        "Validate against international standards",
    )
    assert "Check for updates in FDA Regulations & Guidelines" in bundle.cross_references


def test_anvisa_subtype_adds_no_extra_source(registry):
    classification = Classification(type=DocumentType.REGULATORY, confidence=0.4, subtype="ANVISA")

    bundle = KnowledgeBaseRouter(registry).route(classification)

    assert bundle.source_ids == ["regulatory_pharma", "ich_guidelines"]


def test_technical_documents_anchor_on_regulatory_corpus(registry):
    router = KnowledgeBaseRouter(registry)
    plain = Classification(type=DocumentType.TECHNICAL, confidence=0.3)
    with_specs = Classification(
        type=DocumentType.TECHNICAL,
        confidence=0.3,
        detected_elements=DetectedElements(has_technical_specs=True),
    )

    assert router.route(plain).source_ids == ["regulatory_pharma"]
    assert router.route(with_specs).source_ids == ["regulatory_pharma", "analytical_methods"]


def test_analysis_type_accepts_raw_strings(registry):
    classification = Classification(type=DocumentType.UNKNOWN, confidence=0.1)
    router = KnowledgeBaseRouter(registry)

    bundle = router.route(classification, "otimizacao-liofilizacao")
    unknown = router.route(classification, "not-a-real-type")

    assert bundle.source_ids == ["regulatory_pharma", "lyophilization_expertise", "formulation_guidelines"]
    assert unknown.source_ids == ["regulatory_pharma"]


def test_inactive_sources_are_never_selected(registry):
    registry.update("ich_guidelines", {"is_active": False})
    classification = Classification(type=DocumentType.REGULATORY, confidence=0.4)

    bundle = KnowledgeBaseRouter(registry).route(classification, "compliance-regulatorio")

    assert bundle.source_ids == ["regulatory_pharma"]
    assert bundle.total_document_count == 150


def test_missing_sources_are_skipped():
    sparse = KnowledgeBaseRegistry([_source("regulatory_pharma", document_count=5)])
    classification = Classification(type=DocumentType.REGULATORY, confidence=0.4)

    bundle = KnowledgeBaseRouter(sparse).route(classification)

    assert bundle.source_ids == ["regulatory_pharma"]
    assert bundle.estimated_processing_seconds == estimate_processing_seconds(1)


def test_routing_is_idempotent(registry):
    classification = Classification(
        type=DocumentType.LYOPHILIZATION,
        confidence=0.5,
        detected_elements=DetectedElements(has_lyophilization_content=True, has_technical_specs=True),
    )
    router = KnowledgeBaseRouter(registry)

    assert router.route(classification, "otimizacao-formulacao") == router.route(
        classification, "otimizacao-formulacao"
    )


def test_bundles_never_repeat_or_include_inactive_sources(registry):
    registry.update("supplements_rdc27", {"is_active": False})
    router = KnowledgeBaseRouter(registry)
    flags = list(ELEMENT_SOURCES)
    analysis_types = [None, *AnalysisType]

    for doc_type, analysis_type, mask in product(DocumentType, analysis_types, range(0, 64, 7)):
        elements = DetectedElements(**{flag: bool(mask & (1 << bit)) for bit, flag in enumerate(flags)})
        bundle = router.route(Classification(type=doc_type, detected_elements=elements), analysis_type)

        ids = bundle.source_ids
        assert len(ids) == len(set(ids))
        assert all(source.is_active for source in bundle.selected_sources)
        assert bundle.total_document_count == sum(source.document_count for source in bundle.selected_sources)
        assert bundle.estimated_processing_seconds == estimate_processing_seconds(len(ids))
        assert len(bundle.cross_references) == len(set(bundle.cross_references))
