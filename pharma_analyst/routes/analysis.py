from __future__ import annotations

from fastapi import APIRouter, HTTPException
from pydantic import ValidationError

from pharma_analyst.application import get_analysis_pipeline
from pharma_analyst.core.errors import UnsupportedAnalysisType
from pharma_analyst.core.registry import get_registry
from pharma_analyst.core.reporting import list_available_analysis_types, synthesize
from pharma_analyst.core.routing import KnowledgeBaseRouter
from pharma_analyst.core.schema import Classification, ClientDocument, Insights
from pharma_analyst.extractors.classifier import classify

router = APIRouter(tags=["analysis"])


def _validation_detail(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


def _parse_classification(value: object) -> Classification:
    if not isinstance(value, dict):
        raise HTTPException(status_code=400, detail="classification is required")
    try:
        return Classification.model_validate(value)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=f"invalid classification: {_validation_detail(exc)}") from exc


@router.post("/classify")
async def classify_document(payload: dict) -> dict:
    text = payload.get("text")
    filename = payload.get("filename")
    if text is None and not filename:
        raise HTTPException(status_code=400, detail="text or filename is required")
    return classify(text or "", filename or "").model_dump(mode="json")


@router.post("/route")
async def route_knowledge(payload: dict) -> dict:
    classification = _parse_classification(payload.get("classification"))
    bundle = KnowledgeBaseRouter(get_registry()).route(classification, payload.get("analysis_type"))
    return bundle.model_dump(mode="json")


@router.get("/analysis-types")
async def get_analysis_types() -> dict:
    return {"items": list_available_analysis_types()}


@router.post("/reports")
async def create_report(payload: dict) -> dict:
    analysis_type = payload.get("analysis_type")
    if not analysis_type:
        raise HTTPException(status_code=400, detail="analysis_type is required")
    classification = _parse_classification(payload.get("classification"))
    try:
        insights = Insights.model_validate(payload.get("insights") or {})
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=f"invalid insights: {_validation_detail(exc)}") from exc
    try:
        report = synthesize(analysis_type, classification, insights)
    except UnsupportedAnalysisType as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return report.model_dump(mode="json")


@router.post("/analyses")
async def run_analysis(payload: dict) -> dict:
    filename = payload.get("filename")
    analysis_type = payload.get("analysis_type")
    if not filename:
        raise HTTPException(status_code=400, detail="filename is required")
    if not analysis_type:
        raise HTTPException(status_code=400, detail="analysis_type is required")

    try:
        documents = [ClientDocument.model_validate(item) for item in payload.get("client_documents") or []]
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=f"invalid client document: {_validation_detail(exc)}") from exc

    pipeline = get_analysis_pipeline()
    try:
        outcome = await pipeline.run(
            text=str(payload.get("text") or ""),
            filename=str(filename),
            analysis_type=str(analysis_type),
            client_documents=documents,
            project_name=payload.get("project_name"),
        )
    except UnsupportedAnalysisType as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return outcome.model_dump(mode="json")
