from __future__ import annotations

from fastapi import APIRouter, HTTPException

from pharma_analyst.core.registry import get_registry

router = APIRouter(prefix="/knowledge-sources", tags=["knowledge"])


@router.get("")
async def list_knowledge_sources(include_inactive: bool = False) -> dict:
    registry = get_registry()
    sources = registry.snapshot().values() if include_inactive else registry.list_active()
    return {"items": [source.model_dump(mode="json") for source in sources]}


@router.get("/{source_id}")
async def get_knowledge_source(source_id: str) -> dict:
    source = get_registry().get_by_id(source_id)
    if source is None:
        raise HTTPException(status_code=404, detail="knowledge source not found")
    return source.model_dump(mode="json")


@router.patch("/{source_id}")
async def update_knowledge_source(source_id: str, payload: dict) -> dict:
    if not payload:
        raise HTTPException(status_code=400, detail="no valid updates provided")
    registry = get_registry()
    try:
        updated = registry.update(source_id, payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not updated:
        raise HTTPException(status_code=404, detail="knowledge source not found")
    source = registry.get_by_id(source_id)
    return source.model_dump(mode="json") if source else {}
