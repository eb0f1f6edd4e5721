from __future__ import annotations

from fastapi import APIRouter, HTTPException
from pydantic import ValidationError

from pharma_analyst.application import get_workspace_orchestrator
from pharma_analyst.core.errors import WorkspaceFailure, WorkspaceNotFound, WorkspaceNotReady
from pharma_analyst.core.schema import ClientDocument, KnowledgeBundle

router = APIRouter(prefix="/workspaces", tags=["workspace"])


@router.get("")
async def list_workspaces() -> dict:
    orchestrator = get_workspace_orchestrator()
    return {"items": [item.model_dump(mode="json") for item in orchestrator.list_workspaces()]}


@router.post("")
async def create_workspace(payload: dict) -> dict:
    name = payload.get("name")
    if not name:
        raise HTTPException(status_code=400, detail="name is required")
    try:
        bundle = KnowledgeBundle.model_validate(payload.get("bundle") or {})
        documents = [ClientDocument.model_validate(item) for item in payload.get("client_documents") or []]
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=f"invalid workspace payload: {exc.error_count()} errors") from exc

    orchestrator = get_workspace_orchestrator()
    workspace = await orchestrator.create_workspace(str(name), bundle, documents)
    return workspace.model_dump(mode="json")


@router.get("/{workspace_id}")
async def get_workspace(workspace_id: str) -> dict:
    workspace = get_workspace_orchestrator().get_workspace(workspace_id)
    if workspace is None:
        raise HTTPException(status_code=404, detail="workspace not found")
    return workspace.model_dump(mode="json")


@router.post("/{workspace_id}/insights")
async def extract_workspace_insights(workspace_id: str, payload: dict) -> dict:
    prompt = payload.get("prompt")
    if not prompt:
        raise HTTPException(status_code=400, detail="prompt is required")
    orchestrator = get_workspace_orchestrator()
    try:
        insights = await orchestrator.extract_insights(workspace_id, str(prompt))
    except WorkspaceNotFound as exc:
        raise HTTPException(status_code=404, detail="workspace not found") from exc
    except WorkspaceNotReady as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except WorkspaceFailure as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return insights.model_dump(mode="json")


@router.get("/{workspace_id}/report")
async def get_workspace_report(workspace_id: str) -> dict:
    report = get_workspace_orchestrator().get_report(workspace_id)
    if report is None:
        raise HTTPException(status_code=404, detail="report not found")
    return report.model_dump(mode="json")


@router.delete("/{workspace_id}")
async def cleanup_workspace(workspace_id: str) -> dict:
    orchestrator = get_workspace_orchestrator()
    if orchestrator.get_workspace(workspace_id) is None:
        raise HTTPException(status_code=404, detail="workspace not found")
    cleaned = await orchestrator.cleanup_workspace(workspace_id)
    return {"workspace_id": workspace_id, "cleaned": cleaned}
