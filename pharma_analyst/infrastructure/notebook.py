"""HTTP integration with a hosted notebook/insight service."""
from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

import httpx
from pydantic import ValidationError

from pharma_analyst.core.errors import CollaboratorError, CollaboratorUnavailable
from pharma_analyst.core.schema import ClientDocument, Insights, KnowledgeSource, WorkspaceSnapshot

# camelCase keys accepted from services that speak the upstream JSON dialect.
_INSIGHT_ALIASES = {
    "keyFindings": "key_findings",
    "riskFactors": "risk_factors",
    "complianceStatus": "compliance_status",
    "nextSteps": "next_steps",
    "sourceReferences": "source_references",
}


class NotebookHTTPCollaborator:
    """Client for a JSON HTTP service that hosts analysis workspaces.

    Transport failures, timeouts and 5xx answers surface as
    :class:`CollaboratorUnavailable` (worth retrying with a new workspace);
    4xx answers and malformed payloads as :class:`CollaboratorError`.
    """

    def __init__(
        self,
        api_base: str,
        *,
        token: str | None = None,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        parsed = urlparse(api_base)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("api_base must include scheme and host")

        self._api_base = api_base.rstrip("/")
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._headers = headers
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _url(self, workspace_id: str, action: str | None = None) -> str:
        url = f"{self._api_base}/workspaces/{workspace_id}"
        return f"{url}/{action}" if action else url

    async def _request(self, method: str, url: str, payload: dict[str, Any] | None = None) -> httpx.Response:
        try:
            response = await self._client.request(method, url, json=payload, headers=self._headers)
        except httpx.TimeoutException as exc:
            raise CollaboratorUnavailable(f"timeout calling {url}") from exc
        except httpx.TransportError as exc:
            raise CollaboratorUnavailable(f"cannot reach {url}: {exc}") from exc

        if response.status_code >= 500:
            raise CollaboratorUnavailable(f"{method} {url} returned HTTP {response.status_code}")
        if response.status_code >= 400:
            raise CollaboratorError(f"{method} {url} rejected with HTTP {response.status_code}: {response.text[:200]}")
        return response

    @staticmethod
    def _parse_insights(response: httpx.Response) -> Insights:
        try:
            body = response.json()
        except ValueError as exc:
            raise CollaboratorError("insight payload is not valid JSON") from exc

        data = body.get("insights", body) if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise CollaboratorError("insight payload must be a JSON object")
        normalised = {_INSIGHT_ALIASES.get(key, key): value for key, value in data.items()}
        try:
            return Insights.model_validate(normalised)
        except ValidationError as exc:
            raise CollaboratorError(f"insight payload has an unexpected shape: {exc.error_count()} errors") from exc

    # ------------------------------------------------------------------
    # collaborator contract
    # ------------------------------------------------------------------
    async def register_document(self, workspace: WorkspaceSnapshot, document: ClientDocument) -> None:
        await self._request("POST", self._url(workspace.id, "documents"), document.model_dump(mode="json"))

    async def register_source(self, workspace: WorkspaceSnapshot, source: KnowledgeSource) -> None:
        payload = {"id": source.id, "name": source.name, "notebook_id": source.notebook_id}
        await self._request("POST", self._url(workspace.id, "sources"), payload)

    async def process(self, workspace: WorkspaceSnapshot) -> None:
        payload = {
            "name": workspace.name,
            "client_documents": list(workspace.client_document_refs),
            "knowledge_sources": list(workspace.knowledge_source_ids),
        }
        await self._request("POST", self._url(workspace.id, "process"), payload)

    async def extract_insights(self, workspace: WorkspaceSnapshot, prompt: str) -> Insights:
        response = await self._request("POST", self._url(workspace.id, "insights"), {"prompt": prompt})
        return self._parse_insights(response)

    async def release(self, workspace_id: str) -> None:
        await self._request("DELETE", self._url(workspace_id))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
