"""Text extraction service hook for binary client documents.

PDFs, scans and office files are turned into text by an external service.
Until one is installed with ``configure_extraction_client`` every request
fails with :class:`ExtractionNotConfigured`, which the classifier treats as
"no content signal" and answers from the filename alone.
"""
from __future__ import annotations

from pathlib import Path
from typing import Protocol

from pharma_analyst.core.errors import ExtractionNotConfigured


class ContentExtractionClient(Protocol):
    def extract_text(self, path: Path) -> str:
        """Return the plain text of ``path``; raise when the document cannot be read."""


class UnconfiguredExtractionClient:
    def extract_text(self, path: Path) -> str:
        raise ExtractionNotConfigured(path.name)


_client: ContentExtractionClient = UnconfiguredExtractionClient()


def configure_extraction_client(client: ContentExtractionClient) -> None:
    global _client
    _client = client


def get_extraction_client() -> ContentExtractionClient:
    return _client
