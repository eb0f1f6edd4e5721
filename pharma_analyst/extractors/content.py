"""Plain-text extraction for client documents ahead of classification.

Text files are read directly and spreadsheets are flattened with pandas
(header plus a sample of rows) so that tabular dossiers still carry keyword
signal.  Anything else is delegated to the configured extraction client.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import pandas as pd

from pharma_analyst.core.errors import ContentExtractionError
from pharma_analyst.infrastructure import ContentExtractionClient, get_extraction_client

TEXT_SUFFIXES = {".txt", ".md", ".rtf", ".json", ".xml", ".html"}
SPREADSHEET_SUFFIXES = {".xlsx", ".xls", ".xlsm"}
SAMPLE_ROWS = 20


def _frame_tokens(frame: pd.DataFrame) -> Iterable[str]:
    for column in frame.columns:
        if isinstance(column, str) and not column.startswith("Unnamed"):
            yield column
    for _, row in frame.iterrows():
        for value in row.tolist():
            if isinstance(value, str) and value.strip():
                yield value.strip()


def _flatten_frames(frames: Iterable[pd.DataFrame]) -> str:
    return " ".join(token for frame in frames for token in _frame_tokens(frame))


def _read_spreadsheet(path: Path) -> str:
    try:
        excel = pd.ExcelFile(path)
    except Exception as exc:  # pandas/openpyxl level errors
        raise ContentExtractionError(f"cannot open workbook {path.name}: {exc}") from exc

    frames: list[pd.DataFrame] = []
    for sheet_name in excel.sheet_names:
        try:
            frames.append(excel.parse(sheet_name=sheet_name, nrows=SAMPLE_ROWS))
        except Exception:  # pragma: no cover - skip problematic sheets
            continue
    return _flatten_frames(frames)


def _read_csv(path: Path) -> str:
    try:
        frame = pd.read_csv(path, nrows=SAMPLE_ROWS)
    except Exception as exc:
        raise ContentExtractionError(f"cannot parse csv {path.name}: {exc}") from exc
    return _flatten_frames([frame])


def extract_document_text(path: Path, client: ContentExtractionClient | None = None) -> str:
    """Return the text used to classify ``path``."""

    if not path.exists():
        raise ContentExtractionError(f"file not found: {path.name}")

    suffix = path.suffix.lower()
    if suffix in TEXT_SUFFIXES:
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ContentExtractionError(f"cannot read {path.name}: {exc}") from exc
    if suffix == ".csv":
        return _read_csv(path)
    if suffix in SPREADSHEET_SUFFIXES:
        return _read_spreadsheet(path)

    extractor = client or get_extraction_client()
    try:
        text = extractor.extract_text(path)
    except ContentExtractionError:
        raise
    except Exception as exc:
        raise ContentExtractionError(f"extraction service failed for {path.name}: {exc}") from exc
    if not text or not text.strip():
        raise ContentExtractionError(f"no text extracted from {path.name}")
    return text
