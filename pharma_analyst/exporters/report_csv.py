from __future__ import annotations

from pathlib import Path

import pandas as pd

from pharma_analyst.core.schema import AnalysisReport

CHECKLIST_COLUMNS = ["item", "status", "details"]
RECOMMENDATION_COLUMNS = ["priority", "action", "rationale", "estimated_cost", "timeline"]


def export_compliance_checklist(path: Path, report: AnalysisReport) -> Path:
    records = [item.model_dump() for item in report.compliance_checklist]
    df = pd.DataFrame(records, columns=CHECKLIST_COLUMNS)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return path


def export_recommendations(path: Path, report: AnalysisReport) -> Path:
    records = [item.model_dump() for item in report.recommendations]
    df = pd.DataFrame(records, columns=RECOMMENDATION_COLUMNS)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return path
