#!/usr/bin/env python
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from pharma_analyst.core.registry import load_registry
from pharma_analyst.core.routing import KnowledgeBaseRouter
from pharma_analyst.extractors.classifier import classify_file


def main() -> None:
    parser = argparse.ArgumentParser(description="Classify a client document and show the knowledge sources it routes to")
    parser.add_argument("path", help="document to classify")
    parser.add_argument("--analysis-type", default=None, help="optional analysis type id, e.g. compliance-regulatorio")
    parser.add_argument("--sources", default=None, help="alternative knowledge source catalogue (.yaml)")
    args = parser.parse_args()

    classification = classify_file(Path(args.path))
    registry = load_registry(Path(args.sources) if args.sources else None)
    bundle = KnowledgeBaseRouter(registry).route(classification, args.analysis_type)

    print(
        json.dumps(
            {
                "classification": classification.model_dump(mode="json"),
                "bundle": bundle.model_dump(mode="json"),
            },
            ensure_ascii=False,
            indent=2,
        )
    )


if __name__ == "__main__":
    main()
