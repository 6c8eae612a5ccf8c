"""
HerbHeal Remedy Copilot – Identification Metrics
=================================================
Evaluates the herb extractor against labelled vision-model outputs.

Each case looks like:
  {"id": "honey-1", "raw_text": "...model output...", "expected_name": "Honey",
   "expected_scientific": "..."}   # expected_scientific optional
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from models.extraction.herb_extractor import HerbExtractor

logger = logging.getLogger(__name__)


def _norm(value: Optional[str]) -> str:
    return " ".join((value or "").lower().split())


def name_match(predicted: str, expected: str) -> bool:
    """Case/whitespace-insensitive match; a predicted "Ginger Root" matches "ginger"."""
    p, e = _norm(predicted), _norm(expected)
    if not p or not e:
        return False
    return p == e or p.split()[0] == e.split()[0]


def identification_report(
    predicted: dict,
    expected_name: Optional[str] = None,
    expected_scientific: Optional[str] = None,
) -> Dict[str, Any]:
    """Per-case report for one extracted identity (alias-dumped dict)."""
    name = predicted.get("name", {})
    report: Dict[str, Any] = {
        "predicted_name": name.get("common"),
        "confidence": predicted.get("confidence"),
        "has_scientific_name": bool(name.get("scientific")),
        "has_properties": bool(predicted.get("properties")),
    }
    if expected_name is not None:
        report["name_correct"] = name_match(name.get("common", ""), expected_name)
    if expected_scientific is not None:
        report["scientific_correct"] = _norm(name.get("scientific")) == _norm(expected_scientific)
    return report


def load_cases(path: str) -> List[dict]:
    """Load labelled cases from a JSON file (list or {"cases": [...]})."""
    with open(path) as f:
        data = json.load(f)
    if isinstance(data, list):
        return data
    if "cases" in data:
        return data["cases"]
    raise ValueError(f"Expected a list or {{cases: [...]}} in {path}")


def run_identification_benchmark(
    cases: List[dict],
    extractor: Optional[HerbExtractor] = None,
) -> dict:
    """
    Run the extractor over labelled cases and aggregate the results.

    Returns
    -------
    dict with ``name_accuracy``, ``scientific_accuracy``, ``mean_confidence``,
    ``strategy_counts`` and ``per_case_results``.
    """
    extractor = extractor or HerbExtractor()
    results = []
    strategies: Counter = Counter()

    for i, case in enumerate(cases):
        case_id = case.get("id", f"case_{i}")
        raw_text = case.get("raw_text", "")
        strategies[extractor.best_candidate(raw_text).strategy] += 1
        identity = extractor.extract(raw_text).model_dump(by_alias=True)
        report = identification_report(
            identity,
            expected_name=case.get("expected_name"),
            expected_scientific=case.get("expected_scientific"),
        )
        report["case_id"] = case_id
        results.append(report)
        logger.info(
            "Case %s: %s (confidence %s)", case_id, report["predicted_name"], report["confidence"]
        )

    def _mean(lst):
        return round(sum(lst) / len(lst), 4) if lst else None

    return {
        "total_cases": len(cases),
        "name_accuracy": _mean([float(r["name_correct"]) for r in results if "name_correct" in r]),
        "scientific_accuracy": _mean(
            [float(r["scientific_correct"]) for r in results if "scientific_correct" in r]
        ),
        "mean_confidence": _mean([r["confidence"] for r in results]),
        "strategy_counts": dict(strategies),
        "per_case_results": results,
    }
