"""Evaluation harness for line-item extraction.

Runs the extraction service over a gold dataset and computes metrics.

Usage:
    python -m pipeline.eval.eval data/gold/invoices.json
"""

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from pipeline.eval.metrics import GoldDocument, evaluate_documents
from services.extraction.service import DocumentExtractionService
from services.shared.config import get_settings

logger = logging.getLogger(__name__)


def load_gold_dataset(gold_file: Path) -> list[GoldDocument]:
    """Load gold dataset from JSON file.

    The file holds a list of objects with ``source_id``, ``ocr_text`` and the
    expected ``header``, ``totals`` and ``line_items``.

    Args:
        gold_file: Path to gold dataset JSON

    Returns:
        Gold documents
    """
    with open(gold_file) as f:
        data = json.load(f)

    return [GoldDocument.model_validate(item) for item in data]


def run_evaluation(gold_file: Path) -> dict[str, Any]:
    """Run evaluation on gold dataset.

    Args:
        gold_file: Path to gold dataset JSON file

    Returns:
        Evaluation results dict
    """
    service = DocumentExtractionService(get_settings())
    samples = load_gold_dataset(gold_file)

    predicted = [service.extract_document(sample.ocr_text, sample.source_id) for sample in samples]
    report = evaluate_documents(samples, predicted)

    strategies: dict[str, int] = {}
    for result in predicted:
        strategies[result.strategy or "none"] = strategies.get(result.strategy or "none", 0) + 1

    return {
        "total_samples": report.total_samples,
        "macro_f1": round(report.macro_f1, 4),
        "line_items": {
            "precision": round(report.line_item_metrics.precision, 4),
            "recall": round(report.line_item_metrics.recall, 4),
            "f1": round(report.line_item_metrics.f1, 4),
            "support": report.line_item_metrics.support,
        },
        "strategies": strategies,
        "field_metrics": {
            field: {
                "precision": round(metrics.precision, 4),
                "recall": round(metrics.recall, 4),
                "f1": round(metrics.f1, 4),
                "support": metrics.support,
            }
            for field, metrics in report.field_metrics.items()
        },
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Evaluate extraction against a gold dataset")
    parser.add_argument(
        "gold_file",
        type=Path,
        nargs="?",
        default=Path("data/gold/invoices.json"),
        help="Gold dataset JSON file",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING)
    results = run_evaluation(args.gold_file)

    print("\n" + "=" * 60)
    print("LINE-ITEM EXTRACTION EVALUATION RESULTS")
    print("=" * 60)
    print(f"\nTotal Samples: {results['total_samples']}")
    print(f"Macro F1 Score: {results['macro_f1']:.1%}")
    items = results["line_items"]
    print(
        f"Line items: P {items['precision']:.1%}  R {items['recall']:.1%}  "
        f"F1 {items['f1']:.1%}  ({items['support']} expected)"
    )
    print(f"Winning strategies: {results['strategies']}\n")

    print("Per-Field Metrics:")
    print("-" * 60)
    print(f"{'Field':<20} {'Precision':<12} {'Recall':<12} {'F1':<12}")
    print("-" * 60)

    for field, metrics in results["field_metrics"].items():
        print(
            f"{field:<20} {metrics['precision']:<12.1%} "
            f"{metrics['recall']:<12.1%} {metrics['f1']:<12.1%}"
        )

    print("=" * 60)


if __name__ == "__main__":
    main()
