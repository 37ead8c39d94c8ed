#!/usr/bin/env python3
"""Extract line items from a document and write report artifacts.

Usage:
    python scripts/extract_document.py invoice.png
    python scripts/extract_document.py invoice.pdf --output-dir out --cleanup
    python scripts/extract_document.py ocr_output.txt --text

Writes result.json, line_items.csv and report.html into the output
directory and prints a summary with the reconciliation verdict.
"""

import argparse
import logging
import sys
from pathlib import Path

from services.export.renderers import format_money, render_artifacts
from services.extraction.pipeline import DocumentPipeline
from services.extraction.schema import ExtractionResult
from services.shared.config import get_settings
from services.shared.errors import DocumentExtractionError

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extract invoice line items from a document")
    parser.add_argument("path", type=Path, help="Image, PDF, or text file")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("output"),
        help="Directory for the JSON, CSV and HTML artifacts (default: output)",
    )
    parser.add_argument(
        "--text",
        action="store_true",
        help="Treat the input as already-extracted plain text",
    )
    parser.add_argument(
        "--cleanup",
        action="store_true",
        help="Run the configured cleanup provider",
    )
    return parser.parse_args(argv)


def print_summary(result: ExtractionResult) -> None:
    print("=" * 60)
    print(f"DOCUMENT: {result.source_id}")
    print("=" * 60)

    doc_type = result.document_type.value if result.document_type else "unknown"
    print(f"Type: {doc_type}  Strategy: {result.strategy}  Time: {result.processing_time:.3f}s")

    if result.header:
        print("\nHeader:")
        for name, value in result.header.items():
            print(f"  {name}: {value}")

    print(f"\nLine items ({len(result.line_items)}):")
    for i, item in enumerate(result.line_items, 1):
        code = f" ({item.product_code})" if item.product_code else ""
        print(f"  {i}. {item.quantity}x {item.description}{code} = {format_money(item.total)}")

    if result.totals:
        print("\nTotals:")
        for name, amount in result.totals.items():
            print(f"  {name.capitalize()}: {format_money(amount)}")

    reconciliation = result.reconciliation
    print("\nReconciliation:")
    print(f"  Sum of line items: {format_money(reconciliation.line_items_total)}")
    if reconciliation.stated_subtotal is None:
        print("  No subtotal stated")
    elif reconciliation.mismatch:
        print(f"  Stated subtotal: {format_money(reconciliation.stated_subtotal)}")
        print(f"  MISMATCH, difference: {format_money(reconciliation.difference)}")
    else:
        print(f"  Stated subtotal: {format_money(reconciliation.stated_subtotal)} (match)")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    pipeline = DocumentPipeline(settings)
    try:
        if args.text:
            text = args.path.read_text(encoding="utf-8")
            result = pipeline.extraction_service.extract_document(text, args.path.name)
            if args.cleanup:
                result = pipeline.clean(result)
        else:
            result = pipeline.process(args.path, use_cleanup=args.cleanup)
    except (DocumentExtractionError, OSError) as e:
        logger.error(f"Extraction failed: {e}")
        return 1

    args.output_dir.mkdir(parents=True, exist_ok=True)
    for filename, (data, _content_type) in render_artifacts(result).items():
        (args.output_dir / filename).write_bytes(data)

    print_summary(result)
    print(f"\nArtifacts written to {args.output_dir}/")
    return 0


if __name__ == "__main__":
    sys.exit(main())
