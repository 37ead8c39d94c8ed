#!/usr/bin/env python3
"""Compare line-item strategies on sample documents.

Runs the sequential and pattern strategies over each sample, shows how many
items each finds, and which one the engine keeps.

Usage:
    python scripts/compare_strategies.py [FILE ...]

Without arguments the built-in samples are used; each FILE is read as plain
text.
"""

import sys
import time
from pathlib import Path

from services.extraction.factory import create_line_item_engine
from services.shared.config import Settings

SAMPLES: dict[str, str] = {
    "Well-formed table": """INVOICE # INV-1001
QUANTITY DESCRIPTION UNIT PRICE TOTAL
5 Widget Assembly
WID-2024-A 10.00 50.00
2 Gear Housing
GHX-100 25.00 50.00
1 Service Fee 75.00 75.00
SUBTOTAL 175.00
""",
    "Table without column header": """INVOICE # INV-1002
5 Widget Assembly 10.00 50.00
3 Gear Housing 25.00 75.00
1 Service Fee 75.00 75.00
SUBTOTAL 200.00
""",
    "Ragged OCR layout": """QUANTITY   DESCRIPTION
UNIT PRICE    TOTAL
5 Widget Assembly (WID-2024-A) 10.00 50.00
2 Bracket
BRK-7 4.50 9.00
Page 1 of 1
SUB TOTAL 59.00
""",
}


def compare(name: str, text: str, settings: Settings) -> None:
    """Print per-strategy counts and the engine's choice for one document."""
    engine = create_line_item_engine(settings)

    start_time = time.time()
    outcome = engine.extract_with_strategy(text)
    elapsed = time.time() - start_time

    print(f"\n{name}")
    print("-" * 60)
    for strategy, count in engine.compare(text).items():
        print(f"  {strategy:<12} {count} items")
    print(f"  Kept: {outcome.strategy.value} ({len(outcome.items)} items, {elapsed * 1000:.1f}ms)")
    for i, item in enumerate(outcome.items, 1):
        code = f" ({item.product_code})" if item.product_code else ""
        print(f"    {i}. {item.quantity}x {item.description}{code} = ${item.total:,.2f}")


def main() -> None:
    settings = Settings(_env_file=None)  # type: ignore[call-arg]

    if len(sys.argv) > 1:
        documents = {path: Path(path).read_text(encoding="utf-8") for path in sys.argv[1:]}
    else:
        documents = SAMPLES

    print("=" * 60)
    print(f"STRATEGY COMPARISON (fallback threshold: {settings.line_item_fallback_threshold})")
    print("=" * 60)

    for name, text in documents.items():
        compare(name, text, settings)


if __name__ == "__main__":
    main()
