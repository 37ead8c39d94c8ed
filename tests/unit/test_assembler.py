"""Unit tests for the sequential item assembler.

Tests cover:
- Same-line, two-line and three-line records
- Discarding items that never receive a price
- Unrecognised and orphan continuation lines
- Purity of the fold step
"""

from decimal import Decimal

import pytest

from services.extraction.assembler import (
    AssemblyState,
    SequentialItemAssembler,
    apply_product_code,
    start_item,
    step,
)
from services.extraction.classifier import ItemStart
from services.extraction.schema import LineItem


@pytest.fixture
def assembler() -> SequentialItemAssembler:
    """Create assembler instance."""
    return SequentialItemAssembler()


class TestStartItem:
    """Tests for seeding an item from an item-start line."""

    def test_same_line_prices_removed_from_description(self) -> None:
        """Test that trailing prices become unit price and total."""
        item = start_item(ItemStart(quantity=5, remainder="Widget Assembly 10.00 50.00"))

        assert item.description == "Widget Assembly"
        assert item.unit_price == Decimal("10.00")
        assert item.total == Decimal("50.00")

    def test_without_prices(self) -> None:
        """Test that an item without prices starts incomplete."""
        item = start_item(ItemStart(quantity=5, remainder="Widget Assembly"))

        assert item.description == "Widget Assembly"
        assert item.total == Decimal("0")
        assert not item.is_complete

    def test_number_inside_description_is_kept(self) -> None:
        """Test that only the closing price pair is removed."""
        item = start_item(ItemStart(quantity=1, remainder="Cable 2 m Black 4.50 4.50"))

        assert item.description == "Cable 2 m Black"
        assert item.total == Decimal("4.50")


class TestApplyProductCode:
    """Tests for product-code continuation lines."""

    def test_code_and_prices(self) -> None:
        """Test that code and trailing price pair are both applied."""
        item = LineItem(quantity=5, description="Widget Assembly")

        updated = apply_product_code(item, "WID-2024-A 10.00 50.00")

        assert updated.product_code == "WID-2024-A"
        assert updated.unit_price == Decimal("10.00")
        assert updated.total == Decimal("50.00")
        assert updated.description == "Widget Assembly"

    def test_code_without_prices_keeps_existing_prices(self) -> None:
        """Test that a bare code line does not reset prices."""
        item = LineItem(
            quantity=2,
            description="Gear",
            unit_price=Decimal("3.00"),
            total=Decimal("6.00"),
        )

        updated = apply_product_code(item, "GEAR-7")

        assert updated.product_code == "GEAR-7"
        assert updated.total == Decimal("6.00")

    def test_original_item_unchanged(self) -> None:
        """Test that items are updated by copy."""
        item = LineItem(quantity=5, description="Widget Assembly")

        apply_product_code(item, "WID-2024-A 10.00 50.00")

        assert item.product_code is None
        assert item.total == Decimal("0")


class TestAssemble:
    """Tests for the full fold over table lines."""

    def test_same_line_records(self, assembler: SequentialItemAssembler) -> None:
        """Test one item per same-line record, in order."""
        items = assembler.assemble(
            [
                "5 Widget Assembly 10.00 50.00",
                "2 Gear Housing 25.00 50.00",
                "4 Service Plan 50.00 200.00",
            ]
        )

        assert [item.description for item in items] == [
            "Widget Assembly",
            "Gear Housing",
            "Service Plan",
        ]
        assert [item.quantity for item in items] == [5, 2, 4]
        assert sum(item.total for item in items) == Decimal("300.00")

    def test_two_line_record(self, assembler: SequentialItemAssembler) -> None:
        """Test a description line followed by a code and price line."""
        items = assembler.assemble(["5 Widget Assembly", "WID-2024-A 10.00 50.00"])

        assert items == [
            LineItem(
                quantity=5,
                description="Widget Assembly",
                product_code="WID-2024-A",
                unit_price=Decimal("10.00"),
                total=Decimal("50.00"),
            )
        ]

    def test_three_line_record(self, assembler: SequentialItemAssembler) -> None:
        """Test description, code and price-only lines."""
        items = assembler.assemble(["5 Widget Assembly", "WID-2024-A", "10.00 50.00"])

        assert len(items) == 1
        assert items[0].product_code == "WID-2024-A"
        assert items[0].unit_price == Decimal("10.00")
        assert items[0].total == Decimal("50.00")

    def test_incomplete_item_discarded(self, assembler: SequentialItemAssembler) -> None:
        """Test that an item that never gets a price is dropped."""
        items = assembler.assemble(
            [
                "5 Widget Assembly",
                "2 Gear Housing 25.00 50.00",
                "1 Service Fee 75.00 75.00",
            ]
        )

        assert [item.description for item in items] == ["Gear Housing", "Service Fee"]

    def test_zero_total_discarded(self, assembler: SequentialItemAssembler) -> None:
        """Test that items with a zero total are never emitted."""
        items = assembler.assemble(["1 Free Sample 0.00 0.00", "1 Bolt 1.00 1.00"])

        assert [item.description for item in items] == ["Bolt"]

    def test_unrecognized_lines_ignored(self, assembler: SequentialItemAssembler) -> None:
        """Test that noise between records does not affect items."""
        items = assembler.assemble(
            [
                "5 Widget Assembly 10.00 50.00",
                "continued on next page",
                "2 Gear Housing 25.00 50.00",
            ]
        )

        assert len(items) == 2

    def test_orphan_continuations_ignored(self, assembler: SequentialItemAssembler) -> None:
        """Test that continuation shapes before any item are ignored."""
        items = assembler.assemble(["WID-2024-A 10.00 50.00", "10.00 50.00"])

        assert items == []

    def test_last_item_flushed(self, assembler: SequentialItemAssembler) -> None:
        """Test that the item in progress at end of input is emitted."""
        items = assembler.assemble(["5 Widget Assembly", "10.00 50.00"])

        assert len(items) == 1
        assert items[0].total == Decimal("50.00")

    def test_empty_input(self, assembler: SequentialItemAssembler) -> None:
        """Test that no lines yields no items."""
        assert assembler.assemble([]) == []

    def test_deterministic(self, assembler: SequentialItemAssembler) -> None:
        """Test that assembling twice yields equal results."""
        lines = ["5 Widget Assembly", "WID-2024-A 10.00 50.00", "1 Bolt 1.00 1.00"]

        assert assembler.assemble(lines) == assembler.assemble(lines)


class TestStep:
    """Tests for the fold step and its accumulator."""

    def test_step_does_not_mutate_state(self) -> None:
        """Test that step returns a new state."""
        state = AssemblyState()

        next_state = step(state, "5 Widget Assembly 10.00 50.00")

        assert state.current is None
        assert next_state.current is not None
        assert next_state.emitted == ()

    def test_new_item_flushes_previous(self) -> None:
        """Test that an item start emits the complete item in progress."""
        state = step(AssemblyState(), "5 Widget Assembly 10.00 50.00")

        state = step(state, "2 Gear Housing")

        assert len(state.emitted) == 1
        assert state.emitted[0].description == "Widget Assembly"
        assert state.current is not None
        assert state.current.description == "Gear Housing"

    def test_flush_without_current(self) -> None:
        """Test that flushing an idle state is a no-op."""
        state = AssemblyState()

        assert state.flush() is state
