"""Tests for normalization in the kernel DTOs."""

from dataclasses import FrozenInstanceError
from decimal import Decimal

import pytest

from stock_kernel.domain.dtos import (
    CountRow,
    DepartmentScope,
    LineType,
    MovementRow,
    OnHandSnapshot,
    OrderLine,
    ParsedInvoiceLine,
    ProductMeta,
    SupplierMeta,
)


class TestNormalization:
    def test_count_row_numbers_normalized(self):
        row = CountRow(sku="GIN-1L", on_hand="8", expected=10.0, unit_cost="n/a")

        assert row.on_hand == Decimal("8")
        assert row.expected == Decimal("10.0")
        assert row.unit_cost is None

    def test_missing_quantity_is_not_zero(self):
        assert MovementRow(sku="GIN-1L").qty is None
        assert CountRow(sku="GIN-1L").on_hand is None

    def test_dtos_are_frozen(self):
        row = CountRow(sku="GIN-1L", on_hand=8)
        with pytest.raises(FrozenInstanceError):
            row.on_hand = Decimal("9")

    def test_invoice_line_type_coerced_from_string(self):
        line = ParsedInvoiceLine(name="Keg deposit", qty=1, unit_price="30", line_type="deposit_returnable")
        assert line.line_type is LineType.DEPOSIT_RETURNABLE

    def test_invoice_line_blank_code_dropped(self):
        assert ParsedInvoiceLine(name="Lime", code="   ").code is None
        assert ParsedInvoiceLine(name="Lime", code=" LIM-1 ").code == "LIM-1"

    def test_invoice_line_none_name_becomes_empty(self):
        assert ParsedInvoiceLine(name=None).name == ""

    def test_supplier_and_product_text_trimmed(self):
        product = ProductMeta(product_id="lime", supplier_id="  ", supplier_name=" Fresh Co ")
        assert product.supplier_id is None
        assert product.supplier_name == "Fresh Co"
        assert SupplierMeta(supplier_id="fresh", name="").name is None


class TestReadOnlyMappings:
    def test_dept_par_frozen_and_filtered(self):
        product = ProductMeta(product_id="gin", dept_par={"bar": "10", "cellar": "unknown"})

        assert dict(product.dept_par) == {"bar": Decimal("10")}
        with pytest.raises(TypeError):
            product.dept_par["bar"] = Decimal("1")

    def test_on_hand_keeps_absent_quantities_at_zero(self):
        scope = DepartmentScope(department_id="bar", on_hand={"lime": None, "gin": "n/a", "salt": 3})

        assert dict(scope.on_hand) == {
            "lime": Decimal("0"), "gin": Decimal("0"), "salt": Decimal("3"),
        }

    def test_source_mapping_changes_do_not_leak(self):
        source = {"lime": 4}
        snapshot = OnHandSnapshot.venue(source)
        source["lime"] = 99

        assert snapshot.scopes[0].on_hand["lime"] == Decimal("4")


class TestOnHandSnapshot:
    def test_venue_scope_is_department_blind(self):
        snapshot = OnHandSnapshot.venue({"lime": 4})

        assert not snapshot.is_department_aware
        assert snapshot.scopes[0].department_id is None
        assert tuple(snapshot.department_ids()) == ()

    def test_by_department_keeps_order_and_names(self):
        snapshot = OnHandSnapshot.by_department(
            {"kitchen": {"lime": 20}, "bar": {"lime": 10}},
            department_names={"bar": "Bar"},
        )

        assert snapshot.is_department_aware
        assert tuple(snapshot.department_ids()) == ("kitchen", "bar")
        assert snapshot.scopes[0].department_name is None
        assert snapshot.scopes[1].department_name == "Bar"


class TestOrderLineDisplayName:
    @pytest.mark.parametrize(
        "line, expected",
        [
            (OrderLine(id="ol-1", product_id="lime", name="Lime"), "Lime"),
            (OrderLine(id="ol-1", product_id="lime"), "lime"),
            (OrderLine(id="ol-1"), "ol-1"),
        ],
    )
    def test_fallback_chain(self, line, expected):
        assert line.display_name == expected
