"""
Tests for the invoice line classifier.

Covers:
- Keyword categories and their priority order
- Case-insensitivity and the PRODUCT fallback
- Pre-tagged lines and line totals
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from stock_engines.classifier import (
    CHARGE_RULES,
    classify_line,
    classify_name,
    effective_line_type,
    line_total,
)
from stock_kernel.domain.dtos import LineType, ParsedInvoiceLine


class TestClassifyName:
    """Keyword rules map display names to charge types."""

    @pytest.mark.parametrize("name,expected", [
        ("Freight", LineType.FREIGHT),
        ("Delivery fee", LineType.FREIGHT),
        ("Courier - Metro", LineType.FREIGHT),
        ("Logistics levy", LineType.FREIGHT),
        ("Card fee 1.5%", LineType.SURCHARGE),
        ("Handling fee", LineType.SURCHARGE),
        ("Breakage credit", LineType.ULLAGE),
        ("Ullage - keg 12", LineType.ULLAGE),
        ("Keg deposit x2", LineType.DEPOSIT_RETURNABLE),
        ("CHEP pallet", LineType.DEPOSIT_RETURNABLE),
        ("Returnable crates", LineType.DEPOSIT_RETURNABLE),
        ("Promo allowance", LineType.DISCOUNT),
        ("Volume rebate", LineType.DISCOUNT),
        ("GST", LineType.TAX),
        ("VAT 20%", LineType.TAX),
        ("Lime", LineType.PRODUCT),
        ("Gin 1L", LineType.PRODUCT),
    ])
    def test_categories(self, name, expected):
        assert classify_name(name) == expected

    def test_case_insensitive(self):
        assert classify_name("DELIVERY") == LineType.FREIGHT
        assert classify_name("gSt") == LineType.TAX

    def test_fuel_surcharge_is_freight(self):
        """Freight is tested before surcharge, so the first match wins."""
        assert classify_name("Fuel surcharge") == LineType.FREIGHT
        assert classify_name("Weekend surcharge") == LineType.SURCHARGE

    def test_deposit_beats_discount(self):
        assert classify_name("Deposit discount") == LineType.DEPOSIT_RETURNABLE

    def test_missing_name_is_product(self):
        assert classify_name(None) == LineType.PRODUCT
        assert classify_name("") == LineType.PRODUCT

    def test_rules_never_include_product_or_other(self):
        types = [line_type for line_type, _ in CHARGE_RULES]
        assert LineType.PRODUCT not in types
        assert LineType.OTHER not in types


class TestClassifyLine:
    """classify_line looks only at the name; effective_line_type honours tags."""

    def test_classify_line_uses_name(self):
        line = ParsedInvoiceLine(name="Delivery", qty=1, unit_price="15")
        assert classify_line(line) == LineType.FREIGHT

    def test_classify_line_ignores_pre_tag(self):
        line = ParsedInvoiceLine(name="Lime", line_type=LineType.OTHER)
        assert classify_line(line) == LineType.PRODUCT

    def test_classify_line_accepts_any_named_value(self):
        assert classify_line(SimpleNamespace(name="Courier charge")) == LineType.FREIGHT
        assert classify_line({"name": "Promo rebate", "qty": 1}) == LineType.DISCOUNT

    def test_classify_line_without_usable_name_is_product(self):
        assert classify_line(SimpleNamespace(qty=2)) == LineType.PRODUCT
        assert classify_line({"name": None}) == LineType.PRODUCT
        assert classify_line(SimpleNamespace(name=42)) == LineType.PRODUCT

    def test_effective_type_prefers_pre_tag(self):
        line = ParsedInvoiceLine(name="Delivery", line_type="other")
        assert line.line_type is LineType.OTHER
        assert effective_line_type(line) == LineType.OTHER

    def test_effective_type_falls_back_to_classification(self):
        line = ParsedInvoiceLine(name="Keg deposit")
        assert effective_line_type(line) == LineType.DEPOSIT_RETURNABLE


class TestLineTotal:
    def test_qty_times_price(self):
        line = ParsedInvoiceLine(name="Lime", qty=10, unit_price="2.10")
        assert line_total(line) == Decimal("21.00")

    def test_missing_qty_is_zero(self):
        assert line_total(ParsedInvoiceLine(name="Lime", unit_price="2")) == Decimal("0")

    def test_missing_price_is_zero(self):
        assert line_total(ParsedInvoiceLine(name="Lime", qty=3)) == Decimal("0")

    def test_non_numeric_values_are_absent(self):
        line = ParsedInvoiceLine(name="Lime", qty="n/a", unit_price="2")
        assert line.qty is None
        assert line_total(line) == Decimal("0")

    def test_none_line(self):
        assert line_total(None) == Decimal("0")
