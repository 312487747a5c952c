"""Tests for adapting externally produced suggestion payloads."""

from decimal import Decimal

from stock_engines.replenishment import NO_SUPPLIER_REASON, UNASSIGNED_ID, plan_drafts
from stock_ingestion.mapping import normalize_external_suggestions


class TestNormalizeExternalSuggestions:
    def test_buckets_and_unassigned(self):
        result = normalize_external_suggestions({
            "buckets": {
                "fresh": {
                    "supplierName": "Fresh Produce",
                    "lines": [
                        {"productId": "lime", "productName": "Lime", "qty": 11.6,
                         "unitCost": "0.40", "packSize": 12},
                    ],
                },
            },
            "unassigned": {"lines": [{"productId": "straws", "qty": 0}]},
        })

        bucket = result.bucket_for("fresh")
        assert bucket.supplier_name == "Fresh Produce"
        lime = bucket.lines[0]
        assert lime.qty == Decimal("12")
        assert lime.unit_cost == Decimal("0.40")
        assert lime.pack_size == Decimal("12")
        assert lime.needs_supplier is False
        assert lime.reason is None

        straws = result.unassigned.lines[0]
        assert result.unassigned.supplier_id == UNASSIGNED_ID
        assert straws.qty == Decimal("1")
        assert straws.product_name == "straws"
        assert straws.needs_supplier is True
        assert straws.reason == NO_SUPPLIER_REASON

    def test_missing_qty_defaults_to_one(self):
        result = normalize_external_suggestions(
            {"buckets": {"s1": {"lines": [{"productId": "gin"}]}}}
        )

        assert result.bucket_for("s1").supplier_name == "s1"
        assert result.bucket_for("s1").lines[0].qty == Decimal("1")

    def test_malformed_lines_dropped(self):
        result = normalize_external_suggestions({
            "buckets": {"s1": {"lines": [{"qty": 3}, "gin", {"productId": "  "}]}},
            "unassigned": {"lines": "not a list"},
        })

        assert result.bucket_for("s1").lines == ()
        assert result.unassigned.lines == ()

    def test_garbage_payload_is_empty(self):
        result = normalize_external_suggestions(None)

        assert result.buckets == ()
        assert result.all_lines() == ()

    def test_result_feeds_draft_planning(self):
        result = normalize_external_suggestions({
            "buckets": {"s1": {"supplierName": "Acme", "lines": [{"productId": "gin", "qty": 2}]}},
        })
        plan = plan_drafts(result)

        assert [e.reference_prefix for e in plan.will_create] == ["ACM"]
