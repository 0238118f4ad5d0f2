"""Tests for the bottle size vocabulary and stock-map parsing."""

import pytest
from ordering.stock.sizes import (
    SIZE_KEYS,
    compute_total_stock,
    empty_stock_map,
    normalize_size_label,
    parse_stock_map,
)
from protean.exceptions import ValidationError


class TestNormalizeSizeLabel:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("75cl", "75CL"),
            ("750ml", "75CL"),
            ("750 ML", "75CL"),
            ("70CL", "70CL"),
            ("1L", "1LTR"),
            ("1 litre", "1LTR"),
            ("1000ml", "1LTR"),
            ("1.5L", "1.5LTR"),
            ("1_5LTR", "1.5LTR"),
            ("1.5 Litres", "1.5LTR"),
            ("5cl", "5CL"),
        ],
    )
    def test_aliases_map_to_canonical_key(self, raw, expected):
        assert normalize_size_label(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   ", "magnum", "3L", "12"])
    def test_unknown_labels_return_none(self, raw):
        assert normalize_size_label(raw) is None

    def test_every_key_normalizes_to_itself(self):
        for key in SIZE_KEYS:
            assert normalize_size_label(key) == key


class TestParseStockMap:
    def test_mapping_is_filled_with_every_key(self):
        ledger = parse_stock_map({"75cl": 6})
        assert list(ledger) == list(SIZE_KEYS)
        assert ledger["75CL"] == 6
        assert ledger["1LTR"] == 0

    def test_json_string_is_accepted(self):
        assert parse_stock_map('{"70CL": 3}')["70CL"] == 3

    def test_list_of_pairs_is_accepted(self):
        assert parse_stock_map([["1L", 2], ["5CL", 10]])["1LTR"] == 2

    def test_list_of_objects_is_accepted(self):
        ledger = parse_stock_map([{"size": "750ml", "qty": 4}, {"key": "35CL", "quantity": 1}])
        assert ledger["75CL"] == 4
        assert ledger["35CL"] == 1

    def test_labels_for_the_same_key_are_summed(self):
        ledger = parse_stock_map({"75CL": 2, "750ml": 3})
        assert ledger["75CL"] == 5

    def test_fractional_quantities_are_floored(self):
        assert parse_stock_map({"75CL": 4.9})["75CL"] == 4

    def test_unknown_label_is_rejected(self):
        with pytest.raises(ValidationError) as exc:
            parse_stock_map({"magnum": 1})
        assert exc.value.messages["size_stocks"] == ["Invalid size: magnum"]

    def test_unknown_label_is_dropped_when_not_rejecting(self):
        ledger = parse_stock_map({"magnum": 1, "75CL": 2}, reject_unknown=False)
        assert compute_total_stock(ledger) == 2

    @pytest.mark.parametrize("value", [-1, "many", True, float("nan")])
    def test_strict_coercion_rejects_bad_quantities(self, value):
        with pytest.raises(ValidationError) as exc:
            parse_stock_map({"75CL": value})
        assert "Invalid stock value for 75CL" in exc.value.messages["size_stocks"][0]

    def test_soft_coercion_turns_bad_quantities_into_zero(self):
        ledger = parse_stock_map({"75CL": -4, "70CL": "x"}, coercion="soft")
        assert ledger["75CL"] == 0
        assert ledger["70CL"] == 0

    def test_without_fill_only_present_keys_are_returned(self):
        assert parse_stock_map({"5CL": 1}, fill_missing=False) == {"5CL": 1}

    def test_malformed_json_is_rejected(self):
        with pytest.raises(ValidationError):
            parse_stock_map("{not json")

    def test_empty_values_parse_to_zero_ledger(self):
        assert parse_stock_map(None) == empty_stock_map()
        assert parse_stock_map("") == empty_stock_map()


class TestComputeTotalStock:
    def test_sums_vocabulary_keys(self):
        assert compute_total_stock({"75CL": 2, "1LTR": 3}) == 5

    def test_empty_map_is_zero(self):
        assert compute_total_stock(None) == 0
        assert compute_total_stock({}) == 0
