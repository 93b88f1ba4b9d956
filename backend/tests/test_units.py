# Overview: Pytest coverage for bale/ton and price conversions.

import math

import pytest

from hayledger.units import (
    BALE_SIZE_WEIGHTS,
    bales_to_tons,
    default_weight,
    format_dual_units,
    normalize_bale_size,
    normalize_price,
    price_per_ton_to_per_bale,
    resolve_weight,
    to_bales,
    tons_to_bales,
)


class TestWeights:

    @pytest.mark.parametrize(
        "bale_size,expected",
        [("3x3", 1100), ("3x4", 1200), ("4x4", 1800), ("2-Tie", 60), ("3-Tie", 90)],
    )
    def test_default_weight_table(self, bale_size, expected):
        assert default_weight(bale_size) == expected

    def test_unknown_and_missing_sizes_fall_back(self):
        assert default_weight("5x5") == 1200
        assert default_weight(None) == 1200

    @pytest.mark.parametrize(
        "legacy,canonical",
        [("3x4x8", "3x4"), ("3x3x8", "3x3"), ("Round", "4x4"), ("Small Square", "3-Tie")],
    )
    def test_legacy_labels_normalize(self, legacy, canonical):
        assert normalize_bale_size(legacy) == canonical
        assert default_weight(legacy) == BALE_SIZE_WEIGHTS[canonical]

    def test_canonical_and_unknown_labels_pass_through(self):
        assert normalize_bale_size("4x4") == "4x4"
        assert normalize_bale_size("Jumbo") == "Jumbo"
        assert normalize_bale_size(None) is None

    def test_explicit_weight_wins_when_positive(self):
        assert resolve_weight(1500, "3x4") == 1500
        assert resolve_weight(0, "3x4") == 1200
        assert resolve_weight(None, "4x4") == 1800


class TestAmountConversions:

    def test_bales_to_tons(self):
        assert bales_to_tons(100, 1200) == 60
        assert bales_to_tons(0, 1200) == 0

    def test_tons_to_bales_rounds_to_whole_bales(self):
        assert tons_to_bales(60, 1200) == 100
        # 1 ton at 1100 lbs = 1.818... bales
        assert tons_to_bales(1, 1100) == 2

    def test_tons_to_bales_rounds_halves_up(self):
        # 0.3 tons at 1200 lbs/bale is exactly 0.5 bales
        assert tons_to_bales(0.3, 1200) == 1
        # 1.5 tons at 2000 lbs/bale is 1.5 bales, 2.5 tons is 2.5 bales
        assert tons_to_bales(1.5, 2000) == 2
        assert tons_to_bales(2.5, 2000) == 3

    def test_round_trip_from_bales_is_stable(self):
        for lbs in BALE_SIZE_WEIGHTS.values():
            for bales in (1, 7, 40, 1250):
                assert tons_to_bales(bales_to_tons(bales, lbs), lbs) == bales

    def test_round_trip_from_tons_is_lossy(self):
        tons = 1.0
        back = bales_to_tons(tons_to_bales(tons, 1100), 1100)
        assert back != tons
        assert back == pytest.approx(1.1)

    def test_to_bales_by_unit(self):
        assert to_bales(30, "bales", 1200) == 30
        assert to_bales(18, "tons", 1200) == 30


class TestPriceConversions:

    def test_ton_price_is_identity(self):
        assert normalize_price(83.5, "ton", 1200) == 83.5

    def test_bale_price_converts_to_per_ton(self):
        # $50/bale at 1200 lbs = $83.33/ton
        assert normalize_price(50, "bale", 1200) == pytest.approx(83.3333, rel=1e-4)

    def test_per_bale_display_inverts_normalization(self):
        for lbs in (60, 90, 1100, 1200, 1800):
            per_ton = normalize_price(50, "bale", lbs)
            assert math.isclose(price_per_ton_to_per_bale(per_ton, lbs), 50)

    def test_normalizing_a_ton_price_twice_is_stable(self):
        once = normalize_price(50, "bale", 1200)
        assert normalize_price(once, "ton", 1200) == once


def test_format_dual_units():
    assert format_dual_units(1250, 1200) == "1,250 bales (750.00 tons)"
    assert format_dual_units(0, 1800) == "0 bales (0.00 tons)"
