"""
Tests del cálculo de comisiones (funciones puras).
"""

from decimal import Decimal

import pytest

from app.services.commission_service import (
    clamp_commission,
    compute_split,
    institute_share_of,
    round2,
)


class TestComputeSplit:
    def test_twenty_percent_of_hundred(self):
        split = compute_split(100, 20)
        assert split.institute_share == Decimal("20.00")
        assert split.professional_share == Decimal("80.00")

    @pytest.mark.parametrize(
        "revenue,percent",
        [
            (0, 0),
            (0, 100),
            (33.33, 33.33),
            (10.005, 12.5),
            (99.99, 100),
            ("1234.56", "17.5"),
            (0.01, 50),
        ],
    )
    def test_shares_add_up_to_rounded_revenue(self, revenue, percent):
        split = compute_split(revenue, percent)
        assert split.total == round2(revenue)
        assert split.institute_share >= 0
        assert split.professional_share >= 0

    def test_is_stable_across_recomputation(self):
        first = compute_split("87.35", "22.5")
        second = compute_split("87.35", "22.5")
        assert first == second

    def test_half_up_rounding(self):
        # 0.125 → 0.13 con half-up (banker's daría 0.12)
        split = compute_split("1.25", 10)
        assert split.institute_share == Decimal("0.13")
        assert split.professional_share == Decimal("1.12")

    def test_none_revenue_counts_as_zero(self):
        split = compute_split(None, 20)
        assert split.total == Decimal("0.00")


class TestClampCommission:
    def test_in_range_unchanged(self):
        assert clamp_commission(35) == Decimal("35.00")

    def test_negative_clamped_to_zero(self, caplog):
        assert clamp_commission(-5) == Decimal("0.00")
        assert "fuera de rango" in caplog.text

    def test_over_hundred_clamped(self):
        assert clamp_commission(150) == Decimal("100.00")

    def test_split_with_out_of_range_percent_never_negative(self):
        split = compute_split(100, 130)
        assert split.institute_share == Decimal("100.00")
        assert split.professional_share == Decimal("0.00")


def test_institute_share_of_saldo_total():
    assert institute_share_of(Decimal("250.00"), Decimal("20")) == Decimal("50.00")
