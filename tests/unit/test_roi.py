"""
Unit tests for the ROI calculator.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from silent_money.models.insights import RoiRequest
from silent_money.services.insights_service import calculate_roi


class TestCalculateRoi:
    """Test projection arithmetic."""

    def test_two_year_projection(self):
        projection = calculate_roi(RoiRequest(
            investment=Decimal("100000"),
            monthly_income=Decimal("10000"),
            monthly_expenses=Decimal("2000"),
            years=2,
        ))

        assert projection.months == 24
        assert projection.total_revenue == Decimal("240000")
        assert projection.total_expenses == Decimal("48000")
        assert projection.net_profit == Decimal("92000")
        assert projection.roi_percent == Decimal("92.00")
        assert projection.monthly_net == Decimal("8000")
        assert projection.break_even_months == 13

    def test_yearly_cumulative_net(self):
        projection = calculate_roi(RoiRequest(
            investment=Decimal("100000"),
            monthly_income=Decimal("10000"),
            monthly_expenses=Decimal("2000"),
            years=2,
        ))

        assert [y.year for y in projection.yearly] == [1, 2]
        assert projection.yearly[0].cumulative_net == Decimal("-4000")
        assert projection.yearly[1].cumulative_net == Decimal("92000")

    def test_never_breaks_even_when_expenses_exceed_income(self):
        projection = calculate_roi(RoiRequest(
            investment=Decimal("50000"),
            monthly_income=Decimal("1000"),
            monthly_expenses=Decimal("1500"),
        ))

        assert projection.break_even_months is None
        assert projection.net_profit < 0

    def test_zero_investment_has_zero_roi(self):
        projection = calculate_roi(RoiRequest(
            investment=Decimal("0"),
            monthly_income=Decimal("1000"),
        ))

        assert projection.roi_percent == Decimal("0.00")
        assert projection.break_even_months == 0

    def test_exact_break_even_month(self):
        projection = calculate_roi(RoiRequest(
            investment=Decimal("12000"),
            monthly_income=Decimal("1000"),
        ))

        assert projection.break_even_months == 12

    def test_display_strings(self):
        projection = calculate_roi(RoiRequest(
            investment=Decimal("100000"),
            monthly_income=Decimal("10000"),
            monthly_expenses=Decimal("2000"),
            years=2,
        ))

        assert projection.net_profit_display == "₹92k"
        assert projection.investment_display == "₹1.0L"

    def test_defaults(self):
        projection = calculate_roi(RoiRequest())

        assert projection.months == 12
        assert projection.net_profit == Decimal("2000")


class TestRoiRequestValidation:
    """Test calculator input bounds."""

    @pytest.mark.parametrize("years", [0, 11])
    def test_years_out_of_range(self, years):
        with pytest.raises(ValidationError):
            RoiRequest(years=years)

    def test_negative_investment_rejected(self):
        with pytest.raises(ValidationError):
            RoiRequest(investment=Decimal("-1"))
