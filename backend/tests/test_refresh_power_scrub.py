"""
test_refresh_power_scrub.py: Unit tests for RefreshPowerScrubCalculator.

Each enabled area picks a pricing type (preset, perHour, perWorker,
squareFeet, custom). Computed area totals are floored at the minimum visit;
custom amounts are taken as entered.
"""

import pytest

from app.services.calculators.refresh_power_scrub import DRAFT_SCHEMA, enabled_areas, to_draft


@pytest.fixture
def refresh(calculator):
    return calculator("refresh_power_scrub")


def _form(**areas):
    return {"areas": {key: dict(area, enabled=area.get("enabled", True)) for key, area in areas.items()}}


# ===========================================================================
# Class 1: Presets
# ===========================================================================

class TestPresets:
    """Package prices per area."""

    def test_dumpster_default_is_minimum_visit(self, refresh):
        result = refresh.calculate(_form(dumpster={}))
        assert result.per_visit_price == 475.0
        assert result.minimum_per_visit == 475.0

    def test_dumpster_quantity(self, refresh):
        assert refresh.calculate(_form(dumpster={"quantity": 2})).per_visit_price == 950.0

    def test_dumpster_follows_custom_minimum(self, refresh):
        form = dict(_form(dumpster={}), custom_minimum_visit=500)
        assert refresh.calculate(form).per_visit_price == 500.0

    def test_patio_standalone_with_addon(self, refresh):
        form = _form(patio={"patio_mode": "standalone", "include_patio_addon": True})
        assert refresh.calculate(form).per_visit_price == 1375.0

    def test_patio_upsell(self, refresh):
        assert refresh.calculate(_form(patio={"patio_mode": "upsell"})).per_visit_price == 500.0

    def test_front_and_back_of_house(self, refresh):
        form = _form(foh={}, boh={"kitchen_size": "large"})
        result = refresh.calculate(form)
        assert result.line_items == {"foh": 2500.0, "boh": 2500.0}
        assert result.per_visit_price == 5000.0

    def test_boh_kitchen_counts(self, refresh):
        form = _form(boh={"small_medium_qty": 1, "large_qty": 1})
        assert refresh.calculate(form).per_visit_price == 4000.0


# ===========================================================================
# Class 2: Pricing types
# ===========================================================================

class TestPricingTypes:
    """perHour / perWorker / squareFeet / custom."""

    def test_per_hour_floors_at_minimum(self, refresh):
        """$75 trip + 1 hr x $200 = $275 -> $475 minimum."""
        form = _form(walkway={"pricing_type": "perHour", "hours": 1})
        assert refresh.calculate(form).per_visit_price == 475.0

    def test_per_hour_above_minimum(self, refresh):
        form = _form(walkway={"pricing_type": "perHour", "hours": 3})
        assert refresh.calculate(form).per_visit_price == 675.0

    def test_per_worker(self, refresh):
        form = _form(other={"pricing_type": "perWorker", "workers": 3})
        assert refresh.calculate(form).per_visit_price == 675.0

    def test_square_feet(self, refresh):
        """$200 + 1000 x $0.60 + 500 x $0.40 + $75 trip."""
        form = _form(walkway={"pricing_type": "squareFeet", "inside_sqft": 1000, "outside_sqft": 500})
        assert refresh.calculate(form).per_visit_price == 1075.0

    def test_custom_amount_not_floored(self, refresh):
        form = _form(other={"pricing_type": "custom", "custom_amount": 300})
        assert refresh.calculate(form).per_visit_price == 300.0

    def test_green_tier(self, refresh):
        form = dict(_form(patio={}), rate_tier="greenRate")
        assert abs(refresh.calculate(form).per_visit_price - 1137.5) < 0.001

    def test_area_total_override(self, refresh):
        form = dict(_form(foh={}, dumpster={}), custom_foh_total=2000)
        result = refresh.calculate(form)
        assert result.per_visit_price == 2475.0
        assert result.is_custom["foh_total"] is True


# ===========================================================================
# Class 3: Activity and frequency
# ===========================================================================

class TestRefreshRollup:
    """Default one-time frequency and enabled-area handling."""

    def test_one_time_default(self, refresh):
        result = refresh.calculate(_form(foh={}))
        assert result.frequency == "oneTime"
        assert result.monthly_recurring == 0.0
        assert result.contract_total == 2500.0

    def test_quarterly(self, refresh):
        form = dict(_form(foh={}), frequency="quarterly")
        assert refresh.calculate(form).contract_total == 10000.0

    def test_disabled_areas_ignored(self, refresh):
        form = _form(foh={"enabled": False}, dumpster={})
        assert refresh.calculate(form).per_visit_price == 475.0

    def test_no_enabled_area_is_inactive(self, refresh):
        assert not refresh.calculate(_form(foh={"enabled": False})).is_active


# ===========================================================================
# Class 4: Draft serialisation
# ===========================================================================

class TestDraft:
    """to_draft keeps enabled areas only."""

    def test_draft_shape(self):
        form = _form(foh={}, patio={"enabled": False, "patio_mode": "upsell"})
        form["hourly_rate"] = 210
        draft = to_draft(form)
        assert draft["schema"] == DRAFT_SCHEMA
        assert draft["isActive"] is True
        assert list(draft["areas"]) == ["foh"]
        assert draft["hourly_rate"] == 210
        assert draft["frequency"] == "oneTime"

    def test_enabled_areas_accepts_string_flags(self):
        form = {"areas": {"foh": {"enabled": "true"}, "boh": {"enabled": "false"}, "bogus": {"enabled": True}}}
        assert list(enabled_areas(form)) == ["foh"]
