"""
test_saniclean.py: Unit tests for SaniCleanCalculator.

Tests cover:
  - Per-item geographic pricing (inside 7 / outside 6 per fixture)
  - Small facility minimum ($50, trip included)
  - Trip + parking, tiers, soap / microfiber / warranty add-ons
  - Facility components billed monthly at their own frequency
  - All-inclusive mode and auto mode switch
  - Output overrides, rate overrides, custom line items, invalid input
"""

import pytest

from app.services.change_recorder import ChangeRecorder


@pytest.fixture
def saniclean(calculator):
    return calculator("saniclean")


# ===========================================================================
# Class 1: Per-item pricing
# ===========================================================================

class TestPerItemPricing:
    """Geographic per-fixture pricing."""

    def test_inside_beltway_weekly(self, saniclean, saniclean_form):
        """12 fixtures x $7 = $84; weekly monthly = 84 x 4.33."""
        result = saniclean.calculate(saniclean_form)
        assert result.is_active
        assert result.per_visit_price == 84.0
        assert result.minimum_per_visit == 40.0
        assert abs(result.monthly_recurring - 363.72) < 0.001
        assert abs(result.contract_total - 4364.64) < 0.001

    def test_small_facility_minimum(self, saniclean):
        """3 fixtures inside the beltway -> $50 small-facility minimum, not 3 x $7."""
        form = {"sinks": 2, "female_toilets": 1, "location": "insideBeltway"}
        result = saniclean.calculate(form)
        assert result.per_visit_price == 50.0
        assert result.minimum_per_visit == 50.0
        assert result.line_items["trip_charge"] == 0.0

    def test_outside_beltway_with_trip(self, saniclean):
        """10 fixtures x $6 = $60 + $8 trip."""
        form = {"sinks": 5, "urinals": 5, "location": "outsideBeltway", "add_trip_charge": True}
        result = saniclean.calculate(form)
        assert result.per_visit_price == 68.0

    def test_parking_only_inside_beltway(self, saniclean, saniclean_form):
        form = dict(saniclean_form, add_trip_charge=True, needs_parking=True)
        assert saniclean.calculate(form).per_visit_price == 99.0
        form["location"] = "outsideBeltway"
        # 12 x $6 + $8 trip, no parking outside
        assert saniclean.calculate(form).per_visit_price == 80.0

    def test_green_rate_tier(self, saniclean, saniclean_form):
        result = saniclean.calculate(dict(saniclean_form, rate_tier="greenRate"))
        assert abs(result.per_visit_price - 109.2) < 0.001

    def test_luxury_soap_and_excess(self, saniclean, saniclean_form):
        """4 luxury dispensers x $5 + 2 gal x $30 on top of $84."""
        form = dict(saniclean_form, soap_type="luxury", excess_soap_gallons=2)
        result = saniclean.calculate(form)
        assert result.per_visit_price == 164.0
        assert result.line_items["soap_upgrade"] == 20.0
        assert result.line_items["excess_soap"] == 60.0

    def test_microfiber_and_warranty(self, saniclean, saniclean_form):
        """Microfiber 2 x $10; warranty (4 soap + 2 air freshener) x $1."""
        form = dict(saniclean_form, add_microfiber=True, microfiber_bathrooms=2, add_warranty=True)
        result = saniclean.calculate(form)
        assert result.per_visit_price == 84.0 + 20.0 + 6.0


# ===========================================================================
# Class 2: Facility components
# ===========================================================================

class TestFacilityComponents:
    """Monthly facility components outside the visit price."""

    def test_components_follow_service_frequency(self, saniclean, saniclean_form):
        """4 urinal screens x $8 = $32 per visit, weekly -> +138.56/month."""
        form = dict(saniclean_form, include_urinal_components=True, urinal_screens=4)
        result = saniclean.calculate(form)
        assert result.per_visit_price == 84.0
        assert abs(result.monthly_recurring - (363.72 + 138.56)) < 0.001

    def test_components_own_frequency(self, saniclean, saniclean_form):
        form = dict(
            saniclean_form,
            include_urinal_components=True,
            urinal_screens=4,
            facility_components_frequency="monthly",
        )
        result = saniclean.calculate(form)
        assert abs(result.monthly_recurring - (363.72 + 32.0)) < 0.001

    def test_components_ignored_without_group_flag(self, saniclean, saniclean_form):
        result = saniclean.calculate(dict(saniclean_form, urinal_screens=4))
        assert abs(result.monthly_recurring - 363.72) < 0.001


# ===========================================================================
# Class 3: All-inclusive
# ===========================================================================

class TestAllInclusive:
    """All-inclusive mode."""

    def test_paper_overage_beyond_credit(self, saniclean):
        """10 fixtures x $20 = $200; paper $80 - 10 x $5 credit = $30 overage."""
        form = {"sinks": 5, "female_toilets": 5, "pricing_mode": "all_inclusive", "paper_spend_per_week": 80}
        result = saniclean.calculate(form)
        assert result.per_visit_price == 230.0
        assert result.minimum_per_visit == 0.0

    def test_trip_waived(self, saniclean):
        form = {"sinks": 5, "female_toilets": 5, "pricing_mode": "all_inclusive", "add_trip_charge": True}
        assert saniclean.calculate(form).per_visit_price == 200.0

    def test_auto_mode_switches_at_threshold(self, saniclean):
        eight = {"sinks": 4, "urinals": 4, "pricing_mode": "auto"}
        assert saniclean.calculate(eight).per_visit_price == 160.0
        seven = {"sinks": 4, "urinals": 3, "pricing_mode": "auto"}
        assert saniclean.calculate(seven).per_visit_price == 49.0


# ===========================================================================
# Class 4: Overrides, custom fields, bad input
# ===========================================================================

class TestOverrides:
    """Output overrides, rate overrides and custom line items."""

    def test_inactive_without_fixtures(self, saniclean):
        result = saniclean.calculate({"location": "insideBeltway"})
        assert not result.is_active
        assert result.per_visit_price == 0.0
        assert result.contract_total == 0.0

    def test_per_visit_override(self, saniclean, saniclean_form):
        result = saniclean.calculate(dict(saniclean_form, custom_per_visit=100))
        assert result.per_visit_price == 100.0
        assert result.is_custom["per_visit"] is True
        assert abs(result.monthly_recurring - 433.0) < 0.001

    def test_monthly_override_drives_contract(self, saniclean, saniclean_form):
        result = saniclean.calculate(dict(saniclean_form, custom_monthly=400))
        assert result.monthly_recurring == 400.0
        assert result.contract_total == 4800.0
        assert result.first_month == 400.0

    def test_rate_override_recorded(self, saniclean, saniclean_form):
        recorder = ChangeRecorder()
        form = dict(saniclean_form, custom_inside_rate_per_fixture=8)
        result = saniclean.calculate(form, recorder=recorder)
        assert result.per_visit_price == 96.0
        assert result.is_custom["inside_rate_per_fixture"] is True
        change = recorder.changes("saniclean")[0]
        assert change.field == "inside_rate_per_fixture"
        assert change.original_value == 7.0
        assert change.new_value == 8.0

    def test_saved_rate_survives_reload(self, saniclean, saniclean_form):
        """A saved rate that differs from the default is treated as custom."""
        result = saniclean.calculate(saniclean_form, prior_saved={"inside_rate_per_fixture": 9})
        assert result.per_visit_price == 108.0
        assert result.is_custom["inside_rate_per_fixture"] is True

    def test_custom_fields_added_to_contract(self, saniclean, saniclean_form):
        form = dict(saniclean_form, custom_fields=[
            {"type": "dollar", "name": "Setup", "value": "25"},
            {"type": "calc", "name": "Mats", "calcValues": {"left": "2", "middle": "5", "right": "10"}},
            {"type": "text", "name": "Note", "value": "Back door code 1234"},
        ])
        result = saniclean.calculate(form)
        assert result.custom_fields_total == 35.0
        assert abs(result.contract_total - (4364.64 + 35.0)) < 0.001

    def test_invalid_count_clamped(self, saniclean, saniclean_form):
        """Non-numeric sinks count as 0; the other 8 fixtures still price."""
        result = saniclean.calculate(dict(saniclean_form, sinks="abc"))
        assert result.per_visit_price == 56.0
