"""
test_janitorial.py: Unit tests for JanitorialCalculator.

Tests cover:
  - Labour hours (manual + vacuuming + dusting places / 4) with the 4 hr minimum
  - One-time short-job rate
  - Add-on time tiers, standalone pricing and overflow beyond the table
  - Several visits a week and the dirty-dusting initial charge
"""

import pytest

from app.services.calculators.base import lookup_bracket
from app.services.calculators.janitorial import DEFAULT_CONFIG, addon_brackets


@pytest.fixture
def janitorial(calculator):
    return calculator("janitorial")


# ===========================================================================
# Class 1: Add-on tiers
# ===========================================================================

class TestAddonTiers:
    """Time-tier table for small add-on tasks."""

    def test_24_minutes_uses_30_minute_tier(self, janitorial):
        """0.4 hours of add-on-only work is $20, not a prorated hourly rate."""
        result = janitorial.calculate({"addon_minutes": 24})
        assert result.is_active
        assert result.per_visit_price == 20.0
        assert result.minimum_per_visit == 0.0

    def test_short_addon(self, janitorial):
        assert janitorial.calculate({"addon_minutes": 10}).per_visit_price == 10.0

    def test_standalone_skips_addon_only_tier(self, janitorial):
        """Standalone 10 minutes: the 15-minute tier is add-on only; 30-minute standalone price is $35."""
        result = janitorial.calculate({"addon_minutes": 10, "addon_standalone": True})
        assert result.per_visit_price == 35.0

    def test_addon_hours(self, janitorial):
        assert janitorial.calculate({"addon_hours": 2}).per_visit_price == 80.0

    def test_overflow_beyond_table_is_hourly(self):
        brackets = addon_brackets(DEFAULT_CONFIG["addon_tiers"], standalone=False)
        assert abs(lookup_bracket(5.0, brackets, overflow_rate=30.0) - 150.0) < 0.001
        assert abs(lookup_bracket(1500.0, brackets, overflow_rate=30.0) - 45000.0) < 0.001


# ===========================================================================
# Class 2: Labour
# ===========================================================================

class TestLabour:
    """Hourly labour pricing."""

    def test_minimum_hours(self, janitorial):
        """2 hours weekly bills the 4 hour minimum at $30."""
        result = janitorial.calculate({"manual_hours": 2, "frequency": "weekly"})
        assert result.per_visit_price == 120.0
        assert result.minimum_per_visit == 120.0

    def test_hours_from_all_sources(self, janitorial):
        """4 manual + 1 vacuuming + 4 dusting places (1 hr) = 6 hrs x $30."""
        form = {"manual_hours": 4, "vacuuming_hours": 1, "dusting_places": 4}
        assert janitorial.calculate(form).per_visit_price == 180.0

    def test_one_time_short_job_rate(self, janitorial):
        result = janitorial.calculate({"manual_hours": 5, "frequency": "oneTime"})
        assert result.per_visit_price == 250.0
        assert result.contract_total == 250.0
        assert result.monthly_recurring == 0.0

    def test_labour_plus_addon(self, janitorial):
        result = janitorial.calculate({"manual_hours": 4, "addon_minutes": 24})
        assert result.per_visit_price == 140.0

    def test_inactive_when_no_work(self, janitorial):
        assert not janitorial.calculate({"frequency": "weekly"}).is_active


# ===========================================================================
# Class 3: Visits per week and initial dusting
# ===========================================================================

class TestVisitsAndInstall:
    """Multiple weekly visits and dirty initial dusting."""

    def test_three_visits_per_week(self, janitorial):
        result = janitorial.calculate({"manual_hours": 4, "frequency": "weekly", "visits_per_week": 3})
        assert result.per_visit_price == 120.0
        assert abs(result.monthly_recurring - 120.0 * 4.33 * 3) < 0.001

    def test_dirty_dusting_installation(self, janitorial):
        """8 places x $7.50 = $60, x (3 - 1) = $120 one-time."""
        result = janitorial.calculate({"dusting_places": 8, "manual_hours": 4, "is_dirty": True})
        assert result.installation == 120.0

    def test_rate_override(self, janitorial):
        result = janitorial.calculate({"manual_hours": 4, "custom_base_hourly_rate": 35})
        assert result.per_visit_price == 140.0
        assert result.is_custom["base_hourly_rate"] is True


# ===========================================================================
# Class 4: Daily service
# ===========================================================================

class TestDailyService:
    """Daily janitorial bills 21.65 weekday visits a month."""

    def test_daily_rolls_up(self, janitorial):
        result = janitorial.calculate({"manual_hours": 4, "frequency": "Daily"})
        assert result.frequency == "daily"
        assert result.per_visit_price == 120.0
        assert abs(result.monthly_recurring - 2598.0) < 0.001
        assert abs(result.contract_total - 31176.0) < 0.001

    def test_saved_daily_payload(self, quote_engine):
        form = quote_engine.load_service("janitorial", {"isActive": True, "manualHours": 4, "frequency": "Daily"})
        result = quote_engine.price_service("janitorial", form)
        assert result.frequency == "daily"
        assert result.monthly_recurring > 0
        assert result.contract_total > 0
