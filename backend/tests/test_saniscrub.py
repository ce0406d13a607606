"""
test_saniscrub.py: Unit tests for SaniScrubCalculator and the shared
500 sq ft area bracket.
"""

import pytest

from app.services.calculators.saniscrub import area_bracket_price


@pytest.fixture
def saniscrub(calculator):
    return calculator("saniscrub")


EIGHT_FIXTURES = {"sinks": 4, "urinals": 2, "male_toilets": 1, "female_toilets": 1}


# ===========================================================================
# Class 1: Area bracket
# ===========================================================================

class TestAreaBracket:
    """area_bracket_price: first 500 sq ft $250, each further block $125."""

    def test_first_block_flat(self):
        assert area_bracket_price(300, 500, 250, 125, exact=False) == 250
        assert area_bracket_price(500, 500, 250, 125, exact=False) == 250

    def test_additional_blocks_round_up(self):
        """1200 sq ft: 700 extra -> 2 blocks."""
        assert area_bracket_price(1200, 500, 250, 125, exact=False) == 500

    def test_exact_is_pro_rata(self):
        """1200 sq ft exact: 700 / 500 = 1.4 blocks."""
        assert abs(area_bracket_price(1200, 500, 250, 125, exact=True) - 425.0) < 0.001

    def test_zero_area(self):
        assert area_bracket_price(0, 500, 250, 125, exact=False) == 0.0


# ===========================================================================
# Class 2: Fixture pricing and minimums
# ===========================================================================

class TestSaniScrubPricing:
    """Per-fixture pricing with per-frequency minimums."""

    def test_monthly_fixtures(self, saniscrub):
        result = saniscrub.calculate(dict(EIGHT_FIXTURES, frequency="monthly"))
        assert result.per_visit_price == 200.0
        assert result.monthly_recurring == 200.0
        assert result.contract_total == 2400.0

    def test_monthly_minimum(self, saniscrub):
        """4 fixtures x $25 = $100 -> $175 minimum."""
        result = saniscrub.calculate({"sinks": 2, "male_toilets": 2, "frequency": "monthly"})
        assert result.per_visit_price == 175.0
        assert result.minimum_per_visit == 175.0

    def test_quarterly_is_visit_based(self, saniscrub):
        """8 x $40 = $320 per visit, 4 visits a year."""
        result = saniscrub.calculate(dict(EIGHT_FIXTURES, frequency="quarterly"))
        assert result.per_visit_price == 320.0
        assert result.contract_total == 1280.0

    def test_non_bathroom_area_only(self, saniscrub):
        result = saniscrub.calculate({"non_bathroom_sqft": 1200})
        assert result.is_active
        assert result.per_visit_price == 500.0

    def test_unsupported_frequency_falls_back_to_monthly(self, saniscrub):
        result = saniscrub.calculate(dict(EIGHT_FIXTURES, frequency="weekly"))
        assert result.frequency == "monthly"

    def test_inactive_when_empty(self, saniscrub):
        assert not saniscrub.calculate({}).is_active


# ===========================================================================
# Class 3: Twice per month coupling
# ===========================================================================

class TestTwicePerMonth:
    """2x/month is discounted only when combined with SaniClean."""

    def test_combined_with_saniclean(self, saniscrub):
        """Two visits cost 2 x $200 - $15 = $385 a month."""
        form = dict(EIGHT_FIXTURES, frequency="twicePerMonth", has_saniclean=True)
        result = saniscrub.calculate(form)
        assert result.frequency == "twicePerMonth"
        assert result.per_visit_price == 192.5
        assert result.monthly_recurring == 385.0

    def test_without_saniclean_becomes_monthly(self, saniscrub):
        result = saniscrub.calculate(dict(EIGHT_FIXTURES, frequency="twicePerMonth"))
        assert result.frequency == "monthly"
        assert result.per_visit_price == 200.0


# ===========================================================================
# Class 4: Installation
# ===========================================================================

class TestSaniScrubInstall:
    """Install = visit x install multiplier (3 dirty, 1 clean), added once."""

    def test_dirty_install(self, saniscrub):
        form = dict(EIGHT_FIXTURES, frequency="monthly", include_install=True, is_dirty=True)
        result = saniscrub.calculate(form)
        assert result.installation == 600.0
        assert result.contract_total == 200.0 * 12 + 600.0
        assert result.first_month == 800.0

    def test_clean_install(self, saniscrub):
        form = dict(EIGHT_FIXTURES, frequency="monthly", include_install=True)
        assert saniscrub.calculate(form).installation == 200.0
