"""
conftest.py: Shared pytest fixtures for the CleanQuote backend test suite.

Calculator and aggregation tests are pure unit tests. Config-provider tests
use httpx.MockTransport; route tests swap the database session for an
in-memory fake via FastAPI dependency overrides.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``app.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import sys
import os
import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any app imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


# ---------------------------------------------------------------------------
# Config provider / engine fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def static_provider():
    """PricingConfigProvider with no remote store: static defaults only."""
    from app.services.pricing_config import PricingConfigProvider
    return PricingConfigProvider(base_url="")


@pytest.fixture
def quote_engine(static_provider):
    """QuoteEngine over static defaults."""
    from app.services.quote_engine import QuoteEngine
    return QuoteEngine(static_provider)


@pytest.fixture
def calculator():
    """
    Factory: calculator(service_id, **config_overrides) -> ServiceCalculator
    built on static defaults deep-merged with the overrides.
    """
    from app.services.calculators.registry import SERVICE_CALCULATORS

    def _build(service_id, **overrides):
        return SERVICE_CALCULATORS[service_id](overrides)
    return _build


# ---------------------------------------------------------------------------
# Shared sample forms
# ---------------------------------------------------------------------------

@pytest.fixture
def saniclean_form():
    """
    12 fixtures inside the beltway, red rate, weekly.
    4 sinks + 4 urinals + 2 male toilets + 2 female toilets.
    Per visit = 12 x $7 = $84 (above the $40 region minimum).
    """
    return {
        "sinks": 4,
        "urinals": 4,
        "male_toilets": 2,
        "female_toilets": 2,
        "location": "insideBeltway",
        "frequency": "weekly",
    }


@pytest.fixture
def rpm_form():
    """
    10 small + 5 medium + 2 large windows, weekly.
    Windows = 15 + 15 + 14 = $44; + $8 trip = $52 per visit at x1.0.
    """
    return {
        "small_windows": 10,
        "medium_windows": 5,
        "large_windows": 2,
        "frequency": "weekly",
    }
