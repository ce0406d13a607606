"""
Frequency table shared by every service calculator.

Covers:
  - Canonical frequency keys and label normalisation
  - Monthly multipliers (visits per month) and visits per year
  - Visit-based vs monthly-based contract derivation
  - Contract-month clamping (2..36)
  - rollup(): per-visit price -> monthly / contract / annual / first month
"""

import math
import re
from typing import Any, Dict, Optional


# ---------------------------------------------------------------------------
# Canonical frequency table
# ---------------------------------------------------------------------------
MONTHLY_MULTIPLIERS: Dict[str, float] = {
    "oneTime": 0.0,
    "weekly": 4.33,
    "biweekly": 2.165,
    "twicePerMonth": 2.0,
    "monthly": 1.0,
    "bimonthly": 0.5,         # every two months
    "quarterly": 0.333,
    "biannual": 0.167,
    "annual": 0.083,
}

VISITS_PER_YEAR: Dict[str, int] = {
    "oneTime": 1,
    "weekly": 52,
    "biweekly": 26,
    "twicePerMonth": 24,
    "monthly": 12,
    "bimonthly": 6,
    "quarterly": 4,
    "biannual": 2,
    "annual": 1,
}

# Contract total is per visit x visits rather than monthly x months
VISIT_BASED_FREQUENCIES = frozenset({"oneTime", "quarterly", "biannual", "annual"})

DEFAULT_CONTRACT_MONTHS: int = 12
MIN_CONTRACT_MONTHS: int = 2
MAX_CONTRACT_MONTHS: int = 36

_FREQUENCY_ALIASES: Dict[str, str] = {
    "daily": "daily",
    "onetime": "oneTime",
    "once": "oneTime",
    "single": "oneTime",
    "weekly": "weekly",
    "everyweek": "weekly",
    "biweekly": "biweekly",
    "every2weeks": "biweekly",
    "everyotherweek": "biweekly",
    "fortnightly": "biweekly",
    "twicepermonth": "twicePerMonth",
    "2permonth": "twicePerMonth",
    "2xpermonth": "twicePerMonth",
    "2month": "twicePerMonth",
    "2xmonth": "twicePerMonth",
    "semimonthly": "twicePerMonth",
    "monthly": "monthly",
    "everymonth": "monthly",
    "bimonthly": "bimonthly",
    "every2months": "bimonthly",
    "everyothermonth": "bimonthly",
    "quarterly": "quarterly",
    "every3months": "quarterly",
    "biannual": "biannual",
    "biannually": "biannual",
    "semiannual": "biannual",
    "semiannually": "biannual",
    "every6months": "biannual",
    "annual": "annual",
    "annually": "annual",
    "yearly": "annual",
}


def normalize_frequency(value: Any, default: str = "weekly") -> str:
    """
    Map a frequency label from any saved shape onto a canonical key.

    "Bi-Weekly", "bi_weekly", "2× / Month", "One Time", "one_time" all resolve.
    Unknown labels fall back to ``default``.
    """
    if value is None:
        return default
    raw = str(value).strip()
    if not raw:
        return default
    if raw in MONTHLY_MULTIPLIERS:
        return raw
    compact = raw.lower().replace("×", "x").replace("times", "x")
    compact = re.sub(r"[\s_\-/.]+", "", compact)
    return _FREQUENCY_ALIASES.get(compact, default)


def _table(overrides: Optional[Dict[str, float]]) -> Dict[str, float]:
    if not overrides:
        return MONTHLY_MULTIPLIERS
    merged = dict(MONTHLY_MULTIPLIERS)
    merged.update({k: float(v) for k, v in overrides.items()})
    return merged


def monthly_multiplier(frequency: str, overrides: Optional[Dict[str, float]] = None) -> float:
    """Visits per month for a frequency. ``overrides`` extends the table per service."""
    return _table(overrides).get(frequency, 0.0)


def visits_per_year(frequency: str, overrides: Optional[Dict[str, float]] = None) -> float:
    if overrides and frequency in overrides:
        return float(overrides[frequency]) * 12
    if frequency in VISITS_PER_YEAR:
        return VISITS_PER_YEAR[frequency]
    return monthly_multiplier(frequency, overrides) * 12


def is_visit_based(frequency: str) -> bool:
    return frequency in VISIT_BASED_FREQUENCIES


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_contract_months(value: Any) -> int:
    """Contract length in months, clamped to 2..36 (default 12)."""
    try:
        months = int(float(value))
    except (TypeError, ValueError):
        return DEFAULT_CONTRACT_MONTHS
    if months <= 0:
        return DEFAULT_CONTRACT_MONTHS
    return max(MIN_CONTRACT_MONTHS, min(MAX_CONTRACT_MONTHS, months))


def visits_in_contract(
    frequency: str,
    contract_months: int,
    overrides: Optional[Dict[str, float]] = None,
) -> int:
    """Number of visits a contract of ``contract_months`` contains (one-time = 1)."""
    if frequency == "oneTime":
        return 1
    return round_half_up(visits_per_year(frequency, overrides) * contract_months / 12.0)


def rollup(
    per_visit: float,
    frequency: str,
    contract_months: int,
    installation: float = 0.0,
    overrides: Optional[Dict[str, float]] = None,
    visits_factor: float = 1.0,
) -> Dict[str, float]:
    """
    Derive monthly / contract / annual / first-month totals from a per-visit price.

    Monthly-based frequencies:  contract = monthly x months + installation
    Visit-based frequencies:    contract = per visit x visits in contract + installation
    Installation is always added exactly once. ``visits_factor`` scales the
    visit count for services booked several times per period (e.g. 3 visits a week).
    """
    mult = monthly_multiplier(frequency, overrides) * visits_factor
    monthly = per_visit * mult
    if is_visit_based(frequency):
        visits = visits_in_contract(frequency, contract_months, overrides)
        if frequency != "oneTime":
            visits = visits * visits_factor
        contract = per_visit * visits
    else:
        contract = monthly * contract_months
    annual = per_visit * visits_per_year(frequency, overrides)
    if frequency != "oneTime":
        annual = annual * visits_factor
    return {
        "monthly": round(monthly, 2),
        "contract": round(contract + installation, 2),
        "annual": round(annual + installation, 2),
        "first_month": round(monthly + installation, 2),
    }
