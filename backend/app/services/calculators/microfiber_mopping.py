"""
Microfiber Mopping: bathroom and floor mopping add-on.

  bathrooms       $10 each (included when SaniClean is all-inclusive)
  huge bathrooms  $10 per 300 sq ft
  extra area      max($100, $10 per 400 sq ft)
  standalone      $10 per 200 sq ft, $40 minimum
  chemicals       $27.34 per gallon per month, billed monthly
"""

import math
from typing import Any, Dict, Mapping

from app.services.calculators.base import Priced, ServiceCalculator, count, money
from app.services.override_resolution import ResolvedForm, flag, number


DEFAULT_CONFIG: Dict[str, Any] = {
    "bathroom_rate": 10.0,
    "huge_bathroom_sqft_unit": 300.0,
    "huge_bathroom_rate": 10.0,
    "extra_area_sqft_unit": 400.0,
    "extra_area_rate": 10.0,
    "extra_area_minimum": 100.0,
    "standalone_sqft_unit": 200.0,
    "standalone_rate": 10.0,
    "standalone_minimum": 40.0,
    "chemical_per_gallon_monthly": 27.34,
}

_RATE_FIELDS = tuple(k for k in DEFAULT_CONFIG if not k.endswith("_unit"))


def _blocks(sqft: float, unit: float) -> int:
    return math.ceil(sqft / unit) if sqft > 0 else 0


class MicrofiberMoppingCalculator(ServiceCalculator):
    service_id = "microfiber_mopping"
    display_name = "Microfiber Mopping"
    default_config = DEFAULT_CONFIG
    rate_fields = _RATE_FIELDS
    default_frequency = "weekly"

    def price(self, form: Mapping[str, Any], rates: ResolvedForm) -> Priced:
        bathrooms = count(form, "bathrooms")
        huge_sqft = number(form, "huge_bathroom_sqft")
        extra_sqft = number(form, "extra_area_sqft")
        standalone_sqft = number(form, "standalone_sqft")
        gallons = number(form, "chemical_gallons")
        if bathrooms + huge_sqft + extra_sqft + standalone_sqft + gallons <= 0:
            return Priced(active=False)

        cfg = self.config
        priced = Priced(active=True, apply_minimum=False)

        bathroom_cost = 0.0
        if not flag(form, "saniclean_all_inclusive"):
            bathroom_cost = bathrooms * rates.get("bathroom_rate")
        elif bathrooms:
            priced.breakdown.append("Bathrooms included with SaniClean all-inclusive")
        huge_cost = _blocks(huge_sqft, float(cfg["huge_bathroom_sqft_unit"])) * rates.get("huge_bathroom_rate")
        extra_cost = 0.0
        if extra_sqft > 0:
            extra_cost = max(
                rates.get("extra_area_minimum"),
                _blocks(extra_sqft, float(cfg["extra_area_sqft_unit"])) * rates.get("extra_area_rate"),
            )
        standalone_cost = 0.0
        if standalone_sqft > 0:
            priced.minimum = rates.get("standalone_minimum")
            standalone_cost = max(
                priced.minimum,
                _blocks(standalone_sqft, float(cfg["standalone_sqft_unit"])) * rates.get("standalone_rate"),
            )

        bathroom_cost = self.override(form, priced, "bathrooms", bathroom_cost)
        extra_cost = self.override(form, priced, "extra_area", extra_cost)
        standalone_cost = self.override(form, priced, "standalone", standalone_cost)
        chemicals = self.override(
            form, priced, "chemicals", gallons * rates.get("chemical_per_gallon_monthly")
        )

        priced.per_visit = bathroom_cost + huge_cost + extra_cost + standalone_cost
        priced.extra_monthly = chemicals
        priced.line_items = {
            "bathrooms": bathroom_cost,
            "huge_bathrooms": huge_cost,
            "extra_area": extra_cost,
            "standalone": standalone_cost,
            "chemicals": chemicals,
        }
        for label, amount in (
            ("Bathrooms", bathroom_cost),
            ("Huge bathrooms", huge_cost),
            ("Extra area", extra_cost),
            ("Standalone", standalone_cost),
            ("Chemical supply (monthly)", chemicals),
        ):
            if amount:
                priced.breakdown.append(f"{label}: {money(amount)}")
        return priced
