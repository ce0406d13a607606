"""
Electrostatic Spray: disinfection fogging.

byRoom:  rooms x $20
bySqFt:  $50 per 1,000 sq ft (whole blocks unless exact pricing is chosen)
Trip $10 inside the beltway, waived when combined with SaniClean.
"""

import math
from typing import Any, Dict, Mapping

from app.services.calculators.base import Priced, ServiceCalculator, count, money
from app.services.calculators.saniclean import is_inside_beltway
from app.services.override_resolution import ResolvedForm, flag, number


DEFAULT_CONFIG: Dict[str, Any] = {
    "rate_per_room": 20.0,
    "sqft_unit": 1000.0,
    "rate_per_sqft_unit": 50.0,
    "inside_trip_charge": 10.0,
    "outside_trip_charge": 0.0,
}

_RATE_FIELDS = ("rate_per_room", "rate_per_sqft_unit", "inside_trip_charge", "outside_trip_charge")


class ElectrostaticSprayCalculator(ServiceCalculator):
    service_id = "electrostatic_spray"
    display_name = "Electrostatic Spray"
    default_config = DEFAULT_CONFIG
    rate_fields = _RATE_FIELDS
    default_frequency = "weekly"

    def service_charge(self, form: Mapping[str, Any], rates: ResolvedForm) -> float:
        if str(form.get("pricing_method") or "byRoom") == "bySqFt":
            sqft = number(form, "square_feet")
            unit = float(self.config["sqft_unit"])
            units = sqft / unit if flag(form, "use_exact_sqft") else math.ceil(sqft / unit)
            return units * rates.get("rate_per_sqft_unit")
        return count(form, "rooms") * rates.get("rate_per_room")

    def price(self, form: Mapping[str, Any], rates: ResolvedForm) -> Priced:
        charge = self.service_charge(form, rates)
        if charge <= 0:
            return Priced(active=False)

        priced = Priced(active=True)
        charge = self.override(form, priced, "service_charge", charge)
        trip = 0.0
        if not flag(form, "combined_with_saniclean"):
            trip = rates.get("inside_trip_charge") if is_inside_beltway(form) else rates.get("outside_trip_charge")
        trip = self.override(form, priced, "trip_charge", trip)

        priced.per_visit = (charge + trip) * self.tier_multiplier(form)
        priced.line_items = {"service_charge": charge, "trip_charge": trip}
        priced.breakdown.append(f"Spray {money(charge)} + trip {money(trip)}")
        return priced
