"""Carpet Clean: area-bracket pricing: $250 for the first 500 sq ft, $125 per further 500."""

from typing import Any, Dict, Mapping

from app.services.calculators.base import Priced, ServiceCalculator, money
from app.services.calculators.saniscrub import area_bracket_price
from app.services.override_resolution import ResolvedForm, flag, number


DEFAULT_CONFIG: Dict[str, Any] = {
    "unit_sqft": 500.0,
    "first_unit_rate": 250.0,
    "additional_unit_rate": 125.0,
    "minimum_per_visit": 250.0,
}

_RATE_FIELDS = ("first_unit_rate", "additional_unit_rate", "minimum_per_visit")


class CarpetCalculator(ServiceCalculator):
    service_id = "carpet"
    display_name = "Carpet Clean"
    default_config = DEFAULT_CONFIG
    rate_fields = _RATE_FIELDS
    default_frequency = "monthly"
    allowed_frequencies = ("monthly", "twicePerMonth", "bimonthly", "quarterly")

    def price(self, form: Mapping[str, Any], rates: ResolvedForm) -> Priced:
        sqft = number(form, "area_sqft")
        if sqft <= 0:
            return Priced(active=False)

        priced = Priced(active=True, minimum=rates.get("minimum_per_visit"))
        base = area_bracket_price(
            sqft,
            float(self.config["unit_sqft"]),
            rates.get("first_unit_rate"),
            rates.get("additional_unit_rate"),
            flag(form, "use_exact_sqft"),
        )
        base = self.override(form, priced, "area_price", base)
        priced.per_visit = base
        priced.breakdown.append(f"{sqft:,.0f} sq ft = {money(base)}")

        if flag(form, "include_install"):
            priced.installation = max(base, priced.minimum) * self.install_multiplier(form)
            priced.breakdown.append(f"Install {money(priced.installation)}")
        priced.line_items = {"area_price": base}
        return priced
