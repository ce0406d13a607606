"""Grease Trap: pump-outs priced per trap plus per gallon. Supports daily service."""

from typing import Any, Dict, Mapping

from app.services.calculators.base import Priced, ServiceCalculator, count, money
from app.services.override_resolution import ResolvedForm, number


DEFAULT_CONFIG: Dict[str, Any] = {
    "per_trap_rate": 125.0,
    "per_gallon_rate": 0.5,
    "frequency_multipliers": {"daily": 30.0},
}

_RATE_FIELDS = ("per_trap_rate", "per_gallon_rate")


class GreaseTrapCalculator(ServiceCalculator):
    service_id = "grease_trap"
    display_name = "Grease Trap"
    default_config = DEFAULT_CONFIG
    rate_fields = _RATE_FIELDS
    default_frequency = "monthly"

    def price(self, form: Mapping[str, Any], rates: ResolvedForm) -> Priced:
        traps = count(form, "traps")
        if traps <= 0:
            return Priced(active=False)

        priced = Priced(active=True)
        trap_cost = traps * rates.get("per_trap_rate")
        gallons = number(form, "gallons")
        gallon_cost = gallons * rates.get("per_gallon_rate")
        priced.per_visit = trap_cost + gallon_cost
        priced.line_items = {"traps": trap_cost, "gallons": gallon_cost}
        priced.breakdown.append(f"{int(traps)} traps = {money(trap_cost)}")
        if gallons:
            priced.breakdown.append(f"{gallons:,.0f} gal = {money(gallon_cost)}")
        return priced
