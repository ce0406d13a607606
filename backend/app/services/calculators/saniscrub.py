"""
SaniScrub: deep restroom scrub, monthly or less often.

Bathroom fixtures are priced per fixture with a per-frequency minimum.
Non-bathroom floor area uses a 500 sq ft bracket: $250 for the first block,
$125 for each additional block (or pro-rata when exact pricing is chosen).

Twice-per-month is only discounted when the customer also has SaniClean:
the second visit is combined with a SaniClean trip and the pair costs
2 x visit - $15. Without SaniClean the frequency falls back to monthly.
"""

import math
from typing import Any, Dict, Mapping

from app.services.calculators.base import Priced, ServiceCalculator, count, money
from app.services.override_resolution import ResolvedForm, flag, number


DEFAULT_CONFIG: Dict[str, Any] = {
    "fixture_rates": {
        "monthly": 25.0,
        "twicePerMonth": 25.0,
        "bimonthly": 35.0,
        "quarterly": 40.0,
    },
    "minimums": {
        "monthly": 175.0,
        "twicePerMonth": 175.0,
        "bimonthly": 250.0,
        "quarterly": 250.0,
    },
    "non_bathroom_unit_sqft": 500.0,
    "non_bathroom_first_unit_rate": 250.0,
    "non_bathroom_additional_unit_rate": 125.0,
    "twice_per_month_discount": 15.0,
}

_RATE_FIELDS = (
    "non_bathroom_first_unit_rate",
    "non_bathroom_additional_unit_rate",
    "twice_per_month_discount",
)


def area_bracket_price(sqft: float, unit: float, first_rate: float, additional_rate: float, exact: bool) -> float:
    """First ``unit`` sq ft at ``first_rate``, each further block at ``additional_rate``."""
    if sqft <= 0:
        return 0.0
    if sqft <= unit:
        return first_rate
    extra = sqft - unit
    blocks = extra / unit if exact else math.ceil(extra / unit)
    return first_rate + blocks * additional_rate


class SaniScrubCalculator(ServiceCalculator):
    service_id = "saniscrub"
    display_name = "SaniScrub"
    default_config = DEFAULT_CONFIG
    rate_fields = _RATE_FIELDS
    default_frequency = "monthly"
    allowed_frequencies = ("monthly", "twicePerMonth", "bimonthly", "quarterly")

    def frequency(self, form: Mapping[str, Any]) -> str:
        value = super().frequency(form)
        if value == "twicePerMonth" and not flag(form, "has_saniclean"):
            return "monthly"
        return value

    def price(self, form: Mapping[str, Any], rates: ResolvedForm) -> Priced:
        fixtures = (
            count(form, "sinks")
            + count(form, "urinals")
            + count(form, "male_toilets")
            + count(form, "female_toilets")
        )
        sqft = number(form, "non_bathroom_sqft")
        if fixtures <= 0 and sqft <= 0:
            return Priced(active=False)

        frequency = self.frequency(form)
        priced = Priced(active=True, frequency=frequency, apply_minimum=False)
        fixture_rate = float(self.config["fixture_rates"].get(frequency, 25.0))
        fixture_minimum = float(self.config["minimums"].get(frequency, 175.0))

        bathroom = 0.0
        if fixtures > 0:
            bathroom = max(fixtures * fixture_rate, fixture_minimum)
            priced.breakdown.append(
                f"{int(fixtures)} fixtures x {money(fixture_rate)} (min {money(fixture_minimum)}) = {money(bathroom)}"
            )
        bathroom = self.override(form, priced, "bathroom", bathroom)

        non_bathroom = area_bracket_price(
            sqft,
            float(self.config["non_bathroom_unit_sqft"]),
            rates.get("non_bathroom_first_unit_rate"),
            rates.get("non_bathroom_additional_unit_rate"),
            flag(form, "use_exact_sqft"),
        )
        if non_bathroom:
            priced.breakdown.append(f"Non-bathroom {sqft:,.0f} sq ft = {money(non_bathroom)}")
        non_bathroom = self.override(form, priced, "non_bathroom", non_bathroom)

        visit = bathroom + non_bathroom
        if fixtures > 0:
            priced.minimum = fixture_minimum
        else:
            priced.minimum = rates.get("non_bathroom_first_unit_rate")
        visit = max(visit, priced.minimum)

        if frequency == "twicePerMonth":
            # Pair of visits costs 2 x visit - discount
            discount = rates.get("twice_per_month_discount")
            priced.per_visit = visit - discount / 2
            priced.breakdown.append(f"Combined with SaniClean: {money(2 * visit - discount)} per month")
        else:
            priced.per_visit = visit

        if flag(form, "include_install"):
            priced.installation = visit * self.install_multiplier(form)
            priced.breakdown.append(f"Install {money(priced.installation)}")

        priced.line_items = {"bathroom": bathroom, "non_bathroom": non_bathroom}
        return priced
