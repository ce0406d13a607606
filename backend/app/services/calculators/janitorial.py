"""
Janitorial: general cleaning priced by labour hours.

Hours = manual hours + vacuuming hours + dusting places / 4 per hour.
Recurring visits bill max(hours, 4) x $30; one-time jobs use the $50 short
job rate. Small add-on tasks are priced from a time-tier table instead of
the hourly rate (24 minutes of add-on work costs the 30-minute tier, $20).
"""

from typing import Any, Dict, List, Mapping

from app.services.calculators.base import Priced, ServiceCalculator, lookup_bracket, money
from app.services.override_resolution import ResolvedForm, flag, number


DEFAULT_CONFIG: Dict[str, Any] = {
    "base_hourly_rate": 30.0,
    "short_job_hourly_rate": 50.0,
    "minimum_hours": 4.0,
    "dusting_places_per_hour": 4.0,
    "dusting_price_per_place": 7.5,
    # Weekday service: 5 visits x 4.33 weeks
    "frequency_multipliers": {"daily": 21.65},
    "addon_tiers": [
        {"up_to_minutes": 15, "price": 10.0, "addon_only": True},
        {"up_to_minutes": 30, "price": 20.0, "standalone_price": 35.0},
        {"up_to_hours": 1, "price": 50.0},
        {"up_to_hours": 2, "price": 80.0},
        {"up_to_hours": 3, "price": 100.0},
        {"up_to_hours": 4, "price": 120.0},
        {"up_to_hours": 999, "rate_per_hour": 30.0},
    ],
}

_RATE_FIELDS = (
    "base_hourly_rate",
    "short_job_hourly_rate",
    "minimum_hours",
    "dusting_places_per_hour",
    "dusting_price_per_place",
)


def addon_brackets(tiers: List[Mapping[str, Any]], standalone: bool) -> List[Dict[str, float]]:
    """Normalise the tier table to hour-based brackets for lookup_bracket()."""
    brackets = []
    for tier in tiers:
        if standalone and tier.get("addon_only"):
            continue
        if "up_to_minutes" in tier:
            up_to = float(tier["up_to_minutes"]) / 60.0
        else:
            up_to = float(tier["up_to_hours"])
        if "rate_per_hour" in tier:
            brackets.append({"up_to": up_to, "rate": float(tier["rate_per_hour"])})
            continue
        price = tier.get("standalone_price") if standalone and "standalone_price" in tier else tier["price"]
        brackets.append({"up_to": up_to, "price": float(price)})
    return brackets


class JanitorialCalculator(ServiceCalculator):
    service_id = "janitorial"
    display_name = "Janitorial"
    default_config = DEFAULT_CONFIG
    rate_fields = _RATE_FIELDS
    default_frequency = "weekly"

    def addon_hours(self, form: Mapping[str, Any]) -> float:
        if form.get("addon_minutes") not in (None, ""):
            return number(form, "addon_minutes") / 60.0
        return number(form, "addon_hours")

    def addon_price(self, hours: float, standalone: bool, rates: ResolvedForm) -> float:
        if hours <= 0:
            return 0.0
        brackets = addon_brackets(self.config["addon_tiers"], standalone)
        return lookup_bracket(hours, brackets, overflow_rate=rates.get("base_hourly_rate"))

    def price(self, form: Mapping[str, Any], rates: ResolvedForm) -> Priced:
        places = number(form, "dusting_places")
        places_per_hour = rates.get("dusting_places_per_hour") or 1.0
        hours = number(form, "manual_hours") + number(form, "vacuuming_hours") + places / places_per_hour
        addon_hours = self.addon_hours(form)
        if hours <= 0 and addon_hours <= 0:
            return Priced(active=False)

        frequency = self.frequency(form)
        priced = Priced(active=True, frequency=frequency)
        rate = rates.get("short_job_hourly_rate") if frequency == "oneTime" else rates.get("base_hourly_rate")

        labour = 0.0
        if hours > 0:
            billed_hours = max(hours, rates.get("minimum_hours"))
            labour = billed_hours * rate
            priced.minimum = rates.get("minimum_hours") * rate
            priced.breakdown.append(f"{billed_hours:g} hrs @ {money(rate)}/hr = {money(labour)}")
        labour = self.override(form, priced, "labour", labour)

        addon = self.addon_price(addon_hours, flag(form, "addon_standalone"), rates)
        addon = self.override(form, priced, "addon", addon)
        if addon:
            priced.breakdown.append(f"Add-on {addon_hours * 60:.0f} min = {money(addon)}")

        priced.per_visit = labour + addon
        if frequency == "weekly":
            priced.visits_factor = max(1.0, number(form, "visits_per_week", 1.0))

        if flag(form, "is_dirty") and places > 0:
            dusting = places * rates.get("dusting_price_per_place")
            priced.installation = dusting * (self.install_multiplier(form) - 1)
            priced.breakdown.append(f"Initial dirty dusting {money(priced.installation)}")

        priced.line_items = {"labour": labour, "addon": addon}
        return priced
