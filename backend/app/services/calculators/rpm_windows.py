"""
RPM Windows: interior/exterior window cleaning priced per pane.

per visit = (small x 1.50 + medium x 3.00 + large x 7.00 + mirrors x 1.50 + trip)
            x frequency multiplier x tier

A first-time clean adds a one-off installation charge of
per visit x (first-time multiplier - 1).
"""

from typing import Any, Dict, Mapping

from app.services.calculators.base import Priced, ServiceCalculator, count, money
from app.services.override_resolution import ResolvedForm, flag


DEFAULT_CONFIG: Dict[str, Any] = {
    "small_window_rate": 1.5,
    "medium_window_rate": 3.0,
    "large_window_rate": 7.0,
    "trip_charge": 8.0,
    "install_multiplier": 3.0,
    "price_multipliers": {
        "weekly": 1.0,
        "biweekly": 1.25,
        "twicePerMonth": 1.25,
        "monthly": 1.25,
        "bimonthly": 1.75,
        "quarterly": 2.0,
        "biannual": 2.5,
        "annual": 3.0,
        "oneTime": 3.0,
    },
    "quarterly_first_time_multiplier": 3.0,
}

_RATE_FIELDS = (
    "small_window_rate",
    "medium_window_rate",
    "large_window_rate",
    "trip_charge",
    "install_multiplier",
)


class RpmWindowsCalculator(ServiceCalculator):
    service_id = "rpm_windows"
    display_name = "RPM Windows"
    default_config = DEFAULT_CONFIG
    rate_fields = _RATE_FIELDS
    default_frequency = "weekly"

    def price_multiplier(self, frequency: str, first_time: bool) -> float:
        if frequency == "quarterly" and first_time:
            return float(self.config["quarterly_first_time_multiplier"])
        return float(self.config["price_multipliers"].get(frequency, 1.0))

    def price(self, form: Mapping[str, Any], rates: ResolvedForm) -> Priced:
        small = count(form, "small_windows")
        medium = count(form, "medium_windows")
        large = count(form, "large_windows")
        mirrors = count(form, "mirrors")
        if small + medium + large + mirrors <= 0:
            return Priced(active=False)

        frequency = self.frequency(form)
        first_time = flag(form, "is_first_time")
        priced = Priced(active=True, frequency=frequency)

        small_cost = self.override(form, priced, "small_windows_cost", small * rates.get("small_window_rate"))
        medium_cost = self.override(form, priced, "medium_windows_cost", medium * rates.get("medium_window_rate"))
        large_cost = self.override(form, priced, "large_windows_cost", large * rates.get("large_window_rate"))
        # Mirrors are cleaned at the small-window rate
        mirror_cost = mirrors * rates.get("small_window_rate")
        trip = self.override(form, priced, "trip_charge", rates.get("trip_charge"))

        multiplier = self.price_multiplier(frequency, first_time)
        tier = self.tier_multiplier(form)
        windows = small_cost + medium_cost + large_cost + mirror_cost
        priced.per_visit = (windows + trip) * multiplier * tier

        if first_time:
            priced.installation = priced.per_visit * (rates.get("install_multiplier") - 1)
            priced.breakdown.append(f"First-time clean {money(priced.installation)}")

        priced.line_items = {
            "small_windows": small_cost,
            "medium_windows": medium_cost,
            "large_windows": large_cost,
            "mirrors": mirror_cost,
            "trip_charge": trip,
        }
        priced.breakdown.append(
            f"Windows {money(windows)} + trip {money(trip)} x {multiplier:g} ({frequency})"
        )
        return priced
