"""
Refresh Power Scrub: pressure-wash / degrease visits priced per area.

Areas: dumpster, patio, walkway, foh (front of house), boh (back of house /
kitchen) and other. Every enabled area chooses a pricing type:

  preset      package price for the area (dumpster = minimum visit per unit,
              patio standalone/upsell, FOH flat, BOH by kitchen size)
  perHour     trip + hours x hourly rate
  perWorker   trip + workers x worker rate
  squareFeet  fixed fee + inside sq ft x 0.60 + outside sq ft x 0.40 + trip
  custom      salesperson-entered amount

Computed (non-custom) area totals never drop below the minimum visit.
"""

from typing import Any, Dict, List, Mapping

from app.services.calculators.base import Priced, ServiceCalculator, money
from app.services.override_resolution import ResolvedForm, clamp_number, flag, number


AREA_KEYS: List[str] = ["dumpster", "patio", "walkway", "foh", "boh", "other"]
PRICING_TYPES = ("preset", "perHour", "perWorker", "squareFeet", "custom")
DRAFT_SCHEMA = "refreshPowerScrubDraftV2"

DEFAULT_CONFIG: Dict[str, Any] = {
    "hourly_rate": 200.0,
    "worker_rate": 200.0,
    "trip_charge": 75.0,
    "minimum_visit": 475.0,
    "sqft_fixed_fee": 200.0,
    "sqft_inside_rate": 0.6,
    "sqft_outside_rate": 0.4,
    "presets": {
        "patio_standalone": 875.0,
        "patio_upsell": 500.0,
        "patio_addon": 500.0,
        "foh": 2500.0,
        "boh_small_medium": 1500.0,
        "boh_large": 2500.0,
    },
}

_RATE_FIELDS = (
    "hourly_rate",
    "worker_rate",
    "trip_charge",
    "minimum_visit",
    "sqft_fixed_fee",
    "sqft_inside_rate",
    "sqft_outside_rate",
)

_AREA_LABELS = {
    "dumpster": "Dumpster",
    "patio": "Patio",
    "walkway": "Walkway",
    "foh": "Front of House",
    "boh": "Back of House",
    "other": "Other",
}


def enabled_areas(form: Mapping[str, Any]) -> Dict[str, Mapping[str, Any]]:
    areas = form.get("areas") or {}
    return {
        key: areas[key]
        for key in AREA_KEYS
        if isinstance(areas.get(key), Mapping) and flag(areas[key], "enabled")
    }


def to_draft(form: Mapping[str, Any]) -> Dict[str, Any]:
    """Serialise a form as a refreshPowerScrubDraftV2 payload (enabled areas only)."""
    areas = enabled_areas(form)
    draft: Dict[str, Any] = {
        "schema": DRAFT_SCHEMA,
        "isActive": bool(areas),
        "frequency": form.get("frequency") or "oneTime",
        "areas": {key: dict(area) for key, area in areas.items()},
    }
    for name in _RATE_FIELDS:
        if form.get(name) is not None:
            draft[name] = form[name]
    return draft


class RefreshPowerScrubCalculator(ServiceCalculator):
    service_id = "refresh_power_scrub"
    display_name = "Refresh Power Scrub"
    default_config = DEFAULT_CONFIG
    rate_fields = _RATE_FIELDS
    default_frequency = "oneTime"

    def _preset(self, key: str, area: Mapping[str, Any], rates: ResolvedForm) -> float:
        presets = self.config["presets"]
        minimum = rates.get("minimum_visit")
        if key in ("dumpster", "other"):
            return minimum * number(area, "quantity", 1.0)
        if key == "patio":
            mode = str(area.get("patio_mode") or "standalone")
            base = float(presets["patio_upsell"] if mode == "upsell" else presets["patio_standalone"])
            if flag(area, "include_patio_addon"):
                base += float(presets["patio_addon"])
            return base
        if key == "foh":
            return float(presets["foh"])
        if key == "boh":
            small_medium = number(area, "small_medium_qty")
            large = number(area, "large_qty")
            if small_medium or large:
                return small_medium * float(presets["boh_small_medium"]) + large * float(presets["boh_large"])
            if str(area.get("kitchen_size") or "smallMedium") == "large":
                return float(presets["boh_large"])
            return float(presets["boh_small_medium"])
        return self._square_feet(area, rates)

    def _square_feet(self, area: Mapping[str, Any], rates: ResolvedForm) -> float:
        return (
            rates.get("sqft_fixed_fee")
            + number(area, "inside_sqft") * rates.get("sqft_inside_rate")
            + number(area, "outside_sqft") * rates.get("sqft_outside_rate")
            + rates.get("trip_charge")
        )

    def area_price(self, key: str, area: Mapping[str, Any], rates: ResolvedForm) -> float:
        pricing_type = str(area.get("pricing_type") or "preset")
        if pricing_type not in PRICING_TYPES:
            pricing_type = "preset"
        if pricing_type == "custom":
            return clamp_number(f"{key}.custom_amount", area.get("custom_amount")) or 0.0

        minimum = rates.get("minimum_visit")
        if pricing_type == "perHour":
            raw = rates.get("trip_charge") + number(area, "hours") * rates.get("hourly_rate")
        elif pricing_type == "perWorker":
            raw = rates.get("trip_charge") + number(area, "workers") * rates.get("worker_rate")
        elif pricing_type == "squareFeet":
            raw = self._square_feet(area, rates)
        else:
            raw = self._preset(key, area, rates)
        return max(raw, minimum)

    def price(self, form: Mapping[str, Any], rates: ResolvedForm) -> Priced:
        areas = enabled_areas(form)
        if not areas:
            return Priced(active=False)

        tier = self.tier_multiplier(form)
        priced = Priced(active=True, minimum=rates.get("minimum_visit"), apply_minimum=False)
        total = 0.0
        for key, area in areas.items():
            amount = self.override(form, priced, f"{key}_total", self.area_price(key, area, rates) * tier)
            priced.line_items[key] = amount
            priced.breakdown.append(
                f"{_AREA_LABELS[key]} ({area.get('pricing_type') or 'preset'}): {money(amount)}"
            )
            total += amount
        priced.per_visit = total
        return priced
