"""
SaniClean: restroom hygiene service priced per fixture.

Fixtures = sinks + urinals + male toilets + female toilets.

Per-item mode (geographic):
  base = fixtures x rate (inside beltway 7, outside 6) x tier
  small facility (<= 5 fixtures): base floored at $50, trip included
  otherwise: base floored at the region minimum, trip / parking on request
  add-ons: luxury soap, excess soap, microfiber, warranty
  facility components are billed monthly at their own frequency

All-inclusive mode:
  fixtures x $20 x tier + soap upgrade + excess soap + paper overage;
  trip, warranty, microfiber and facility components are waived.
"""

import math
from typing import Any, Dict, Mapping

from app.services import frequency as freq
from app.services.calculators.base import Priced, ServiceCalculator, count, money
from app.services.override_resolution import ResolvedForm, flag, number


DEFAULT_CONFIG: Dict[str, Any] = {
    "inside_rate_per_fixture": 7.0,
    "outside_rate_per_fixture": 6.0,
    "inside_minimum": 40.0,
    "outside_minimum": 0.0,
    "small_facility_threshold": 5,
    "small_facility_minimum": 50.0,
    "trip_charge": 8.0,
    "parking_fee": 7.0,
    "all_inclusive_rate_per_fixture": 20.0,
    "all_inclusive_auto_threshold": 8,
    "luxury_soap_upgrade_per_dispenser": 5.0,
    "excess_standard_soap_per_gallon": 13.0,
    "excess_luxury_soap_per_gallon": 30.0,
    "microfiber_per_bathroom": 10.0,
    "warranty_per_dispenser": 1.0,
    "paper_credit_per_fixture": 5.0,
    "facility_components": {
        "urinal_screen": 8.0,
        "urinal_mat": 8.0,
        "toilet_clip": 2.0,
        "seat_cover_dispenser": 2.0,
        "sanipod": 4.0,
    },
}

_RATE_FIELDS = (
    "inside_rate_per_fixture",
    "outside_rate_per_fixture",
    "inside_minimum",
    "outside_minimum",
    "small_facility_minimum",
    "trip_charge",
    "parking_fee",
    "all_inclusive_rate_per_fixture",
    "luxury_soap_upgrade_per_dispenser",
    "excess_standard_soap_per_gallon",
    "excess_luxury_soap_per_gallon",
    "microfiber_per_bathroom",
    "warranty_per_dispenser",
    "paper_credit_per_fixture",
)

# (group flag, quantity field, component rate key)
_FACILITY_COMPONENTS = (
    ("include_urinal_components", "urinal_screens", "urinal_screen"),
    ("include_urinal_components", "urinal_mats", "urinal_mat"),
    ("include_male_toilet_components", "toilet_clips", "toilet_clip"),
    ("include_male_toilet_components", "seat_cover_dispensers", "seat_cover_dispenser"),
    ("include_female_toilet_components", "sanipods", "sanipod"),
)


def is_inside_beltway(form: Mapping[str, Any]) -> bool:
    location = str(form.get("location") or "insideBeltway").lower()
    return location.startswith("inside")


def fixture_count(form: Mapping[str, Any]) -> float:
    return (
        count(form, "sinks")
        + count(form, "urinals")
        + count(form, "male_toilets")
        + count(form, "female_toilets")
    )


class SaniCleanCalculator(ServiceCalculator):
    service_id = "saniclean"
    display_name = "SaniClean"
    default_config = DEFAULT_CONFIG
    rate_fields = _RATE_FIELDS
    default_frequency = "weekly"

    def pricing_mode(self, form: Mapping[str, Any], fixtures: float) -> str:
        mode = str(form.get("pricing_mode") or "per_item_charge")
        if mode in ("all_inclusive", "allInclusive"):
            return "all_inclusive"
        if mode == "auto":
            threshold = float(self.config.get("all_inclusive_auto_threshold", 8))
            return "all_inclusive" if fixtures >= threshold else "per_item_charge"
        return "per_item_charge"

    def _soap(self, form: Mapping[str, Any], rates: ResolvedForm, priced: Priced, sinks: float):
        luxury = str(form.get("soap_type") or "standard") == "luxury"
        upgrade = 0.0
        if luxury:
            qty = number(form, "luxury_upgrade_qty", sinks)
            upgrade = qty * rates.get("luxury_soap_upgrade_per_dispenser")
        gallon_rate = rates.get("excess_luxury_soap_per_gallon") if luxury else rates.get("excess_standard_soap_per_gallon")
        excess = number(form, "excess_soap_gallons") * gallon_rate
        upgrade = self.override(form, priced, "soap_upgrade", upgrade)
        excess = self.override(form, priced, "excess_soap", excess)
        return upgrade, excess

    def price(self, form: Mapping[str, Any], rates: ResolvedForm) -> Priced:
        fixtures = fixture_count(form)
        if fixtures <= 0:
            return Priced(active=False)

        sinks = count(form, "sinks")
        tier = self.tier_multiplier(form)
        priced = Priced(active=True, apply_minimum=False)
        soap_dispensers = sinks
        air_fresheners = math.ceil(sinks / 2)
        priced.breakdown.append(f"Fixtures: {int(fixtures)}")
        priced.breakdown.append(f"Soap dispensers: {int(soap_dispensers)}, air fresheners: {air_fresheners}")

        if self.pricing_mode(form, fixtures) == "all_inclusive":
            return self._all_inclusive(form, rates, priced, fixtures, sinks, tier)

        inside = is_inside_beltway(form)
        rate = rates.get("inside_rate_per_fixture") if inside else rates.get("outside_rate_per_fixture")
        region_minimum = rates.get("inside_minimum") if inside else rates.get("outside_minimum")
        small = fixtures <= float(self.config.get("small_facility_threshold", 5))

        base = fixtures * rate * tier
        trip = 0.0
        parking = 0.0
        if small:
            minimum = rates.get("small_facility_minimum")
            base = max(base, minimum)
            priced.breakdown.append(f"Small facility minimum {money(minimum)} (trip included)")
        else:
            minimum = region_minimum
            base = max(base, minimum)
            if flag(form, "add_trip_charge"):
                trip = rates.get("trip_charge")
                if inside and flag(form, "needs_parking"):
                    parking = rates.get("parking_fee")
        priced.minimum = minimum

        base = self.override(form, priced, "base_service", base)
        trip = self.override(form, priced, "trip_charge", trip)
        soap_upgrade, excess_soap = self._soap(form, rates, priced, sinks)

        microfiber = 0.0
        if flag(form, "add_microfiber"):
            microfiber = number(form, "microfiber_bathrooms") * rates.get("microfiber_per_bathroom")
        microfiber = self.override(form, priced, "microfiber", microfiber)

        warranty = 0.0
        if flag(form, "add_warranty"):
            dispensers = number(form, "warranty_dispensers", soap_dispensers + air_fresheners)
            warranty = dispensers * rates.get("warranty_per_dispenser")
        warranty = self.override(form, priced, "warranty", warranty)

        components = 0.0
        for group_flag, qty_field, key in _FACILITY_COMPONENTS:
            if flag(form, group_flag):
                components += count(form, qty_field) * float(self.config["facility_components"].get(key, 0.0))
        components = self.override(form, priced, "facility_components", components)
        component_frequency = self.normalize_frequency(
            form.get("facility_components_frequency"), self.frequency(form)
        )
        priced.extra_monthly = round(
            components * freq.monthly_multiplier(component_frequency, self.frequency_overrides), 2
        )

        priced.per_visit = base + trip + parking + soap_upgrade + excess_soap + microfiber + warranty
        priced.line_items = {
            "base_service": base,
            "trip_charge": trip,
            "parking": parking,
            "soap_upgrade": soap_upgrade,
            "excess_soap": excess_soap,
            "microfiber": microfiber,
            "warranty": warranty,
            "facility_components": components,
        }
        priced.breakdown.append(
            f"{'Inside' if inside else 'Outside'} beltway: {int(fixtures)} x {money(rate * tier)} = {money(fixtures * rate * tier)}"
        )
        if trip or parking:
            priced.breakdown.append(f"Trip {money(trip)}, parking {money(parking)}")
        if components:
            priced.breakdown.append(f"Facility components {money(components)} billed {component_frequency}")
        return priced

    def _all_inclusive(self, form, rates, priced, fixtures, sinks, tier) -> Priced:
        base = fixtures * rates.get("all_inclusive_rate_per_fixture") * tier
        base = self.override(form, priced, "base_service", base)
        soap_upgrade, excess_soap = self._soap(form, rates, priced, sinks)

        paper_credit = fixtures * rates.get("paper_credit_per_fixture")
        paper_overage = max(0.0, number(form, "paper_spend_per_week") - paper_credit)
        paper_overage = self.override(form, priced, "paper_overage", paper_overage)

        priced.minimum = 0.0
        priced.per_visit = base + soap_upgrade + excess_soap + paper_overage
        priced.line_items = {
            "base_service": base,
            "soap_upgrade": soap_upgrade,
            "excess_soap": excess_soap,
            "paper_overage": paper_overage,
        }
        priced.breakdown.append(f"All-inclusive: {int(fixtures)} fixtures = {money(base)}")
        if paper_overage:
            priced.breakdown.append(f"Paper overage beyond {money(paper_credit)} credit: {money(paper_overage)}")
        return priced
