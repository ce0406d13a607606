"""Strip/Wax: floor refinishing priced per sq ft with a per-variant minimum."""

from typing import Any, Dict, Mapping, Optional, Tuple

from app.services.calculators.base import Priced, ServiceCalculator, money
from app.services.override_resolution import ResolvedForm, number


DEFAULT_CONFIG: Dict[str, Any] = {
    "variants": {
        "standardFull": {"rate_per_sqft": 0.75, "minimum": 550.0, "label": "Strip, wax & seal"},
        "noSealant": {"rate_per_sqft": 0.70, "minimum": 550.0, "label": "Strip & wax, no sealant"},
        "wellMaintained": {"rate_per_sqft": 0.40, "minimum": 400.0, "label": "Well-maintained refinish"},
    },
    "default_variant": "standardFull",
}


class StripWaxCalculator(ServiceCalculator):
    service_id = "strip_wax"
    display_name = "Strip & Wax"
    default_config = DEFAULT_CONFIG
    default_frequency = "quarterly"

    def variant(self, form: Mapping[str, Any]) -> Tuple[str, Mapping[str, Any]]:
        variants = self.config["variants"]
        name = str(form.get("service_variant") or self.config["default_variant"])
        if name not in variants:
            name = self.config["default_variant"]
        return name, variants[name]

    def resolve(
        self,
        form: Mapping[str, Any],
        prior_saved: Optional[Mapping[str, Any]] = None,
    ) -> ResolvedForm:
        rates = super().resolve(form, prior_saved)
        _, variant = self.variant(form)
        rates.set("rate_per_sqft", float(variant["rate_per_sqft"]), form, prior_saved)
        return rates

    def price(self, form: Mapping[str, Any], rates: ResolvedForm) -> Priced:
        sqft = number(form, "floor_area_sqft")
        if sqft <= 0:
            return Priced(active=False)

        _, variant = self.variant(form)
        rate = rates.get("rate_per_sqft")
        minimum = float(variant["minimum"])
        priced = Priced(active=True, minimum=minimum, apply_minimum=False)
        raw = sqft * rate
        priced.per_visit = max(raw, minimum) * self.tier_multiplier(form)
        priced.line_items = {"area_price": raw}
        priced.breakdown.append(f"{variant['label']}: {sqft:,.0f} sq ft x {money(rate)} = {money(raw)}")
        return priced
