"""
Sanipod: feminine hygiene units serviced weekly.

Weekly service takes the cheaper of $8 per pod or $3 per pod + $40 flat.
Extra bags are $2 each, billed with the visit when recurring and as a
one-time charge otherwise. New installs cost $25 per pod, once.
"""

from typing import Any, Dict, Mapping

from app.services.calculators.base import Priced, ServiceCalculator, count, money
from app.services.override_resolution import ResolvedForm, flag, number


DEFAULT_CONFIG: Dict[str, Any] = {
    "weekly_rate_per_pod": 8.0,
    "alt_rate_per_pod": 3.0,
    "alt_base_charge": 40.0,
    "extra_bag_price": 2.0,
    "install_rate_per_pod": 25.0,
}

_RATE_FIELDS = tuple(DEFAULT_CONFIG.keys())


class SanipodCalculator(ServiceCalculator):
    service_id = "sanipod"
    display_name = "Sanipod"
    default_config = DEFAULT_CONFIG
    rate_fields = _RATE_FIELDS
    default_frequency = "weekly"

    def price(self, form: Mapping[str, Any], rates: ResolvedForm) -> Priced:
        pods = count(form, "pods")
        if pods <= 0:
            return Priced(active=False)

        priced = Priced(active=True)
        per_pod = pods * rates.get("weekly_rate_per_pod")
        alternative = pods * rates.get("alt_rate_per_pod") + rates.get("alt_base_charge")
        service = min(per_pod, alternative)
        rule = "per pod" if per_pod <= alternative else "base + per pod"
        service = self.override(form, priced, "pod_service", service)

        bags = number(form, "extra_bags") * rates.get("extra_bag_price")
        recurring_bags = flag(form, "extra_bags_recurring", True)
        weekly = service + (bags if recurring_bags else 0.0)
        priced.per_visit = weekly * self.tier_multiplier(form)
        priced.breakdown.append(f"{int(pods)} pods ({rule}) = {money(service)}")

        installation = 0.0
        if flag(form, "is_new_install"):
            installation += pods * rates.get("install_rate_per_pod")
        if not recurring_bags:
            installation += bags
        priced.installation = installation
        if bags:
            priced.breakdown.append(f"Extra bags {money(bags)} ({'recurring' if recurring_bags else 'one-time'})")

        priced.line_items = {"pod_service": service, "extra_bags": bags}
        return priced
