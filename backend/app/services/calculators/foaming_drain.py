"""
Foaming Drain: enzyme foam drain treatment.

Standard drains take the cheaper of $10/drain or $20 + $4/drain unless one
rule is forced. Accounts with 10+ drains can move drains onto the install
program ($20 weekly / $10 bimonthly per drain). Grease traps, green drains
and the plumbing add-on are priced per unit. Any active visit costs at
least $50.

One-time charges: filthy drains (weekly cost x 3, waived for big-account
pricing), grease trap installs and green drain installs.
"""

from typing import Any, Dict, Mapping

from app.services.calculators.base import Priced, ServiceCalculator, count, money
from app.services.override_resolution import ResolvedForm, flag


DEFAULT_CONFIG: Dict[str, Any] = {
    "standard_drain_rate": 10.0,
    "alt_base_charge": 20.0,
    "alt_extra_per_drain": 4.0,
    "volume_threshold": 10,
    "volume_weekly_rate": 20.0,
    "volume_bimonthly_rate": 10.0,
    "grease_weekly_rate": 125.0,
    "grease_install_rate": 300.0,
    "green_weekly_rate": 5.0,
    "green_install_rate": 100.0,
    "plumbing_addon_rate": 10.0,
    "minimum_per_visit": 50.0,
    "filthy_multiplier": 3.0,
}

_RATE_FIELDS = (
    "standard_drain_rate",
    "alt_base_charge",
    "alt_extra_per_drain",
    "volume_weekly_rate",
    "volume_bimonthly_rate",
    "grease_weekly_rate",
    "grease_install_rate",
    "green_weekly_rate",
    "green_install_rate",
    "plumbing_addon_rate",
    "minimum_per_visit",
)


class FoamingDrainCalculator(ServiceCalculator):
    service_id = "foaming_drain"
    display_name = "Foaming Drain"
    default_config = DEFAULT_CONFIG
    rate_fields = _RATE_FIELDS
    default_frequency = "weekly"

    def standard_cost(self, form: Mapping[str, Any], drains: float, rates: ResolvedForm) -> float:
        if drains <= 0:
            return 0.0
        ten_per_drain = drains * rates.get("standard_drain_rate")
        alternative = rates.get("alt_base_charge") + drains * rates.get("alt_extra_per_drain")
        if flag(form, "use_big_account_ten"):
            return ten_per_drain
        if flag(form, "use_small_alt_pricing"):
            return alternative
        return min(ten_per_drain, alternative)

    def price(self, form: Mapping[str, Any], rates: ResolvedForm) -> Priced:
        standard = count(form, "standard_drains")
        grease = count(form, "grease_traps")
        green = count(form, "green_drains")
        if standard + grease + green <= 0:
            return Priced(active=False)

        priced = Priced(active=True)
        all_inclusive = flag(form, "is_all_inclusive")
        big_account = flag(form, "use_big_account_ten")

        install_drains = 0.0
        volume_eligible = (
            standard >= float(self.config["volume_threshold"])
            and not big_account
            and not all_inclusive
        )
        if volume_eligible:
            install_drains = min(count(form, "install_drains"), standard)
        bimonthly_install = str(form.get("install_frequency") or "weekly") == "bimonthly"
        volume_rate = rates.get("volume_bimonthly_rate") if bimonthly_install else rates.get("volume_weekly_rate")
        volume = install_drains * volume_rate

        if all_inclusive:
            standard_cost = 0.0
            priced.breakdown.append("Standard drains included (all-inclusive)")
        else:
            standard_cost = self.standard_cost(form, standard - install_drains, rates)
        standard_cost = self.override(form, priced, "standard_drains", standard_cost)
        volume = self.override(form, priced, "install_program", volume)

        grease_cost = self.override(form, priced, "grease_traps", grease * rates.get("grease_weekly_rate"))
        green_cost = self.override(form, priced, "green_drains", green * rates.get("green_weekly_rate"))
        plumbing = 0.0
        if flag(form, "needs_plumbing"):
            plumbing = count(form, "plumbing_drains") * rates.get("plumbing_addon_rate")
        plumbing = self.override(form, priced, "plumbing", plumbing)

        raw = standard_cost + volume + grease_cost + green_cost + plumbing
        priced.per_visit = raw
        if raw > 0:
            priced.minimum = rates.get("minimum_per_visit")

        filthy = count(form, "filthy_drains")
        filthy_install = 0.0
        if filthy > 0 and not big_account:
            filthy_install = self.standard_cost(form, filthy, rates) * float(self.config["filthy_multiplier"])
        installation = filthy_install
        if flag(form, "is_new_install"):
            installation += grease * rates.get("grease_install_rate") + green * rates.get("green_install_rate")
        priced.installation = installation

        priced.line_items = {
            "standard_drains": standard_cost,
            "install_program": volume,
            "grease_traps": grease_cost,
            "green_drains": green_cost,
            "plumbing": plumbing,
            "filthy_install": filthy_install,
        }
        if standard_cost:
            priced.breakdown.append(f"{int(standard - install_drains)} standard drains = {money(standard_cost)}")
        if volume:
            priced.breakdown.append(f"{int(install_drains)} install-program drains @ {money(volume_rate)}")
        if installation:
            priced.breakdown.append(f"One-time install {money(installation)}")
        return priced
