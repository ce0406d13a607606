"""
Shared calculator contract for every cleaning service.

A calculator is configured once with its pricing config (static defaults
deep-merged with any remote overrides) and then prices form states:

    calc = SaniCleanCalculator(config)
    result = calc.calculate(form, prior_saved=saved, recorder=recorder)

calculate() is pure. It resolves rate fields through the override chain,
lets the service compute its per-visit price, rolls that up through the
frequency table, applies output overrides and finally adds custom fields.
"""

import copy
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from app.services import frequency as freq
from app.services.change_recorder import ChangeRecorder
from app.services.override_resolution import (
    ResolvedForm,
    apply_output_override,
    clamp_number,
    flag,
    number,
    resolve_form,
)

logger = logging.getLogger("cleanquote-pricing")


# ---------------------------------------------------------------------------
# Defaults shared by all services
# ---------------------------------------------------------------------------
RATE_TIERS: Dict[str, float] = {
    "redRate": 1.0,
    "greenRate": 1.3,
}
DIRTY_INSTALL_MULTIPLIER: float = 3.0
CLEAN_INSTALL_MULTIPLIER: float = 1.0


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` over ``base``; neither input is mutated."""
    merged = copy.deepcopy(dict(base))
    for key, value in (override or {}).items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def lookup_bracket(value: float, brackets: Sequence[Mapping[str, Any]], overflow_rate: float = 0.0) -> float:
    """
    Upper-bound bracket lookup.

    The first bracket whose ``up_to`` is >= value wins. A bracket carries either
    a flat ``price`` or a per-unit ``rate``. Beyond the last bracket the value is
    priced at ``overflow_rate`` per unit.
    """
    for bracket in brackets:
        if value <= float(bracket["up_to"]):
            if "price" in bracket:
                return float(bracket["price"])
            return value * float(bracket.get("rate", 0.0))
    return value * overflow_rate


def custom_fields_total(custom_fields: Any) -> float:
    """
    Sum free-form line items.

    ``calc`` entries contribute ``calcValues.right``; ``dollar`` entries their
    ``value``. Anything else (text notes) contributes nothing.
    """
    if not isinstance(custom_fields, list):
        return 0.0
    total = 0.0
    for item in custom_fields:
        if not isinstance(item, Mapping):
            continue
        kind = item.get("type")
        if kind == "calc":
            calc_values = item.get("calcValues") or item.get("calc_values") or {}
            raw = calc_values.get("right") if isinstance(calc_values, Mapping) else None
        elif kind == "dollar":
            raw = item.get("value")
        else:
            continue
        total += clamp_number("custom_field", raw) or 0.0
    return round(total, 2)


def money(value: float) -> str:
    return f"${value:,.2f}"


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class CalculationResult:
    service_id: str
    is_active: bool
    frequency: str
    contract_months: int
    per_visit_price: float = 0.0
    monthly_recurring: float = 0.0
    contract_total: float = 0.0
    annual_price: float = 0.0
    minimum_per_visit: float = 0.0
    installation: float = 0.0
    first_month: float = 0.0
    custom_fields_total: float = 0.0
    details_breakdown: List[str] = field(default_factory=list)
    is_custom: Dict[str, bool] = field(default_factory=dict)
    line_items: Dict[str, float] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "serviceId": self.service_id,
            "isActive": self.is_active,
            "frequency": self.frequency,
            "contractMonths": self.contract_months,
            "perVisitPrice": self.per_visit_price,
            "monthlyRecurring": self.monthly_recurring,
            "contractTotal": self.contract_total,
            "annualPrice": self.annual_price,
            "minimumPerVisit": self.minimum_per_visit,
            "installation": self.installation,
            "firstMonth": self.first_month,
            "customFieldsTotal": self.custom_fields_total,
            "detailsBreakdown": list(self.details_breakdown),
            "isCustom": dict(self.is_custom),
            "lineItems": dict(self.line_items),
        }


@dataclass
class Priced:
    """Intermediate per-visit pricing produced by a service before rollup."""
    active: bool
    per_visit: float = 0.0
    minimum: float = 0.0
    installation: float = 0.0
    frequency: Optional[str] = None
    extra_monthly: float = 0.0       # monthly add-ons, see ServiceCalculator.extra_totals
    visits_factor: float = 1.0
    apply_minimum: bool = True     # False when the service floors a component itself
    breakdown: List[str] = field(default_factory=list)
    line_items: Dict[str, float] = field(default_factory=dict)
    is_custom: Dict[str, bool] = field(default_factory=dict)
    changes: List[Tuple[str, float, float]] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Base calculator
# ---------------------------------------------------------------------------

class ServiceCalculator:
    """Base class; subclasses implement ``price()``."""

    service_id: str = ""
    display_name: str = ""
    default_config: Dict[str, Any] = {}
    # Config keys that may be overridden per quote (custom_<key> / saved value)
    rate_fields: Tuple[str, ...] = ()
    default_frequency: str = "weekly"
    allowed_frequencies: Optional[Tuple[str, ...]] = None

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = deep_merge(self.default_config, config or {})

    # ── helpers used by subclasses ─────────────────────────────────────────

    @property
    def frequency_overrides(self) -> Dict[str, float]:
        return self.config.get("frequency_multipliers") or {}

    def normalize_frequency(self, value: Any, default: str) -> str:
        """Canonical key this service can roll up; labels with no multiplier fall back to ``default``."""
        key = freq.normalize_frequency(value, default)
        if key not in freq.MONTHLY_MULTIPLIERS and key not in self.frequency_overrides:
            return default
        return key

    def frequency(self, form: Mapping[str, Any]) -> str:
        value = self.normalize_frequency(form.get("frequency"), self.default_frequency)
        if self.allowed_frequencies and value not in self.allowed_frequencies:
            return self.default_frequency
        return value

    def tier_multiplier(self, form: Mapping[str, Any]) -> float:
        tiers = dict(RATE_TIERS)
        tiers.update(self.config.get("rate_tiers") or {})
        tier = str(form.get("rate_tier") or "redRate")
        if tier in ("red", "green"):
            tier = f"{tier}Rate"
        return float(tiers.get(tier, 1.0))

    def install_multiplier(self, form: Mapping[str, Any]) -> float:
        if flag(form, "is_dirty"):
            return float(self.config.get("dirty_install_multiplier", DIRTY_INSTALL_MULTIPLIER))
        return float(self.config.get("clean_install_multiplier", CLEAN_INSTALL_MULTIPLIER))

    def override(self, form: Mapping[str, Any], priced: Priced, name: str, computed: float) -> float:
        """Apply ``custom_<name>`` to one computed line and note it on ``priced``."""
        value, custom = apply_output_override(form, name, computed)
        priced.is_custom[name] = custom
        if custom:
            priced.changes.append((name, computed, value))
        return value

    def extra_totals(self, priced: Priced, frequency: str, months: int) -> Dict[str, float]:
        """
        Roll up monthly add-ons on the same path as the visit price.

        Monthly-based schedules bill them per month. Visit-based schedules
        spread a year of add-ons over the year's visits (one month's worth on
        a one-time job) and take the contract from the visit count.
        """
        amount = priced.extra_monthly
        if not amount:
            return {"monthly": 0.0, "contract": 0.0, "annual": 0.0, "first_month": 0.0}
        if not freq.is_visit_based(frequency):
            return {"monthly": amount, "contract": amount * months, "annual": amount * 12, "first_month": amount}
        if frequency == "oneTime":
            per_visit = amount
        else:
            visits = freq.visits_per_year(frequency, self.frequency_overrides) * priced.visits_factor
            per_visit = amount * 12 / (visits or 1.0)
        return freq.rollup(
            per_visit, frequency, months,
            overrides=self.frequency_overrides,
            visits_factor=priced.visits_factor,
        )

    # ── contract ────────────────────────────────────────────────────────────

    def resolve(
        self,
        form: Mapping[str, Any],
        prior_saved: Optional[Mapping[str, Any]] = None,
    ) -> ResolvedForm:
        return resolve_form(self.config, form, prior_saved, fields=self.rate_fields)

    def price(self, form: Mapping[str, Any], rates: ResolvedForm) -> Priced:
        raise NotImplementedError

    def calculate(
        self,
        form: Optional[Mapping[str, Any]] = None,
        prior_saved: Optional[Mapping[str, Any]] = None,
        recorder: Optional[ChangeRecorder] = None,
    ) -> CalculationResult:
        form = form or {}
        rates = self.resolve(form, prior_saved)
        months = freq.clamp_contract_months(form.get("contract_months", freq.DEFAULT_CONTRACT_MONTHS))
        priced = self.price(form, rates)
        frequency = priced.frequency or self.frequency(form)

        is_custom = dict(rates.is_custom)
        if not priced.active:
            is_custom.update(priced.is_custom)
            return CalculationResult(
                service_id=self.service_id,
                is_active=False,
                frequency=frequency,
                contract_months=months,
                is_custom=is_custom,
            )

        per_visit = priced.per_visit
        if priced.apply_minimum and priced.minimum > 0 and per_visit < priced.minimum:
            priced.breakdown.append(f"Minimum applied: {money(priced.minimum)}")
            per_visit = priced.minimum
        per_visit = self.override(form, priced, "per_visit", round(per_visit, 2))
        installation = self.override(form, priced, "installation", round(priced.installation, 2))

        totals = freq.rollup(
            per_visit, frequency, months,
            installation=installation,
            overrides=self.frequency_overrides,
            visits_factor=priced.visits_factor,
        )
        extra = self.extra_totals(priced, frequency, months)
        monthly = totals["monthly"] + extra["monthly"]
        contract = totals["contract"] + extra["contract"]
        annual = totals["annual"] + extra["annual"]
        first_month = totals["first_month"] + extra["first_month"]

        monthly_override = self.override(form, priced, "monthly", round(monthly, 2))
        if priced.is_custom["monthly"]:
            monthly = monthly_override
            first_month = monthly + installation
            if not freq.is_visit_based(frequency):
                contract = monthly * months + installation
        contract = self.override(form, priced, "contract_total", round(contract, 2))

        extras = custom_fields_total(form.get("custom_fields"))
        if extras:
            priced.breakdown.append(f"Custom line items: {money(extras)}")

        is_custom.update(priced.is_custom)
        if recorder is not None:
            for name in rates.custom_fields():
                recorder.record(self.service_id, name, rates.defaults.get(name), rates.get(name))
            for name, original, new in priced.changes:
                recorder.record(self.service_id, name, original, new)

        return CalculationResult(
            service_id=self.service_id,
            is_active=True,
            frequency=frequency,
            contract_months=months,
            per_visit_price=round(per_visit, 2),
            monthly_recurring=round(monthly, 2),
            contract_total=round(contract + extras, 2),
            annual_price=round(annual, 2),
            minimum_per_visit=round(priced.minimum, 2),
            installation=round(installation, 2),
            first_month=round(first_month, 2),
            custom_fields_total=extras,
            details_breakdown=list(priced.breakdown),
            is_custom=is_custom,
            line_items={k: round(v, 2) for k, v in priced.line_items.items()},
        )


def count(form: Mapping[str, Any], field_name: str) -> float:
    """Whole-unit quantity (fixtures, windows, pods): clamped, fractional part dropped."""
    return float(math.floor(number(form, field_name)))
