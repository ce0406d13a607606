"""
Agreement-level rollup of per-service results.

  total original per visit  = sum of active services' per-visit prices
  total minimum per visit   = sum of active services' minimums
  trip / parking            = charge x monthly multiplier of its own frequency,
                              shown per visit by dividing by the primary
                              service frequency's visits per month
  total agreement amount    = original x months + (trip + parking monthly) x months

The primary frequency is the explicit one when given, else the frequency of
the first active service in canonical order.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from app.services import frequency as freq
from app.services.calculators.base import CalculationResult
from app.services.calculators.registry import SERVICE_ORDER
from app.services.profitability import ProfitabilityResult, evaluate


@dataclass
class GlobalCharge:
    """Agreement-wide charge billed at its own frequency (trip, parking)."""
    amount: float = 0.0
    frequency: str = "weekly"

    def monthly(self) -> float:
        return self.amount * freq.monthly_multiplier(freq.normalize_frequency(self.frequency))


@dataclass
class AggregatedQuote:
    total_original_per_visit: float
    total_minimum_per_visit: float
    total_agreement_amount: float
    contract_months: int
    primary_frequency: Optional[str]
    trip_monthly: float
    parking_monthly: float
    trip_per_visit: float
    parking_per_visit: float
    services_contract_total: float
    active_services: List[str]
    profitability: ProfitabilityResult

    @property
    def classification(self) -> str:
        return self.profitability.classification

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "totalOriginalPerVisit": self.total_original_per_visit,
            "totalMinimumPerVisit": self.total_minimum_per_visit,
            "totalAgreementAmount": self.total_agreement_amount,
            "contractMonths": self.contract_months,
            "primaryFrequency": self.primary_frequency,
            "tripMonthly": self.trip_monthly,
            "parkingMonthly": self.parking_monthly,
            "tripPerVisit": self.trip_per_visit,
            "parkingPerVisit": self.parking_per_visit,
            "servicesContractTotal": self.services_contract_total,
            "activeServices": list(self.active_services),
        }
        payload.update(self.profitability.to_payload())
        return payload


def primary_frequency(results: Iterable[CalculationResult], explicit: Optional[str] = None) -> Optional[str]:
    if explicit:
        return freq.normalize_frequency(explicit)
    active = {r.service_id: r for r in results if r.is_active}
    for key in SERVICE_ORDER:
        if key in active:
            return active[key].frequency
    # Services outside the canonical order, in input order
    for result in active.values():
        return result.frequency
    return None


def _per_visit_equivalent(charge: GlobalCharge, primary: Optional[str]) -> float:
    if charge.amount <= 0:
        return 0.0
    visits_per_month = freq.monthly_multiplier(primary) if primary else 0.0
    if visits_per_month <= 0:
        return charge.amount
    return charge.monthly() / visits_per_month


def aggregate(
    results: Iterable[CalculationResult],
    contract_months: Any = freq.DEFAULT_CONTRACT_MONTHS,
    trip: Optional[GlobalCharge] = None,
    parking: Optional[GlobalCharge] = None,
    primary: Optional[str] = None,
) -> AggregatedQuote:
    """Combine service results into agreement totals. Inputs are not mutated."""
    results = list(results)
    active = [r for r in results if r.is_active]
    months = freq.clamp_contract_months(contract_months)
    trip = trip or GlobalCharge()
    parking = parking or GlobalCharge()

    original = sum(r.per_visit_price for r in active)
    minimum = sum(r.minimum_per_visit for r in active)
    primary_freq = primary_frequency(results, primary)
    trip_monthly = trip.monthly()
    parking_monthly = parking.monthly()

    total = original * months + (trip_monthly + parking_monthly) * months

    return AggregatedQuote(
        total_original_per_visit=round(original, 2),
        total_minimum_per_visit=round(minimum, 2),
        total_agreement_amount=round(total, 2),
        contract_months=months,
        primary_frequency=primary_freq,
        trip_monthly=round(trip_monthly, 2),
        parking_monthly=round(parking_monthly, 2),
        trip_per_visit=round(_per_visit_equivalent(trip, primary_freq), 2),
        parking_per_visit=round(_per_visit_equivalent(parking, primary_freq), 2),
        services_contract_total=round(sum(r.contract_total for r in active), 2),
        active_services=[r.service_id for r in active],
        profitability=evaluate(original, minimum),
    )
