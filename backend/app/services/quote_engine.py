"""
QuoteEngine: prices an agreement end to end.

  price_service()        one service form -> CalculationResult
  load_service()         saved payload of any historical shape -> form state
  build_service_record() result + form -> record for the document builder
  price_agreement()      all services -> results, records, summary, change log
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from app.services import frequency as freq
from app.services.aggregation import AggregatedQuote, GlobalCharge, aggregate
from app.services.calculators.base import CalculationResult, ServiceCalculator
from app.services.calculators.refresh_power_scrub import to_draft
from app.services.calculators.registry import SERVICE_CALCULATORS, SERVICE_ORDER
from app.services.change_recorder import ChangeRecorder
from app.services.legacy_adapters import SCHEMA_VERSION, adapt_payload, extract_custom_fields
from app.services.override_resolution import clamp_number
from app.services.pricing_config import PricingConfigProvider

logger = logging.getLogger("cleanquote-pricing.engine")


@dataclass
class AgreementQuote:
    results: List[CalculationResult]
    records: Dict[str, Dict[str, Any]]
    summary: AggregatedQuote
    changes: List[Dict[str, Any]] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "services": {r.service_id: r.to_payload() for r in self.results},
            "records": self.records,
            "summary": self.summary.to_payload(),
            "changes": list(self.changes),
        }


class QuoteEngine:
    """Facade over the calculators, config provider and aggregation."""

    def __init__(self, config_provider: Optional[PricingConfigProvider] = None):
        self.config_provider = config_provider or PricingConfigProvider(base_url="")

    def calculator(self, service_id: str) -> ServiceCalculator:
        """Calculator for a service, built on its current config. KeyError if unknown."""
        cls = SERVICE_CALCULATORS[service_id]
        return cls(self.config_provider.get(service_id))

    def price_service(
        self,
        service_id: str,
        form: Optional[Mapping[str, Any]] = None,
        prior_saved: Optional[Mapping[str, Any]] = None,
        recorder: Optional[ChangeRecorder] = None,
    ) -> CalculationResult:
        return self.calculator(service_id).calculate(form or {}, prior_saved=prior_saved, recorder=recorder)

    def load_service(self, service_id: str, payload: Any) -> Dict[str, Any]:
        if service_id not in SERVICE_CALCULATORS:
            raise KeyError(service_id)
        return adapt_payload(service_id, payload)

    def build_service_record(
        self,
        service_id: str,
        form: Mapping[str, Any],
        result: CalculationResult,
        prior_saved: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Structured record for the document builder. ``formState`` keeps enough
        input to rebuild the form; resolved custom rates are written back with
        their ``<field>_is_custom`` flag so a reload reproduces them.
        """
        calc = self.calculator(service_id)
        rates = calc.resolve(form, prior_saved)
        form_state = dict(form)
        for name, value in rates.custom_fields().items():
            form_state[name] = value
            form_state[f"{name}_is_custom"] = True
        form_state["frequency"] = result.frequency
        form_state["contract_months"] = result.contract_months
        form_state["custom_fields"] = extract_custom_fields({"customFields": form.get("custom_fields")})

        record = {
            "serviceId": service_id,
            "displayName": calc.display_name,
            "schemaVersion": SCHEMA_VERSION,
            "isActive": result.is_active,
            "formState": form_state,
            "isCustom": dict(result.is_custom),
            "totals": {
                "perVisit": {"amount": result.per_visit_price, "isCustom": result.is_custom.get("per_visit", False)},
                "monthlyRecurring": {"amount": result.monthly_recurring, "isCustom": result.is_custom.get("monthly", False)},
                "contract": {
                    "amount": result.contract_total,
                    "months": result.contract_months,
                    "isCustom": result.is_custom.get("contract_total", False),
                },
                "installation": {"amount": result.installation, "isCustom": result.is_custom.get("installation", False)},
                "minimumPerVisit": result.minimum_per_visit,
                "firstMonth": result.first_month,
                "annual": result.annual_price,
            },
            "customFields": form_state["custom_fields"],
            "detailsBreakdown": list(result.details_breakdown),
        }
        if service_id == "refresh_power_scrub":
            record["draft"] = to_draft(form)
        return record

    def price_agreement(
        self,
        services: Optional[Mapping[str, Mapping[str, Any]]] = None,
        contract_months: Any = freq.DEFAULT_CONTRACT_MONTHS,
        trip: Optional[GlobalCharge] = None,
        parking: Optional[GlobalCharge] = None,
        primary_frequency: Optional[str] = None,
        saved: Optional[Mapping[str, Any]] = None,
        recorder: Optional[ChangeRecorder] = None,
    ) -> AgreementQuote:
        """
        Price every service on an agreement.

        ``services`` holds live form states; ``saved`` holds previously saved
        payloads. A service with only a saved payload is loaded from it; a
        service with both is priced from the form with the saved payload as
        the prior state for override resolution.
        """
        start = time.perf_counter()
        services = services or {}
        saved = saved or {}
        recorder = recorder or ChangeRecorder()
        months = freq.clamp_contract_months(contract_months)

        unknown = [k for k in list(services) + list(saved) if k not in SERVICE_CALCULATORS]
        if unknown:
            raise KeyError(", ".join(sorted(set(unknown))))

        results: List[CalculationResult] = []
        records: Dict[str, Dict[str, Any]] = {}
        for service_id in SERVICE_ORDER:
            if service_id not in services and service_id not in saved:
                continue
            prior = self.load_service(service_id, saved[service_id]) if service_id in saved else {}
            form = dict(services[service_id]) if service_id in services else dict(prior)
            form["contract_months"] = months
            result = self.price_service(service_id, form, prior_saved=prior or None, recorder=recorder)
            results.append(result)
            records[service_id] = self.build_service_record(service_id, form, result, prior or None)

        summary = aggregate(
            results,
            contract_months=months,
            trip=_sanitised(trip),
            parking=_sanitised(parking),
            primary=primary_frequency,
        )
        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.info(
            f"Priced agreement: {len(summary.active_services)} active services, "
            f"total {summary.total_agreement_amount}, {summary.classification}",
            extra={"duration_ms": duration_ms},
        )
        return AgreementQuote(
            results=results,
            records=records,
            summary=summary,
            changes=recorder.to_payload(),
        )


def _sanitised(charge: Optional[GlobalCharge]) -> Optional[GlobalCharge]:
    if charge is None:
        return None
    amount = clamp_number("global_charge", charge.amount) or 0.0
    return GlobalCharge(amount=amount, frequency=freq.normalize_frequency(charge.frequency))
