"""
Legacy adapters: saved service payloads back into form state.

Agreements saved over the years carry several payload shapes per service:

  current_schema        {"schemaVersion": "serviceRecordV3", "formState": {...}, "isCustom": {...}}
  refresh_draft_v2      {"schema": "refreshPowerScrubDraftV2", "areas": {...}}
  refresh_converted     flat Refresh payload with hourlyRate/minimumVisit and area objects
  flat_fields           camelCase or snake_case fields with <field>IsCustom flags
  refresh_services      Refresh "services" object (frontHouse/backHouse, pricingMethod labels)
  janitorial_strings    Janitorial display strings ("2 hrs", "8 places", "20 min")
  display_wrappers      {value, type} wrappers, labelled arrays, totals.{x}.{amount,isCustom}
  refresh_area_breakdown  very old Refresh strings ("Weekly - 2 hrs @ $200/hr = $400")

Adapters are tried newest first and the first one that yields fields wins.
An adapter that does not recognise a payload raises LegacyShapeMismatch and
the next one is tried; when none match the service loads from config defaults.
"""

import logging
import re
from typing import Any, Callable, Dict, List, Mapping, Optional

from app.services import frequency as freq
from app.services.calculators.refresh_power_scrub import AREA_KEYS, DRAFT_SCHEMA
from app.services.calculators.registry import SERVICE_CALCULATORS
from app.services.pricing_config import to_snake
from app.services.pricing_errors import LegacyShapeMismatch

logger = logging.getLogger("cleanquote-pricing.legacy")

SCHEMA_VERSION = "serviceRecordV3"

Adapter = Callable[[Mapping[str, Any], str], Dict[str, Any]]


# ---------------------------------------------------------------------------
# Known form fields per service (snake_case)
# ---------------------------------------------------------------------------
_COMMON_FIELDS = {
    "frequency", "contract_months", "rate_tier", "location", "is_dirty",
    "custom_per_visit", "custom_monthly", "custom_contract_total", "custom_installation",
    "custom_fields", "notes",
}

FORM_FIELDS: Dict[str, set] = {
    "saniclean": {
        "sinks", "urinals", "male_toilets", "female_toilets", "needs_parking", "add_trip_charge",
        "pricing_mode", "soap_type", "luxury_upgrade_qty", "excess_soap_gallons", "add_microfiber",
        "microfiber_bathrooms", "add_warranty", "warranty_dispensers", "paper_spend_per_week",
        "facility_components_frequency", "include_urinal_components", "urinal_screens", "urinal_mats",
        "include_male_toilet_components", "toilet_clips", "seat_cover_dispensers",
        "include_female_toilet_components", "sanipods",
    },
    "saniscrub": {
        "sinks", "urinals", "male_toilets", "female_toilets", "non_bathroom_sqft",
        "use_exact_sqft", "has_saniclean", "include_install",
    },
    "rpm_windows": {"small_windows", "medium_windows", "large_windows", "mirrors", "is_first_time"},
    "refresh_power_scrub": {"areas"},
    "janitorial": {
        "manual_hours", "vacuuming_hours", "dusting_places", "addon_minutes", "addon_hours",
        "addon_standalone", "visits_per_week",
    },
    "sanipod": {"pods", "extra_bags", "extra_bags_recurring", "is_new_install"},
    "foaming_drain": {
        "standard_drains", "install_drains", "filthy_drains", "grease_traps", "green_drains",
        "plumbing_drains", "needs_plumbing", "use_small_alt_pricing", "use_big_account_ten",
        "is_all_inclusive", "install_frequency", "is_new_install",
    },
    "carpet": {"area_sqft", "use_exact_sqft", "include_install"},
    "strip_wax": {"floor_area_sqft", "service_variant", "custom_rate_per_sqft"},
    "grease_trap": {"traps", "gallons"},
    "electrostatic_spray": {"pricing_method", "rooms", "square_feet", "use_exact_sqft", "combined_with_saniclean"},
    "microfiber_mopping": {
        "bathrooms", "huge_bathroom_sqft", "extra_area_sqft", "standalone_sqft",
        "chemical_gallons", "saniclean_all_inclusive",
    },
}

# Historical field names -> current names (after snake_case conversion)
_RENAMES = {
    "custom_per_visit_price": "custom_per_visit",
    "custom_monthly_recurring": "custom_monthly",
    "custom_installation_fee": "custom_installation",
    "rate_category": "rate_tier",
    "selected_rate_category": "rate_tier",
    "is_first_time_install": "is_first_time",
    "dirty_initial": "is_dirty",
    "addon_time_minutes": "addon_minutes",
    "is_combined_with_sani_clean": "combined_with_saniclean",
    "non_bathroom_sq_ft": "non_bathroom_sqft",
    "inside_sq_ft": "inside_sqft",
    "outside_sq_ft": "outside_sqft",
}

_FIXTURE_LABELS = {
    "sinks": "sinks",
    "urinals": "urinals",
    "male toilets": "male_toilets",
    "female toilets": "female_toilets",
}

_BREAKDOWN_LABELS = {
    "small windows": "small_windows",
    "medium windows": "medium_windows",
    "large windows": "large_windows",
    "mirrors": "mirrors",
    "standard drains": "standard_drains",
    "grease traps": "grease_traps",
    "green drains": "green_drains",
    "filthy drains": "filthy_drains",
    "pods": "pods",
    "sanipods": "pods",
    "rooms": "rooms",
    "traps": "traps",
    "bathrooms": "bathrooms",
}

_TOTALS_OVERRIDES = {
    "per_visit": "custom_per_visit",
    "monthly_recurring": "custom_monthly",
    "monthly": "custom_monthly",
    "contract": "custom_contract_total",
}

_REFRESH_STORED_AREAS = {
    "dumpster": "dumpster",
    "patio": "patio",
    "frontHouse": "foh",
    "backHouse": "boh",
    "walkway": "walkway",
    "other": "other",
}

_NUMBER = r"(\d+(?:\.\d+)?)"


def _num(text: Any) -> Optional[float]:
    match = re.search(_NUMBER, str(text or ""))
    return float(match.group(1)) if match else None


def _wrapped(value: Any) -> Any:
    """Unwrap a {value, type} display wrapper."""
    if isinstance(value, Mapping) and "value" in value:
        return value["value"]
    return value


def _snake_field(key: str) -> str:
    name = to_snake(key)
    return _RENAMES.get(name, name)


def extract_custom_fields(payload: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Normalise free-form custom line items from any payload shape."""
    raw = payload.get("customFields", payload.get("custom_fields"))
    if not isinstance(raw, list):
        return []
    fields = []
    for index, item in enumerate(raw):
        if not isinstance(item, Mapping):
            continue
        name = item.get("name") or item.get("label") or "Custom Field"
        field = {
            "id": str(item.get("id") or f"custom-{index + 1}"),
            "type": item.get("type") or "text",
            "name": name,
            "label": item.get("label") or name,
        }
        calc_values = item.get("calcValues")
        if field["type"] == "calc" and isinstance(calc_values, Mapping):
            field["calcValues"] = {
                "left": calc_values.get("left", ""),
                "middle": calc_values.get("middle", ""),
                "right": calc_values.get("right", ""),
            }
        else:
            field["value"] = item.get("value", "")
        fields.append(field)
    return fields


# ---------------------------------------------------------------------------
# Adapters (newest first)
# ---------------------------------------------------------------------------

def current_schema(payload: Mapping[str, Any], service_id: str) -> Dict[str, Any]:
    if payload.get("schemaVersion") != SCHEMA_VERSION or not isinstance(payload.get("formState"), Mapping):
        raise LegacyShapeMismatch("current_schema", service_id)
    form = dict(payload["formState"])
    for name, custom in (payload.get("isCustom") or {}).items():
        if custom and name in form and not name.startswith("custom_"):
            form[f"{name}_is_custom"] = True
    return form


def refresh_draft_v2(payload: Mapping[str, Any], service_id: str) -> Dict[str, Any]:
    if payload.get("schema") != DRAFT_SCHEMA or not isinstance(payload.get("areas"), Mapping):
        raise LegacyShapeMismatch("refresh_draft_v2", service_id)
    form = {k: v for k, v in payload.items() if k not in ("schema", "isActive", "areas")}
    form["areas"] = {
        key: dict(area, enabled=True)
        for key, area in payload["areas"].items()
        if key in AREA_KEYS and isinstance(area, Mapping)
    }
    return form


def _refresh_area(raw: Mapping[str, Any]) -> Dict[str, Any]:
    area = {}
    for key, value in raw.items():
        name = _snake_field(key)
        if name in ("pricing_type", "enabled", "hours", "workers", "inside_sqft", "outside_sqft",
                    "custom_amount", "kitchen_size", "patio_mode", "include_patio_addon", "quantity",
                    "small_medium_qty", "large_qty"):
            area[name] = _wrapped(value)
    return area


def refresh_converted(payload: Mapping[str, Any], service_id: str) -> Dict[str, Any]:
    if "hourlyRate" not in payload and "minimumVisit" not in payload:
        raise LegacyShapeMismatch("refresh_converted", service_id, "no hourlyRate / minimumVisit")
    form: Dict[str, Any] = {}
    for key in ("hourlyRate", "minimumVisit", "tripCharge", "workerRate"):
        if payload.get(key) is not None:
            form[to_snake(key)] = payload[key]
    if payload.get("frequency"):
        form["frequency"] = freq.normalize_frequency(payload["frequency"], "oneTime")
    if payload.get("contractMonths"):
        form["contract_months"] = payload["contractMonths"]
    areas = {}
    for key in AREA_KEYS:
        if isinstance(payload.get(key), Mapping):
            area = _refresh_area(payload[key])
            if key == "patio" and "include_patio_addon" not in area:
                area["include_patio_addon"] = area.get("patio_mode") == "upsell"
            areas[key] = area
    form["areas"] = areas
    return form


def flat_fields(payload: Mapping[str, Any], service_id: str) -> Dict[str, Any]:
    known = FORM_FIELDS.get(service_id, set()) | _COMMON_FIELDS
    if service_id in SERVICE_CALCULATORS:
        known = known | set(SERVICE_CALCULATORS[service_id].rate_fields)
    form: Dict[str, Any] = {}
    flags: Dict[str, bool] = {}
    for key, value in payload.items():
        if isinstance(value, (Mapping, list)):
            continue
        name = _snake_field(key)
        if name.endswith("_is_custom"):
            flags[name] = bool(value)
        elif name in known:
            form[name] = value
    # Shared fields alone (frequency, notes) do not identify a flat payload
    recognised = [k for k in form if k not in _COMMON_FIELDS]
    if not recognised:
        raise LegacyShapeMismatch("flat_fields", service_id, "no recognised scalar fields")
    form.update({k: v for k, v in flags.items() if k[: -len("_is_custom")] in form})
    if "frequency" in form:
        form["frequency"] = freq.normalize_frequency(form["frequency"])
    return form


def refresh_services(payload: Mapping[str, Any], service_id: str) -> Dict[str, Any]:
    services = payload.get("services")
    if not isinstance(services, Mapping):
        raise LegacyShapeMismatch("refresh_services", service_id, "no services object")
    form: Dict[str, Any] = {}
    info = str(_wrapped(payload.get("serviceInfo")) or "")
    hourly = re.search(r"Hourly Rate: \$" + _NUMBER + r"/hr", info)
    minimum = re.search(r"Minimum: \$" + _NUMBER, info)
    if hourly:
        form["hourly_rate"] = float(hourly.group(1))
    if minimum:
        form["minimum_visit"] = float(minimum.group(1))

    areas = {}
    for stored_key, data in services.items():
        key = _REFRESH_STORED_AREAS.get(stored_key)
        if key is None or not isinstance(data, Mapping):
            logger.info(f"Skipping unknown Refresh area '{stored_key}'")
            continue
        method = str(_wrapped(data.get("pricingMethod")) or "").lower()
        if "per hour" in method:
            pricing_type = "perHour"
        elif "per worker" in method:
            pricing_type = "perWorker"
        elif "square feet" in method:
            pricing_type = "squareFeet"
        elif "custom" in method:
            pricing_type = "custom"
        else:
            pricing_type = "preset"
        area: Dict[str, Any] = {"enabled": data.get("enabled") is not False, "pricing_type": pricing_type}
        if pricing_type == "perHour" and isinstance(data.get("hours"), Mapping):
            area["hours"] = data["hours"].get("quantity", 0)
        elif pricing_type == "perWorker" and isinstance(data.get("workersCalc"), Mapping):
            area["workers"] = data["workersCalc"].get("quantity", 2)
        elif pricing_type == "squareFeet":
            for stored, name in (("insideSqft", "inside_sqft"), ("outsideSqft", "outside_sqft")):
                if isinstance(data.get(stored), Mapping):
                    area[name] = data[stored].get("quantity", 0)
        elif pricing_type == "custom":
            area["custom_amount"] = _wrapped(data.get("total") or data.get("customAmount"))
        plan = str(_wrapped(data.get("plan")) or "").lower()
        if key == "patio":
            addon = data.get("includePatioAddon", data.get("patioAddon"))
            area["include_patio_addon"] = bool(_wrapped(addon))
            if plan:
                area["patio_mode"] = "upsell" if "upsell" in plan else "standalone"
        elif key == "boh" and plan:
            area["kitchen_size"] = "large" if "large" in plan else "smallMedium"
        areas[key] = area
    form["areas"] = areas
    return form


def _common_wrappers(payload: Mapping[str, Any]) -> Dict[str, Any]:
    form: Dict[str, Any] = {}
    frequency = _wrapped(payload.get("frequency") or payload.get("serviceFrequency"))
    if frequency:
        form["frequency"] = freq.normalize_frequency(frequency)
    location = _wrapped(payload.get("location"))
    if location:
        form["location"] = "insideBeltway" if "inside" in str(location).lower() else "outsideBeltway"
    tier = _wrapped(payload.get("rateCategory") or payload.get("rateTier"))
    if tier:
        form["rate_tier"] = "greenRate" if "green" in str(tier).lower() else "redRate"

    totals = payload.get("totals")
    if isinstance(totals, Mapping):
        for key, block in totals.items():
            if not isinstance(block, Mapping):
                continue
            if block.get("months"):
                form["contract_months"] = block["months"]
            target = _TOTALS_OVERRIDES.get(to_snake(key))
            if target and block.get("isCustom") is True and block.get("amount") is not None:
                form[target] = block["amount"]
    install = payload.get("installationFee") or payload.get("installation")
    if isinstance(install, Mapping) and install.get("isCustom") is True:
        amount = install.get("amount", install.get("total"))
        if amount is not None:
            form["custom_installation"] = amount
    return form


def janitorial_strings(payload: Mapping[str, Any], service_id: str) -> Dict[str, Any]:
    keys = ("service", "otherTasks", "vacuuming", "dusting", "addonTime", "visitsPerWeek")
    if not any(k in payload for k in keys):
        raise LegacyShapeMismatch("janitorial_strings", service_id)
    form = _common_wrappers(payload)
    service_type = str(_wrapped(payload.get("serviceType")) or "")
    if "one-time" in service_type.lower():
        form["frequency"] = "oneTime"

    manual = _num(_wrapped(payload.get("otherTasks")))
    vacuuming = _num(_wrapped(payload.get("vacuuming")))
    places = _num(_wrapped(payload.get("dusting")))
    addon = _num(_wrapped(payload.get("addonTime")))
    visits = _num(_wrapped(payload.get("visitsPerWeek")))
    if vacuuming is not None:
        form["vacuuming_hours"] = vacuuming
    if places is not None:
        form["dusting_places"] = int(places)
    if addon is not None:
        form["addon_minutes"] = int(addon)
    if visits is not None:
        form["visits_per_week"] = int(visits)

    service = payload.get("service")
    if isinstance(service, Mapping) and service.get("rate") is not None:
        rate = _num(service["rate"])
        if rate is not None:
            form["base_hourly_rate"] = rate
    if manual is not None:
        form["manual_hours"] = manual
    elif isinstance(service, Mapping):
        total_hours = _num(service.get("qty")) or 0.0
        dusting_hours = (places or 0.0) / 4.0
        form["manual_hours"] = round(max(0.0, total_hours - (vacuuming or 0.0) - dusting_hours), 2)
    return form


def display_wrappers(payload: Mapping[str, Any], service_id: str) -> Dict[str, Any]:
    form = _common_wrappers(payload)

    for array_key, labels in (("fixtureBreakdown", _FIXTURE_LABELS),
                              ("windows", _BREAKDOWN_LABELS),
                              ("drainBreakdown", _BREAKDOWN_LABELS),
                              ("serviceBreakdown", _BREAKDOWN_LABELS)):
        for item in payload.get(array_key) or []:
            if not isinstance(item, Mapping):
                continue
            name = labels.get(str(item.get("label") or "").strip().lower())
            if name:
                form[name] = item.get("qty", item.get("quantity", 0)) or 0

    mode = str(_wrapped(payload.get("pricingMode")) or "")
    if "all inclusive" in mode.lower():
        form["pricing_mode"] = "all_inclusive"
    elif "geographic" in mode.lower():
        form["pricing_mode"] = "per_item_charge"
    soap = _wrapped(payload.get("soapType"))
    if soap:
        form["soap_type"] = "luxury" if str(soap).lower() == "luxury" else "standard"
    install_type = _wrapped(payload.get("installType"))
    if install_type:
        form["is_first_time"] = "first time" in str(install_type).lower()
    method = _wrapped(payload.get("pricingMethod"))
    if method and service_id == "electrostatic_spray":
        form["pricing_method"] = "byRoom" if "room" in str(method).lower() else "bySqFt"
    combined = _wrapped(payload.get("combinedService"))
    if combined:
        form["combined_with_saniclean"] = "sani-clean" in str(combined).lower()

    if not form:
        raise LegacyShapeMismatch("display_wrappers", service_id, "no wrapped fields")
    return form


def refresh_area_breakdown(payload: Mapping[str, Any], service_id: str) -> Dict[str, Any]:
    breakdown = payload.get("areaBreakdown")
    rate_info = str(_wrapped(payload.get("rateInfo")) or "")
    if not isinstance(breakdown, list) and not rate_info:
        raise LegacyShapeMismatch("refresh_area_breakdown", service_id)
    form: Dict[str, Any] = {}
    for pattern, name in ((r"\$" + _NUMBER + r"/hr", "hourly_rate"),
                          (r"Trip: \$" + _NUMBER, "trip_charge"),
                          (r"Minimum: \$" + _NUMBER, "minimum_visit")):
        match = re.search(pattern, rate_info)
        if match:
            form[name] = float(match.group(1))

    areas = {}
    for item in breakdown or []:
        if not isinstance(item, Mapping):
            continue
        key = str(item.get("label") or "").strip().lower()
        if key not in AREA_KEYS:
            continue
        text = str(item.get("value") or "")
        # "Weekly - 2 hrs @ $200/hr = $400"
        freq_match = re.match(r"^(\w+(?:-\w+)?)\s*-", text)
        hours_match = re.search(_NUMBER + r"\s*hrs", text)
        areas[key] = {
            "enabled": True,
            "pricing_type": "perHour" if hours_match else "preset",
            "hours": float(hours_match.group(1)) if hours_match else 0.0,
        }
        if freq_match and "frequency" not in form:
            form["frequency"] = freq.normalize_frequency(freq_match.group(1), "oneTime")
    form["areas"] = areas
    totals = payload.get("totals")
    if isinstance(totals, Mapping) and isinstance(totals.get("contract"), Mapping):
        form["contract_months"] = totals["contract"].get("months") or freq.DEFAULT_CONTRACT_MONTHS
    return form


_DEFAULT_CHAIN: List[Adapter] = [current_schema, flat_fields, display_wrappers]

ADAPTER_CHAINS: Dict[str, List[Adapter]] = {
    "refresh_power_scrub": [
        current_schema,
        refresh_draft_v2,
        refresh_converted,
        refresh_services,
        refresh_area_breakdown,
    ],
    "janitorial": [current_schema, flat_fields, janitorial_strings, display_wrappers],
}


def adapt_payload(service_id: str, payload: Any) -> Dict[str, Any]:
    """
    Convert a saved payload of any known shape into form state.

    Returns {} for inactive, non-dict or unrecognised payloads.
    """
    if not isinstance(payload, Mapping) or not payload.get("isActive"):
        return {}
    for adapter in ADAPTER_CHAINS.get(service_id, _DEFAULT_CHAIN):
        try:
            form = adapter(payload, service_id)
        except LegacyShapeMismatch as e:
            logger.debug(str(e))
            continue
        if form:
            custom_fields = extract_custom_fields(payload)
            if custom_fields and not form.get("custom_fields"):
                form["custom_fields"] = custom_fields
            logger.info(f"Loaded saved {service_id} via {adapter.__name__}")
            return form
    logger.info(f"No adapter recognised saved {service_id} payload; using config defaults")
    return {}
