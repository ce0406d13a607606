"""
Pricing configuration provider.

Static per-service defaults ship with each calculator. An optional remote
config store (PRICING_CONFIG_URL) can override them:

    GET {PRICING_CONFIG_URL}/service-configs/{service_key}/active
        -> {"config": {...}}  or  {"data": {"config": {...}}}

Remote keys arrive camelCase, either in calculator form or in the store's
nested layout (mapped through BACKEND_KEY_MAP). They are normalised to
snake_case, then deep-merged over the static table. A failed or malformed fetch never blocks pricing: it is
logged and the provider keeps serving the last good (or static) config.

Concurrent refreshes of one key share a single in-flight request. A forced
refresh supersedes it; results are applied last-write-wins by generation.
"""

import asyncio
import copy
import logging
import os
import re
from typing import Any, Dict, List, Optional, Tuple

import httpx

from app.services.calculators.base import deep_merge
from app.services.calculators.registry import SERVICE_CALCULATORS
from app.services.pricing_errors import ConfigUnavailable

logger = logging.getLogger("cleanquote-pricing.config")

# Maps keyed by frequency / variant names: keep their keys verbatim
_VERBATIM_KEY_MAPS = {
    "frequency_multipliers",
    "price_multipliers",
    "fixture_rates",
    "minimums",
    "variants",
    "rate_tiers",
}

_DEFAULT_TIMEOUT_S = 10.0

# Config-store layout -> calculator config key (dotted for nested targets).
# Sources are camelCase paths in the raw config; the first numeric one wins.
_SHARED_KEY_MAP: Dict[str, Tuple[str, ...]] = {
    "rate_tiers.redRate": ("rateCategories.redRate.multiplier",),
    "rate_tiers.greenRate": ("rateCategories.greenRate.multiplier",),
}

BACKEND_KEY_MAP: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "saniclean": {
        "inside_rate_per_fixture": ("standardALaCartePricing.insideBeltway.pricePerFixture",),
        "inside_minimum": ("standardALaCartePricing.insideBeltway.minimumPrice",),
        "trip_charge": ("standardALaCartePricing.insideBeltway.tripCharge",),
        "parking_fee": ("standardALaCartePricing.insideBeltway.parkingFeeAddOn",),
        "outside_rate_per_fixture": ("standardALaCartePricing.outsideBeltway.pricePerFixture",),
        "small_facility_threshold": ("smallBathroomMinimums.minimumFixturesThreshold",),
        "small_facility_minimum": ("smallBathroomMinimums.minimumPriceUnderThreshold",),
        "all_inclusive_rate_per_fixture": ("allInclusivePricing.pricePerFixture",),
        "luxury_soap_upgrade_per_dispenser": ("soapUpgrades.standardToLuxuryPerDispenserPerWeek",),
        "excess_standard_soap_per_gallon": ("soapUpgrades.excessUsageCharges.standardSoapPerGallon",),
        "excess_luxury_soap_per_gallon": ("soapUpgrades.excessUsageCharges.luxurySoapPerGallon",),
        "paper_credit_per_fixture": ("paperCredit.creditPerFixturePerWeek",),
        "microfiber_per_bathroom": ("microfiberMoppingIncludedWithSaniClean.pricePerBathroom",),
        "warranty_per_dispenser": (
            "warrantyFees.soapDispenserWarrantyFeePerWeek",
            "warrantyFees.airFreshenerDispenserWarrantyFeePerWeek",
        ),
        # "included" screens / seat covers take the mat / clip price
        "facility_components.urinal_screen": (
            "monthlyAddOnSupplyPricing.urinalScreenMonthlyPrice",
            "monthlyAddOnSupplyPricing.urinalMatMonthlyPrice",
        ),
        "facility_components.urinal_mat": ("monthlyAddOnSupplyPricing.urinalMatMonthlyPrice",),
        "facility_components.toilet_clip": ("monthlyAddOnSupplyPricing.toiletClipMonthlyPrice",),
        "facility_components.seat_cover_dispenser": (
            "monthlyAddOnSupplyPricing.toiletSeatCoverDispenserMonthlyPrice",
            "monthlyAddOnSupplyPricing.toiletClipMonthlyPrice",
        ),
        "facility_components.sanipod": ("monthlyAddOnSupplyPricing.sanipodMonthlyPricePerPod",),
    },
    "janitorial": {
        "base_hourly_rate": ("baseRates.recurringService",),
        "short_job_hourly_rate": ("baseRates.oneTimeService",),
    },
    "foaming_drain": {
        "standard_drain_rate": ("standardPricing.standardDrainRate", "standardDrainRate"),
        "alt_base_charge": ("standardPricing.alternateBaseCharge",),
        "alt_extra_per_drain": ("standardPricing.alternateExtraPerDrain",),
        "volume_threshold": ("volumePricing.minimumDrains",),
        "volume_weekly_rate": ("volumePricing.weeklyRatePerDrain",),
        "volume_bimonthly_rate": ("volumePricing.bimonthlyRatePerDrain",),
        "grease_weekly_rate": ("greaseTrapPricing.weeklyRatePerTrap",),
        "grease_install_rate": ("greaseTrapPricing.installPerTrap",),
        "green_weekly_rate": ("greenDrainPricing.weeklyRatePerDrain",),
        "green_install_rate": ("greenDrainPricing.installPerDrain",),
        "plumbing_addon_rate": ("addOns.plumbingWeeklyAddonPerDrain",),
        "minimum_per_visit": ("minimumChargePerVisit",),
        "filthy_multiplier": ("installationMultipliers.filthyMultiplier",),
    },
    "carpet": {
        "unit_sqft": ("baseSqFtUnit",),
        "first_unit_rate": ("basePrice",),
        "additional_unit_rate": ("additionalUnitPrice",),
        "minimum_per_visit": ("minimumChargePerVisit",),
        "dirty_install_multiplier": ("installationMultipliers.dirtyInstallMultiplier",),
        "clean_install_multiplier": ("installationMultipliers.cleanInstallMultiplier",),
    },
    "strip_wax": {
        f"variants.{variant}.{target}": (f"variants.{variant}.{source}",)
        for variant in ("standardFull", "noSealant", "wellMaintained")
        for target, source in (("rate_per_sqft", "ratePerSqFt"), ("minimum", "minCharge"))
    },
    "electrostatic_spray": {
        "rate_per_room": ("defaultRatePerRoom", "standardSprayPricing.sprayRatePerRoom"),
        "rate_per_sqft_unit": ("defaultRatePerSqFt", "standardSprayPricing.sprayRatePerSqFtUnit"),
        "sqft_unit": ("standardSprayPricing.sqFtUnit",),
        "inside_trip_charge": ("defaultTripCharge", "tripCharges.standard"),
    },
}


def static_defaults() -> Dict[str, Dict[str, Any]]:
    return {key: copy.deepcopy(cls.default_config) for key, cls in SERVICE_CALCULATORS.items()}


def to_snake(name: str) -> str:
    name = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    return name.replace("-", "_").lower()


def normalize_keys(value: Any, verbatim: bool = False) -> Any:
    """Recursively snake_case dict keys, except inside frequency/variant maps."""
    if isinstance(value, dict):
        out = {}
        for key, item in value.items():
            new_key = key if verbatim else to_snake(str(key))
            out[new_key] = normalize_keys(item, verbatim=new_key in _VERBATIM_KEY_MAPS)
        return out
    if isinstance(value, list):
        return [normalize_keys(v) for v in value]
    return value


def _lookup(config: Dict[str, Any], path: str) -> Any:
    value: Any = config
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value


def _assign(config: Dict[str, Any], path: str, value: Any) -> None:
    *parents, leaf = path.split(".")
    for part in parents:
        config = config.setdefault(part, {})
    config[leaf] = value


def map_backend_keys(service_key: str, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Translate a raw store config into calculator keys.

    Keys already in calculator form pass through snake_cased. Nested store
    sections listed in BACKEND_KEY_MAP are read into their calculator key and
    then dropped; non-numeric values there (e.g. "included") are skipped.
    """
    mapping = dict(_SHARED_KEY_MAP)
    mapping.update(BACKEND_KEY_MAP.get(service_key, {}))
    cls = SERVICE_CALCULATORS.get(service_key)
    static_keys = set(cls.default_config) if cls is not None else set()

    mapped = normalize_keys(config)
    for target, sources in mapping.items():
        for source in sources:
            value = _lookup(config, source)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                _assign(mapped, target, value)
                break
        for source in sources:
            root = to_snake(source.split(".")[0])
            if root not in static_keys and root != target.split(".")[0]:
                mapped.pop(root, None)
    return mapped


def extract_config(service_key: str, body: Any) -> Dict[str, Any]:
    """Pull the config object out of either accepted response envelope."""
    if not isinstance(body, dict):
        raise ConfigUnavailable(service_key, "response body is not an object")
    config = body.get("config")
    if config is None and isinstance(body.get("data"), dict):
        config = body["data"].get("config")
    if not isinstance(config, dict):
        raise ConfigUnavailable(service_key, "response has no config object")
    return map_backend_keys(service_key, config)


class PricingConfigProvider:
    """Serves merged pricing configs by service key."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if base_url is None:
            base_url = os.getenv("PRICING_CONFIG_URL", "")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or float(os.getenv("PRICING_CONFIG_TIMEOUT", _DEFAULT_TIMEOUT_S))
        self._client = client
        self._static = static_defaults()
        self._remote: Dict[str, Dict[str, Any]] = {}
        self._in_flight: Dict[str, asyncio.Task] = {}
        self._generation: Dict[str, int] = {}
        self._applied_generation: Dict[str, int] = {}

    # ── lookups ─────────────────────────────────────────────────────────────

    def service_keys(self) -> List[str]:
        return list(self._static.keys())

    def get(self, service_key: str) -> Dict[str, Any]:
        """Merged config for a service. Raises KeyError for unknown services."""
        static = self._static[service_key]
        return deep_merge(static, self._remote.get(service_key, {}))

    def source(self, service_key: str) -> str:
        return "remote" if service_key in self._remote else "static"

    # ── remote fetch ────────────────────────────────────────────────────────

    async def _get(self, url: str) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(url)

    async def fetch(self, service_key: str) -> Dict[str, Any]:
        """Fetch one remote config. Raises ConfigUnavailable on any failure."""
        if not self.base_url:
            raise ConfigUnavailable(service_key, "PRICING_CONFIG_URL not set")
        url = f"{self.base_url}/service-configs/{service_key}/active"
        try:
            r = await self._get(url)
        except httpx.HTTPError as e:
            raise ConfigUnavailable(service_key, f"{type(e).__name__}: {e}")
        if r.status_code != 200:
            raise ConfigUnavailable(service_key, f"HTTP {r.status_code}")
        try:
            body = r.json()
        except ValueError as e:
            raise ConfigUnavailable(service_key, f"invalid JSON: {e}")
        return extract_config(service_key, body)

    async def _refresh(self, service_key: str, generation: int) -> Dict[str, Any]:
        try:
            remote = await self.fetch(service_key)
        except ConfigUnavailable as e:
            logger.warning(f"{e}; using {self.source(service_key)} defaults")
            return self.get(service_key)

        if generation < self._applied_generation.get(service_key, 0):
            logger.info(f"Discarding stale config for {service_key} (generation {generation})")
        else:
            self._remote[service_key] = remote
            self._applied_generation[service_key] = generation
            logger.info(f"Pricing config refreshed for {service_key}")
        return self.get(service_key)

    async def refresh(self, service_key: str, force: bool = False) -> Dict[str, Any]:
        """
        Refresh one service's config and return the merged result.

        Callers arriving while a fetch is in flight share it unless ``force``
        is set, in which case a newer fetch starts and wins.
        """
        if service_key not in self._static:
            raise KeyError(service_key)
        pending = self._in_flight.get(service_key)
        if pending is not None and not pending.done() and not force:
            return await asyncio.shield(pending)

        generation = self._generation.get(service_key, 0) + 1
        self._generation[service_key] = generation
        task = asyncio.ensure_future(self._refresh(service_key, generation))
        self._in_flight[service_key] = task
        try:
            return await task
        finally:
            if self._in_flight.get(service_key) is task:
                del self._in_flight[service_key]

    async def refresh_all(self) -> Dict[str, str]:
        """Refresh every service concurrently. Returns key -> source."""
        await asyncio.gather(*(self.refresh(key) for key in self.service_keys()))
        return {key: self.source(key) for key in self.service_keys()}
