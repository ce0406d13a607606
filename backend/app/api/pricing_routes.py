"""Pricing config routes: service catalogue, merged configs, remote refresh."""
import logging
from fastapi import APIRouter, HTTPException, Depends

from app.api.deps import get_pricing_provider
from app.services.calculators.registry import SERVICE_CALCULATORS
from app.services.pricing_config import PricingConfigProvider

router = APIRouter(prefix="/api/pricing", tags=["Pricing Config"])
logger = logging.getLogger("cleanquote-api")


def _known(service_key: str) -> None:
    if service_key not in SERVICE_CALCULATORS:
        raise HTTPException(status_code=404, detail=f"Unknown service: {service_key}")


# ─── Endpoints ──────────────────────────────────────────────────────────────

@router.get("/services")
async def list_services(provider: PricingConfigProvider = Depends(get_pricing_provider)):
    """Every priceable service in canonical order, with its config source."""
    return {
        "services": [
            {
                "serviceId": key,
                "displayName": cls.display_name,
                "defaultFrequency": cls.default_frequency,
                "configSource": provider.source(key),
            }
            for key, cls in SERVICE_CALCULATORS.items()
        ]
    }


@router.get("/{service_key}")
async def get_service_config(
    service_key: str,
    provider: PricingConfigProvider = Depends(get_pricing_provider),
):
    """Merged (static + remote) config currently used to price a service."""
    _known(service_key)
    return {
        "serviceId": service_key,
        "source": provider.source(service_key),
        "config": provider.get(service_key),
    }


@router.post("/{service_key}/refresh")
async def refresh_service_config(
    service_key: str,
    force: bool = False,
    provider: PricingConfigProvider = Depends(get_pricing_provider),
):
    """
    Re-fetch a service's config from the remote store. Falls back to the last
    known values when the store is unreachable; the response says which.
    """
    _known(service_key)
    config = await provider.refresh(service_key, force=force)
    source = provider.source(service_key)
    logger.info(f"Config refresh for {service_key}: source={source}", extra={"service_id": service_key})
    return {"serviceId": service_key, "source": source, "config": config}
