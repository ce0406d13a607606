"""FastAPI dependency injection: pricing config provider and quote engine."""
from fastapi import Request

from app.services.pricing_config import PricingConfigProvider
from app.services.quote_engine import QuoteEngine

# Used when the app was started without the lifespan (scripts, bare routers)
_default_provider = PricingConfigProvider()
_default_engine = QuoteEngine(_default_provider)


def get_pricing_provider(request: Request) -> PricingConfigProvider:
    return getattr(request.app.state, "pricing_provider", None) or _default_provider


def get_quote_engine(request: Request) -> QuoteEngine:
    return getattr(request.app.state, "quote_engine", None) or _default_engine
