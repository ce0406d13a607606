"""Error taxonomy for the pricing engine.

Only PersistenceFailure ever reaches an API caller. The other three are
recovered where they are raised: config fetches fall back to static defaults,
bad user input is clamped, unknown legacy payloads are skipped.
"""
from typing import Any, Dict, Optional


class PricingError(Exception):
    """Base class for all pricing engine errors."""


class ConfigUnavailable(PricingError):
    """Remote pricing config could not be fetched or was malformed."""

    def __init__(self, service_key: str, reason: str):
        self.service_key = service_key
        self.reason = reason
        super().__init__(f"Pricing config for '{service_key}' unavailable: {reason}")


class InvalidInput(PricingError):
    """A form value was non-numeric, NaN or negative."""

    def __init__(self, field: str, value: Any):
        self.field = field
        self.value = value
        super().__init__(f"Invalid numeric input for '{field}': {value!r}")


class LegacyShapeMismatch(PricingError):
    """A saved payload did not match the shape an adapter expects."""

    def __init__(self, adapter: str, service_id: str, reason: str = ""):
        self.adapter = adapter
        self.service_id = service_id
        msg = f"{adapter} does not recognise the saved '{service_id}' payload"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class PersistenceFailure(PricingError):
    """Saving an agreement failed. Carries the computed quote so callers can retry."""

    def __init__(self, message: str, quote: Optional[Dict[str, Any]] = None):
        self.quote = quote or {}
        super().__init__(message)
