"""Request bodies for the pricing and quote API."""
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from app.services.aggregation import GlobalCharge


class CalculateRequest(BaseModel):
    form: Dict[str, Any] = Field(default_factory=dict, description="Live form state for one service")
    prior_saved: Optional[Dict[str, Any]] = Field(None, description="Previously saved payload, any schema")
    contract_months: Optional[int] = None


class GlobalChargeIn(BaseModel):
    amount: float = 0.0
    frequency: str = "weekly"

    def to_charge(self) -> GlobalCharge:
        return GlobalCharge(amount=self.amount, frequency=self.frequency)


class AgreementRequest(BaseModel):
    title: Optional[str] = None
    services: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    saved: Dict[str, Any] = Field(default_factory=dict, description="Saved payloads keyed by service id")
    contract_months: int = 12
    trip: Optional[GlobalChargeIn] = None
    parking: Optional[GlobalChargeIn] = None
    primary_frequency: Optional[str] = None
