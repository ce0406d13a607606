"""
Red/Green Line profitability gate.

    threshold = minimum x 1.30
    original <= minimum   -> red      (approval required)
    original >= threshold -> green    (auto-approved)
    otherwise             -> neutral  (approval required, gap reported)

Classification is always recomputed from the live aggregate numbers and is
never persisted as a source of truth.
"""

from dataclasses import dataclass
from typing import Any, Dict

GREEN_LINE_FACTOR: float = 1.30

RED = "red"
GREEN = "green"
NEUTRAL = "neutral"

STATUS_APPROVED = "approved"
STATUS_PENDING_APPROVAL = "pending_approval"


@dataclass(frozen=True)
class ProfitabilityResult:
    classification: str
    original: float
    minimum: float
    threshold: float
    gap: float

    @property
    def requires_approval(self) -> bool:
        return self.classification != GREEN

    def to_payload(self) -> Dict[str, Any]:
        return {
            "classification": self.classification,
            "threshold": self.threshold,
            "gapToGreen": self.gap,
            "requiresApproval": self.requires_approval,
        }


def classify(original: float, minimum: float) -> str:
    """Classify an aggregate per-visit price against its minimum floor."""
    if minimum <= 0:
        return GREEN if original > 0 else RED
    threshold = minimum * GREEN_LINE_FACTOR
    if original <= minimum:
        return RED
    if original >= threshold:
        return GREEN
    return NEUTRAL


def evaluate(original: float, minimum: float) -> ProfitabilityResult:
    threshold = round(minimum * GREEN_LINE_FACTOR, 2)
    return ProfitabilityResult(
        classification=classify(original, minimum),
        original=round(original, 2),
        minimum=round(minimum, 2),
        threshold=threshold,
        gap=round(max(0.0, threshold - original), 2),
    )


def approval_status(classification: str) -> str:
    return STATUS_APPROVED if classification == GREEN else STATUS_PENDING_APPROVAL
