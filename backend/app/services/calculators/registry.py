"""Service key -> calculator class, in canonical agreement order."""

from typing import Dict, List, Type

from app.services.calculators.base import ServiceCalculator
from app.services.calculators.carpet import CarpetCalculator
from app.services.calculators.electrostatic_spray import ElectrostaticSprayCalculator
from app.services.calculators.foaming_drain import FoamingDrainCalculator
from app.services.calculators.grease_trap import GreaseTrapCalculator
from app.services.calculators.janitorial import JanitorialCalculator
from app.services.calculators.microfiber_mopping import MicrofiberMoppingCalculator
from app.services.calculators.refresh_power_scrub import RefreshPowerScrubCalculator
from app.services.calculators.rpm_windows import RpmWindowsCalculator
from app.services.calculators.saniclean import SaniCleanCalculator
from app.services.calculators.sanipod import SanipodCalculator
from app.services.calculators.saniscrub import SaniScrubCalculator
from app.services.calculators.strip_wax import StripWaxCalculator


SERVICE_CALCULATORS: Dict[str, Type[ServiceCalculator]] = {
    cls.service_id: cls
    for cls in (
        SaniCleanCalculator,
        SaniScrubCalculator,
        RpmWindowsCalculator,
        RefreshPowerScrubCalculator,
        JanitorialCalculator,
        SanipodCalculator,
        FoamingDrainCalculator,
        CarpetCalculator,
        StripWaxCalculator,
        GreaseTrapCalculator,
        ElectrostaticSprayCalculator,
        MicrofiberMoppingCalculator,
    )
}

# Order services appear on an agreement; the first active one is "primary"
SERVICE_ORDER: List[str] = list(SERVICE_CALCULATORS.keys())
