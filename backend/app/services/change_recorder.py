"""
ChangeRecorder: per-session log of manual price edits.

One entry per (service, field). The first original value seen is kept as the
baseline so a field edited several times reports the net change. An instance
is created per agreement session and handed to each calculator call.
"""

import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger("cleanquote-pricing.changes")


@dataclass
class PriceChange:
    service_id: str
    field: str
    original_value: float
    new_value: float
    change_amount: float
    change_percent: float
    recorded_at: str

    def to_payload(self) -> Dict[str, Any]:
        data = asdict(self)
        return {
            "serviceId": data["service_id"],
            "field": data["field"],
            "originalValue": data["original_value"],
            "newValue": data["new_value"],
            "changeAmount": data["change_amount"],
            "changePercent": data["change_percent"],
            "recordedAt": data["recorded_at"],
        }


class ChangeRecorder:
    """Event log keyed by (service_id, field)."""

    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id
        self._entries: Dict[Tuple[str, str], PriceChange] = {}

    def record(self, service_id: str, field_name: str, original: Any, new: Any) -> Optional[PriceChange]:
        """
        Record an edit. Returns the stored entry, or None when the net change
        against the baseline is zero (the entry is dropped in that case).
        """
        try:
            original_f = float(original or 0)
            new_f = float(new or 0)
        except (TypeError, ValueError):
            logger.debug(f"Ignoring non-numeric change for {service_id}.{field_name}")
            return None

        key = (service_id, field_name)
        baseline = self._entries[key].original_value if key in self._entries else original_f
        amount = round(new_f - baseline, 2)
        if abs(amount) < 0.005:
            self._entries.pop(key, None)
            return None

        percent = round(amount / baseline * 100, 2) if baseline else 0.0
        entry = PriceChange(
            service_id=service_id,
            field=field_name,
            original_value=round(baseline, 2),
            new_value=round(new_f, 2),
            change_amount=amount,
            change_percent=percent,
            recorded_at=datetime.now(timezone.utc).isoformat(),
        )
        self._entries[key] = entry
        return entry

    def remove(self, service_id: str, field_name: str) -> None:
        self._entries.pop((service_id, field_name), None)

    def clear(self, service_id: Optional[str] = None) -> None:
        if service_id is None:
            self._entries.clear()
            return
        for key in [k for k in self._entries if k[0] == service_id]:
            del self._entries[key]

    def changes(self, service_id: Optional[str] = None) -> List[PriceChange]:
        return [
            e for (sid, _), e in self._entries.items()
            if service_id is None or sid == service_id
        ]

    def has_changes(self) -> bool:
        return bool(self._entries)

    def to_payload(self) -> List[Dict[str, Any]]:
        return [e.to_payload() for e in self.changes()]
