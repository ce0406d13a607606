"""
Override resolution for service form fields.

Each logical field resolves, in order, to:
  1. an explicit override in the form (``custom_<field>``, or ``<field>`` with
     ``<field>_is_custom`` set)
  2. a prior saved value that differs from the config default
  3. the live config default

The result carries one central ``is_custom`` map. A config refresh updates
every field whose flag is False and leaves custom fields alone.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from app.services.pricing_errors import InvalidInput

logger = logging.getLogger("cleanquote-pricing.overrides")

_TRUE_STRINGS = {"1", "true", "yes", "y", "on"}
_EPSILON = 1e-9


def is_unset(value: Any) -> bool:
    """None and empty / whitespace-only strings mean "not provided"."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def parse_number(field_name: str, value: Any) -> Optional[float]:
    """
    Strict numeric parse. Returns None when unset.

    Raises InvalidInput for non-numeric, NaN, infinite or negative values.
    """
    if is_unset(value):
        return None
    if isinstance(value, str):
        value = value.strip().replace("$", "").replace(",", "")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(field_name, value)
    if math.isnan(number) or math.isinf(number) or number < 0:
        raise InvalidInput(field_name, value)
    return number


def clamp_number(field_name: str, value: Any) -> Optional[float]:
    """parse_number that never raises: bad input becomes 0, unset stays None."""
    try:
        return parse_number(field_name, value)
    except InvalidInput as e:
        logger.debug(f"Clamping to 0: {e}")
        return 0.0


def number(form: Mapping[str, Any], field_name: str, default: float = 0.0) -> float:
    """Read a sanitised number from a form, falling back to ``default`` when unset."""
    value = clamp_number(field_name, form.get(field_name))
    return default if value is None else value


def flag(form: Mapping[str, Any], field_name: str, default: bool = False) -> bool:
    value = form.get(field_name)
    if is_unset(value):
        return default
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def _same(a: Any, b: Any) -> bool:
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return abs(float(a) - float(b)) < _EPSILON
    return a == b


def _coerce(field_name: str, raw: Any, default: Any) -> Any:
    if isinstance(default, bool):
        if isinstance(raw, str):
            return raw.strip().lower() in _TRUE_STRINGS
        return bool(raw)
    if isinstance(default, (int, float)):
        value = clamp_number(field_name, raw)
        return 0.0 if value is None else value
    return raw


def explicit_override(form: Mapping[str, Any], field_name: str) -> Tuple[bool, Any]:
    """(present, raw value) of an explicit override for ``field_name``."""
    custom = form.get(f"custom_{field_name}")
    if not is_unset(custom):
        return True, custom
    if form.get(f"{field_name}_is_custom") is True and not is_unset(form.get(field_name)):
        return True, form.get(field_name)
    return False, None


def resolve_field(
    field_name: str,
    default: Any,
    form: Optional[Mapping[str, Any]] = None,
    saved: Optional[Mapping[str, Any]] = None,
) -> Tuple[Any, bool]:
    """Resolve one field. Returns (value, is_custom)."""
    form = form or {}
    present, raw = explicit_override(form, field_name)
    if present:
        return _coerce(field_name, raw, default), True

    if saved:
        saved_raw = saved.get(field_name)
        if not is_unset(saved_raw):
            saved_value = _coerce(field_name, saved_raw, default)
            if not _same(saved_value, default):
                return saved_value, True

    return default, False


@dataclass
class ResolvedForm:
    """Resolved field values plus the central is_custom map."""
    values: Dict[str, Any] = field(default_factory=dict)
    is_custom: Dict[str, bool] = field(default_factory=dict)
    defaults: Dict[str, Any] = field(default_factory=dict)

    def set(self, field_name: str, default: Any, form=None, saved=None) -> Any:
        """Resolve one more field against ``default`` and store it."""
        value, custom = resolve_field(field_name, default, form, saved)
        self.values[field_name] = value
        self.is_custom[field_name] = custom
        self.defaults[field_name] = default
        return value

    def get(self, field_name: str, default: Any = None) -> Any:
        return self.values.get(field_name, default)

    def custom_fields(self) -> Dict[str, Any]:
        return {k: v for k, v in self.values.items() if self.is_custom.get(k)}


def resolve_form(
    defaults: Mapping[str, Any],
    form: Optional[Mapping[str, Any]] = None,
    saved: Optional[Mapping[str, Any]] = None,
    fields: Optional[Iterable[str]] = None,
) -> ResolvedForm:
    """Resolve every field in ``fields`` (default: every key of ``defaults``)."""
    resolved = ResolvedForm()
    for name in (fields if fields is not None else defaults.keys()):
        resolved.set(name, defaults.get(name), form, saved)
    return resolved


def refresh_defaults(resolved: ResolvedForm, new_defaults: Mapping[str, Any]) -> ResolvedForm:
    """
    Apply a reloaded config: non-custom fields take the new default, custom
    fields keep their value. Returns a new ResolvedForm.
    """
    refreshed = ResolvedForm(
        values=dict(resolved.values),
        is_custom=dict(resolved.is_custom),
        defaults=dict(resolved.defaults),
    )
    for name, default in new_defaults.items():
        refreshed.defaults[name] = default
        if refreshed.is_custom.get(name):
            continue
        refreshed.values[name] = default
        refreshed.is_custom[name] = False
    return refreshed


def apply_output_override(
    form: Mapping[str, Any],
    field_name: str,
    computed: float,
) -> Tuple[float, bool]:
    """Replace a computed output with ``custom_<field>`` when the form carries one."""
    present, raw = explicit_override(form, field_name)
    if not present:
        return computed, False
    value = clamp_number(f"custom_{field_name}", raw)
    return (0.0 if value is None else value), True
