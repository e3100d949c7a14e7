from typing import Any, Dict, Tuple

from models import DEFAULT_SETTINGS, SETTINGS_WIRE_KEYS, Settings, SettingsFormInput
from utils import clamp, normalize_page_size, resolve_hex_color, sanitize_background_image

OVERLAY_OPACITY_RANGE = (0.0, 0.6)
BLUR_STRENGTH_RANGE = (0.0, 20.0)
GLASS_TINT_OPACITY_RANGE = (0.05, 0.95)
MOBILE_LAYOUTS = ("grid", "list")

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}

# Accept both wire keys (backgroundType) and attribute names (background_type).
_ATTR_FOR_KEY: Dict[str, str] = {}
for _attr, _wire in SETTINGS_WIRE_KEYS.items():
    _ATTR_FOR_KEY[_attr] = _attr
    _ATTR_FOR_KEY[_wire] = _attr


def _settings_fields(settings: Settings) -> Dict[str, Any]:
    return {attr: getattr(settings, attr) for attr in SETTINGS_WIRE_KEYS}


def _incoming_fields(partial) -> Dict[str, Any]:
    if isinstance(partial, Settings):
        return _settings_fields(partial)
    if not isinstance(partial, dict):
        return {}
    fields: Dict[str, Any] = {}
    for key, value in partial.items():
        attr = _ATTR_FOR_KEY.get(key) if isinstance(key, str) else None
        if attr:
            fields[attr] = value
    return fields


def _coerce_bool(*candidates) -> bool:
    for value in candidates:
        if value is None:
            continue
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
            continue
        return bool(value)
    return False


def _clamped(merged: Dict[str, Any], base: Settings, attr: str, bounds: Tuple[float, float]) -> float:
    low, high = bounds
    fallback = clamp(getattr(base, attr), low, high, getattr(DEFAULT_SETTINGS, attr))
    return clamp(merged.get(attr), low, high, fallback)


def _color(merged: Dict[str, Any], base: Settings, attr: str) -> str:
    fallback = resolve_hex_color(getattr(base, attr), getattr(DEFAULT_SETTINGS, attr))
    return resolve_hex_color(merged.get(attr), fallback)


def _mobile_layout(incoming: Dict[str, Any], base: Settings) -> str:
    for value in (incoming.get("mobile_layout"), base.mobile_layout):
        if value in MOBILE_LAYOUTS:
            return value
    return DEFAULT_SETTINGS.mobile_layout


def reconcile_settings(base: Settings, partial=None) -> Settings:
    """Overlay ``partial`` onto ``base`` and re-validate every field.

    ``partial`` may use wire keys or attribute names; unknown keys are
    ignored. The result is always a complete, in-range ``Settings`` no matter
    what was supplied.
    """
    incoming = _incoming_fields(partial)
    merged = _settings_fields(base)
    merged.update(incoming)
    return Settings(
        background_type="color" if merged.get("background_type") == "color" else "image",
        background_image=sanitize_background_image(merged.get("background_image")),
        background_color=_color(merged, base, "background_color"),
        overlay_opacity=_clamped(merged, base, "overlay_opacity", OVERLAY_OPACITY_RANGE),
        blur_strength=_clamped(merged, base, "blur_strength", BLUR_STRENGTH_RANGE),
        glass_tint_color=_color(merged, base, "glass_tint_color"),
        glass_tint_opacity=_clamped(merged, base, "glass_tint_opacity", GLASS_TINT_OPACITY_RANGE),
        has_completed_setup=_coerce_bool(
            incoming.get("has_completed_setup"), base.has_completed_setup, DEFAULT_SETTINGS.has_completed_setup
        ),
        hide_default_apps=_coerce_bool(
            incoming.get("hide_default_apps"), base.hide_default_apps, DEFAULT_SETTINGS.hide_default_apps
        ),
        mobile_layout=_mobile_layout(incoming, base),
    )


def settings_from_form(current: Settings, form: SettingsFormInput) -> Tuple[Settings, int]:
    """Apply the appearance form; returns the new settings and the desktop page size."""
    if form.background_image_choice == "custom":
        background_image = form.background_image_custom or ""
    else:
        background_image = form.background_image_choice
    settings = reconcile_settings(
        current,
        {
            "background_type": form.background_type,
            "background_image": background_image,
            "background_color": form.background_color,
            "overlay_opacity": form.overlay_opacity,
            "blur_strength": form.blur_strength,
            "glass_tint_color": form.glass_tint_color,
            "glass_tint_opacity": form.glass_tint_opacity,
            "has_completed_setup": True,
            "hide_default_apps": form.hide_default_apps,
            "mobile_layout": form.mobile_layout,
        },
    )
    return settings, normalize_page_size(form.page_size)
