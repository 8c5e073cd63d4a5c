"""
Template loading and field resolution shared by the Apple and Google adapters.

Template layering precedence, lowest to highest:
base JSON template < profile template < pass instance values < explicit overrides.
"""

import copy
import json
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Any

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

APPLE_FIELD_GROUPS = (
    "headerFields",
    "primaryFields",
    "secondaryFields",
    "auxiliaryFields",
    "backFields",
)

# Groups whose values are filled from pass data; header fields stay as templated
POPULATED_FIELD_GROUPS = ("primaryFields", "secondaryFields", "auxiliaryFields", "backFields")

ID_ALIASES = {"scheduleId", "orderId", "batchId", "visitId"}

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


@lru_cache
def _read_template(platform: str, name: str) -> str:
    path = TEMPLATES_DIR / platform / f"{name}.json"
    return path.read_text(encoding="utf-8")


def load_template(platform: str, name: str) -> dict[str, Any]:
    """Load a base template; returns a fresh dict on every call."""
    return json.loads(_read_template(platform, name))


def template_exists(platform: str, name: str) -> bool:
    return (TEMPLATES_DIR / platform / f"{name}.json").is_file()


def _parse_datetime(value: str) -> datetime | None:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None


def format_datetime(value: str | None) -> str:
    """Format an ISO timestamp like `10/19/2026, 9:30:00 AM`. Unparseable input is returned as-is."""
    if not value:
        return ""
    dt = _parse_datetime(value)
    if dt is None:
        return value
    hour = dt.hour % 12 or 12
    meridiem = "AM" if dt.hour < 12 else "PM"
    return f"{dt.month}/{dt.day}/{dt.year}, {hour}:{dt.minute:02d}:{dt.second:02d} {meridiem}"


def format_date(value: str | None) -> str:
    """Format an ISO date like `Oct 19, 2026`."""
    if not value:
        return ""
    dt = _parse_datetime(value)
    if dt is None:
        return value
    return f"{_MONTHS[dt.month - 1]} {dt.day}, {dt.year}"


def format_time(value: str | None) -> str:
    """Format an ISO timestamp's time of day like `9:30 AM`."""
    if not value:
        return ""
    dt = _parse_datetime(value)
    if dt is None:
        return value
    hour = dt.hour % 12 or 12
    return f"{hour}:{dt.minute:02d} {'AM' if dt.hour < 12 else 'PM'}"


def stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def resolve_path(data: dict[str, Any], path: str) -> Any:
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def format_window(pass_data: dict[str, Any]) -> str:
    window = pass_data.get("window") or {}
    if not window:
        return ""
    return f"{format_datetime(window.get('from'))} - {format_datetime(window.get('to'))}"


def resolve_field_value(key: str, pass_data: dict[str, Any]) -> str:
    """
    Resolve a template field key against a pass (camelCase dict form).

    Id aliases map to the pass id, window bounds are formatted, anything
    else is a dot-path lookup. Missing values resolve to "".
    """
    if key in ID_ALIASES:
        return stringify(pass_data.get("id"))
    if key == "status":
        return stringify(pass_data.get("status"))
    if key in ("windowFrom", "windowTo"):
        if pass_data.get("type") != "parent" or not pass_data.get("window"):
            return ""
        bound = "from" if key == "windowFrom" else "to"
        return format_datetime(pass_data["window"].get(bound))
    if key == "window":
        return format_window(pass_data)
    return stringify(resolve_path(pass_data, key))


def merge_apple_template(base: dict[str, Any], profile: dict[str, Any], style: str = "generic") -> dict[str, Any]:
    """
    Overlay a profile template on a base pass.json template.

    Top-level profile keys win. Inside the style dictionary each field group is
    taken wholesale from the profile when present there, else from the base.
    """
    merged = {**copy.deepcopy(base), **copy.deepcopy(profile)}
    base_style = base.get(style) or {}
    profile_style = profile.get(style) or {}
    style_dict = {}
    for group in APPLE_FIELD_GROUPS:
        source = profile_style if group in profile_style else base_style
        if group in source:
            style_dict[group] = copy.deepcopy(source[group])
    merged[style] = style_dict
    return merged


def populate_apple_fields(style_dict: dict[str, Any], pass_data: dict[str, Any]) -> None:
    for group in POPULATED_FIELD_GROUPS:
        for field in style_dict.get(group, []):
            field["value"] = resolve_field_value(field["key"], pass_data) or field.get("value", "")


def merge_shallow(*layers: dict[str, Any] | None) -> dict[str, Any]:
    """Merge dict layers left to right, one level deep; later layers win key by key."""
    merged: dict[str, Any] = {}
    for layer in layers:
        if layer:
            merged.update(copy.deepcopy(layer))
    return merged


def as_pass_dict(pass_data: Any) -> dict[str, Any]:
    """camelCase dict form of a pass model (dicts pass through)."""
    if hasattr(pass_data, "model_dump"):
        return pass_data.model_dump(by_alias=True, mode="json")
    return dict(pass_data)
