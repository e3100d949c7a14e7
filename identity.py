import re
import time
from dataclasses import replace
from typing import Iterable, List, Optional, Set

from models import ORIGIN_CUSTOM, AppRecord

_SLUG_STRIP_RE = re.compile(r"[^a-z0-9]+")
_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(number: int) -> str:
    if number <= 0:
        return "0"
    digits: List[str] = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def slugify(name) -> str:
    text = "" if name is None else str(name)
    return _SLUG_STRIP_RE.sub("-", text.lower()).strip("-")


def create_slug_id(prefix: str, name, timestamp_ms: Optional[int] = None) -> str:
    """``<prefix>-<slug>``, or ``<prefix>-<base36 millis>`` when the name has no slug characters."""
    slug = slugify(name)
    if slug:
        return f"{prefix}-{slug}"
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{prefix}-{_base36(timestamp_ms)}"


def id_prefix(record: AppRecord) -> str:
    return "custom" if record.origin == ORIGIN_CUSTOM else "app"


def _next_free(base_id: str, taken: Set[str]) -> str:
    candidate = base_id
    counter = 2
    while candidate in taken:
        candidate = f"{base_id}-{counter}"
        counter += 1
    return candidate


def ensure_unique_ids(records: Iterable[AppRecord]) -> List[AppRecord]:
    """Give every record an id that no earlier record in the sequence holds.

    Missing ids are derived from the name; collisions get ``-2``, ``-3``, ...
    in input order.
    """
    seen: Set[str] = set()
    result: List[AppRecord] = []
    for record in records:
        base_id = (record.id or "").strip()
        if not base_id:
            base_id = create_slug_id(id_prefix(record), record.name)
        unique_id = _next_free(base_id, seen)
        seen.add(unique_id)
        result.append(record if unique_id == record.id else replace(record, id=unique_id))
    return result


def allocate_custom_id(name: str, reserved: Set[str]) -> str:
    return _next_free(create_slug_id("custom", name), reserved)


def dedupe_hidden_ids(hidden_ids, apps: Iterable[AppRecord]) -> List[str]:
    """Trim and dedupe ``hidden_ids``, keeping only ids present in ``apps``."""
    valid = {app.id for app in apps}
    return [app_id for app_id in clean_hidden_ids(hidden_ids) if app_id in valid]


def clean_hidden_ids(hidden_ids) -> List[str]:
    """Trim and dedupe ``hidden_ids`` without checking them against a collection."""
    if not isinstance(hidden_ids, (list, tuple)):
        return []
    seen: Set[str] = set()
    result: List[str] = []
    for value in hidden_ids:
        if not isinstance(value, str):
            continue
        app_id = value.strip()
        if app_id and app_id not in seen:
            seen.add(app_id)
            result.append(app_id)
    return result
