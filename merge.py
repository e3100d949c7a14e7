import locale
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from errors import ValidationError
from identity import allocate_custom_id, clean_hidden_ids, ensure_unique_ids
from models import (
    DEFAULT_ICON,
    ORIGIN_CATALOG,
    ORIGIN_CUSTOM,
    AppRecord,
    CustomAppInput,
    UserData,
)
from utils import normalize_page_size, parse_tag_string, sanitize_icon, sanitize_tags, sanitize_url

UNTITLED_APP_NAME = "Untitled app"


def _text(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def sanitize_app_record(raw, origin: str) -> Optional[AppRecord]:
    """Build a validated record from untrusted input.

    Custom records without a name or a usable URL are rejected (``None``);
    catalog records are kept and named ``Untitled app`` when unnamed.
    """
    if isinstance(raw, AppRecord):
        raw = raw.to_dict()
    if not isinstance(raw, dict):
        return None
    name = _text(raw.get("name"))
    url = sanitize_url(raw.get("url"))
    if origin == ORIGIN_CUSTOM and (not name or not url):
        return None
    return AppRecord(
        id=_text(raw.get("id")),
        name=name or UNTITLED_APP_NAME,
        description=_text(raw.get("description")),
        url=url,
        icon=sanitize_icon(raw.get("icon")),
        tags=tuple(sanitize_tags(raw.get("tags"))),
        origin=origin,
    )


def sanitize_catalog(raw_items) -> List[AppRecord]:
    if not isinstance(raw_items, (list, tuple)):
        return []
    records: List[AppRecord] = []
    for item in raw_items:
        record = sanitize_app_record(item, ORIGIN_CATALOG)
        if record is not None:
            records.append(record)
    return records


def sanitize_custom_apps(raw_items) -> List[AppRecord]:
    records: List[AppRecord] = []
    for item in raw_items:
        record = sanitize_app_record(item, ORIGIN_CUSTOM)
        if record is not None:
            records.append(record)
    return records


def _sort_key(app: AppRecord):
    return locale.strxfrm(app.name_key())


def sort_apps_by_name(apps: Iterable[AppRecord]) -> List[AppRecord]:
    # sorted() is stable: equal names keep their input order.
    return sorted(apps, key=_sort_key)


def _with_origin(apps: Iterable[AppRecord], origin: str) -> List[AppRecord]:
    return [app if app.origin == origin else replace(app, origin=origin) for app in apps]


def merge_collection(
    catalog: Sequence[AppRecord],
    custom_apps: Sequence[AppRecord],
    hide_default_apps: bool,
) -> List[AppRecord]:
    """Rebuild the working collection: catalog then custom, unique ids, sorted by name."""
    catalog_part = [] if hide_default_apps else _with_origin(catalog, ORIGIN_CATALOG)
    combined = catalog_part + _with_origin(custom_apps, ORIGIN_CUSTOM)
    return sort_apps_by_name(ensure_unique_ids(combined))


def assign_custom_ids(records: Iterable[AppRecord], reserved: Iterable[str] = ()) -> List[AppRecord]:
    """Give id-less, repeated or ``reserved`` custom ids a stored ``custom-<slug>`` id."""
    taken: Set[str] = set(reserved)
    result: List[AppRecord] = []
    for record in records:
        app_id = record.id
        if not app_id or app_id in taken:
            app_id = allocate_custom_id(record.name, taken)
        taken.add(app_id)
        result.append(record if app_id == record.id else replace(record, id=app_id))
    return result


def sanitize_user_data(raw, base: UserData) -> UserData:
    """Overlay the wire-format ``raw`` mapping onto ``base``.

    Keys that are absent or of the wrong shape keep the value from ``base``.
    """
    if not isinstance(raw, dict):
        return replace(base, page_size=normalize_page_size(base.page_size))
    hidden_ids = base.hidden_app_ids
    if isinstance(raw.get("hiddenAppIds"), list):
        hidden_ids = tuple(clean_hidden_ids(raw["hiddenAppIds"]))
    custom_apps = base.custom_apps
    if isinstance(raw.get("customApps"), list):
        custom_apps = tuple(assign_custom_ids(sanitize_custom_apps(raw["customApps"])))
    page_size = raw.get("pageSize")
    if page_size is None:
        page_size = base.page_size
    return UserData(
        hidden_app_ids=hidden_ids,
        custom_apps=custom_apps,
        page_size=normalize_page_size(page_size),
    )


def _resolve_icon(form: CustomAppInput) -> str:
    if form.icon_choice == "custom":
        custom = form.icon_custom or ""
        if not custom.strip():
            raise ValidationError("Paste an icon URL or pick a preset.", field="icon")
        return sanitize_icon(custom)
    if isinstance(form.icon_choice, str):
        return sanitize_icon(form.icon_choice)
    return DEFAULT_ICON


def prepare_custom_app(form: CustomAppInput, reserved_ids: Set[str]) -> AppRecord:
    """Validate the add/edit form and return the record to store.

    ``reserved_ids`` are the ids of the current working collection. Editing
    keeps the record's id; new records get a ``custom-<slug>`` id that does not
    collide with any reserved id.
    """
    name = (form.name or "").strip()
    if not name:
        raise ValidationError("Please enter a name.", field="name")
    url = sanitize_url(form.url)
    if not url:
        raise ValidationError("Please enter a valid link.", field="url")
    fields: Dict[str, Any] = {
        "id": form.id,
        "name": name,
        "description": (form.description or "").strip(),
        "url": url,
        "icon": _resolve_icon(form),
        "tags": parse_tag_string(form.tags_input) if form.tags_input else [],
    }
    record = sanitize_app_record(fields, ORIGIN_CUSTOM)
    if record is None:
        raise ValidationError("Unable to create the app. Please check the fields again.")
    previous_id = (form.id or "").strip()
    if previous_id:
        return replace(record, id=previous_id)
    return replace(record, id=allocate_custom_id(record.name, set(reserved_ids)))


def replace_custom_app(user_data: UserData, record: AppRecord, previous_id: str = "") -> UserData:
    """Return ``user_data`` with ``record`` stored (replacing ``previous_id`` when editing)."""
    drop = {record.id}
    if previous_id:
        drop.add(previous_id)
    custom_apps = tuple(app for app in user_data.custom_apps if app.id not in drop) + (record,)
    hidden_ids = tuple(app_id for app_id in user_data.hidden_app_ids if app_id not in drop)
    return replace(user_data, custom_apps=custom_apps, hidden_app_ids=hidden_ids)
