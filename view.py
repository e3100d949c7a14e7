"""Derive what the gallery shows from the working collection.

Everything here is pure: the hidden/visible partition, search filtering, the
synthetic "hidden apps" tile, page counts and keyboard index movement.
"""

import math
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from models import DEFAULT_ICON, HIDDEN_GROUP_ICON, HIDDEN_GROUP_ID, ORIGIN_CATALOG, TYPE_HIDDEN_GROUP, AppRecord

NO_SELECTION = -1


@dataclass(frozen=True)
class ViewProjection:
    visible: Tuple[AppRecord, ...]
    hidden: Tuple[AppRecord, ...]
    # Visible apps after search, plus the hidden-apps tile when not searching.
    tiles: Tuple[AppRecord, ...]


def split_by_hidden(apps: Iterable[AppRecord], hidden_ids: Iterable[str]) -> Tuple[List[AppRecord], List[AppRecord]]:
    hidden_set = set(hidden_ids)
    visible: List[AppRecord] = []
    hidden: List[AppRecord] = []
    for app in apps:
        (hidden if app.id in hidden_set else visible).append(app)
    return visible, hidden


def filter_apps(apps: Iterable[AppRecord], term: str) -> List[AppRecord]:
    """Case-insensitive substring search over name, description and tags."""
    query = (term or "").strip().casefold()
    if not query:
        return list(apps)
    return [app for app in apps if not app.is_hidden_group and _matches(app, query)]


def _matches(app: AppRecord, query: str) -> bool:
    fields = (app.name or "", app.description or "", " ".join(app.tags))
    return any(query in value.casefold() for value in fields)


def build_hidden_group(count: int) -> AppRecord:
    label = "1 hidden app" if count == 1 else f"{count} hidden apps"
    return AppRecord(
        id=HIDDEN_GROUP_ID,
        name="Hidden apps",
        description=label,
        icon=HIDDEN_GROUP_ICON,
        origin=ORIGIN_CATALOG,
        type=TYPE_HIDDEN_GROUP,
        hidden_count=count,
    )


def project(apps: Sequence[AppRecord], hidden_ids: Iterable[str], term: str) -> ViewProjection:
    visible, hidden = split_by_hidden(apps, hidden_ids)
    tiles = filter_apps(visible, term)
    if not (term or "").strip() and hidden:
        tiles.append(build_hidden_group(len(hidden)))
    return ViewProjection(visible=tuple(visible), hidden=tuple(hidden), tiles=tuple(tiles))


def total_pages(apps: Sequence[AppRecord], is_mobile_layout: bool, page_size: int) -> int:
    # Mobile scrolls one continuous list.
    if is_mobile_layout:
        return 1
    per_page = max(int(page_size), 1)
    return max(math.ceil(len(apps) / per_page), 1)


def clamp_page(page: int, pages: int) -> int:
    return min(max(page, 0), max(pages - 1, 0))


def page_for_index(index: int, page_size: int) -> int:
    if index < 0:
        return 0
    return index // max(int(page_size), 1)


def page_slice(apps: Sequence[AppRecord], page: int, page_size: int, is_mobile_layout: bool) -> List[AppRecord]:
    if is_mobile_layout:
        return list(apps)
    per_page = max(int(page_size), 1)
    page = clamp_page(page, total_pages(apps, False, per_page))
    start = page * per_page
    return list(apps[start:start + per_page])


def advance(current_index: int, delta: int, count: int) -> int:
    """Move the keyboard selection by ``delta``, wrapping in both directions."""
    if count <= 0:
        return NO_SELECTION
    if current_index == NO_SELECTION:
        return 0 if delta > 0 else count - 1
    return (current_index + delta) % count


def icon_library(apps: Iterable[AppRecord]) -> List[str]:
    icons = [DEFAULT_ICON]
    seen = {DEFAULT_ICON}
    for app in apps:
        if app.is_hidden_group or not app.icon or app.icon in seen:
            continue
        seen.add(app.icon)
        icons.append(app.icon)
    return icons
