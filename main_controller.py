import locale
import logging
import os
import sys
import webbrowser
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from backup import RejectedBackup, build_backup, parse_backup
from catalog import STATUS_FAILED, STATUS_READY, CatalogLoader, catalog_fetcher
from errors import InvalidBackup, ValidationError
from identity import clean_hidden_ids, dedupe_hidden_ids
from import_export import decode_backup, emit_backup, export_csv, export_xlsx, import_csv
from merge import assign_custom_ids, merge_collection, prepare_custom_app, replace_custom_app
from metadata import resolve_title
from models import AppRecord, CustomAppInput, Settings, SettingsFormInput, UserData
from settings import settings_from_form
from store import (
    JsonFileStorage,
    load_settings,
    load_user_data,
    resolve_catalog_source,
    resolve_data_dir,
    save_settings,
    save_user_data,
)
from utils import normalize_page_size
from view import (
    NO_SELECTION,
    ViewProjection,
    advance,
    clamp_page,
    icon_library,
    page_for_index,
    page_slice,
    project,
    total_pages,
)

try:
    locale.setlocale(locale.LC_COLLATE, "")
except locale.Error:
    pass

_logger = logging.getLogger(__name__)

ENV_LOG_LEVEL = "LAUNCHPAD_LOG_LEVEL"


@dataclass(frozen=True)
class ActionResult:
    success: bool
    message: str = ""


@dataclass(frozen=True)
class ContextMenuState:
    app_id: Optional[str] = None
    # "grid" or "hidden"
    source: Optional[str] = None


class LaunchpadController:
    """Holds the session state and applies every user action.

    ``settings`` and ``user_data`` are only ever replaced with new validated
    objects, each persisted as soon as it is committed. The working collection
    and the view are rebuilt from scratch after every change.
    """

    def __init__(
        self,
        storage,
        catalog: Optional[CatalogLoader] = None,
        is_mobile_layout: bool = False,
        emit: Optional[Callable[[bytes, str], None]] = None,
        title_lookup: Callable[[str], str] = resolve_title,
        opener: Callable[[str], object] = webbrowser.open,
    ) -> None:
        self.storage = storage
        self.catalog = catalog or CatalogLoader(list)
        self.is_mobile_layout = is_mobile_layout
        self._emit = emit
        self._title_lookup = title_lookup
        self._opener = opener

        self.settings: Settings = load_settings(storage)
        self.user_data: UserData = load_user_data(storage)
        self.search_term = ""
        self.current_page = 0
        self.active_index = NO_SELECTION
        self.context_menu = ContextMenuState()
        self.editing_app_id: Optional[str] = None
        self.hidden_panel_open = False

        self.apps: List[AppRecord] = []
        self.projection = ViewProjection(visible=(), hidden=(), tiles=())
        self.total_pages = 1
        self._selection_key = ("", 0)
        self._recompute()

    # -- derived state -------------------------------------------------

    @property
    def visible_apps(self) -> List[AppRecord]:
        return list(self.projection.visible)

    @property
    def hidden_apps(self) -> List[AppRecord]:
        return list(self.projection.hidden)

    @property
    def tiles(self) -> List[AppRecord]:
        return list(self.projection.tiles)

    @property
    def page_tiles(self) -> List[AppRecord]:
        return page_slice(self.projection.tiles, self.current_page, self.desktop_page_size, self.is_mobile_layout)

    @property
    def desktop_page_size(self) -> int:
        return normalize_page_size(self.user_data.page_size)

    @property
    def is_loading(self) -> bool:
        return self.catalog.is_loading

    @property
    def error(self) -> str:
        return self.catalog.error if self.catalog.status == STATUS_FAILED else ""

    @property
    def icon_library(self) -> List[str]:
        return icon_library(self.apps)

    @property
    def editing_app(self) -> Optional[AppRecord]:
        return self._find_app(self.editing_app_id)

    def _find_app(self, app_id: Optional[str]) -> Optional[AppRecord]:
        if not app_id:
            return None
        for app in self.apps:
            if app.id == app_id:
                return app
        return None

    # -- recompute -----------------------------------------------------

    def _recompute(self) -> None:
        self.apps = merge_collection(self.catalog.apps, self.user_data.custom_apps, self.settings.hide_default_apps)
        hidden_ids = dedupe_hidden_ids(self.user_data.hidden_app_ids, self.apps)
        # Until the catalog has loaded, hidden catalog ids cannot be told apart from stale ones.
        if self.catalog.status == STATUS_READY and tuple(hidden_ids) != self.user_data.hidden_app_ids:
            self._commit_user_data(replace(self.user_data, hidden_app_ids=tuple(hidden_ids)))
        self.projection = project(self.apps, hidden_ids, self.search_term)
        self.total_pages = total_pages(self.projection.tiles, self.is_mobile_layout, self.desktop_page_size)
        if self.is_mobile_layout:
            self.current_page = 0
        else:
            self.current_page = clamp_page(self.current_page, self.total_pages)
        self._sync_selection()
        if self.context_menu.app_id and self._find_app(self.context_menu.app_id) is None:
            self.context_menu = ContextMenuState()

    def _sync_selection(self) -> None:
        key = (self.search_term, len(self.projection.tiles))
        if key == self._selection_key:
            return
        self._selection_key = key
        if not self.search_term.strip() or not self.projection.tiles:
            self.active_index = NO_SELECTION
        else:
            self.active_index = 0

    def _commit_settings(self, settings: Settings) -> None:
        self.settings = settings
        save_settings(self.storage, settings)

    def _commit_user_data(self, user_data: UserData) -> None:
        self.user_data = user_data
        save_user_data(self.storage, user_data)

    # -- catalog -------------------------------------------------------

    def load_catalog(self, background: bool = True) -> None:
        if background:
            self.catalog.start()
            return
        self.catalog.load_now()
        self._recompute()

    def poll(self) -> bool:
        changed = self.catalog.poll()
        if changed:
            self._recompute()
        return changed

    def close(self) -> None:
        self.catalog.cancel()

    # -- navigation ----------------------------------------------------

    def set_search_term(self, term: str) -> None:
        self.search_term = term or ""
        self.current_page = 0
        self._recompute()

    def set_page(self, page: int) -> None:
        if self.is_mobile_layout:
            self.current_page = 0
            return
        self.current_page = clamp_page(page, self.total_pages)

    def _follow_index(self, index: int) -> None:
        if not self.is_mobile_layout:
            self.current_page = page_for_index(index, self.desktop_page_size)

    def set_active_index(self, index: int) -> None:
        count = len(self.projection.tiles)
        if not count:
            self.active_index = NO_SELECTION
            return
        self.active_index = min(max(index, 0), count - 1)
        self._follow_index(self.active_index)

    def advance_active_index(self, delta: int) -> None:
        count = len(self.projection.tiles)
        if not count:
            return
        self.active_index = advance(self.active_index, delta, count)
        self._follow_index(self.active_index)

    def reset_active_index(self) -> None:
        self.active_index = NO_SELECTION

    def open_app(self, app: Optional[AppRecord]) -> bool:
        if app is None:
            return False
        if app.is_hidden_group:
            self.hidden_panel_open = True
            return True
        if not app.url:
            return False
        self._opener(app.url)
        return True

    def open_context_menu(self, app: AppRecord, source: str) -> bool:
        if app.is_hidden_group:
            return False
        self.context_menu = ContextMenuState(app_id=app.id, source=source)
        return True

    def close_context_menu(self) -> None:
        self.context_menu = ContextMenuState()

    # -- visibility ----------------------------------------------------

    def _store_hidden_ids(self, hidden: List[str]) -> None:
        if self.catalog.status == STATUS_READY:
            cleaned = dedupe_hidden_ids(hidden, self.apps)
        else:
            cleaned = clean_hidden_ids(hidden)
        self._commit_user_data(replace(self.user_data, hidden_app_ids=tuple(cleaned)))
        self._recompute()

    def hide_app(self, app_id: str) -> None:
        if not app_id or self._find_app(app_id) is None:
            return
        self._store_hidden_ids(list(self.user_data.hidden_app_ids) + [app_id])

    def show_app(self, app_id: str) -> None:
        if not app_id:
            return
        self._store_hidden_ids([value for value in self.user_data.hidden_app_ids if value != app_id])

    # -- custom apps ---------------------------------------------------

    def begin_edit(self, app_id: Optional[str] = None) -> None:
        self.editing_app_id = app_id

    def cancel_edit(self) -> None:
        self.editing_app_id = None

    def suggest_name(self, url: str) -> str:
        return self._title_lookup(url)

    def submit_custom_app(self, form: CustomAppInput) -> ActionResult:
        try:
            record = prepare_custom_app(form, {app.id for app in self.apps})
        except ValidationError as exc:
            return ActionResult(False, exc.message)
        previous_id = (form.id or "").strip()
        self._commit_user_data(replace_custom_app(self.user_data, record, previous_id))
        self.editing_app_id = None
        self._recompute()
        return ActionResult(True, "App updated successfully." if previous_id else "App saved successfully.")

    def remove_custom_app(self, app_id: str) -> None:
        self._commit_user_data(
            replace(
                self.user_data,
                custom_apps=tuple(app for app in self.user_data.custom_apps if app.id != app_id),
                hidden_app_ids=tuple(value for value in self.user_data.hidden_app_ids if value != app_id),
            )
        )
        self._recompute()

    # -- settings ------------------------------------------------------

    def submit_settings(self, form: SettingsFormInput) -> ActionResult:
        settings, page_size = settings_from_form(self.settings, form)
        self._commit_settings(settings)
        self._commit_user_data(replace(self.user_data, page_size=page_size))
        self.current_page = 0
        self._recompute()
        return ActionResult(True, "Settings saved.")

    def complete_setup(self) -> None:
        if self.settings.has_completed_setup:
            return
        self._commit_settings(replace(self.settings, has_completed_setup=True))

    def set_desktop_page_size(self, size) -> None:
        page_size = normalize_page_size(size)
        if page_size == self.user_data.page_size:
            return
        self._commit_user_data(replace(self.user_data, page_size=page_size))
        self._recompute()

    # -- backup and interchange ----------------------------------------

    def export_backup(self, emit: Optional[Callable[[bytes, str], None]] = None) -> ActionResult:
        emit = emit or self._emit
        if emit is None:
            return ActionResult(False, "Unable to export data in the current environment.")
        payload = build_backup(self.settings, self.user_data)
        try:
            filename = emit_backup(payload, emit)
        except OSError as exc:
            _logger.warning("Failed to export backup: %s", exc)
            return ActionResult(False, "Export failed. Please try again.")
        _logger.info("Exported backup %s", filename)
        return ActionResult(True, "Backup exported successfully.")

    def _custom_ids_against_catalog(self, records) -> Tuple[AppRecord, ...]:
        return tuple(assign_custom_ids(records, {app.id for app in self.catalog.apps}))

    def import_backup(self, data) -> ActionResult:
        parsed = parse_backup(data, self.settings, self.user_data)
        if isinstance(parsed, RejectedBackup):
            return ActionResult(False, parsed.reason)
        if parsed.settings is not None:
            self._commit_settings(parsed.settings)
        if parsed.user_data is not None:
            custom_apps = self._custom_ids_against_catalog(parsed.user_data.custom_apps)
            self._commit_user_data(replace(parsed.user_data, custom_apps=custom_apps))
            self.current_page = 0
            self.active_index = NO_SELECTION
        self._recompute()
        _logger.info("Imported backup (version %s): %s", parsed.version, parsed.message)
        return ActionResult(True, parsed.message)

    def import_backup_bytes(self, data: bytes) -> ActionResult:
        try:
            payload = decode_backup(data)
        except InvalidBackup as exc:
            _logger.warning("Unable to read backup file: %s", exc)
            return ActionResult(False, exc.message)
        return self.import_backup(payload)

    def export_apps(self, file_path: str) -> None:
        if file_path.lower().endswith(".xlsx"):
            export_xlsx(file_path, self.visible_apps, self.hidden_apps)
        else:
            export_csv(file_path, self.apps)

    def import_apps_csv(self, file_path: str) -> ActionResult:
        try:
            records = import_csv(file_path)
        except (OSError, ValueError) as exc:
            _logger.warning("Unable to import %s: %s", file_path, exc)
            return ActionResult(False, "The file could not be imported.")
        if not records:
            return ActionResult(False, "No apps were found in the file.")
        custom_apps = self._custom_ids_against_catalog(self.user_data.custom_apps + tuple(records))
        self._commit_user_data(replace(self.user_data, custom_apps=custom_apps))
        self._recompute()
        return ActionResult(True, f"Imported {len(records)} apps.")


def main() -> None:
    logging.basicConfig(
        level=os.getenv(ENV_LOG_LEVEL, "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    storage = JsonFileStorage(resolve_data_dir())
    controller = LaunchpadController(storage, CatalogLoader(catalog_fetcher(resolve_catalog_source())))
    controller.load_catalog(background=False)
    controller.set_search_term(" ".join(sys.argv[1:]))
    if controller.error:
        print(f"Catalog unavailable: {controller.error}", file=sys.stderr)
    for app in controller.page_tiles:
        if app.is_hidden_group:
            print(f"[{app.description}]")
        else:
            print(f"{app.name}\t{app.url}")
    print(f"Page {controller.current_page + 1} of {controller.total_pages}")


if __name__ == "__main__":
    main()
