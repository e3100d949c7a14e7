import json
import logging
import os
import re
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Optional

from errors import StorageUnavailable
from merge import sanitize_user_data
from models import DEFAULT_SETTINGS, DEFAULT_USER_DATA, Settings, UserData
from settings import reconcile_settings

_logger = logging.getLogger(__name__)

APP_NAME = "Launchpad"
ENV_DATA_DIR = "LAUNCHPAD_DATA_DIR"
ENV_CATALOG_URL = "LAUNCHPAD_CATALOG_URL"
# Stored as launchpad_config.json in the per-user config directory.
CONFIG_KEY = "launchpad_config"
CONFIG_DATA_DIR_KEY = "data_dir"
CONFIG_CATALOG_KEY = "catalog_url"

SETTINGS_KEY = "launchpad-settings"
USER_DATA_KEY = "launchpad-user-data"

_KEY_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class MemoryStorage:
    """Key-value storage held in a dict."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._values: Dict[str, Any] = dict(initial or {})

    def load(self, key: str) -> Any:
        return self._values.get(key)

    def save(self, key: str, value: Any) -> None:
        # Round-trip through JSON so callers never share mutable state with the store.
        self._values[key] = json.loads(json.dumps(value))


class JsonFileStorage:
    """One ``<key>.json`` file per key under ``data_dir``."""

    def __init__(self, data_dir: str) -> None:
        self.data_dir = data_dir

    def path_for(self, key: str) -> str:
        if not _KEY_RE.match(key):
            raise StorageUnavailable(f"Invalid storage key: {key!r}", context={"key": key})
        return os.path.join(self.data_dir, f"{key}.json")

    def load(self, key: str) -> Any:
        path = self.path_for(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as fh:
                return json.load(fh)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise StorageUnavailable(f"Could not read {path}: {exc}", context={"key": key}) from exc

    def save(self, key: str, value: Any) -> None:
        path = self.path_for(key)
        tmp_path = f"{path}.tmp"
        try:
            os.makedirs(self.data_dir, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as fh:
                json.dump(value, fh, indent=2)
            os.replace(tmp_path, path)
        except OSError as exc:
            raise StorageUnavailable(f"Could not write {path}: {exc}", context={"key": key}) from exc


@dataclass(frozen=True)
class StoreConfig:
    data_dir: str = ""
    catalog_url: str = ""


def _config_home() -> str:
    if os.name == "nt":
        return os.getenv("LOCALAPPDATA") or os.getenv("APPDATA") or os.path.expanduser("~")
    return os.getenv("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")


def app_data_dir(app_name: str = APP_NAME) -> str:
    return os.path.join(_config_home(), app_name)


def _config_storage() -> JsonFileStorage:
    return JsonFileStorage(app_data_dir())


def _config_text(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def load_config() -> StoreConfig:
    try:
        payload = _config_storage().load(CONFIG_KEY)
    except StorageUnavailable as exc:
        _logger.warning("Ignoring unreadable config: %s", exc)
        return StoreConfig()
    if not isinstance(payload, dict):
        return StoreConfig()
    return StoreConfig(
        data_dir=_config_text(payload.get(CONFIG_DATA_DIR_KEY)),
        catalog_url=_config_text(payload.get(CONFIG_CATALOG_KEY)),
    )


def save_config(config: StoreConfig) -> bool:
    payload = {CONFIG_DATA_DIR_KEY: config.data_dir, CONFIG_CATALOG_KEY: config.catalog_url}
    return _save(_config_storage(), CONFIG_KEY, payload)


def set_configured_data_dir(data_dir: str) -> None:
    data_dir = _config_text(data_dir)
    if data_dir:
        save_config(replace(load_config(), data_dir=data_dir))


def resolve_data_dir(prompt_for_dir: Optional[Callable[[], str]] = None) -> str:
    """Environment override, then the remembered choice, then a prompt, then the per-user default."""
    override = _config_text(os.getenv(ENV_DATA_DIR))
    if override:
        return override
    configured = load_config().data_dir
    if configured:
        return configured
    if prompt_for_dir is not None:
        selected = _config_text(prompt_for_dir())
        if selected:
            set_configured_data_dir(selected)
            return selected
    return app_data_dir()


def resolve_catalog_source() -> str:
    return _config_text(os.getenv(ENV_CATALOG_URL)) or load_config().catalog_url


def _load(storage, key: str) -> Any:
    try:
        return storage.load(key)
    except StorageUnavailable as exc:
        _logger.warning("Storage unavailable, using defaults for %s: %s", key, exc)
        return None


def _save(storage, key: str, value: Any) -> bool:
    try:
        storage.save(key, value)
    except StorageUnavailable as exc:
        _logger.warning("Storage unavailable, keeping %s in memory only: %s", key, exc)
        return False
    return True


def load_settings(storage) -> Settings:
    payload = _load(storage, SETTINGS_KEY)
    if not isinstance(payload, dict):
        return DEFAULT_SETTINGS
    return reconcile_settings(DEFAULT_SETTINGS, payload)


def save_settings(storage, settings: Settings) -> bool:
    return _save(storage, SETTINGS_KEY, settings.to_dict())


def load_user_data(storage) -> UserData:
    return sanitize_user_data(_load(storage, USER_DATA_KEY), DEFAULT_USER_DATA)


def save_user_data(storage, user_data: UserData) -> bool:
    return _save(storage, USER_DATA_KEY, user_data.to_dict())
