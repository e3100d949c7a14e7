import json
import os

import pytest

import store
from errors import StorageUnavailable
from models import DEFAULT_SETTINGS, DEFAULT_USER_DATA, ORIGIN_CUSTOM, AppRecord, Settings, UserData


class BrokenStorage:
    def load(self, key):
        raise StorageUnavailable("disk gone", context={"key": key})

    def save(self, key, value):
        raise StorageUnavailable("disk gone", context={"key": key})


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.delenv(store.ENV_DATA_DIR, raising=False)
    monkeypatch.delenv(store.ENV_CATALOG_URL, raising=False)
    return tmp_path / "config"


def test_memory_storage_copies_values() -> None:
    storage = store.MemoryStorage()
    value = {"hiddenAppIds": ["a"]}
    storage.save("k", value)
    value["hiddenAppIds"].append("b")
    assert storage.load("k") == {"hiddenAppIds": ["a"]}
    assert storage.load("missing") is None


def test_settings_and_user_data_round_trip(tmp_path) -> None:
    storage = store.JsonFileStorage(str(tmp_path / "data"))
    settings = Settings(mobile_layout="list", has_completed_setup=True)
    custom = AppRecord(id="custom-notes", name="Notes", url="https://notes.example/", origin=ORIGIN_CUSTOM)
    user_data = UserData(hidden_app_ids=("app-mail",), custom_apps=(custom,), page_size=28)

    assert store.save_settings(storage, settings) is True
    assert store.save_user_data(storage, user_data) is True
    assert os.path.exists(storage.path_for(store.SETTINGS_KEY))
    assert store.load_settings(storage) == settings
    assert store.load_user_data(storage) == user_data


def test_missing_values_load_defaults(tmp_path) -> None:
    storage = store.JsonFileStorage(str(tmp_path))
    assert store.load_settings(storage) == DEFAULT_SETTINGS
    assert store.load_user_data(storage) == DEFAULT_USER_DATA


def test_corrupt_file_falls_back_to_defaults(tmp_path) -> None:
    storage = store.JsonFileStorage(str(tmp_path))
    with open(storage.path_for(store.SETTINGS_KEY), "w", encoding="utf-8") as fh:
        fh.write("{not json")
    with pytest.raises(StorageUnavailable):
        storage.load(store.SETTINGS_KEY)
    assert store.load_settings(storage) == DEFAULT_SETTINGS


def test_stored_values_are_revalidated() -> None:
    storage = store.MemoryStorage({
        store.SETTINGS_KEY: {"overlayOpacity": 9, "mobileLayout": "list"},
        store.USER_DATA_KEY: {"pageSize": 3, "hiddenAppIds": ["x", "x"]},
    })
    assert store.load_settings(storage).overlay_opacity == 0.6
    user_data = store.load_user_data(storage)
    assert user_data.page_size == 14
    assert user_data.hidden_app_ids == ("x",)


def test_unavailable_storage_degrades() -> None:
    storage = BrokenStorage()
    assert store.load_settings(storage) == DEFAULT_SETTINGS
    assert store.load_user_data(storage) == DEFAULT_USER_DATA
    assert store.save_settings(storage, DEFAULT_SETTINGS) is False
    assert store.save_user_data(storage, DEFAULT_USER_DATA) is False


def test_invalid_key_is_rejected(tmp_path) -> None:
    storage = store.JsonFileStorage(str(tmp_path))
    with pytest.raises(StorageUnavailable):
        storage.path_for("../escape")


def test_resolve_data_dir_prefers_env(config_home, monkeypatch, tmp_path) -> None:
    monkeypatch.setenv(store.ENV_DATA_DIR, str(tmp_path / "env"))
    assert store.resolve_data_dir() == str(tmp_path / "env")


def test_resolve_data_dir_prompts_and_remembers(config_home, tmp_path) -> None:
    chosen = str(tmp_path / "chosen")
    assert store.resolve_data_dir(lambda: chosen) == chosen
    with open(config_home / store.APP_NAME / "launchpad_config.json", "r", encoding="utf-8") as fh:
        assert json.load(fh)[store.CONFIG_DATA_DIR_KEY] == chosen
    assert store.resolve_data_dir(lambda: "ignored") == chosen


def test_resolve_data_dir_default(config_home) -> None:
    assert store.resolve_data_dir() == str(config_home / store.APP_NAME)


def test_set_configured_data_dir(config_home) -> None:
    store.set_configured_data_dir("  /srv/launchpad  ")
    assert store.load_config() == store.StoreConfig(data_dir="/srv/launchpad")


def test_resolve_catalog_source(config_home, monkeypatch) -> None:
    assert store.resolve_catalog_source() == ""
    store.save_config(store.StoreConfig(catalog_url=" https://apps.example/catalog.json "))
    assert store.resolve_catalog_source() == "https://apps.example/catalog.json"
    monkeypatch.setenv(store.ENV_CATALOG_URL, "https://env.example/apps.json")
    assert store.resolve_catalog_source() == "https://env.example/apps.json"


def test_unreadable_config_is_ignored(config_home) -> None:
    path = config_home / store.APP_NAME / "launchpad_config.json"
    path.parent.mkdir(parents=True)
    path.write_text("[1, 2", encoding="utf-8")
    assert store.load_config() == store.StoreConfig()
