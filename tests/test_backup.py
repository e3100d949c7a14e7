import datetime as dt

from backup import BACKUP_SCHEMA_VERSION, RejectedBackup, ValidBackup, build_backup, parse_backup
from errors import InvalidBackup, MissingData
from models import DEFAULT_SETTINGS, DEFAULT_USER_DATA, ORIGIN_CUSTOM, AppRecord, Settings, UserData

CUSTOM = AppRecord(id="custom-notes", name="Notes", url="https://notes.example/", origin=ORIGIN_CUSTOM)


def test_build_backup_shape() -> None:
    moment = dt.datetime(2024, 3, 1, 12, 30, 5, 123000, tzinfo=dt.timezone.utc)
    payload = build_backup(DEFAULT_SETTINGS, UserData(custom_apps=(CUSTOM,)), "9.9.9", moment)
    assert payload["version"] == BACKUP_SCHEMA_VERSION
    assert payload["appVersion"] == "9.9.9"
    assert payload["generatedAt"] == "2024-03-01T12:30:05.123Z"
    assert payload["settings"]["overlayOpacity"] == DEFAULT_SETTINGS.overlay_opacity
    assert payload["userData"]["customApps"][0]["id"] == "custom-notes"
    assert payload["userData"]["pageSize"] == 35


def test_round_trip_restores_state() -> None:
    settings = Settings(background_type="color", overlay_opacity=0.2, has_completed_setup=True, mobile_layout="list")
    user_data = UserData(hidden_app_ids=("app-mail",), custom_apps=(CUSTOM,), page_size=21)
    result = parse_backup(build_backup(settings, user_data), DEFAULT_SETTINGS, DEFAULT_USER_DATA)
    assert isinstance(result, ValidBackup)
    assert result.settings == settings
    assert result.user_data == user_data
    assert result.message == "Imported settings and app data successfully."


def test_out_of_range_values_are_clamped() -> None:
    payload = {"version": 1, "settings": {"overlayOpacity": 5}, "userData": {"pageSize": 999}}
    result = parse_backup(payload, DEFAULT_SETTINGS, DEFAULT_USER_DATA)
    assert isinstance(result, ValidBackup)
    assert result.settings.overlay_opacity == 0.6
    assert result.user_data.page_size == 56


def test_rejects_non_object() -> None:
    result = parse_backup(["not", "an", "object"], DEFAULT_SETTINGS, DEFAULT_USER_DATA)
    assert isinstance(result, RejectedBackup)
    assert isinstance(result.error, InvalidBackup)
    assert result.reason == "The backup file is invalid."


def test_rejects_missing_sections() -> None:
    result = parse_backup({"version": 1}, DEFAULT_SETTINGS, DEFAULT_USER_DATA)
    assert isinstance(result, RejectedBackup)
    assert isinstance(result.error, MissingData)
    assert result.reason == "The backup file is missing required data."

    result = parse_backup({"settings": "x", "userData": 3}, DEFAULT_SETTINGS, DEFAULT_USER_DATA)
    assert isinstance(result, RejectedBackup)
    assert result.reason == "No changes were applied from the backup file."


def test_rejects_malformed_version() -> None:
    result = parse_backup({"version": "one", "settings": {}}, DEFAULT_SETTINGS, DEFAULT_USER_DATA)
    assert isinstance(result, RejectedBackup)
    assert isinstance(result.error, InvalidBackup)


def test_newer_version_is_read_field_by_field() -> None:
    result = parse_backup({"version": 7, "settings": {"blurStrength": 3}}, DEFAULT_SETTINGS, DEFAULT_USER_DATA)
    assert isinstance(result, ValidBackup)
    assert result.version == 7
    assert result.settings.blur_strength == 3


def test_settings_only_import() -> None:
    current = Settings(has_completed_setup=True)
    result = parse_backup({"settings": {"mobileLayout": "list"}}, current, DEFAULT_USER_DATA)
    assert isinstance(result, ValidBackup)
    assert result.user_data is None
    assert result.settings.mobile_layout == "list"
    assert result.settings.has_completed_setup is True
    assert result.message == "Imported settings successfully."


def test_has_completed_setup_taken_only_from_boolean() -> None:
    current = Settings(has_completed_setup=True)
    result = parse_backup({"settings": {"hasCompletedSetup": False}}, current, DEFAULT_USER_DATA)
    assert result.settings.has_completed_setup is False
    result = parse_backup({"settings": {"hasCompletedSetup": "no"}}, current, DEFAULT_USER_DATA)
    assert result.settings.has_completed_setup is True


def test_user_data_only_import_keeps_absent_fields() -> None:
    current = UserData(hidden_app_ids=("app-mail",), custom_apps=(CUSTOM,), page_size=42)
    result = parse_backup({"userData": {"hiddenAppIds": ["app-docs"]}}, DEFAULT_SETTINGS, current)
    assert isinstance(result, ValidBackup)
    assert result.settings is None
    assert result.user_data == UserData(hidden_app_ids=("app-docs",), custom_apps=(CUSTOM,), page_size=42)
    assert result.message == "Imported app data successfully."


def test_invalid_custom_apps_are_dropped() -> None:
    payload = {"userData": {"customApps": [{"name": "Bad", "url": "javascript:alert(1)"}, CUSTOM.to_dict()]}}
    result = parse_backup(payload, DEFAULT_SETTINGS, DEFAULT_USER_DATA)
    assert result.user_data.custom_apps == (CUSTOM,)
