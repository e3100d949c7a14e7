"""Versioned backup snapshots of settings and user data.

``build_backup`` produces the plain payload written by the export action.
``parse_backup`` validates an already-decoded payload in one step and returns
either a ``ValidBackup`` carrying fully sanitized objects or a
``RejectedBackup`` carrying the reason; callers never read raw payload fields.

Version 1 documents look like::

    {"version": 1, "appVersion": "1.0.0", "generatedAt": "...Z",
     "settings": {...camelCase settings...},
     "userData": {"hiddenAppIds": [...], "customApps": [...], "pageSize": 35}}

Readers only rely on the ``settings`` and ``userData`` keys, so a document
with a newer ``version`` is still read field by field.
"""

import datetime as _dt
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Union

from errors import BackupError, InvalidBackup, MissingData
from merge import sanitize_user_data
from models import APP_VERSION, DEFAULT_SETTINGS, Settings, UserData
from settings import reconcile_settings

_logger = logging.getLogger(__name__)

BACKUP_SCHEMA_VERSION = 1


@dataclass(frozen=True)
class ValidBackup:
    settings: Optional[Settings]
    user_data: Optional[UserData]
    version: int = BACKUP_SCHEMA_VERSION

    @property
    def message(self) -> str:
        if self.settings is not None and self.user_data is not None:
            return "Imported settings and app data successfully."
        if self.settings is not None:
            return "Imported settings successfully."
        return "Imported app data successfully."


@dataclass(frozen=True)
class RejectedBackup:
    reason: str
    error: BackupError = field(compare=False, repr=False)


ParsedBackup = Union[ValidBackup, RejectedBackup]


def _timestamp(moment: Optional[_dt.datetime]) -> str:
    moment = moment or _dt.datetime.now(_dt.timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=_dt.timezone.utc)
    text = moment.astimezone(_dt.timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def build_backup(
    settings: Settings,
    user_data: UserData,
    app_version: str = APP_VERSION,
    generated_at: Optional[_dt.datetime] = None,
) -> Dict[str, Any]:
    return {
        "version": BACKUP_SCHEMA_VERSION,
        "appVersion": app_version,
        "generatedAt": _timestamp(generated_at),
        "settings": settings.to_dict(),
        "userData": user_data.to_dict(),
    }


def backup_version(payload: Dict[str, Any]) -> int:
    raw = payload.get("version")
    if raw is None:
        return BACKUP_SCHEMA_VERSION
    if isinstance(raw, bool):
        raise InvalidBackup("The backup file is invalid.", context={"version": raw})
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise InvalidBackup("The backup file is invalid.", context={"version": raw}) from None


def _import_settings(raw: Dict[str, Any], current: Settings) -> Settings:
    incoming = reconcile_settings(DEFAULT_SETTINGS, raw)
    completed = raw.get("hasCompletedSetup")
    if not isinstance(completed, bool):
        completed = current.has_completed_setup
    return replace(incoming, has_completed_setup=completed)


def _validate(data, current_settings: Settings, current_user_data: UserData) -> ValidBackup:
    if not isinstance(data, dict):
        raise InvalidBackup("The backup file is invalid.")
    raw_settings = data.get("settings")
    raw_user_data = data.get("userData")
    if raw_settings is None and raw_user_data is None:
        raise MissingData("The backup file is missing required data.")
    version = backup_version(data)
    if version > BACKUP_SCHEMA_VERSION:
        _logger.warning("Backup version %s is newer than %s; reading known fields only", version, BACKUP_SCHEMA_VERSION)
    settings = None
    if isinstance(raw_settings, dict):
        settings = _import_settings(raw_settings, current_settings)
    user_data = None
    if isinstance(raw_user_data, dict):
        user_data = sanitize_user_data(raw_user_data, current_user_data)
    if settings is None and user_data is None:
        raise MissingData("No changes were applied from the backup file.")
    return ValidBackup(settings=settings, user_data=user_data, version=version)


def parse_backup(data, current_settings: Settings, current_user_data: UserData) -> ParsedBackup:
    """Validate a decoded backup against the current state.

    Sections missing from the payload come back as ``None``; fields missing
    inside ``userData`` keep their current values.
    """
    try:
        return _validate(data, current_settings, current_user_data)
    except BackupError as exc:
        _logger.warning("Rejected backup: %s", exc)
        return RejectedBackup(reason=exc.message, error=exc)
