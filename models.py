from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

APP_VERSION = "1.0.0"

ORIGIN_CATALOG = "catalog"
ORIGIN_CUSTOM = "custom"
TYPE_NORMAL = "normal"
TYPE_HIDDEN_GROUP = "hidden-group"

DEFAULT_ICON = "/icons/default-app.svg"
HIDDEN_GROUP_ID = "hidden-apps-group"
HIDDEN_GROUP_ICON = "/icons/hidden-apps.svg"

MIN_PAGE_SIZE = 14
MAX_PAGE_SIZE = 56
PAGE_SIZE_STEP = 7
DEFAULT_PAGE_SIZE = 35

PRESET_BACKGROUND_OPTIONS = (
    "/backgrounds/aurora.jpg",
    "/backgrounds/dunes.jpg",
    "/backgrounds/harbour.jpg",
    "/backgrounds/forest.jpg",
)

# Settings attribute -> key used in storage payloads and backup documents.
SETTINGS_WIRE_KEYS = {
    "background_type": "backgroundType",
    "background_image": "backgroundImage",
    "background_color": "backgroundColor",
    "overlay_opacity": "overlayOpacity",
    "blur_strength": "blurStrength",
    "glass_tint_color": "glassTintColor",
    "glass_tint_opacity": "glassTintOpacity",
    "has_completed_setup": "hasCompletedSetup",
    "hide_default_apps": "hideDefaultApps",
    "mobile_layout": "mobileLayout",
}


@dataclass(frozen=True)
class AppRecord:
    id: str
    name: str
    description: str = ""
    url: str = ""
    icon: str = DEFAULT_ICON
    tags: Tuple[str, ...] = ()
    origin: str = ORIGIN_CATALOG
    type: str = TYPE_NORMAL
    hidden_count: int = field(default=0, compare=False)

    @property
    def is_hidden_group(self) -> bool:
        return self.type == TYPE_HIDDEN_GROUP

    @property
    def is_custom(self) -> bool:
        return self.origin == ORIGIN_CUSTOM

    def name_key(self) -> str:
        return (self.name or "").casefold()

    def search_blob(self) -> str:
        parts = (self.name or "", self.description or "", " ".join(self.tags))
        return "\n".join(part for part in parts if part).casefold()

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "url": self.url,
            "icon": self.icon,
            "tags": list(self.tags),
            "origin": self.origin,
        }
        if self.is_hidden_group:
            payload["type"] = self.type
            payload["count"] = self.hidden_count
        return payload


@dataclass(frozen=True)
class Settings:
    background_type: str = "image"
    background_image: str = PRESET_BACKGROUND_OPTIONS[0]
    background_color: str = "#0f172a"
    overlay_opacity: float = 0.35
    blur_strength: float = 8.0
    glass_tint_color: str = "#0f172a"
    glass_tint_opacity: float = 0.45
    has_completed_setup: bool = False
    hide_default_apps: bool = False
    mobile_layout: str = "grid"

    def to_dict(self) -> Dict[str, Any]:
        return {wire: getattr(self, attr) for attr, wire in SETTINGS_WIRE_KEYS.items()}


@dataclass(frozen=True)
class UserData:
    hidden_app_ids: Tuple[str, ...] = ()
    custom_apps: Tuple[AppRecord, ...] = ()
    page_size: int = DEFAULT_PAGE_SIZE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hiddenAppIds": list(self.hidden_app_ids),
            "customApps": [app.to_dict() for app in self.custom_apps],
            "pageSize": self.page_size,
        }


@dataclass(frozen=True)
class CustomAppInput:
    """Raw values from the add/edit app form."""

    name: str
    url: str
    id: Optional[str] = None
    description: str = ""
    tags_input: str = ""
    icon_choice: Optional[str] = None
    icon_custom: str = ""


@dataclass(frozen=True)
class SettingsFormInput:
    """Raw values from the appearance form."""

    background_type: str
    background_image_choice: str
    background_color: str
    overlay_opacity: Any
    blur_strength: Any
    glass_tint_color: str
    glass_tint_opacity: Any
    page_size: Any
    hide_default_apps: bool
    mobile_layout: str
    background_image_custom: str = ""


DEFAULT_SETTINGS = Settings()
DEFAULT_USER_DATA = UserData()
