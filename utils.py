import math
import re
from typing import List, Optional, Tuple
from urllib.parse import quote, urlsplit, urlunsplit

from models import DEFAULT_ICON, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, MIN_PAGE_SIZE, PAGE_SIZE_STEP

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")
_SCRIPT_RE = re.compile(r"^javascript:", re.IGNORECASE)
_ICON_RE = re.compile(r"^(?:https?://|data:image/)", re.IGNORECASE)
_FLOAT_PREFIX_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_HEX_RE = re.compile(r"^[0-9a-fA-F]{6}$")

_FORBIDDEN_HOST_CHARS = frozenset(" \t\r\n#%/:<>?@[\\]^|")
_DEFAULT_PORTS = {"http": 80, "https": 443}
_URL_SAFE = "/?:@!$&'()*+,;=-._~%"


def sanitize_url(raw) -> str:
    """Return a canonical http(s) URL, or blank when the value is unusable.

    Scheme-less input gets ``https://`` and protocol-relative input gets
    ``https:``. Never raises.
    """
    if not isinstance(raw, str):
        return ""
    url = raw.strip()
    if not url or _SCRIPT_RE.match(url):
        return ""
    if url.startswith("//"):
        url = f"https:{url}"
    elif not _SCHEME_RE.match(url):
        url = f"https://{url}"
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return ""
    scheme = parts.scheme.lower()
    if scheme not in _DEFAULT_PORTS:
        return ""
    host = _canonical_host(parts.netloc, parts.hostname or "")
    if not host:
        return ""
    userinfo = ""
    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo = f"{userinfo}:{parts.password}"
        userinfo = f"{userinfo}@"
    netloc = f"{userinfo}{host}"
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        netloc = f"{netloc}:{port}"
    path = quote(parts.path or "/", safe=_URL_SAFE)
    query = quote(parts.query, safe=_URL_SAFE)
    fragment = quote(parts.fragment, safe=_URL_SAFE)
    return urlunsplit((scheme, netloc, path, query, fragment))


def _canonical_host(netloc: str, hostname: str) -> str:
    if not hostname:
        return ""
    if netloc.rpartition("@")[2].startswith("["):
        if any(ch not in "0123456789abcdef:." for ch in hostname):
            return ""
        return f"[{hostname}]"
    if any(ch in _FORBIDDEN_HOST_CHARS for ch in hostname):
        return ""
    if hostname.isascii():
        return hostname
    try:
        return hostname.encode("idna").decode("ascii")
    except UnicodeError:
        return ""


def sanitize_icon(raw) -> str:
    if not isinstance(raw, str):
        return DEFAULT_ICON
    icon = raw.strip()
    if not icon or _SCRIPT_RE.match(icon):
        return DEFAULT_ICON
    if _ICON_RE.match(icon) or icon.startswith("./") or icon.startswith("/"):
        return icon
    return DEFAULT_ICON


def parse_tag_string(raw) -> List[str]:
    if not isinstance(raw, str):
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


def sanitize_tags(raw) -> List[str]:
    """Accept a list of tags or a comma-separated string; drop blanks."""
    if isinstance(raw, str):
        return parse_tag_string(raw)
    if not isinstance(raw, (list, tuple)):
        return []
    tags: List[str] = []
    for value in raw:
        tag = "" if value is None else str(value).strip()
        if tag:
            tags.append(tag)
    return tags


def parse_number(value) -> Optional[float]:
    """Parse the leading number of ``value``; booleans and blanks are not numbers."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            return None
    match = _FLOAT_PREFIX_RE.match(str(value).strip())
    if not match:
        return None
    return float(match.group(0))


def clamp(value, minimum: float, maximum: float, fallback: float) -> float:
    numeric = parse_number(value)
    if numeric is None or not math.isfinite(numeric):
        return fallback
    return min(max(numeric, minimum), maximum)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def normalize_page_size(value) -> int:
    clamped = clamp(value, MIN_PAGE_SIZE, MAX_PAGE_SIZE, DEFAULT_PAGE_SIZE)
    rounded = _round_half_up(clamped)
    if PAGE_SIZE_STEP > 1:
        rounded = _round_half_up(rounded / PAGE_SIZE_STEP) * PAGE_SIZE_STEP
    return min(max(rounded, MIN_PAGE_SIZE), MAX_PAGE_SIZE)


def _hex_to_rgb(value) -> Optional[Tuple[int, int, int]]:
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.startswith("#"):
        text = text[1:]
    if len(text) == 3:
        text = "".join(ch * 2 for ch in text)
    if not _HEX_RE.match(text):
        return None
    number = int(text, 16)
    return (number >> 16) & 255, (number >> 8) & 255, number & 255


def resolve_hex_color(value, fallback: str) -> str:
    """Normalize ``value`` to ``#rrggbb``; fall back when it does not parse."""
    rgb = _hex_to_rgb(value)
    if rgb is None:
        rgb = _hex_to_rgb(fallback)
    if rgb is None:
        return fallback
    return "#{:02x}{:02x}{:02x}".format(*rgb)


def sanitize_background_image(raw) -> str:
    if not isinstance(raw, str):
        return ""
    image = raw.strip()
    if not image or "javascript:" in image.lower():
        return ""
    return image
