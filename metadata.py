import html
import http.client
import logging
import re
import urllib.error
import urllib.request

from utils import sanitize_url

_logger = logging.getLogger(__name__)

USER_AGENT = "launchpad-metadata-fetcher/1.0"
# Titles live in <head>; never read more than this much of a page.
MAX_SNIPPET_BYTES = 50000

_TITLE_RE = re.compile(r"<title[^>]*>([^<]*)</title>", re.IGNORECASE)


def extract_title(document: str) -> str:
    match = _TITLE_RE.search((document or "")[:MAX_SNIPPET_BYTES])
    if not match:
        return ""
    return " ".join(html.unescape(match.group(1)).split())


def resolve_title(url: str, timeout: float = 6.0) -> str:
    """Best-effort page title used to pre-fill the name field; blank on any failure."""
    target = sanitize_url(url)
    if not target:
        return ""
    req = urllib.request.Request(
        target,
        headers={"Accept": "text/html,application/xhtml+xml", "User-Agent": USER_AGENT},
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            charset = resp.headers.get_content_charset() or "utf-8"
            data = resp.read(MAX_SNIPPET_BYTES)
    except (urllib.error.URLError, http.client.HTTPException, OSError, ValueError) as exc:
        _logger.debug("Title lookup failed for %s: %s", target, exc)
        return ""
    try:
        text = data.decode(charset, errors="replace")
    except LookupError:
        text = data.decode("utf-8", errors="replace")
    return extract_title(text)
