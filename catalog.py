import http.client
import json
import logging
import os
import queue
import threading
import urllib.error
import urllib.request
from typing import Any, Callable, List, Optional, Tuple

from errors import FetchFailure
from identity import ensure_unique_ids
from merge import sanitize_catalog
from models import AppRecord
from utils import sanitize_url

_logger = logging.getLogger(__name__)

USER_AGENT = "launchpad-catalog/1.0"

STATUS_IDLE = "idle"
STATUS_LOADING = "loading"
STATUS_READY = "ready"
STATUS_FAILED = "failed"


def _catalog_items(payload: Any, source: str) -> List[Any]:
    items = payload.get("apps") if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        raise FetchFailure(f"Catalog at {source} does not contain an app list.", context={"source": source})
    return items


def fetch_catalog_url(url: str, timeout: float = 10.0) -> List[Any]:
    """Download the raw catalog JSON (a list, or an object with an ``apps`` list)."""
    target = sanitize_url(url)
    if not target:
        raise FetchFailure(f"Invalid catalog URL: {url!r}", context={"source": url})
    req = urllib.request.Request(
        target,
        headers={"Accept": "application/json", "User-Agent": USER_AGENT},
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            data = resp.read()
        payload = json.loads(data.decode("utf-8"))
    except (urllib.error.URLError, http.client.HTTPException, OSError, ValueError) as exc:
        raise FetchFailure(f"Failed to load apps from {target}: {exc}", context={"source": target}) from exc
    return _catalog_items(payload, target)


def load_catalog_file(file_path: str) -> List[Any]:
    try:
        with open(file_path, "r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except (OSError, ValueError) as exc:
        raise FetchFailure(f"Failed to load apps from {file_path}: {exc}", context={"source": file_path}) from exc
    return _catalog_items(payload, file_path)


def catalog_fetcher(source: str, timeout: float = 10.0) -> Callable[[], List[Any]]:
    """Pick the fetch function for a configured source: URL, file path, or nothing."""
    source = (source or "").strip()
    if not source:
        return list
    if os.path.isfile(source):
        return lambda: load_catalog_file(source)
    return lambda: fetch_catalog_url(source, timeout=timeout)


class CatalogLoader:
    """Fetch the catalog off-thread and hand the result back on ``poll()``.

    Every ``start()`` takes a new job id; a result tagged with an older id is
    dropped, so a retry supersedes any fetch still in flight. ``poll()`` must
    be called from the thread that owns the loader.
    """

    def __init__(self, fetch: Callable[[], Any]) -> None:
        self._fetch = fetch
        self._queue: queue.Queue = queue.Queue()
        self._job_id = 0
        self._thread: Optional[threading.Thread] = None
        self.status = STATUS_IDLE
        self.apps: List[AppRecord] = []
        self.error: str = ""

    @property
    def job_id(self) -> int:
        return self._job_id

    @property
    def is_loading(self) -> bool:
        return self.status == STATUS_LOADING

    def _begin(self) -> int:
        self._job_id += 1
        self.status = STATUS_LOADING
        self.error = ""
        return self._job_id

    def start(self) -> int:
        job_id = self._begin()
        thread = threading.Thread(target=self._worker, args=(job_id,), daemon=True)
        self._thread = thread
        thread.start()
        return job_id

    def cancel(self) -> None:
        self._job_id += 1
        if self.status == STATUS_LOADING:
            self.status = STATUS_IDLE

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _worker(self, job_id: int) -> None:
        try:
            raw = self._fetch()
            self._queue.put(("catalog_complete", job_id, sanitize_catalog(raw)))
        except FetchFailure as exc:
            self._queue.put(("catalog_error", job_id, exc))

    def poll(self) -> bool:
        """Apply finished results; returns True when the catalog state changed."""
        changed = False
        while True:
            try:
                event = self._queue.get_nowait()
            except queue.Empty:
                break
            changed = self._handle_event(event) or changed
        return changed

    def _handle_event(self, event: Tuple) -> bool:
        kind, job_id, value = event
        if job_id != self._job_id:
            _logger.debug("Discarding superseded catalog result (job %s, current %s)", job_id, self._job_id)
            return False
        if kind == "catalog_complete":
            # Ids are fixed here so every later merge sees the same ones.
            self.apps = ensure_unique_ids(value)
            self.status = STATUS_READY
            self.error = ""
            _logger.info("Loaded %d catalog apps", len(self.apps))
            return True
        message = str(value) or "Unknown error loading apps"
        _logger.warning("Catalog fetch failed: %s", message)
        self.status = STATUS_FAILED
        self.error = message
        return True

    def load_now(self) -> bool:
        """Fetch synchronously on the calling thread."""
        job_id = self._begin()
        try:
            raw = self._fetch()
        except FetchFailure as exc:
            return self._handle_event(("catalog_error", job_id, exc))
        return self._handle_event(("catalog_complete", job_id, sanitize_catalog(raw)))
