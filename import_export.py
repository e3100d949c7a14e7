import csv
import datetime as _dt
import json
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence

from errors import InvalidBackup
from merge import sanitize_custom_apps
from models import AppRecord

try:
    from openpyxl import Workbook
except ImportError:  # pragma: no cover - optional dependency
    Workbook = None


CSV_HEADERS = ["Id", "Name", "Url", "Description", "Tags", "Icon", "Origin"]

# Normalized header -> record field. "link" matches sheets exported by hand.
_CSV_FIELDS = {
    "id": "id",
    "name": "name",
    "url": "url",
    "link": "url",
    "description": "description",
    "tags": "tags",
    "icon": "icon",
}

BACKUP_FILENAME_PREFIX = "launchpad-backup-"


def _rows(apps: Iterable[AppRecord]) -> Iterator[List[str]]:
    for app in apps:
        if app.is_hidden_group:
            continue
        yield [app.id, app.name, app.url, app.description, ", ".join(app.tags), app.icon, app.origin]


def export_csv(file_path: str, apps: Iterable[AppRecord]) -> None:
    with open(file_path, "w", newline="", encoding="utf-8") as csv_file:
        writer = csv.writer(csv_file)
        writer.writerow(CSV_HEADERS)
        writer.writerows(_rows(apps))


def export_xlsx(file_path: str, apps: Iterable[AppRecord], hidden_apps: Iterable[AppRecord] = ()) -> None:
    if Workbook is None:
        raise RuntimeError("openpyxl is required for XLSX export. Install it with: pip install openpyxl")
    book = Workbook(write_only=True)
    for title, entries in (("Apps", apps), ("Hidden Apps", hidden_apps)):
        sheet = book.create_sheet(title)
        sheet.append(CSV_HEADERS)
        for row in _rows(entries):
            sheet.append(row)
    book.save(file_path)


def _header_key(header: str) -> str:
    return "".join(ch for ch in (header or "").lower() if ch.isalnum())


def _column_map(fieldnames: Sequence[str]) -> Dict[str, str]:
    columns: Dict[str, str] = {}
    for header in fieldnames:
        field = _CSV_FIELDS.get(_header_key(header))
        if field and field not in columns:
            columns[field] = header
    return columns


def import_csv(file_path: str) -> List[AppRecord]:
    """Read custom apps from a CSV export; rows without a name or valid URL are skipped."""
    with open(file_path, "r", newline="", encoding="utf-8") as csv_file:
        reader = csv.DictReader(csv_file)
        if not reader.fieldnames:
            raise ValueError("CSV file has no headers.")
        columns = _column_map(reader.fieldnames)
        raw = [{field: (row.get(header) or "").strip() for field, header in columns.items()} for row in reader]
    return sanitize_custom_apps(raw)


def backup_filename(moment: Optional[_dt.datetime] = None) -> str:
    moment = moment or _dt.datetime.now(_dt.timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=_dt.timezone.utc)
    stamp = moment.astimezone(_dt.timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return f"{BACKUP_FILENAME_PREFIX}{stamp.replace(':', '-').replace('.', '-')}.json"


def encode_backup(payload: Dict[str, Any]) -> bytes:
    return json.dumps(payload, indent=2).encode("utf-8")


def decode_backup(data: bytes) -> Any:
    try:
        return json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InvalidBackup("The backup file is invalid or corrupted.") from exc


def emit_backup(payload: Dict[str, Any], emit: Callable[[bytes, str], None], moment: Optional[_dt.datetime] = None) -> str:
    """Hand the encoded backup to ``emit(data, filename)``; returns the filename."""
    filename = backup_filename(moment)
    emit(encode_backup(payload), filename)
    return filename


def save_backup(file_path: str, payload: Dict[str, Any]) -> None:
    with open(file_path, "wb") as fh:
        fh.write(encode_backup(payload))


def load_backup(file_path: str) -> Any:
    with open(file_path, "rb") as fh:
        return decode_backup(fh.read())
