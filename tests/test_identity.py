from identity import allocate_custom_id, clean_hidden_ids, create_slug_id, dedupe_hidden_ids, ensure_unique_ids, slugify
from models import ORIGIN_CUSTOM, AppRecord


def test_slug_ids() -> None:
    assert slugify("  Google Docs!  ") == "google-docs"
    assert create_slug_id("app", "Docs") == "app-docs"
    assert create_slug_id("custom", "My  Mail / Calendar") == "custom-my-mail-calendar"
    assert create_slug_id("custom", "!!!", timestamp_ms=36 ** 3) == "custom-1000"
    assert create_slug_id("app", "", timestamp_ms=35) == "app-z"


def test_duplicate_names_get_suffixes() -> None:
    records = [AppRecord(id="", name="Docs"), AppRecord(id="", name="Docs")]
    assert [record.id for record in ensure_unique_ids(records)] == ["app-docs", "app-docs-2"]


def test_supplied_and_derived_ids_collide() -> None:
    records = [
        AppRecord(id="custom-mail", name="Mail", origin=ORIGIN_CUSTOM),
        AppRecord(id="", name="Mail", origin=ORIGIN_CUSTOM),
        AppRecord(id=" custom-mail ", name="Other", origin=ORIGIN_CUSTOM),
    ]
    assert [record.id for record in ensure_unique_ids(records)] == ["custom-mail", "custom-mail-2", "custom-mail-3"]


def test_ensure_unique_ids_never_duplicates() -> None:
    names = ["A", "a", "A-2", "", "", "a 2", "A"]
    records = [AppRecord(id="app-a" if index % 2 else "", name=name) for index, name in enumerate(names)]
    ids = [record.id for record in ensure_unique_ids(records)]
    assert len(ids) == len(set(ids))


def test_ensure_unique_ids_is_stable() -> None:
    records = [AppRecord(id="", name="Docs"), AppRecord(id="x", name="Mail"), AppRecord(id="", name="Docs")]
    first = ensure_unique_ids(records)
    assert ensure_unique_ids(first) == first


def test_allocate_custom_id() -> None:
    assert allocate_custom_id("Docs", set()) == "custom-docs"
    assert allocate_custom_id("Docs", {"custom-docs", "custom-docs-2"}) == "custom-docs-3"


def test_dedupe_hidden_ids_prunes_missing_apps() -> None:
    apps = [AppRecord(id="app-a", name="A"), AppRecord(id="app-b", name="B")]
    assert dedupe_hidden_ids([" app-a", "app-a", "gone", 7, "", "app-b"], apps) == ["app-a", "app-b"]
    assert dedupe_hidden_ids(["app-b"], apps[:1]) == []
    assert dedupe_hidden_ids("app-a", apps) == []
    assert clean_hidden_ids(["x", " x ", "y", None]) == ["x", "y"]


def test_app_record_helpers() -> None:
    app = AppRecord(id="app-mail", name="Mail", description="Inbox", tags=("Work", "Chat"))
    assert app.name_key() == "mail"
    assert "inbox" in app.search_blob()
    assert "work chat" in app.search_blob()
    assert app.to_dict() == {
        "id": "app-mail",
        "name": "Mail",
        "description": "Inbox",
        "url": "",
        "icon": app.icon,
        "tags": ["Work", "Chat"],
        "origin": "catalog",
    }
