from pathlib import Path

import pytest

from location_selection.location.models import Country, Hop, UserSelectedRelays
from location_selection.recents.errors import NotFoundError, StoreIOError
from location_selection.recents.settings_store import FileSettingsStore, InMemorySettingsStore
from location_selection.recents.store import RecentsStore
from location_selection.settings import settings


def test_in_memory_store():
    store = InMemorySettingsStore()

    with pytest.raises(NotFoundError):
        store.read("key")

    store.write(b"data", "key")
    assert store.read("key") == b"data"
    assert store.writes == 1


def test_file_store(tmp_path: Path):
    store = FileSettingsStore(tmp_path / "settings")

    with pytest.raises(NotFoundError) as exc_info:
        store.read("key")
    assert exc_info.value.key == "key"

    store.write(b"first", "key")
    store.write(b"second", "key")

    assert store.read("key") == b"second"
    assert [path.name for path in (tmp_path / "settings").iterdir()] == ["key.json"]


def test_file_store_io_error(tmp_path: Path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    store = FileSettingsStore(blocker)

    with pytest.raises(StoreIOError):
        store.write(b"data", "key")


def test_recents_survive_restart(tmp_path: Path):
    location = UserSelectedRelays.of(Country(country_code="se"))
    first = RecentsStore(FileSettingsStore(tmp_path), max_limit=50)
    first.set_enabled(True)
    first.add(location, Hop.EXIT)

    second = RecentsStore(FileSettingsStore(tmp_path), max_limit=50)

    assert second.read().exit_locations == (location,)


def test_file_store_defaults_to_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "DATA_DIR", str(tmp_path))

    FileSettingsStore().write(b"data", "key")

    assert (tmp_path / "settings" / "key.json").read_bytes() == b"data"


def test_file_store_failed_replace_leaves_no_temp_file(tmp_path: Path):
    # a directory in place of the target file makes the final rename fail
    (tmp_path / "key.json").mkdir()
    store = FileSettingsStore(tmp_path)

    with pytest.raises(StoreIOError):
        store.write(b"data", "key")

    assert [path.name for path in tmp_path.iterdir()] == ["key.json"]
