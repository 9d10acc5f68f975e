import pytest
from assertpy import assert_that

from location_selection.location.models import Country, Hop, UserSelectedRelays
from location_selection.recents.errors import (
    DecodeError,
    NotFoundError,
    RecentsDisabledError,
    RecentsError,
    StoreIOError,
)
from location_selection.recents.models import RecentConnections
from location_selection.recents.settings_store import InMemorySettingsStore
from location_selection.recents.store import RECENT_CONNECTIONS_KEY, RecentsStore

A = UserSelectedRelays.of(Country(country_code="se"))
B = UserSelectedRelays.of(Country(country_code="de"))
C = UserSelectedRelays.of(Country(country_code="ch"))


class _Recorder:
    def __init__(self, store: RecentsStore):
        self.values: list[RecentConnections] = []
        self.failures: list[RecentsError] = []
        store.channel.subscribe(self.values.append, self.failures.append)


class _FailingStore(InMemorySettingsStore):
    def write(self, data: bytes, key: str) -> None:
        raise StoreIOError("disk full")


def test_read_before_first_write(recents_store: RecentsStore):
    with pytest.raises(NotFoundError):
        recents_store.read()


def test_read_corrupt_payload(settings_store: InMemorySettingsStore, recents_store: RecentsStore):
    settings_store.values[RECENT_CONNECTIONS_KEY] = b"{not json"

    with pytest.raises(DecodeError):
        recents_store.read()


def test_read_rejects_disabled_with_locations(
    settings_store: InMemorySettingsStore, recents_store: RecentsStore
):
    settings_store.values[RECENT_CONNECTIONS_KEY] = (
        b'{"is_enabled": false, "entry_locations": [], '
        b'"exit_locations": [{"locations": [{"kind": "country", "country_code": "se"}]}]}'
    )

    with pytest.raises(DecodeError):
        recents_store.read()


def test_write_then_read(recents_store: RecentsStore):
    value = RecentConnections(entry_locations=(A,), exit_locations=(B, A))

    recents_store.write(value)

    assert recents_store.read() == value


def test_emit_current(recents_store: RecentsStore):
    recorder = _Recorder(recents_store)

    recents_store.emit_current()
    recents_store.set_enabled(True)
    recents_store.emit_current()

    assert len(recorder.failures) == 1
    assert isinstance(recorder.failures[0], NotFoundError)
    assert recorder.values == [RecentConnections(), RecentConnections()]
    assert recents_store.channel.last_value == RecentConnections()


def test_end_to_end_recency(settings_store: InMemorySettingsStore):
    store = RecentsStore(settings_store, max_limit=2)
    store.set_enabled(True)

    store.add(A, Hop.EXIT)
    assert store.read().exit_locations == (A,)
    store.add(B, Hop.EXIT)
    assert store.read().exit_locations == (B, A)
    store.add(A, Hop.EXIT)
    assert store.read().exit_locations == (A, B)
    store.add(C, Hop.EXIT)
    assert store.read().exit_locations == (C, A)
    assert store.read().entry_locations == ()


def test_bounded_recency(settings_store: InMemorySettingsStore):
    store = RecentsStore(settings_store, max_limit=5)
    store.set_enabled(True)
    locations = [
        UserSelectedRelays.of(Country(country_code=f"c{index}")) for index in range(12)
    ]

    for location in locations:
        store.add(location, Hop.ENTRY)
        assert len(store.read().entry_locations) <= 5

    assert list(store.read().entry_locations) == list(reversed(locations))[:5]


def test_reinsertion_moves_to_front(recents_store: RecentsStore):
    recents_store.set_enabled(True)
    for location in [A, B, C]:
        recents_store.add(location, Hop.ENTRY)

    recents_store.add(B, Hop.ENTRY)

    assert recents_store.read().entry_locations == (B, C, A)


def test_hops_are_independent(recents_store: RecentsStore):
    recents_store.set_enabled(True)

    recents_store.add(A, Hop.ENTRY)
    recents_store.add(B, Hop.EXIT)

    value = recents_store.read()
    assert value.entry_locations == (A,)
    assert value.exit_locations == (B,)


@pytest.mark.parametrize("is_enabled", [True, False])
def test_set_enabled_clears(recents_store: RecentsStore, is_enabled: bool):
    recents_store.set_enabled(True)
    recents_store.add(A, Hop.ENTRY)
    recents_store.add(B, Hop.EXIT)

    recents_store.set_enabled(is_enabled)

    assert recents_store.read() == RecentConnections(is_enabled=is_enabled)


def test_reenable_does_not_restore(recents_store: RecentsStore):
    recents_store.set_enabled(True)
    recents_store.add(A, Hop.EXIT)
    recents_store.set_enabled(False)

    recents_store.set_enabled(True)

    assert recents_store.read().exit_locations == ()


def test_add_while_disabled(settings_store: InMemorySettingsStore, recents_store: RecentsStore):
    recents_store.set_enabled(False)
    writes = settings_store.writes
    recorder = _Recorder(recents_store)

    recents_store.add(A, Hop.ENTRY)

    assert settings_store.writes == writes
    assert recorder.values == []
    assert_that(recorder.failures).is_length(1)
    assert isinstance(recorder.failures[0], RecentsDisabledError)
    assert str(recorder.failures[0]) == (
        "To add the location to the recents, first enable it in the settings."
    )


def test_add_before_first_write(recents_store: RecentsStore):
    recorder = _Recorder(recents_store)

    recents_store.add(A, Hop.ENTRY)

    assert recorder.values == []
    assert isinstance(recorder.failures[0], NotFoundError)


def test_failed_write_is_broadcast_once():
    store = RecentsStore(_FailingStore(), max_limit=50)
    recorder = _Recorder(store)

    store.set_enabled(True)

    assert recorder.values == []
    assert_that(recorder.failures).is_length(1)
    assert isinstance(recorder.failures[0], StoreIOError)
    assert store.channel.last_value is None


def test_unsubscribe(recents_store: RecentsStore):
    values: list[RecentConnections] = []
    unsubscribe = recents_store.channel.subscribe(values.append, lambda error: None)

    recents_store.set_enabled(True)
    unsubscribe()
    recents_store.set_enabled(False)

    assert values == [RecentConnections()]
