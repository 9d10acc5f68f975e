from typing import Callable

import pytest

from location_selection.location.models import LocationNode, Relay, UserSelectedRelays
from location_selection.location.tree import build_location_tree
from location_selection.recents.settings_store import InMemorySettingsStore
from location_selection.recents.store import RecentsStore
from location_selection.selection.interfaces import (
    CustomList,
    CustomListError,
    RelayCandidates,
    TunnelSettings,
    TunnelStatus,
)
from location_selection.selection.orchestrator import SelectLocationOrchestrator

RELAYS = [
    Relay(
        hostname="se-got-wg-001",
        country_code="se",
        country_name="Sweden",
        city_code="got",
        city_name="Gothenburg",
    ),
    Relay(
        hostname="se-got-wg-002",
        country_code="se",
        country_name="Sweden",
        city_code="got",
        city_name="Gothenburg",
        owned=False,
        provider="M247",
    ),
    Relay(
        hostname="se-sto-wg-001",
        country_code="se",
        country_name="Sweden",
        city_code="sto",
        city_name="Stockholm",
    ),
    Relay(
        hostname="de-ber-wg-001",
        country_code="de",
        country_name="Germany",
        city_code="ber",
        city_name="Berlin",
    ),
    Relay(
        hostname="de-fra-wg-001",
        country_code="de",
        country_name="Germany",
        city_code="fra",
        city_name="Frankfurt",
        active=False,
    ),
]


class FakeCandidateProvider:
    def __init__(self, relays: list[Relay], *, multihop: bool = True):
        self.relays = relays
        self.multihop = multihop
        self.error: Exception | None = None
        self.calls = 0

    def find_candidates(self, tunnel_settings: TunnelSettings) -> RelayCandidates:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return RelayCandidates(
            exit_relays=list(self.relays),
            entry_relays=list(self.relays) if self.multihop else None,
        )


class FakeCustomListRepository:
    def __init__(self, custom_lists: list[CustomList] | None = None):
        self.custom_lists = {custom_list.id: custom_list for custom_list in custom_lists or []}
        self.fail_on_save = False
        self.fail_on_fetch = False

    def fetch_all(self) -> list[CustomList]:
        if self.fail_on_fetch:
            raise CustomListError("storage is unavailable")
        return list(self.custom_lists.values())

    def save(self, custom_list: CustomList) -> None:
        if self.fail_on_save:
            raise CustomListError("storage is read only")
        self.custom_lists[custom_list.id] = custom_list

    def delete(self, list_id: str) -> None:
        self.custom_lists.pop(list_id, None)


class RecordingDelegate:
    def __init__(self):
        self.entry_selections: list[UserSelectedRelays] = []
        self.exit_selections: list[UserSelectedRelays] = []
        self.updated_settings: list[TunnelSettings] = []

    def did_select_entry_relay_locations(self, selection: UserSelectedRelays) -> None:
        self.entry_selections.append(selection)

    def did_select_exit_relay_locations(self, selection: UserSelectedRelays) -> None:
        self.exit_selections.append(selection)

    def update_settings(self, tunnel_settings: TunnelSettings) -> None:
        self.updated_settings.append(tunnel_settings)


@pytest.fixture
def relays() -> list[Relay]:
    return list(RELAYS)


@pytest.fixture
def location_tree(relays: list[Relay]) -> list[LocationNode]:
    return build_location_tree(relays)


@pytest.fixture
def settings_store() -> InMemorySettingsStore:
    return InMemorySettingsStore()


@pytest.fixture
def recents_store(settings_store: InMemorySettingsStore) -> RecentsStore:
    return RecentsStore(settings_store, max_limit=50)


@pytest.fixture
def candidate_provider(relays: list[Relay]) -> FakeCandidateProvider:
    return FakeCandidateProvider(relays)


@pytest.fixture
def custom_list_repository() -> FakeCustomListRepository:
    return FakeCustomListRepository()


@pytest.fixture
def delegate() -> RecordingDelegate:
    return RecordingDelegate()


@pytest.fixture
def orchestrator_factory(
    candidate_provider: FakeCandidateProvider,
    custom_list_repository: FakeCustomListRepository,
    recents_store: RecentsStore,
    delegate: RecordingDelegate,
) -> Callable[..., SelectLocationOrchestrator]:
    def _create(
        tunnel_settings: TunnelSettings | None = None,
        tunnel_status: TunnelStatus | None = None,
    ) -> SelectLocationOrchestrator:
        return SelectLocationOrchestrator(
            tunnel_settings=tunnel_settings or TunnelSettings(),
            tunnel_status=tunnel_status or TunnelStatus(),
            candidate_provider=candidate_provider,
            custom_list_repository=custom_list_repository,
            recents_store=recents_store,
            delegate=delegate,
        )

    return _create
