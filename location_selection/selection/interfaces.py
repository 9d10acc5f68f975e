"""Values and collaborators the selection orchestrator talks to."""

from enum import StrEnum
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field

from location_selection.location.models import Country, Relay, RelayLocation, UserSelectedRelays

DEFAULT_EXIT_SELECTION = UserSelectedRelays.of(Country(country_code="se"))

NO_RELAYS_SATISFYING_DAITA = "no_relays_satisfying_daita_constraints"


class Ownership(StrEnum):
    ANY = "any"
    OWNED = "owned"
    RENTED = "rented"


class RelayFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    ownership: Ownership = Ownership.ANY
    providers: tuple[str, ...] | None = None  # None means any provider


class RelayConstraints(BaseModel):
    model_config = ConfigDict(frozen=True)

    entry_locations: UserSelectedRelays | None = None
    exit_locations: UserSelectedRelays | None = None
    filter: RelayFilter = Field(default_factory=RelayFilter)


class DAITASettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_enabled: bool = False
    is_automatic_routing: bool = False


class TunnelSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    relay_constraints: RelayConstraints = Field(default_factory=RelayConstraints)
    is_multihop_enabled: bool = False
    daita: DAITASettings = Field(default_factory=DAITASettings)
    is_obfuscation_enabled: bool = False

    @property
    def entry_selection(self) -> UserSelectedRelays | None:
        return self.relay_constraints.entry_locations

    @property
    def exit_selection(self) -> UserSelectedRelays:
        return self.relay_constraints.exit_locations or DEFAULT_EXIT_SELECTION


class RelayEndpoint(BaseModel):
    hostname: str


class SelectedRelays(BaseModel):
    entry: RelayEndpoint | None = None
    exit: RelayEndpoint


class TunnelStatus(BaseModel):
    relays: SelectedRelays | None = None
    blocked_reason: str | None = None


class RelayCandidates(BaseModel):
    exit_relays: list[Relay]
    entry_relays: list[Relay] | None = None  # None in single hop mode


class RelayCandidateProvider(Protocol):
    def find_candidates(self, tunnel_settings: TunnelSettings) -> RelayCandidates:
        """Return the relays matching the settings. May raise."""
        ...


class CustomList(BaseModel):
    id: str
    name: str
    locations: list[RelayLocation] = Field(default_factory=list)


class CustomListError(Exception):
    pass


class CustomListRepository(Protocol):
    def fetch_all(self) -> list[CustomList]:
        """Return all custom lists. Raises CustomListError."""
        ...

    def save(self, custom_list: CustomList) -> None:
        """Create or update a custom list. Raises CustomListError."""
        ...

    def delete(self, list_id: str) -> None: ...


class SelectLocationDelegate(Protocol):
    def did_select_entry_relay_locations(self, selection: UserSelectedRelays) -> None: ...

    def did_select_exit_relay_locations(self, selection: UserSelectedRelays) -> None: ...

    def update_settings(self, tunnel_settings: TunnelSettings) -> None: ...
