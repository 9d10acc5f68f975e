from collections import Counter
from collections.abc import Iterator
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class Hop(StrEnum):
    """One of the two selection slots of a multihop route."""

    ENTRY = "entry"
    EXIT = "exit"

    @property
    def opposite(self) -> "Hop":
        return Hop.EXIT if self is Hop.ENTRY else Hop.ENTRY


class Country(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["country"] = "country"
    country_code: str

    @property
    def codes(self) -> list[str]:
        return [self.country_code]


class City(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["city"] = "city"
    country_code: str
    city_code: str

    @property
    def codes(self) -> list[str]:
        return [self.country_code, self.city_code]


class Hostname(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["hostname"] = "hostname"
    country_code: str
    city_code: str
    hostname: str

    @property
    def codes(self) -> list[str]:
        # Hostnames are unique on their own, no need to qualify them.
        return [self.hostname]


RelayLocation = Annotated[Country | City | Hostname, Field(discriminator="kind")]


def node_code(codes: list[str]) -> str:
    """Return the node code for a code path, e.g. ["se", "got"] -> "se-got"."""
    return "-".join(codes)


class CustomListSelection(BaseModel):
    model_config = ConfigDict(frozen=True)

    list_id: str
    is_list: bool


class UserSelectedRelays(BaseModel):
    """
    The durable identifier of what the user picked.
    The first location is the primary match target, the order is otherwise insignificant.
    """

    model_config = ConfigDict(frozen=True)

    locations: tuple[RelayLocation, ...] = ()
    custom_list_selection: CustomListSelection | None = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UserSelectedRelays):
            return NotImplemented
        return (
            Counter(self.locations) == Counter(other.locations)
            and self.custom_list_selection == other.custom_list_selection
        )

    def __hash__(self) -> int:
        return hash((frozenset(Counter(self.locations).items()), self.custom_list_selection))

    @classmethod
    def of(cls, *locations: Country | City | Hostname) -> "UserSelectedRelays":
        return cls(locations=locations)


class Relay(BaseModel):
    """A relay candidate as delivered by the relay candidate provider."""

    hostname: str
    country_code: str
    country_name: str
    city_code: str
    city_name: str
    active: bool = True
    owned: bool = True
    provider: str = ""


class CustomListPayload(BaseModel):
    list_id: str
    locations: tuple[RelayLocation, ...] = ()


class LocationNode(BaseModel):
    """
    A node in a location tree: country, city, host or custom list.

    Children are owned by their parent. `copy()` deep copies the subtree so
    that flags set on a copy never reach the source tree.
    """

    code: str
    name: str
    children: list["LocationNode"] = Field(default_factory=list)
    is_selected: bool = False
    is_excluded: bool = False
    is_active: bool = True
    shows_children: bool = False
    connected_hostname: str | None = None

    location: RelayLocation | None = None
    custom_list: CustomListPayload | None = None
    # id of the custom list this node is a member of, if any
    member_of: str | None = None

    @property
    def as_custom_list_node(self) -> CustomListPayload | None:
        return self.custom_list

    @property
    def locations(self) -> list[Country | City | Hostname]:
        if self.custom_list is not None:
            return list(self.custom_list.locations)
        return [self.location] if self.location is not None else []

    @property
    def user_selected_relays(self) -> UserSelectedRelays:
        if self.custom_list is not None:
            return UserSelectedRelays(
                locations=self.custom_list.locations,
                custom_list_selection=CustomListSelection(
                    list_id=self.custom_list.list_id, is_list=True
                ),
            )
        selection = None
        if self.member_of is not None:
            selection = CustomListSelection(list_id=self.member_of, is_list=False)
        return UserSelectedRelays(
            locations=tuple(self.locations), custom_list_selection=selection
        )

    def copy(self, **update: Any) -> "LocationNode":  # type: ignore[override]
        return self.model_copy(update=update, deep=True)

    def walk(self) -> Iterator["LocationNode"]:
        """Iterate depth first over this node and its descendants."""
        yield self
        for child in self.children:
            yield from child.walk()

    def descendant(self, code: str) -> "LocationNode | None":
        """Return the first node in this subtree with the given code."""
        return next((node for node in self.walk() if node.code == code), None)

    def matches(self, selection: UserSelectedRelays) -> bool:
        """Whether this node stands for the given selection."""
        list_selection = selection.custom_list_selection
        if list_selection is not None and list_selection.is_list:
            return self.custom_list is not None and self.custom_list.list_id == list_selection.list_id
        if self.custom_list is not None or not selection.locations:
            return False
        return self.location == selection.locations[0]


ROOT_CODE = "#root"


class RootLocationNode(LocationNode):
    """Synthetic parent of a top-level candidate set. Never selectable."""

    code: str = ROOT_CODE
    name: str = ""

    def descendant(self, code: str) -> LocationNode | None:
        for child in self.children:
            if found := child.descendant(code):
                return found
        return None
