"""Resolve a persisted selection back onto a node of the current location trees.

Resolution favours custom lists: a selection of a whole custom list resolves to
the custom list node itself, while a selection of a member of a custom list
resolves exactly like a direct selection of that location. A custom list that
no longer exists falls back to its first location.
"""

from typing import Literal

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from location_selection.location.models import (
    LocationNode,
    RootLocationNode,
    UserSelectedRelays,
    node_code,
)

logger = logger.bind(topic="location_resolver")


class LocationNodes(BaseModel):
    """The candidate trees a selection can be resolved against."""

    model_config = ConfigDict(frozen=True)

    all_locations: list[LocationNode] = Field(default_factory=list)
    custom_lists: list[LocationNode] = Field(default_factory=list)


class ResolvedPath(BaseModel):
    """Where a selection was found: the candidate set and the code of the node."""

    model_config = ConfigDict(frozen=True)

    source: Literal["all_locations", "custom_lists"]
    code: str


def resolve_path(
    selection: UserSelectedRelays, candidates: LocationNodes
) -> ResolvedPath | None:
    """Return the candidate set and node code that the selection resolves to.

    Example:
        >>> selection = UserSelectedRelays.of(City(country_code="se", city_code="got"))
        >>> resolve_path(selection, LocationNodes(all_locations=tree))
        ResolvedPath(source='all_locations', code='se-got')
    """
    list_selection = selection.custom_list_selection
    if list_selection is not None and list_selection.is_list:
        for node in candidates.custom_lists:
            if node.custom_list is not None and node.custom_list.list_id == list_selection.list_id:
                return ResolvedPath(source="custom_lists", code=node.code)
        logger.debug("Custom list not found, trying its locations", list_id=list_selection.list_id)

    # A member of a custom list, or a list that is gone, resolves like the bare location.
    if not selection.locations:
        return None
    code = node_code(selection.locations[0].codes)
    root = RootLocationNode(children=candidates.all_locations)
    if root.descendant(code) is None:
        logger.debug("Location not found", code=code)
        return None
    return ResolvedPath(source="all_locations", code=code)


def resolve(selection: UserSelectedRelays, candidates: LocationNodes) -> LocationNode | None:
    """Return a copy of the node the selection resolves to, or None."""
    path = resolve_path(selection, candidates)
    if path is None:
        return None
    nodes = getattr(candidates, path.source)
    node = RootLocationNode(children=nodes).descendant(path.code)
    return node.copy() if node is not None else None
