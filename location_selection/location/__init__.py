"""Location model, tree helpers and selection resolution."""

from location_selection.location.models import (
    City,
    Country,
    CustomListSelection,
    Hop,
    Hostname,
    LocationNode,
    Relay,
    RootLocationNode,
    UserSelectedRelays,
)
from location_selection.location.resolver import LocationNodes, resolve, resolve_path

__all__ = [
    "City",
    "Country",
    "CustomListSelection",
    "Hop",
    "Hostname",
    "LocationNode",
    "LocationNodes",
    "Relay",
    "RootLocationNode",
    "UserSelectedRelays",
    "resolve",
    "resolve_path",
]
