"""Bounded, persisted history of selected locations per hop."""

from location_selection.recents.controller import RecentsController
from location_selection.recents.models import RecentConnections
from location_selection.recents.projection import RecentListProjection
from location_selection.recents.store import RecentsStore

__all__ = [
    "RecentConnections",
    "RecentListProjection",
    "RecentsController",
    "RecentsStore",
]
