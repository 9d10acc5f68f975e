from collections.abc import Callable

from loguru import logger

from location_selection.location.models import Hop, UserSelectedRelays
from location_selection.recents.errors import NotFoundError, RecentsDisabledError, RecentsError
from location_selection.recents.models import RecentConnections
from location_selection.recents.store import RecentsStore
from location_selection.settings import settings

logger = logger.bind(topic="recents_controller")

CurrentSelections = Callable[[], tuple[UserSelectedRelays | None, UserSelectedRelays]]


class RecentsController:
    """
    Caches the latest recents snapshot of a RecentsStore and degrades to
    "no recents" on store failures instead of raising.

    On first use (nothing persisted yet) recents are initialized with the
    default enabled state and seeded with the current selections.
    """

    def __init__(
        self,
        store: RecentsStore,
        *,
        current_selections: CurrentSelections | None = None,
        enabled_by_default: bool | None = None,
    ):
        self._store = store
        self._current_selections = current_selections
        self._enabled_by_default = (
            settings.RECENTS_ENABLED_BY_DEFAULT if enabled_by_default is None else enabled_by_default
        )
        self._snapshot: RecentConnections | None = None
        self._unsubscribe = store.channel.subscribe(self._on_value, self._on_failure)

    def start(self) -> None:
        """Load the persisted recents."""
        self._store.emit_current()

    def close(self) -> None:
        self._unsubscribe()

    @property
    def snapshot(self) -> RecentConnections | None:
        return self._snapshot

    @property
    def is_enabled(self) -> bool:
        if self._snapshot is None:
            return self._enabled_by_default
        return self._snapshot.is_enabled

    def toggle(self) -> None:
        """Flip the enabled state. Turning recents on starts them from the current selections."""
        is_enabled = not self.is_enabled
        self._store.set_enabled(is_enabled)
        if is_enabled and self._current_selections is not None:
            self.record(*self._current_selections())

    def save(self, location: UserSelectedRelays, hop: Hop) -> None:
        self._store.add(location, hop)

    def record(self, entry: UserSelectedRelays | None, exit: UserSelectedRelays) -> None:
        """Save the current selections of both hops."""
        if entry is not None:
            self.save(entry, Hop.ENTRY)
        self.save(exit, Hop.EXIT)

    def fetch(self, hop: Hop) -> list[UserSelectedRelays]:
        if self._snapshot is None:
            return []
        return list(self._snapshot.locations(hop))

    def _on_value(self, value: RecentConnections) -> None:
        self._snapshot = value

    def _on_failure(self, error: RecentsError) -> None:
        if isinstance(error, NotFoundError):
            logger.info("No recents stored yet, initializing")
            self._initialize()
        elif isinstance(error, RecentsDisabledError):
            logger.debug("Recents are disabled, location not recorded")
        else:
            logger.error(
                "Recents unavailable",
                error=str(error),
                error_type=type(error).__name__,
            )

    def _initialize(self) -> None:
        self._store.set_enabled(self._enabled_by_default)
        if self._enabled_by_default and self._current_selections is not None:
            self.record(*self._current_selections())
