from collections.abc import Callable

from loguru import logger
from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from location_selection.location.models import Hop, UserSelectedRelays
from location_selection.logs import log_decorator
from location_selection.recents.errors import (
    DecodeError,
    EncodeError,
    RecentsDisabledError,
    RecentsError,
)
from location_selection.recents.models import RecentConnections
from location_selection.recents.settings_store import SettingsStore
from location_selection.settings import settings

logger = logger.bind(topic="recents_store")

RECENT_CONNECTIONS_KEY = "recent_connections"

ValueCallback = Callable[[RecentConnections], None]
FailureCallback = Callable[[RecentsError], None]


class RecentsChannel:
    """Broadcasts recents snapshots or failures to subscribers, caching the last value."""

    def __init__(self) -> None:
        self._subscribers: list[tuple[ValueCallback, FailureCallback]] = []
        self.last_value: RecentConnections | None = None

    def subscribe(self, on_value: ValueCallback, on_failure: FailureCallback) -> Callable[[], None]:
        subscriber = (on_value, on_failure)
        self._subscribers.append(subscriber)

        def _unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return _unsubscribe

    def send(self, value: RecentConnections) -> None:
        self.last_value = value
        for on_value, _ in list(self._subscribers):
            on_value(value)

    def send_failure(self, error: RecentsError) -> None:
        for _, on_failure in list(self._subscribers):
            on_failure(error)


class RecentsStore:
    """
    Persists the RecentConnections record under a single key of a SettingsStore.

    Every mutation replaces the whole record, persists it and broadcasts it on
    `channel`. Failures are broadcast instead of raised and never retried.
    """

    def __init__(self, store: SettingsStore, max_limit: int | None = None):
        self.store = store
        self.max_limit = max_limit or settings.RECENTS_MAX_LIMIT
        self.channel = RecentsChannel()

    def read(self) -> RecentConnections:
        data = self.store.read(RECENT_CONNECTIONS_KEY)
        try:
            return RecentConnections.model_validate_json(data)
        except ValidationError as e:
            raise DecodeError(f"Corrupt recents payload: {e}") from e

    @log_decorator
    def write(self, value: RecentConnections) -> None:
        try:
            data = value.model_dump_json().encode()
        except PydanticSerializationError as e:
            raise EncodeError(f"Failed to encode recents: {e}") from e
        self.store.write(data, RECENT_CONNECTIONS_KEY)

    def set_enabled(self, is_enabled: bool) -> None:
        # Recents are cleared on every transition so stale ones never resurface.
        value = RecentConnections(is_enabled=is_enabled)
        try:
            self.write(value)
        except RecentsError as e:
            self._fail(e)
            return
        logger.info("Recents enabled" if is_enabled else "Recents disabled")
        self.channel.send(value)

    def add(self, location: UserSelectedRelays, hop: Hop) -> None:
        try:
            current = self.read()
            if not current.is_enabled:
                raise RecentsDisabledError()
            new = current.inserting(location, hop, self.max_limit)
            self.write(new)
        except RecentsError as e:
            self._fail(e)
            return
        logger.debug(f"Added recent {hop} location", count=len(new.locations(hop)))
        self.channel.send(new)

    def emit_current(self) -> None:
        try:
            value = self.read()
        except RecentsError as e:
            self._fail(e)
            return
        self.channel.send(value)

    def _fail(self, error: RecentsError) -> None:
        logger.debug("Recents store failure", error=str(error), error_type=type(error).__name__)
        self.channel.send_failure(error)
