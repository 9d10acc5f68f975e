class RecentsError(Exception):
    """Base class for failures of the recents store."""


class NotFoundError(RecentsError):
    """Nothing was ever written under the key. Expected on first use."""

    def __init__(self, key: str):
        super().__init__(f"No value stored for key '{key}'")
        self.key = key


class DecodeError(RecentsError):
    """The stored payload is corrupt."""


class EncodeError(RecentsError):
    """The value could not be encoded."""


class StoreIOError(RecentsError):
    """The underlying settings store failed to read or write."""


class RecentsDisabledError(RecentsError):
    def __init__(self):
        super().__init__("To add the location to the recents, first enable it in the settings.")
