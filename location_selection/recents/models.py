from pydantic import BaseModel, ConfigDict, model_validator

from location_selection.location.models import Hop, UserSelectedRelays


class RecentConnections(BaseModel):
    """Most-recent-first selections per hop. Both lists are empty while disabled."""

    model_config = ConfigDict(frozen=True)

    is_enabled: bool = True
    entry_locations: tuple[UserSelectedRelays, ...] = ()
    exit_locations: tuple[UserSelectedRelays, ...] = ()

    @model_validator(mode="after")
    def validate_disabled_is_empty(self):
        if not self.is_enabled and (self.entry_locations or self.exit_locations):
            raise ValueError("Disabled recents must not hold any locations")
        return self

    def locations(self, hop: Hop) -> tuple[UserSelectedRelays, ...]:
        return self.entry_locations if hop is Hop.ENTRY else self.exit_locations

    def inserting(
        self, location: UserSelectedRelays, hop: Hop, max_limit: int
    ) -> "RecentConnections":
        """Return a copy with `location` moved or added to the front of the hop's list."""
        locations = [existing for existing in self.locations(hop) if existing != location]
        locations.insert(0, location)
        field = "entry_locations" if hop is Hop.ENTRY else "exit_locations"
        return self.model_copy(update={field: tuple(locations[:max_limit])})
