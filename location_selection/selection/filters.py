from typing import Literal

from pydantic import BaseModel, ConfigDict

from location_selection.selection.interfaces import Ownership, TunnelSettings


class SelectLocationFilter(BaseModel):
    """A relay constraint currently narrowing down the listed locations."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["owned", "rented", "provider", "daita", "obfuscation"]
    provider_count: int = 0


def active_filters(
    tunnel_settings: TunnelSettings,
) -> tuple[list[SelectLocationFilter], list[SelectLocationFilter]]:
    """Return the active (entry, exit) filters.

    Ownership and provider filters apply to both hops. DAITA and obfuscation
    apply to the hop that connects first: entry with multihop, exit without.
    """
    common: list[SelectLocationFilter] = []
    relay_filter = tunnel_settings.relay_constraints.filter
    match relay_filter.ownership:
        case Ownership.OWNED:
            common.append(SelectLocationFilter(kind="owned"))
        case Ownership.RENTED:
            common.append(SelectLocationFilter(kind="rented"))
        case Ownership.ANY:
            pass
    if relay_filter.providers is not None:
        common.append(
            SelectLocationFilter(kind="provider", provider_count=len(relay_filter.providers))
        )

    first_hop: list[SelectLocationFilter] = []
    if tunnel_settings.daita.is_enabled:
        first_hop.append(SelectLocationFilter(kind="daita"))
    if tunnel_settings.is_obfuscation_enabled:
        first_hop.append(SelectLocationFilter(kind="obfuscation"))

    if tunnel_settings.is_multihop_enabled:
        return common + first_hop, list(common)
    return list(common), common + first_hop


def remove_filter(tunnel_settings: TunnelSettings, removed: SelectLocationFilter) -> TunnelSettings | None:
    """Return settings without the given ownership or provider filter.

    DAITA and obfuscation are changed from their own settings, None is
    returned for them.
    """
    relay_filter = tunnel_settings.relay_constraints.filter
    match removed.kind:
        case "owned" | "rented":
            relay_filter = relay_filter.model_copy(update={"ownership": Ownership.ANY})
        case "provider":
            relay_filter = relay_filter.model_copy(update={"providers": None})
        case _:
            return None
    constraints = tunnel_settings.relay_constraints.model_copy(update={"filter": relay_filter})
    return tunnel_settings.model_copy(update={"relay_constraints": constraints})
