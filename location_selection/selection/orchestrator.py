from loguru import logger
from pydantic import BaseModel, Field

from location_selection.location.models import Hop, LocationNode, UserSelectedRelays
from location_selection.location.resolver import LocationNodes, resolve_path
from location_selection.location.tree import (
    build_location_tree,
    expand_path,
    find,
    mark_connected,
    reset_flags,
    search,
    walk,
)
from location_selection.logs import log_decorator
from location_selection.recents.controller import RecentsController
from location_selection.recents.projection import RecentListProjection
from location_selection.recents.store import RecentsStore
from location_selection.selection import filters
from location_selection.selection.custom_lists import build_custom_list_nodes
from location_selection.selection.filters import SelectLocationFilter, active_filters
from location_selection.selection.interfaces import (
    NO_RELAYS_SATISFYING_DAITA,
    CustomList,
    CustomListError,
    CustomListRepository,
    RelayCandidateProvider,
    SelectLocationDelegate,
    TunnelSettings,
    TunnelStatus,
)

logger = logger.bind(topic="select_location")


class LocationContext(BaseModel):
    """Everything shown for one hop. Recomputed as a whole, never patched."""

    locations: list[LocationNode] = Field(default_factory=list)
    custom_lists: list[LocationNode] = Field(default_factory=list)
    recents: list[LocationNode] = Field(default_factory=list)
    filter: list[SelectLocationFilter] = Field(default_factory=list)
    search_text: str = ""

    @property
    def node_sets(self) -> list[list[LocationNode]]:
        return [self.locations, self.custom_lists, self.recents]

    @property
    def selected_location(self) -> LocationNode | None:
        for nodes in (self.recents, self.custom_lists, self.locations):
            for node in walk(nodes):
                if node.is_selected:
                    return node
        return None


class SelectLocationOrchestrator:
    """
    Keeps the entry and exit location lists consistent with the tunnel settings,
    the search text, the custom lists and the recents.

    Every event re-derives the affected state from scratch:
    - tunnel settings changed: candidates, custom lists, recents, selections, filters
    - tunnel status changed: connected relay markers
    - search text changed: filtered views and selections
    - location selected: outbound callback, entry advances to exit
    - recents toggled: recents and selections
    - custom lists changed: custom lists, recents and selections

    Selections are marked on the hop's own lists. Whatever the other hop has
    selected is marked excluded so the two hops never end up on the same
    location.
    """

    def __init__(
        self,
        *,
        tunnel_settings: TunnelSettings,
        tunnel_status: TunnelStatus,
        candidate_provider: RelayCandidateProvider,
        custom_list_repository: CustomListRepository,
        recents_store: RecentsStore,
        delegate: SelectLocationDelegate,
    ):
        self._settings = tunnel_settings
        self._status = tunnel_status
        self._candidate_provider = candidate_provider
        self._custom_list_repository = custom_list_repository
        self._delegate = delegate

        self.recents = RecentsController(recents_store, current_selections=self._current_selections)
        self._recent_projections = {hop: RecentListProjection() for hop in Hop}

        # unfiltered trees, the contexts hold searched copies of them
        self._all_locations: dict[Hop, list[LocationNode]] = {hop: [] for hop in Hop}
        self._custom_lists: dict[Hop, list[LocationNode]] = {hop: [] for hop in Hop}

        self.contexts = {hop: LocationContext() for hop in Hop}
        self.search_text = ""
        self.multihop_context = Hop.EXIT
        if tunnel_settings.is_multihop_enabled and tunnel_status.blocked_reason == NO_RELAYS_SATISFYING_DAITA:
            # help the user fix the entry instead of showing the exit
            self.multihop_context = Hop.ENTRY

        self.recents.start()
        self._reload()

    @property
    def entry_context(self) -> LocationContext:
        return self.contexts[Hop.ENTRY]

    @property
    def exit_context(self) -> LocationContext:
        return self.contexts[Hop.EXIT]

    @property
    def active_context(self) -> LocationContext:
        return self.contexts[self.multihop_context]

    @property
    def tunnel_settings(self) -> TunnelSettings:
        return self._settings

    @property
    def is_multihop_enabled(self) -> bool:
        return self._settings.is_multihop_enabled

    @property
    def is_recents_enabled(self) -> bool:
        return self.recents.is_enabled

    # Events

    @log_decorator
    def on_tunnel_settings_changed(self, old: TunnelSettings, new: TunnelSettings) -> None:
        self._settings = new
        if self.recents.is_enabled:
            if new.entry_selection is not None and new.entry_selection != old.entry_selection:
                self.recents.save(new.entry_selection, Hop.ENTRY)
            if new.exit_selection != old.exit_selection:
                self.recents.save(new.exit_selection, Hop.EXIT)
        self._reload()

    def on_tunnel_status_changed(self, old: TunnelStatus, new: TunnelStatus) -> None:
        self._status = new
        self._update_connected_locations()

    def set_search_text(self, text: str) -> None:
        if text == self.search_text:
            return
        self.search_text = text
        self._refresh_views()
        self._update_selections()
        self._update_connected_locations()

    def select_location(self, node: LocationNode) -> None:
        if node.is_excluded:
            logger.warning("Ignoring selection of an excluded location", code=node.code)
            return
        selection = node.user_selected_relays
        if self.multihop_context is Hop.ENTRY:
            self._delegate.did_select_entry_relay_locations(selection)
            self.multihop_context = Hop.EXIT
        else:
            self._delegate.did_select_exit_relay_locations(selection)

    @log_decorator
    def toggle_recents(self) -> None:
        self.recents.toggle()
        self._refresh_recents()
        self._update_selections()
        self._update_connected_locations()

    def remove_filter(self, removed: SelectLocationFilter) -> None:
        new = filters.remove_filter(self._settings, removed)
        if new is not None:
            self._delegate.update_settings(new)

    @log_decorator
    def add_location_to_custom_list(self, location: LocationNode, custom_list_name: str) -> None:
        custom_list = self._find_custom_list(custom_list_name)
        if custom_list is not None:
            added = [loc for loc in location.locations if loc not in custom_list.locations]
            self._save_custom_list(
                custom_list.model_copy(update={"locations": custom_list.locations + added})
            )
        self.custom_lists_changed()

    @log_decorator
    def remove_location_from_custom_list(
        self, location: LocationNode, custom_list_name: str
    ) -> None:
        custom_list = self._find_custom_list(custom_list_name)
        if custom_list is not None:
            removed = set(location.locations)
            self._save_custom_list(
                custom_list.model_copy(
                    update={"locations": [loc for loc in custom_list.locations if loc not in removed]}
                )
            )
        self.custom_lists_changed()

    @log_decorator
    def delete_custom_list(self, name: str) -> None:
        custom_list = self._find_custom_list(name)
        if custom_list is None:
            return
        try:
            self._custom_list_repository.delete(custom_list.id)
        except CustomListError as e:
            logger.warning("Failed to delete custom list", name=name, error=str(e))
        self.custom_lists_changed()

    def custom_lists_changed(self) -> None:
        self._refresh_custom_lists()
        self._refresh_views()
        self._refresh_recents()
        self._update_selections()
        self._update_connected_locations()

    # Recomputation

    def _reload(self) -> None:
        self._fetch_locations()
        self._refresh_custom_lists()
        self._refresh_views()
        self._refresh_recents()
        self._update_selections()
        self._update_connected_locations()
        self._update_filters()

    def _current_selections(self) -> tuple[UserSelectedRelays | None, UserSelectedRelays]:
        return self._settings.entry_selection, self._settings.exit_selection

    def _fetch_locations(self) -> None:
        try:
            candidates = self._candidate_provider.find_candidates(self._settings)
        except Exception as e:
            logger.warning("Failed to find relay candidates", error=str(e), error_type=type(e).__name__)
            self._all_locations = {hop: [] for hop in Hop}
            return

        self._all_locations[Hop.EXIT] = build_location_tree(candidates.exit_relays)
        self._all_locations[Hop.ENTRY] = (
            build_location_tree(candidates.entry_relays) if candidates.entry_relays is not None else []
        )

    def _fetch_custom_lists(self) -> list[CustomList]:
        try:
            return self._custom_list_repository.fetch_all()
        except CustomListError as e:
            logger.warning("Failed to fetch custom lists", error=str(e))
            return []

    def _refresh_custom_lists(self) -> None:
        custom_lists = self._fetch_custom_lists()
        for hop in Hop:
            self._custom_lists[hop] = build_custom_list_nodes(custom_lists, self._all_locations[hop])

    def _refresh_views(self) -> None:
        for hop, context in self.contexts.items():
            context.locations = search(self._all_locations[hop], self.search_text)
            context.custom_lists = search(self._custom_lists[hop], self.search_text)
            context.search_text = self.search_text

    def _refresh_recents(self) -> None:
        for hop, context in self.contexts.items():
            context.recents = self._recent_projections[hop].reload(
                self._all_locations[hop], self._custom_lists[hop], self.recents.fetch(hop)
            )

    def _update_filters(self) -> None:
        entry_filters, exit_filters = active_filters(self._settings)
        self.entry_context.filter = entry_filters
        self.exit_context.filter = exit_filters

    def _update_selections(self) -> None:
        for context in self.contexts.values():
            for nodes in context.node_sets:
                reset_flags(nodes)

        selections = {Hop.ENTRY: self._settings.entry_selection, Hop.EXIT: self._settings.exit_selection}
        selected: dict[Hop, tuple[list[LocationNode], str]] = {}
        for hop, selection in selections.items():
            if selection is None:
                continue
            resolved = self._resolve(hop, selection)
            if resolved is None:
                continue
            nodes, code = resolved
            node = find(nodes, code)
            if node is not None:
                node.is_selected = True
                selected[hop] = resolved

        self._apply_exclusion_rules(selections)

        # Recents are flat, expanding is not allowed there.
        if not self.recents.is_enabled:
            for nodes, code in selected.values():
                expand_path(nodes, code)

    def _resolve(
        self, hop: Hop, selection: UserSelectedRelays
    ) -> tuple[list[LocationNode], str] | None:
        context = self.contexts[hop]
        if self.recents.is_enabled:
            path = resolve_path(
                selection, LocationNodes(all_locations=context.recents, custom_lists=context.recents)
            )
            return (context.recents, path.code) if path is not None else None

        path = resolve_path(
            selection,
            LocationNodes(all_locations=context.locations, custom_lists=context.custom_lists),
        )
        if path is None:
            return None
        nodes = context.custom_lists if path.source == "custom_lists" else context.locations
        return nodes, path.code

    def _apply_exclusion_rules(self, selections: dict[Hop, UserSelectedRelays | None]) -> None:
        for hop, context in self.contexts.items():
            excluded = selections[hop.opposite]
            if excluded is None:
                continue
            for node in walk(node for nodes in context.node_sets for node in nodes):
                if not node.is_selected and node.matches(excluded):
                    node.is_excluded = True

    def _update_connected_locations(self) -> None:
        relays = self._status.relays
        hostnames = {
            Hop.ENTRY: relays.entry.hostname if relays and relays.entry else None,
            Hop.EXIT: relays.exit.hostname if relays else None,
        }
        for hop, context in self.contexts.items():
            for nodes in context.node_sets:
                mark_connected(nodes, hostnames[hop])

    def _find_custom_list(self, name: str) -> CustomList | None:
        custom_list = next(
            (custom_list for custom_list in self._fetch_custom_lists() if custom_list.name == name),
            None,
        )
        if custom_list is None:
            logger.warning("Custom list not found", name=name)
        return custom_list

    def _save_custom_list(self, custom_list: CustomList) -> None:
        try:
            self._custom_list_repository.save(custom_list)
        except CustomListError as e:
            logger.warning("Failed to save custom list", name=custom_list.name, error=str(e))
