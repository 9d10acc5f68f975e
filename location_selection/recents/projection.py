from location_selection.location.models import LocationNode, UserSelectedRelays
from location_selection.location.resolver import LocationNodes, resolve
from location_selection.settings import settings


class RecentListProjection:
    """Flat list of the nodes a hop's recents resolve to, most recent first."""

    def __init__(self, limit: int | None = None):
        self.limit = limit or settings.RECENTS_DISPLAY_LIMIT
        self.nodes: list[LocationNode] = []

    def reload(
        self,
        all_location_nodes: list[LocationNode],
        custom_list_nodes: list[LocationNode],
        recents: list[UserSelectedRelays],
    ) -> list[LocationNode]:
        candidates = LocationNodes(all_locations=all_location_nodes, custom_lists=custom_list_nodes)
        nodes: list[LocationNode] = []
        for selection in recents:
            if len(nodes) == self.limit:
                break
            # resolve() returns a copy, the source trees are left untouched
            node = resolve(selection, candidates)
            if node is None:
                continue
            node.shows_children = False
            nodes.append(node)
        self.nodes = nodes
        return nodes
