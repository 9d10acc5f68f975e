"""Helpers to build, search and annotate location trees."""

from collections.abc import Callable, Iterable, Iterator

from location_selection.location.models import (
    City,
    Country,
    Hostname,
    LocationNode,
    Relay,
    node_code,
)


def build_location_tree(relays: Iterable[Relay]) -> list[LocationNode]:
    """Group relays into country -> city -> host nodes, sorted by name.

    Example:
        >>> relay = Relay(hostname="se-got-wg-001", country_code="se", country_name="Sweden",
        ...               city_code="got", city_name="Gothenburg")
        >>> [node.code for node in walk(build_location_tree([relay]))]
        ['se', 'se-got', 'se-got-wg-001']
    """
    countries: dict[str, LocationNode] = {}
    cities: dict[str, LocationNode] = {}

    for relay in relays:
        country = countries.get(relay.country_code)
        if country is None:
            country = LocationNode(
                code=node_code([relay.country_code]),
                name=relay.country_name,
                location=Country(country_code=relay.country_code),
                is_active=False,
            )
            countries[relay.country_code] = country

        city_code = node_code([relay.country_code, relay.city_code])
        city = cities.get(city_code)
        if city is None:
            city = LocationNode(
                code=city_code,
                name=relay.city_name,
                location=City(country_code=relay.country_code, city_code=relay.city_code),
                is_active=False,
            )
            cities[city_code] = city
            country.children.append(city)

        city.children.append(
            LocationNode(
                code=relay.hostname,
                name=relay.hostname,
                location=Hostname(
                    country_code=relay.country_code,
                    city_code=relay.city_code,
                    hostname=relay.hostname,
                ),
                is_active=relay.active,
            )
        )
        if relay.active:
            city.is_active = True
            country.is_active = True

    for node in walk(countries.values()):
        node.children.sort(key=lambda child: child.name)
    return sorted(countries.values(), key=lambda node: node.name)


def walk(nodes: Iterable[LocationNode]) -> Iterator[LocationNode]:
    for node in nodes:
        yield from node.walk()


def find(nodes: Iterable[LocationNode], code: str) -> LocationNode | None:
    return next((node for node in walk(nodes) if node.code == code), None)


def path_to(
    nodes: Iterable[LocationNode], predicate: Callable[[LocationNode], bool]
) -> list[LocationNode]:
    """Return the nodes from a top-level node down to the first match, or []."""
    for node in nodes:
        if predicate(node):
            return [node]
        if path := path_to(node.children, predicate):
            return [node, *path]
    return []


def search(nodes: Iterable[LocationNode], text: str) -> list[LocationNode]:
    """Filter copies of the trees by a case-insensitive substring of the node name.

    A matching node keeps its whole subtree. A non-matching node is kept, with
    only its matching branches and expanded, when any descendant matches.
    """
    if not text:
        return [node.copy() for node in nodes]

    needle = text.lower()

    def _filter(node: LocationNode) -> LocationNode | None:
        if needle in node.name.lower():
            return node.copy()
        children = [child for child in map(_filter, node.children) if child is not None]
        if not children:
            return None
        filtered = node.model_copy(update={"children": [], "shows_children": True}, deep=True)
        filtered.children = children
        return filtered

    return [filtered for filtered in map(_filter, nodes) if filtered is not None]


def reset_flags(nodes: Iterable[LocationNode]) -> None:
    for node in walk(nodes):
        node.is_selected = False
        node.is_excluded = False


def expand_path(nodes: Iterable[LocationNode], code: str) -> None:
    """Show the children of every ancestor of the node with the given code."""
    for ancestor in path_to(nodes, lambda node: node.code == code)[:-1]:
        ancestor.shows_children = True


def mark_connected(nodes: Iterable[LocationNode], hostname: str | None) -> None:
    """Tag the connected host node and its ancestors, clear the tag everywhere else."""
    nodes = list(nodes)
    for node in walk(nodes):
        node.connected_hostname = None
    if not hostname:
        return
    # a host may show up under several custom lists
    for top in nodes:
        for node in path_to([top], lambda node: _is_host(node, hostname)):
            node.connected_hostname = hostname


def _is_host(node: LocationNode, hostname: str) -> bool:
    return isinstance(node.location, Hostname) and node.location.hostname == hostname
