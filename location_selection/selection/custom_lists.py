from loguru import logger

from location_selection.location.models import (
    CustomListPayload,
    LocationNode,
    RootLocationNode,
    node_code,
)
from location_selection.selection.interfaces import CustomList

logger = logger.bind(topic="custom_lists")

CUSTOM_LIST_CODE_PREFIX = "custom-list:"


def custom_list_code(list_id: str) -> str:
    return f"{CUSTOM_LIST_CODE_PREFIX}{list_id}"


def build_custom_list_nodes(
    custom_lists: list[CustomList], all_location_nodes: list[LocationNode]
) -> list[LocationNode]:
    """Build one node per custom list with copies of its member locations as children.

    Member codes are prefixed with the list code so they stay unique across lists.
    Members missing from the location tree (e.g. filtered out) are skipped.
    """
    root = RootLocationNode(children=all_location_nodes)
    nodes: list[LocationNode] = []

    for custom_list in custom_lists:
        list_code = custom_list_code(custom_list.id)
        children: list[LocationNode] = []
        for location in custom_list.locations:
            member = root.descendant(node_code(location.codes))
            if member is None:
                logger.debug(
                    "Custom list member not available",
                    custom_list=custom_list.name,
                    location=location.model_dump(),
                )
                continue
            member = member.copy()
            for node in member.walk():
                node.code = f"{list_code}:{node.code}"
                node.member_of = custom_list.id
            children.append(member)

        nodes.append(
            LocationNode(
                code=list_code,
                name=custom_list.name,
                children=children,
                is_active=any(child.is_active for child in children),
                custom_list=CustomListPayload(
                    list_id=custom_list.id, locations=tuple(custom_list.locations)
                ),
            )
        )

    return sorted(nodes, key=lambda node: node.name.lower())
