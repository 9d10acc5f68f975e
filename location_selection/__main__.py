"""Print the recent locations persisted under DATA_DIR."""

from rich.console import Console
from rich.table import Table

from location_selection.location.models import Hop, UserSelectedRelays, node_code
from location_selection.logs import setup_logging
from location_selection.recents.controller import RecentsController
from location_selection.recents.settings_store import FileSettingsStore
from location_selection.recents.store import RecentsStore


def describe(selection: UserSelectedRelays) -> str:
    list_selection = selection.custom_list_selection
    if list_selection is not None and list_selection.is_list:
        return f"custom list {list_selection.list_id}"
    if not selection.locations:
        return "-"
    return node_code(selection.locations[0].codes)


def main():
    setup_logging()

    # no current selections here, a first run only stores the default enabled state
    controller = RecentsController(RecentsStore(FileSettingsStore()))
    controller.start()
    controller.close()

    table = Table(title="Recents" if controller.is_enabled else "Recents (disabled)")
    for hop in Hop:
        table.add_column(hop.value.capitalize())
    entry, exit = (controller.fetch(hop) for hop in Hop)
    for index in range(max(len(entry), len(exit))):
        table.add_row(*(describe(row[index]) if index < len(row) else "" for row in (entry, exit)))
    Console().print(table)


if __name__ == "__main__":
    main()
