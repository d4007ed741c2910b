"""Playlist widget - the server's playlist with the cursor marked."""

from textual.app import ComposeResult
from textual.reactive import reactive
from textual.widget import Widget
from textual.widgets import Label, ListItem, ListView


class PlaylistView(Widget):
    """Displays the playlist and tracks the highlighted row."""

    DEFAULT_CSS = """
    PlaylistView {
        height: 1fr;
        padding: 0 1;
    }
    PlaylistView .pl-header {
        text-style: bold;
        height: 1;
    }
    PlaylistView ListView {
        height: 1fr;
    }
    PlaylistView ListItem {
        height: 1;
        padding: 0 1;
    }
    PlaylistView .pl-empty {
        text-style: italic;
        color: $text-muted;
        text-align: center;
        margin: 1 0;
    }
    """

    items: reactive[list] = reactive(list, always_update=True)

    def compose(self) -> ComposeResult:
        yield Label("Playlist", id="pl-header", classes="pl-header")
        yield ListView(id="pl-list")
        yield Label("Playlist is empty", id="pl-empty", classes="pl-empty")

    def update_playlist(self, items: list[dict]) -> None:
        if items != self.items:
            self.items = items

    def watch_items(self, items: list) -> None:
        listview = self.query_one("#pl-list", ListView)
        empty_label = self.query_one("#pl-empty", Label)
        self.query_one("#pl-header", Label).update(f"Playlist ({len(items)})")

        selected = listview.index
        listview.clear()
        empty_label.display = not items
        listview.display = bool(items)
        for entry in items:
            listview.append(ListItem(Label(_format_entry(entry))))
        if items and selected is not None:
            listview.index = min(selected, len(items) - 1)

    def get_selected_index(self) -> int | None:
        listview = self.query_one("#pl-list", ListView)
        if listview.index is not None and listview.index < len(self.items):
            return self.items[listview.index].get("index", listview.index)
        return None


def _format_entry(entry: dict) -> str:
    marker = ">" if entry.get("current") else " "
    return f"{marker} {entry.get('index', 0) + 1:2d}. {entry.get('display_name', '')}"
