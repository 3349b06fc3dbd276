"""filtop - Main Textual application."""

import logging
from queue import Empty, Queue

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.containers import Container, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, DataTable, Footer, OptionList, Static

from filtop.client import AgentClient
from filtop.formatting import (
    QUEUE_PLACEHOLDER,
    cpu_percent,
    format_harvester,
    format_input_details,
    format_load,
    format_module,
    format_queue,
    format_uptime,
    input_label,
    input_row,
    rss_megabytes,
)
from filtop.models import Input, Snapshot
from filtop.monitor import AgentMonitor, StatsSource, new_notification_queue
from filtop.settings import MonitorConfig
from filtop.state import SnapshotStore

LOGGER = logging.getLogger(__name__)

UI_CHECK_INTERVAL = 0.25  # Seconds between checks of the notification queue
BANNER = "[b]FILTOP[/b] v2.0"
HARVESTER_PLACEHOLDER = "Active: 0 | Open Files: 0"
MODULES_PLACEHOLDER = "Loading..."


class SystemPanel(Container):
    """Table of process-level metrics: CPU, RSS, uptime and load."""

    DEFAULT_CSS = """
    SystemPanel {
        height: 8;
        border: round $primary;
    }
    """

    # row key, label, placeholder, colour
    ROWS = (
        ("cpu", "CPU Total:", "0.0%", "dark_orange"),
        ("rss", "Memory RSS:", "0.0 MB", "green"),
        ("uptime", "Uptime:", "0h0m", "blue"),
        ("load", "Load Avg:", "0.00 0.00 0.00", "yellow"),
    )

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.values: dict[str, str] = {key: value for key, _, value, _ in self.ROWS}
        self._colors: dict[str, str] = {key: color for key, _, _, color in self.ROWS}

    def compose(self) -> ComposeResult:
        yield DataTable(id="system-table", show_header=False)

    def on_mount(self) -> None:
        self.border_title = "System"
        table = self.query_one("#system-table", DataTable)
        table.cursor_type = "row"
        table.add_column("Metric", key="label", width=12)
        table.add_column("Value", key="value")
        for key, label, value, color in self.ROWS:
            table.add_row(label, f"[{color}]{value}[/{color}]", key=key)

    def update_snapshot(self, snapshot: Snapshot) -> None:
        """Update the metric values from a snapshot."""
        self.values = {
            "cpu": f"{cpu_percent(snapshot):.1f}%",
            "rss": f"{rss_megabytes(snapshot):.1f} MB",
            "uptime": format_uptime(snapshot.uptime_ms),
            "load": format_load(snapshot.load),
        }
        table = self.query_one("#system-table", DataTable)
        for key, value in self.values.items():
            color = self._colors[key]
            table.update_cell(key, "value", f"[{color}]{value}[/{color}]")


class TextPanel(Static):
    """Bordered text widget that remembers the text it last displayed."""

    DEFAULT_CSS = """
    TextPanel {
        border: round $primary;
        padding: 0 1;
    }
    """

    def __init__(self, text: str, *, title: str, **kwargs) -> None:
        super().__init__(text, **kwargs)
        self.shown_text = text
        self._panel_title = title

    def on_mount(self) -> None:
        self.border_title = self._panel_title

    def set_text(self, text: str) -> None:
        self.shown_text = text
        self.update(text)


class QueuePanel(TextPanel):
    DEFAULT_CSS = """
    QueuePanel {
        height: 6;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(QUEUE_PLACEHOLDER, title="Pipeline Queue", **kwargs)

    def update_snapshot(self, snapshot: Snapshot) -> None:
        self.set_text(format_queue(snapshot.queue))


class HarvesterPanel(TextPanel):
    DEFAULT_CSS = """
    HarvesterPanel {
        height: 8;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(HARVESTER_PLACEHOLDER, title="Harvesters", **kwargs)

    def update_snapshot(self, snapshot: Snapshot) -> None:
        self.set_text(format_harvester(snapshot.harvester))


class ModulesPanel(TextPanel):
    DEFAULT_CSS = """
    ModulesPanel {
        height: 1fr;
    }
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(MODULES_PLACEHOLDER, title="Modules", **kwargs)

    def update_snapshot(self, snapshot: Snapshot) -> None:
        self.set_text("\n".join(format_module(module) for module in snapshot.modules))


class InputsTable(Container):
    """Container for the per-input data table."""

    DEFAULT_CSS = """
    InputsTable {
        height: 2fr;
        border: round $primary;
    }
    """

    COLUMNS = (
        ("Type", "type"),
        ("Active", "active"),
        ("Events", "events"),
        ("Throughput", "throughput"),
        ("Files", "files"),
    )

    def compose(self) -> ComposeResult:
        yield DataTable(id="inputs-table")

    def on_mount(self) -> None:
        self.border_title = "Inputs"
        table = self.query_one("#inputs-table", DataTable)
        table.cursor_type = "row"
        for label, key in self.COLUMNS:
            table.add_column(label, key=key)

    def update_inputs(self, inputs: tuple[Input, ...]) -> None:
        """Rebuild the table: all previous rows are removed, then one row per input."""
        table = self.query_one("#inputs-table", DataTable)
        table.clear()
        for index, item in enumerate(inputs):
            table.add_row(*(escape(cell) for cell in input_row(item)), key=str(index))


class InputMetricsScreen(ModalScreen[None]):
    """Detail view for a single input."""

    DEFAULT_CSS = """
    InputMetricsScreen {
        align: center middle;
    }

    #input-metrics-dialog {
        width: 70;
        height: auto;
        max-height: 90%;
        border: thick $accent;
        background: $surface;
        padding: 1 2;
    }
    """

    BINDINGS = [("escape", "dismiss", "Back")]

    def __init__(self, item: Input) -> None:
        super().__init__()
        self.item = item
        self.details = format_input_details(item)

    def compose(self) -> ComposeResult:
        yield Vertical(
            Static(self.details, id="input-metrics"),
            Button("Back", id="back"),
            id="input-metrics-dialog",
        )

    def on_mount(self) -> None:
        dialog = self.query_one("#input-metrics-dialog", Vertical)
        dialog.border_title = f"Metrics: {escape(self.item.id)}"

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "back":
            self.dismiss()


class InputListScreen(ModalScreen[None]):
    """List of the inputs in the last snapshot; selecting one shows its metrics."""

    DEFAULT_CSS = """
    InputListScreen {
        align: center middle;
    }

    #input-list {
        width: 60;
        height: auto;
        max-height: 80%;
        border: thick $accent;
    }
    """

    BINDINGS = [("escape", "dismiss", "Back")]

    def __init__(self, inputs: tuple[Input, ...]) -> None:
        super().__init__()
        self.inputs = inputs

    def compose(self) -> ComposeResult:
        labels = [escape(input_label(item)) for item in self.inputs]
        yield OptionList(*labels, "Back", id="input-list")

    def on_mount(self) -> None:
        self.query_one("#input-list", OptionList).border_title = "Input Details"

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        if event.option_index >= len(self.inputs):
            self.dismiss()
            return
        self.app.push_screen(InputMetricsScreen(self.inputs[event.option_index]))


class FiltopApp(App):
    """Main filtop application."""

    TITLE = "filtop"
    SUB_TITLE = "Filebeat Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    #banner {
        dock: top;
        height: 1;
        width: 100%;
        content-align: center middle;
    }

    #body {
        layout: horizontal;
        height: 1fr;
    }

    #left-panel {
        width: 1fr;
    }

    #right-panel {
        width: 2fr;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("ctrl+c", "quit", "Quit"),
        ("i", "show_inputs", "Inputs"),
    ]

    def __init__(
        self,
        config: MonitorConfig | None = None,
        *,
        source: StatsSource | None = None,
        store: SnapshotStore | None = None,
    ) -> None:
        """
        Initialize the FiltopApp.

        Args:
            config: Agent location and poll interval.
            source: Stats source for the monitor. Defaults to an AgentClient
                built from ``config``.
            store: State cell shared with the monitor.
        """
        super().__init__()
        self.monitor_config = config or MonitorConfig()
        self._store = store or SnapshotStore()
        self._client: AgentClient | None = None
        if source is None:
            self._client = AgentClient(self.monitor_config)
            source = self._client
        self._notifications: Queue[str] = new_notification_queue()
        self._monitor = AgentMonitor(
            source,
            self._store,
            self._notifications,
            interval=self.monitor_config.interval,
        )
        self._system = SystemPanel(id="system-panel")
        self._queue_panel = QueuePanel(id="queue-panel")
        self._harvesters = HarvesterPanel(id="harvester-panel")
        self._inputs = InputsTable(id="inputs-panel")
        self._modules = ModulesPanel(id="modules-panel")

    @property
    def snapshot_store(self) -> SnapshotStore:
        return self._store

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield Static(BANNER, id="banner")
        yield Container(
            Vertical(self._system, self._queue_panel, self._harvesters, id="left-panel"),
            Vertical(self._inputs, self._modules, id="right-panel"),
            id="body",
        )
        yield Footer()

    def on_mount(self) -> None:
        """Start the agent monitor when the app is mounted."""
        self._monitor.start()
        self.set_interval(UI_CHECK_INTERVAL, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Drain pending notifications and re-render once if there were any."""
        notified = False
        while True:
            try:
                self._notifications.get_nowait()
            except Empty:
                break
            notified = True

        if notified:
            self._update_ui()

    def _update_ui(self) -> None:
        """Re-render every widget from the last known snapshot."""
        snapshot = self._store.last
        if snapshot is None:
            return
        LOGGER.debug("Rendering snapshot taken at %s", snapshot.timestamp)
        self._system.update_snapshot(snapshot)
        self._queue_panel.update_snapshot(snapshot)
        self._harvesters.update_snapshot(snapshot)
        self._inputs.update_inputs(snapshot.inputs)
        self._modules.update_snapshot(snapshot)

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        if event.data_table.id == "inputs-table":
            self.action_show_inputs()

    def action_show_inputs(self) -> None:
        """Open the input list, if there is anything to show."""
        snapshot = self._store.last
        if snapshot is None or not snapshot.inputs:
            return
        if isinstance(self.screen, (InputListScreen, InputMetricsScreen)):
            return
        self.push_screen(InputListScreen(snapshot.inputs))

    def stop_monitor(self) -> None:
        """Stop polling and release the HTTP session."""
        self._monitor.stop()
        if self._client is not None:
            self._client.close()

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self.stop_monitor()
        self.exit()
