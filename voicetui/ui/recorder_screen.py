"""Terminal recorder screen with live waveform, timer and transcription output."""

import time
import logging
from collections import deque
from typing import Callable, Deque, List, Optional

from rich.align import Align
from rich.console import Console, Group
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from ..audio.devices import AudioDevice, list_input_devices
from ..exceptions import StorageError
from ..models.session import Idle, Recording, Transcribing, Result, Error
from ..services.session_controller import SessionController
from .keyboard_input import KeyboardInputHandler

logger = logging.getLogger(__name__)

BAR_CHARS = "▁▂▃▄▅▆▇█"


def bar_char(amplitude: float) -> str:
    """Block character whose height matches an amplitude in [0, 1]."""
    index = min(len(BAR_CHARS) - 1, max(0, int(amplitude * len(BAR_CHARS))))
    return BAR_CHARS[index]


def format_elapsed(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes:02d}:{secs:02d}"


class RecorderScreen:
    """Rich-based interface driving a SessionController from the keyboard."""

    def __init__(self, controller: SessionController, num_bars: int = 40, console: Optional[Console] = None,
                 list_devices: Callable[[], List[AudioDevice]] = list_input_devices):
        """Initialize recorder screen.

        Args:
            controller: Session controller to drive
            num_bars: Number of waveform bars shown
            console: Rich console (a new one if None)
            list_devices: Returns the selectable input devices
        """
        self.controller = controller
        self.list_devices = list_devices
        self.device_name = controller.device_id
        self.console = console or Console()
        self.levels: Deque[float] = deque([0.0] * num_bars, maxlen=num_bars)
        self.status_message = ""
        self.running = False
        self.input_handler: Optional[KeyboardInputHandler] = None

    def create_layout(self) -> Layout:
        """Create the main UI layout."""
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="waveform", size=5),
            Layout(name="main", ratio=1),
            Layout(name="footer", size=3)
        )
        return layout

    def update_header(self, layout: Layout) -> None:
        state = self.controller.state
        styles = {
            "idle": ("⏹  READY", "bold yellow"),
            "recording": ("🔴 RECORDING", "bold red"),
            "transcribing": ("⏳ TRANSCRIBING", "bold cyan"),
            "result": ("✅ DONE", "bold green"),
            "error": ("❌ ERROR", "bold red"),
        }
        status_text, status_style = styles[state.name]
        model = self.controller.transcription_config.model_name

        header_text = Text.assemble(
            ("🎙  Voice TUI", "bold blue"), "  |  ",
            (status_text, status_style), "  |  ",
            f"Model: {model}  |  Device: {self.device_name}"
        )
        layout["header"].update(Panel(Align.center(header_text), style="bright_blue"))

    def update_waveform(self, layout: Layout) -> None:
        state = self.controller.state
        # Only the UI thread touches levels
        if isinstance(state, Recording):
            self.levels.append(self.controller.amplitude)
        else:
            # Decay towards silence when not recording
            self.levels.append(self.levels[-1] * 0.9)

        bars = Text("".join(bar_char(level) for level in self.levels), style="magenta")
        elapsed = state.elapsed if isinstance(state, Recording) else 0.0
        limit = self.controller.recording_options.max_duration_seconds
        timer = Text(f"{format_elapsed(elapsed)} / {format_elapsed(limit)}", style="bold white")
        layout["waveform"].update(Panel(
            Group(Align.center(bars), Align.center(timer)),
            title="Waveform",
            border_style="green"
        ))

    def update_main_panel(self, layout: Layout) -> None:
        state = self.controller.state

        if isinstance(state, Idle):
            body = Text("Press SPACE to start recording", style="dim white italic")
        elif isinstance(state, Recording):
            body = Text("Listening... press SPACE to stop", style="yellow")
        elif isinstance(state, Transcribing):
            body = Group(
                Text(state.message or "Transcribing audio...", style="yellow italic"),
                ProgressBar(total=100, completed=state.progress_percent, width=50),
                Text(f"{state.progress_percent:.0f}%"),
            )
        elif isinstance(state, Result):
            body = self._result_table(state)
        else:
            body = Text.assemble(
                (state.message, "bold red"),
                "\n\n",
                ("Press SPACE or N to try again" if state.recoverable else "Press Q to quit", "dim"),
            )

        if self.status_message:
            body = Group(body, Text(f"\n{self.status_message}", style="green"))

        layout["main"].update(Panel(body, title="📝 Transcription", border_style="blue"))

    def _result_table(self, state: Result) -> Table:
        result = state.result
        table = Table.grid(padding=(0, 2))
        table.add_column(style="cyan")
        table.add_column()
        table.add_row("Language", result.language)
        table.add_row("Duration", f"{result.duration_seconds:.1f}s")
        table.add_row("Confidence", f"{result.confidence:.0%}")
        table.add_row("", "")
        table.add_row("Text", Text(result.text or "(no speech detected)", style="white"))
        return table

    def update_footer(self, layout: Layout) -> None:
        controls = Text.assemble(
            ("SPACE", "bold green"), " Record/Stop  ",
            ("N", "bold blue"), " New  ",
            ("C", "bold yellow"), " Copy  ",
            ("S", "bold yellow"), " Save  ",
            ("M", "bold magenta"), " Next model  ",
            ("D", "bold magenta"), " Next device  ",
            ("Q", "bold red"), " Quit"
        )
        layout["footer"].update(Panel(Align.center(controls), style="bright_black"))

    def update_display(self, layout: Layout) -> None:
        """Update all display components."""
        self.controller.tick()
        self.update_header(layout)
        self.update_waveform(layout)
        self.update_main_panel(layout)
        self.update_footer(layout)

    def cycle_model(self) -> None:
        names: List[str] = list(self.controller.engine.store.registry)
        current = self.controller.transcription_config.model_name
        next_name = names[(names.index(current) + 1) % len(names)] if current in names else names[0]
        if self.controller.select_model(next_name):
            present = self.controller.engine.store.is_present(next_name)
            self.status_message = f"Model: {next_name}" + ("" if present else " (will download on first use)")

    def cycle_device(self) -> None:
        devices = self.list_devices()
        ids = [device.id for device in devices]
        current = self.controller.device_id
        device = devices[(ids.index(current) + 1) % len(devices)] if current in ids else devices[0]
        if self.controller.select_device(device.id):
            self.device_name = device.name
            self.status_message = f"Device: {device.name}"

    def handle_key_input(self, key: str) -> bool:
        """Handle keyboard input. Returns True to continue, False to quit."""
        state = self.controller.state
        self.status_message = ""

        if key in ("q", "ctrl+q"):
            logger.info("Quit key pressed")
            return False
        if key in ("space", "enter"):
            if isinstance(state, (Result, Error)):
                self.controller.new_recording()
            else:
                self.controller.toggle_recording()
        elif key == "n":
            self.controller.new_recording()
        elif key == "c":
            if self.controller.copy_result():
                self.status_message = "Copied to clipboard"
        elif key == "s":
            try:
                path = self.controller.save_result()
                if path:
                    self.status_message = f"Saved to {path}"
            except StorageError as e:
                self.status_message = str(e)
        elif key == "m" and isinstance(state, Idle):
            self.cycle_model()
        elif key == "d" and isinstance(state, Idle):
            self.cycle_device()
        else:
            logger.debug(f"Unhandled key: '{key}'")
        return True

    def run(self) -> None:
        """Run the recorder interface until the user quits."""
        self.running = True
        layout = self.create_layout()
        self.input_handler = KeyboardInputHandler(self.handle_key_input)
        self.input_handler.start()

        try:
            with Live(layout, console=self.console, refresh_per_second=10, screen=True):
                while self.running and self.input_handler.running:
                    self.update_display(layout)
                    time.sleep(0.1)
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received")
        finally:
            self.cleanup()

    def cleanup(self) -> None:
        """Clean up resources."""
        self.running = False
        if self.input_handler:
            self.input_handler.stop()
        self.controller.shutdown()
        logger.info("RecorderScreen cleanup completed")
