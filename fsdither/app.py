"""Main Textual application for the fsdither previewer."""

from __future__ import annotations

from pathlib import Path

from PIL import Image
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import (
    Button,
    Footer,
    Header,
    Input,
    Label,
    Static,
)
from textual.worker import get_current_worker

from fsdither.core.processor import Settings, process_image
from fsdither.core.reader import open_image
from fsdither.tui.controls import ControlPanel
from fsdither.tui.preview import DitherPreview, PreviewFrame
from fsdither.utils.cache import ResultCache
from fsdither.utils.terminal import fit_to_terminal

_DIALOG_CSS = """
{screen} {{
    align: center middle;
}}

{screen} .dialog {{
    width: 60;
    height: auto;
    background: $surface;
    border: thick $accent;
    padding: 1 2;
}}

{screen} .dialog-title {{
    text-style: bold;
    margin-bottom: 1;
}}

{screen} .button-row {{
    margin-top: 1;
    align: center middle;
    height: 3;
}}

{screen} Button {{
    margin: 0 1;
}}
"""


class PathScreen(ModalScreen[str | None]):
    """Modal asking for a file path; dismisses with the path or None."""

    BINDINGS = [Binding("escape", "cancel", "Cancel", priority=True)]

    DEFAULT_CSS = _DIALOG_CSS.format(screen="PathScreen")

    def __init__(
        self,
        title: str,
        action_label: str,
        default_path: str = "",
        placeholder: str = "",
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._title = title
        self._action_label = action_label
        self._default_path = default_path
        self._placeholder = placeholder

    def action_cancel(self) -> None:
        self.dismiss(None)

    def compose(self) -> ComposeResult:
        with Vertical(classes="dialog"):
            yield Static(self._title, classes="dialog-title")
            yield Label("File path:")
            yield Input(
                value=self._default_path,
                placeholder=self._placeholder,
                id="path-input",
            )
            with Horizontal(classes="button-row"):
                yield Button(self._action_label, variant="primary", id="btn-ok")
                yield Button("Cancel", variant="default", id="btn-cancel")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-ok":
            inp = self.query_one("#path-input", Input)
            self.dismiss(inp.value or None)
        elif event.button.id == "btn-cancel":
            self.dismiss(None)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value or None)


class DitherApp(App):
    """Main TUI application."""

    TITLE = "fsdither"
    CSS = """
    #main-area {
        height: 1fr;
        width: 1fr;
    }

    #preview-container {
        width: 1fr;
        height: 1fr;
    }

    #status-bar {
        height: 1;
        background: $panel;
        padding: 0 1;
        color: $text-muted;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", priority=True),
        Binding("s", "save", "Save", priority=True),
        Binding("o", "open_file", "Open", priority=True),
        Binding("tab", "toggle_panel", "Toggle Panel"),
    ]

    def __init__(self, input_path: str | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self._input_path = input_path
        self._source: str | None = None
        self._image: Image.Image | None = None
        self._preview_image: Image.Image | None = None
        self._cache = ResultCache(max_size=16)
        self._settings = Settings()
        self._panel_visible = True

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-area"):
            with Vertical(id="preview-container"):
                yield DitherPreview()
            yield ControlPanel(self._settings, id="control-panel")
        yield Static("Ready", id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        if self._input_path:
            self._load_file(self._input_path)

    def _load_file(self, path: str) -> None:
        """Load an image and downscale a copy to the preview area."""
        try:
            self._image = open_image(path)
        except (ValueError, OSError) as e:
            self._update_status(f"Error: {e}")
            return

        self._source = path
        self.title = f"fsdither - {Path(path).name}"

        preview = self.query_one(DitherPreview)
        pw = preview.size.width or 80
        ph = preview.size.height or 24
        px_w, px_h = fit_to_terminal(
            self._image.width, self._image.height, max_width=pw - 2, max_height=ph - 2
        )
        self._preview_image = self._image.resize((px_w, px_h), Image.Resampling.LANCZOS)

        self._cache.clear()
        self._update_status(
            f"Loaded {Path(path).name} ({self._image.width}x{self._image.height})"
        )
        self._render_preview()

    def _update_status(self, text: str) -> None:
        self.query_one("#status-bar", Static).update(text)

    @work(thread=True, exclusive=True, group="preview")
    def _render_preview(self) -> None:
        """Dither the preview image in a background thread."""
        if self._preview_image is None or self._source is None:
            return

        worker = get_current_worker()
        settings = self._settings
        cache_key = settings.hash()

        cached = self._cache.get(self._source, cache_key)
        if cached is not None:
            if not worker.is_cancelled:
                self.call_from_thread(self._display_frame, cached)
            return

        try:
            processed = process_image(self._preview_image, settings)
        except ValueError as e:
            if not worker.is_cancelled:
                self.call_from_thread(self._update_status, f"Error: {e}")
            return

        frame = PreviewFrame.from_processed(processed)
        self._cache.put(self._source, cache_key, frame)
        if not worker.is_cancelled:
            self.call_from_thread(self._display_frame, frame)

    def _display_frame(self, frame: PreviewFrame) -> None:
        """Display a dithered preview (called on main thread)."""
        self.query_one(DitherPreview).update_frame(frame)
        s = self._settings
        self._update_status(
            f"{frame.width}x{frame.height} preview, {s.strategy.value}, "
            f"{s.workers} workers, remainder={s.remainder.value}: "
            f"{frame.elapsed_ms:.1f} ms"
        )

    # --- Actions ---

    def action_save(self) -> None:
        if self._image is None or self._source is None:
            self._update_status("No file loaded")
            return
        src = Path(self._source)
        default_path = str(src.parent / f"{src.stem}_dithered{src.suffix or '.png'}")
        self.push_screen(
            PathScreen("Save Output", "Save", default_path, "output.png"),
            self._on_save_result,
        )

    def _on_save_result(self, path: str | None) -> None:
        if path is None:
            return
        self._do_save(path)

    @work(thread=True, exclusive=True, group="save")
    def _do_save(self, output_path: str) -> None:
        """Dither the full-resolution image and save it."""
        from fsdither.core.writer import save_image

        if self._image is None:
            return

        worker = get_current_worker()
        self.call_from_thread(self._update_status, "Saving...")
        try:
            result = process_image(self._image, self._settings)
            out = save_image(result.image, Path(output_path))
        except (ValueError, OSError) as e:
            if not worker.is_cancelled:
                self.call_from_thread(self._update_status, f"Save error: {e}")
            return
        if not worker.is_cancelled:
            self.call_from_thread(
                self._update_status,
                f"Saved to {out} (dithered in {result.elapsed_ms:.0f} ms)",
            )

    def action_open_file(self) -> None:
        self.push_screen(
            PathScreen("Open File", "Open", placeholder="Path to a JPEG or PNG file..."),
            self._on_file_selected,
        )

    def _on_file_selected(self, path: str | None) -> None:
        if path:
            self._load_file(path)

    def action_toggle_panel(self) -> None:
        panel = self.query_one("#control-panel", ControlPanel)
        self._panel_visible = not self._panel_visible
        panel.display = self._panel_visible

    # --- Message handlers ---

    def on_control_panel_settings_changed(
        self, event: ControlPanel.SettingsChanged
    ) -> None:
        self._settings = event.settings
        if self._preview_image is not None:
            self._render_preview()


def run_app(input_path: str | None = None) -> None:
    """Launch the TUI application."""
    app = DitherApp(input_path=input_path)
    app.run()
