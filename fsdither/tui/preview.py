"""Braille preview widget for the TUI."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from textual.app import ComposeResult
from textual.message import Message
from textual.widget import Widget
from textual.widgets import Static

from fsdither.core.braille import braille_from_array
from fsdither.core.processor import ProcessedImage

EMPTY_TEXT = "No file loaded. Press 'o' to open a file."


@dataclass
class PreviewFrame:
    """A dithered preview ready for display."""

    lines: list[str]
    elapsed_ms: float
    width: int  # preview size in pixels
    height: int

    @classmethod
    def from_processed(cls, processed: ProcessedImage) -> PreviewFrame:
        binary = np.asarray(processed.image)
        return cls(
            lines=braille_from_array(binary),
            elapsed_ms=processed.elapsed_ms,
            width=processed.width,
            height=processed.height,
        )


class DitherPreview(Widget):
    """Widget that displays a dithered image as braille characters.

    White pixels are raised dots.
    """

    DEFAULT_CSS = """
    DitherPreview {
        width: 1fr;
        height: 1fr;
        overflow: auto;
        background: $surface;
    }

    DitherPreview #preview-content {
        width: auto;
        height: auto;
    }
    """

    class FrameUpdated(Message):
        """Posted when a new preview is displayed."""
        def __init__(self, elapsed_ms: float) -> None:
            super().__init__()
            self.elapsed_ms = elapsed_ms

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._current_frame: PreviewFrame | None = None

    def compose(self) -> ComposeResult:
        yield Static(EMPTY_TEXT, id="preview-content")

    def update_frame(self, frame: PreviewFrame) -> None:
        """Update the preview with a new dithered frame."""
        self._current_frame = frame
        content = self.query_one("#preview-content", Static)
        content.update("\n".join(frame.lines))
        self.post_message(self.FrameUpdated(frame.elapsed_ms))

    def clear(self) -> None:
        """Clear the preview."""
        self._current_frame = None
        content = self.query_one("#preview-content", Static)
        content.update(EMPTY_TEXT)

    @property
    def current_frame(self) -> PreviewFrame | None:
        return self._current_frame
