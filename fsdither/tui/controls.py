"""Settings control panel for the TUI."""

from __future__ import annotations

from dataclasses import replace

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.message import Message
from textual.widget import Widget
from textual.widgets import (
    Button,
    Input,
    Label,
    Select,
    Static,
)

from fsdither.core.bands import RemainderPolicy
from fsdither.core.processor import DitherStrategy, Settings

MAX_WORKERS = 64


class ControlPanel(Widget):
    """Settings panel with controls for the diffusion schedule."""

    DEFAULT_CSS = """
    ControlPanel {
        width: 30;
        height: 1fr;
        background: $panel;
        padding: 1;
        border-left: solid $accent;
    }

    ControlPanel Label {
        margin-top: 1;
        color: $text-muted;
    }

    ControlPanel Select {
        width: 100%;
        margin-bottom: 0;
    }

    ControlPanel #panel-title {
        text-style: bold;
        color: $text;
        margin-bottom: 1;
    }

    ControlPanel .num-row {
        height: 3;
        margin-top: 1;
    }

    ControlPanel .num-row Label {
        width: 9;
        margin-top: 0;
        padding-top: 1;
    }

    ControlPanel .num-row Button {
        min-width: 3;
        margin: 0;
    }

    ControlPanel .num-row Input {
        width: 1fr;
        margin: 0;
    }
    """

    class SettingsChanged(Message):
        """Posted when any setting changes."""
        def __init__(self, settings: Settings) -> None:
            super().__init__()
            self.settings = settings

    def __init__(self, settings: Settings | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self._settings = settings or Settings()

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static("Settings", id="panel-title")

            yield Label("Strategy")
            yield Select(
                [(s.value, s.value) for s in DitherStrategy],
                value=self._settings.strategy.value,
                id="strategy-select",
            )

            yield Label("Remainder rows")
            yield Select(
                [(p.value, p.value) for p in RemainderPolicy],
                value=self._settings.remainder.value,
                id="remainder-select",
            )

            with Horizontal(classes="num-row"):
                yield Label("Workers")
                yield Button("-", id="workers-dec")
                yield Input(
                    value=str(self._settings.workers),
                    id="workers-input",
                    type="integer",
                )
                yield Button("+", id="workers-inc")

    @property
    def settings(self) -> Settings:
        return self._settings

    def _update_settings(self, **overrides) -> None:
        """Create new settings with overrides and emit change."""
        self._settings = replace(self._settings, **overrides)
        self.post_message(self.SettingsChanged(self._settings))

    def on_select_changed(self, event: Select.Changed) -> None:
        if not isinstance(event.value, str):
            return
        if event.select.id == "strategy-select":
            self._update_settings(strategy=DitherStrategy(event.value))
        elif event.select.id == "remainder-select":
            self._update_settings(remainder=RemainderPolicy(event.value))

    def _set_workers(self, value: int) -> None:
        new_val = max(1, min(MAX_WORKERS, value))
        self.query_one("#workers-input", Input).value = str(new_val)
        self._update_settings(workers=new_val)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        btn = event.button.id
        if btn == "workers-dec":
            self._set_workers(self._settings.workers - 1)
        elif btn == "workers-inc":
            self._set_workers(self._settings.workers + 1)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        try:
            val = int(event.value)
        except ValueError:
            return
        if event.input.id == "workers-input":
            self._set_workers(val)
