"""Number prompt — small modal for typing money or a target level."""

from __future__ import annotations

from textual import on
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Input, Static


class NumberPrompt(ModalScreen[int | None]):
    """Asks for a non-negative whole number. Dismisses with None on cancel."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
    ]

    DEFAULT_CSS = """
    NumberPrompt {
        align: center middle;
    }

    #prompt-box {
        width: 50;
        height: auto;
        padding: 1 2;
        border: round $accent;
        background: $surface;
    }

    #prompt-error {
        color: $error;
    }
    """

    def __init__(self, title: str, initial: int, **kwargs) -> None:
        super().__init__(**kwargs)
        self._title = title
        self._initial = initial

    def compose(self):
        with Vertical(id="prompt-box"):
            yield Static(self._title, id="prompt-title")
            yield Input(value=str(self._initial), id="prompt-input")
            yield Static("", id="prompt-error")

    def on_mount(self) -> None:
        self.query_one("#prompt-input", Input).focus()

    @on(Input.Submitted)
    def _submitted(self, event: Input.Submitted) -> None:
        raw = event.value.strip().replace(",", "")
        try:
            value = int(float(raw))
        except (ValueError, OverflowError):
            self.query_one("#prompt-error", Static).update("Enter a whole number.")
            return
        self.dismiss(max(0, value))

    def action_cancel(self) -> None:
        self.dismiss(None)
