"""
Switchyard - Modal Screens

Embedded JSON/text editor used for adding and editing providers, MCP servers
and prompts. Only save and cancel are honoured; validation failures keep the
editor open with the user's text.

Copyright (c) 2025 Artel Team
Licensed under Artel Team Non-Commercial License
"""

import logging
from typing import Callable

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.screen import ModalScreen
from textual.widgets import Static, TextArea

from .constants import STATUS_EDITING_CANCELLED

# Returns None on success or an error message to show while staying open
SubmitHandler = Callable[[str], "str | None"]


class EditorScreen(ModalScreen[bool]):
    """Modal editor; dismisses with True after a successful save."""

    CSS = """
    EditorScreen {
        align: center middle;
    }
    #editor-container {
        width: 90%;
        height: 90%;
        background: $surface;
        border: thick $primary;
        padding: 0;
    }
    #editor-title {
        dock: top;
        height: 1;
        content-align: center middle;
        background: $primary;
        color: $text;
        padding: 0 1;
    }
    #editor-area {
        height: 1fr;
        border: solid $accent;
    }
    #editor-error {
        height: auto;
        color: $error;
        padding: 0 1;
    }
    #editor-hint {
        dock: bottom;
        height: 1;
        color: $text-muted;
        text-align: center;
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
        Binding("ctrl+s", "save", "Save", priority=True),
    ]

    def __init__(self, title: str, text: str, submit_handler: SubmitHandler) -> None:
        super().__init__()
        self.title_text = title
        self.initial_text = text
        self.submit_handler = submit_handler
        self.logger = logging.getLogger('EditorScreen')

    def compose(self) -> ComposeResult:
        with Container(id="editor-container"):
            yield Static(self.title_text, id="editor-title", markup=False)
            yield TextArea(
                self.initial_text,
                id="editor-area",
                show_line_numbers=True,
            )
            yield Static("", id="editor-error", markup=False)
            yield Static("Ctrl+S save   Esc cancel", id="editor-hint")

    def on_mount(self) -> None:
        self.query_one("#editor-area", TextArea).focus()

    @property
    def text(self) -> str:
        return self.query_one("#editor-area", TextArea).text

    def action_save(self) -> None:
        text = self.text
        error = self.submit_handler(text)
        if error:
            self.logger.debug("Editor submit rejected: %s", error)
            self.query_one("#editor-error", Static).update(error)
            self.app.bell()
            return
        self.dismiss(True)

    def action_cancel(self) -> None:
        self.logger.debug(STATUS_EDITING_CANCELLED)
        self.dismiss(False)


__all__ = ["EditorScreen"]
