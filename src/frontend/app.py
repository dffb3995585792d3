"""Textual rule tester for switchboard."""

from __future__ import annotations

from typing import Any

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, Vertical, VerticalScroll
from textual.widgets import Button, Footer, Input, Static, Switch

from core.rules import RuleRegistry

from .state import TesterState, describe

ACCENT = "#2AABEE"


class RuleTesterApp(App):
    """Type a message and see which rule would answer it."""

    BINDINGS = [
        ("ctrl+t", "run_test", "Test"),
        ("q", "quit", "Quit"),
    ]

    CSS = """
    Screen {
        background: #111820;
        color: #dfe7ee;
    }

    #header {
        height: 4;
        padding: 0 2;
        border-bottom: heavy #24323d;
    }

    #title {
        text-style: bold;
        padding-top: 1;
    }

    .muted {
        color: #9fb0bf;
    }

    #form {
        height: auto;
        padding: 0 2;
    }

    .field-label {
        color: #9fb0bf;
        margin-top: 1;
    }

    #toggles {
        height: 3;
        margin-top: 1;
    }

    #toggles Static {
        width: auto;
        padding: 1 1 0 0;
    }

    #toggles Switch {
        margin-right: 2;
    }

    #result {
        height: 1fr;
        padding: 1 2;
        border-top: heavy #24323d;
    }
    """

    def __init__(
        self,
        registry: RuleRegistry,
        bot_mention: str = "",
        allowed_users: frozenset = frozenset(),
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._registry = registry
        self._bot_mention = bot_mention
        self._allowed_users = allowed_users
        self.tester_state = TesterState()

    def compose(self) -> ComposeResult:
        with Container(id="header"):
            yield Static(self._title_text(), id="title")
            yield Static(f"{len(self._registry)} rules loaded", classes="muted")

        with Vertical(id="form"):
            yield Static("message", classes="field-label")
            yield Input(placeholder='jira create "fix the thing"', id="message")
            yield Static("channel name", classes="field-label")
            yield Input(placeholder="platform-aws", id="channel")
            yield Static("sender id", classes="field-label")
            yield Input(placeholder="tester", id="sender")
            with Horizontal(id="toggles"):
                yield Static("mention the bot")
                yield Switch(value=True, id="mentioned")
                yield Static("in a thread")
                yield Switch(value=False, id="in-thread")
                yield Button("Test", id="test-btn", variant="primary")

        with VerticalScroll(id="result"):
            yield Static("", id="result-text")
        yield Footer()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "test-btn":
            self.action_run_test()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.action_run_test()

    def action_run_test(self) -> None:
        state = self.tester_state
        state.text = self.query_one("#message", Input).value
        state.channel_name = self.query_one("#channel", Input).value.strip()
        state.sender_id = self.query_one("#sender", Input).value.strip() or "tester"
        state.mentioned = self.query_one("#mentioned", Switch).value
        state.in_thread = self.query_one("#in-thread", Switch).value
        lines = describe(self._registry, state, self._bot_mention, self._allowed_users)
        self.query_one("#result-text", Static).update(Text("\n".join(lines)))

    @staticmethod
    def _title_text() -> Text:
        return Text.assemble(
            ("SWITCH", ACCENT),
            ("BOARD > Rule Tester", "bold"),
        )
