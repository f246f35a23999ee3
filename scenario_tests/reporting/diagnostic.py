"""Sink for diagnostic messages."""

from scenario_tests.models.events import DiagnosticMessage


class DiagnosticSink:
    """Accepts diagnostic messages and drops them."""

    def on_event(self, event: DiagnosticMessage, /) -> None:
        """Swallow the message."""
