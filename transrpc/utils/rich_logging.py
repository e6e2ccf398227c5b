"""Rich logging integration for transrpc.

Provides the Rich-based console handler used when structured logging is off.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

from rich.console import Console
from rich.logging import RichHandler


class CorrelationRichHandler(RichHandler):
    """RichHandler that prefixes messages with the record's correlation ID."""

    def __init__(
        self,
        *args: Any,
        console: Console | None = None,
        show_correlation_id: bool = True,
        **kwargs: Any,
    ) -> None:
        """Initialize handler.

        Args:
            *args: Positional arguments for RichHandler
            console: Optional Rich Console instance (defaults to stderr)
            show_correlation_id: Whether to prefix messages with the correlation ID
            **kwargs: Keyword arguments for RichHandler

        """
        if console is None:
            console = Console(file=sys.stderr)
        self.show_correlation_id = show_correlation_id
        kwargs.setdefault("rich_tracebacks", True)
        kwargs.setdefault("show_path", False)
        super().__init__(*args, console=console, **kwargs)

    def render_message(self, record: logging.LogRecord, message: str):  # type: ignore[override]
        """Render message, prefixed with the correlation ID when present."""
        corr_id = getattr(record, "correlation_id", None)
        if self.show_correlation_id and corr_id and corr_id != "no-correlation-id":
            message = f"[{corr_id[:8]}] {message}"
        return super().render_message(record, message)


def create_rich_handler(
    level: int | str = logging.INFO,
    show_correlation_id: bool = True,
    console: Console | None = None,
) -> CorrelationRichHandler:
    """Create a configured Rich console handler."""
    handler = CorrelationRichHandler(
        console=console,
        show_correlation_id=show_correlation_id,
    )
    handler.setLevel(level)
    return handler
