from __future__ import annotations
import queue
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from rich.console import Console
from rich.markdown import Markdown

from ask.core.ports import StreamEvent
from .live import LiveView

SPINNER = "dots"  # ⠋ ⠙ ⠹ ⠸ ⠼ ⠴ ⠦ ⠧ ⠇ ⠏


def _run_inline(view: LiveView) -> Optional[str]:
    return view.run(inline=True)


class TerminalRenderer:
    def __init__(
        self,
        console: Optional[Console] = None,
        *,
        run_view: Callable[[LiveView], Optional[str]] = _run_inline,
    ):
        self.console = console or Console()
        self._run_view = run_view

    @property
    def interactive(self) -> bool:
        return self.console.is_terminal

    @contextmanager
    def spinner(self) -> Iterator[None]:
        # The status region is stopped on every exit path, errors included
        with self.console.status("", spinner=SPINNER):
            yield

    def show(self, text: str) -> None:
        if text.strip():
            self.console.print(Markdown(text))

    def follow(self, channel: "queue.Queue[StreamEvent]") -> Optional[str]:
        """
        Stream into the live view, then print the finished reply normally so it
        lands in the terminal's scrollback. Re-raises a failed request's error.
        """
        view = LiveView(channel)
        reply = self._run_view(view)
        if view.error is not None:
            raise view.error
        if reply is None:
            return None
        self.show(reply)
        return reply
