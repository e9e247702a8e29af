from __future__ import annotations
import queue
from typing import List, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import VerticalScroll
from textual.widgets import Footer, Markdown

from ask.core.ports import StreamEvent

POLL_INTERVAL = 0.05  # seconds between channel drains


class LiveView(App[Optional[str]]):
    """
    Scrollable Markdown view of a reply while it streams.

    Fragments are drained from the channel on a timer, so key handling never
    waits on the network. The view sticks to the bottom as text arrives until
    the user scrolls up; scrolling back to the end re-attaches it.

    `run()` returns the reply, or None when the user quit or the request
    failed; in the latter case `error` holds the exception.
    """

    CSS = """
    Screen:inline {
        height: 80vh;
    }
    #reply {
        height: 1fr;
    }
    """

    BINDINGS = [
        Binding("q", "cancel", "Quit"),
        Binding("escape", "cancel", "Quit", show=False),
        Binding("ctrl+c", "cancel", "Quit", show=False, priority=True),
        Binding("up,k", "scroll_lines(-1)", "Scroll up", show=False),
        Binding("down,j", "scroll_lines(1)", "Scroll down", show=False),
        Binding("pageup,b", "scroll_pages(-1)", "Page up", show=False),
        Binding("pagedown,space", "scroll_pages(1)", "Page down", show=False),
    ]

    def __init__(self, channel: "queue.Queue[StreamEvent]", poll_interval: float = POLL_INTERVAL):
        super().__init__()
        self.channel = channel
        self.poll_interval = poll_interval
        self.error: Optional[BaseException] = None
        self.closing = False
        self._parts: List[str] = []

    @property
    def text(self) -> str:
        return "".join(self._parts)

    @property
    def scroller(self) -> VerticalScroll:
        return self.query_one("#reply", VerticalScroll)

    def compose(self) -> ComposeResult:
        # Not focusable: every key goes through the bindings above
        with VerticalScroll(id="reply", can_focus=False):
            yield Markdown()
        yield Footer()

    def on_mount(self) -> None:
        self.scroller.anchor()
        self.set_interval(self.poll_interval, self._drain)

    async def _drain(self) -> None:
        if self.closing:
            return
        pieces: List[str] = []
        final: Optional[StreamEvent] = None
        while final is None:
            try:
                event = self.channel.get_nowait()
            except queue.Empty:
                break
            if event.kind == "fragment":
                pieces.append(event.text)
            else:
                final = event

        if pieces:
            self._parts.extend(pieces)
            await self.query_one(Markdown).append("".join(pieces))
        if final is not None:
            self._finish(final)

    def _finish(self, event: StreamEvent) -> None:
        self.closing = True
        if event.kind == "error":
            self.error = event.error
            self.exit(None)
        else:
            self.exit(event.text or self.text)

    def action_cancel(self) -> None:
        self.closing = True
        self.exit(None)

    def action_scroll_lines(self, lines: int) -> None:
        self.scroller.scroll_relative(y=lines, animate=False, immediate=True)

    def action_scroll_pages(self, pages: int) -> None:
        scroller = self.scroller
        scroller.scroll_relative(y=pages * scroller.size.height, animate=False, immediate=True)
