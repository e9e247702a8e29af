from __future__ import annotations
import queue
from dataclasses import dataclass
from typing import Callable, ContextManager, Literal, Optional, Protocol, Sequence

from .types import Message, RequestConfig

EventKind = Literal["fragment", "done", "error"]


@dataclass(frozen=True)
class StreamEvent:
    """
    One item on the producer -> renderer channel.
    'done' carries the full reply and is sent exactly once, after every
    'fragment'; 'error' replaces it on failure.
    """
    kind: EventKind
    text: str = ""
    error: Optional[BaseException] = None


class Client(Protocol):
    """
    What the session needs from a provider client.
    """
    config: RequestConfig

    def ask(
        self,
        messages: Sequence[Message],
        on_fragment: Optional[Callable[[str], None]] = None,
        on_complete: Optional[Callable[[str], None]] = None,
    ) -> str:
        """
        Send one request. Streams when config.stream is set, calling
        on_fragment for every decoded piece and on_complete once with the
        whole reply; returns the whole reply.
        """
        ...


class Renderer(Protocol):
    """
    Terminal side of a request.
    """

    def spinner(self) -> ContextManager[None]:
        """Progress indicator held for the duration of a blocking request."""
        ...

    def show(self, text: str) -> None:
        """Render a finished reply."""
        ...

    def follow(self, channel: "queue.Queue[StreamEvent]") -> Optional[str]:
        """
        Render events as they arrive. Returns the reply, or None if the user quit.
        """
        ...
