from __future__ import annotations
import logging
import queue
import threading
from typing import Optional, Sequence

from .errors import AskError
from .ports import Client, Renderer, StreamEvent
from .types import Message, RenderMode

logger = logging.getLogger(__name__)


class AskSession:
    """
    Runs the single request of an invocation in one of two shapes:

    - SPINNER: the calling thread blocks in the client while the renderer's
      spinner animates; the reply is shown once at the end.
    - LIVE: a worker thread runs the client and pushes StreamEvents onto a
      queue; the renderer's redraw loop consumes them and polls keys.
    """

    def __init__(self, client: Client, renderer: Renderer, mode: RenderMode = RenderMode.SPINNER):
        self.client = client
        self.renderer = renderer
        self.mode = RenderMode(mode)

    def run(self, messages: Sequence[Message]) -> Optional[str]:
        if self.mode is RenderMode.LIVE:
            return self.run_live(messages)
        return self.run_blocking(messages)

    def run_blocking(self, messages: Sequence[Message]) -> str:
        with self.renderer.spinner():
            reply = self.client.ask(messages)
        self.renderer.show(reply)
        return reply

    def run_live(self, messages: Sequence[Message]) -> Optional[str]:
        channel: "queue.Queue[StreamEvent]" = queue.Queue()
        # Daemon: on quit the request is left to finish and its result dropped
        worker = threading.Thread(
            target=self._produce, args=(messages, channel), name="ask-request", daemon=True
        )
        worker.start()
        reply = self.renderer.follow(channel)
        if reply is None:
            logger.debug("render loop cancelled; abandoning in-flight request")
        return reply

    def _produce(self, messages: Sequence[Message], channel: "queue.Queue[StreamEvent]") -> None:
        def emit(piece: str) -> None:
            channel.put(StreamEvent("fragment", piece))

        def finish(reply: str) -> None:
            channel.put(StreamEvent("done", reply))

        try:
            self.client.ask(messages, on_fragment=emit, on_complete=finish)
        except AskError as e:
            channel.put(StreamEvent("error", error=e))
        except Exception as e:
            # Anything else still has to end the render loop
            logger.exception("request worker crashed")
            channel.put(StreamEvent("error", error=e))
