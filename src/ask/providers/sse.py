from __future__ import annotations
import json
import logging
from enum import Enum
from typing import Callable, Iterable, Iterator, List, Optional

from ask.core.errors import MalformedChunkError, TransportError

logger = logging.getLogger(__name__)

SSE_DATA_PREFIX = "data: "
SSE_DONE_PAYLOAD = "[DONE]"


class DecoderState(str, Enum):
    AWAITING_LINE = "awaiting_line"
    HAVE_LINE = "have_line"
    EMIT = "emit"
    SKIP = "skip"
    DONE = "done"


def extract_delta(payload: str) -> Optional[str]:
    """
    Return choices[0].delta.content from one chunk payload, or None when the
    chunk carries no text (role/usage/finish_reason chunks).
    Raises MalformedChunkError if the payload is not JSON at all.
    """
    try:
        data = json.loads(payload)
    except ValueError as e:
        raise MalformedChunkError(payload, str(e)) from e
    try:
        piece = data["choices"][0]["delta"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    return piece if isinstance(piece, str) else None


class StreamDecoder:
    """
    Turns the line iterator of an SSE body into text fragments.

    Iterating yields each fragment as it is decoded; `text` holds everything
    received so far. Reading stops at `data: [DONE]`; an input that simply ends
    is accepted as a best-effort reply. A TransportError from the line source
    discards the accumulated text and propagates.

    One instance per response: a decoder cannot be iterated twice.
    """

    def __init__(
        self,
        lines: Iterable[str],
        on_fragment: Optional[Callable[[str], None]] = None,
        on_complete: Optional[Callable[[str], None]] = None,
    ):
        self._lines = iter(lines)
        self._on_fragment = on_fragment
        self._on_complete = on_complete
        self._parts: List[str] = []
        self._started = False
        self.state = DecoderState.AWAITING_LINE
        self.saw_done = False
        self.skipped = 0

    @property
    def text(self) -> str:
        return "".join(self._parts)

    @property
    def finished(self) -> bool:
        return self.state is DecoderState.DONE

    def __iter__(self) -> Iterator[str]:
        if self._started:
            raise RuntimeError("StreamDecoder is single-use; build a new one per response")
        self._started = True
        return self._decode()

    def read_all(self) -> str:
        for _ in self:
            pass
        return self.text

    def _next_line(self) -> Optional[str]:
        self.state = DecoderState.AWAITING_LINE
        try:
            line = next(self._lines)
        except StopIteration:
            return None
        except TransportError:
            self._parts.clear()
            self.state = DecoderState.DONE
            raise
        self.state = DecoderState.HAVE_LINE
        return line

    def _step(self, line: str) -> Optional[str]:
        """Classify one line: returns the fragment to emit, or None to skip."""
        line = line.rstrip("\r\n")
        if not line.startswith(SSE_DATA_PREFIX):
            self.state = DecoderState.SKIP
            return None

        payload = line[len(SSE_DATA_PREFIX):]
        if payload.strip() == SSE_DONE_PAYLOAD:
            self.saw_done = True
            self.state = DecoderState.DONE
            return None

        try:
            piece = extract_delta(payload)
        except MalformedChunkError as e:
            logger.debug("skipping chunk: %s", e)
            piece = None

        if not piece:
            self.skipped += 1
            self.state = DecoderState.SKIP
            return None
        self.state = DecoderState.EMIT
        return piece

    def _decode(self) -> Iterator[str]:
        while True:
            line = self._next_line()
            if line is None:
                break
            piece = self._step(line)
            if self.state is DecoderState.DONE:
                break
            if piece is None:
                continue
            self._parts.append(piece)
            if self._on_fragment is not None:
                self._on_fragment(piece)
            yield piece

        self.state = DecoderState.DONE
        if self.saw_done:
            logger.debug("stream done: %d chars, %d chunks skipped", len(self.text), self.skipped)
        else:
            logger.warning("stream closed without [DONE]; returning %d chars received", len(self.text))
        if self._on_complete is not None:
            self._on_complete(self.text)
