# src/ask/providers/client.py
from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional, Sequence

import httpx

from ask.core.errors import (
    ConfigError,
    EmptyReplyError,
    HttpStatusError,
    ProviderError,
    TransportError,
)
from ask.core.types import Message, RequestConfig
from ask.providers.endpoints import ProviderEndpoint, endpoint_for
from ask.providers.sse import StreamDecoder

logger = logging.getLogger(__name__)


def _classify_http_exception(exc: Exception) -> ProviderError:
    """
    Convert httpx exceptions into neutral provider errors.
    """
    if isinstance(exc, ProviderError):
        return exc
    if isinstance(exc, httpx.HTTPStatusError):
        return HttpStatusError(exc.response.status_code, exc.response.text)
    if isinstance(exc, httpx.TimeoutException):
        return TransportError(f"Request timed out: {exc}")
    return TransportError(f"{type(exc).__name__}: {exc}")


def _iter_lines(response: httpx.Response) -> Iterator[str]:
    # Read errors surface mid-stream; re-raise them in our own taxonomy
    try:
        yield from response.iter_lines()
    except httpx.HTTPError as e:
        raise _classify_http_exception(e) from e


def _raise_for_status(response: httpx.Response) -> None:
    if not response.is_success:
        response.read()
        raise HttpStatusError(response.status_code, response.text)


def _extract_reply(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError as e:
        raise EmptyReplyError("Provider returned a non-JSON body") from e
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        raise EmptyReplyError("Provider reply had no choices[0].message.content") from None
    if not isinstance(content, str) or not content.strip():
        raise EmptyReplyError("Provider returned an empty reply")
    return content


class ProviderClient:
    """
    One OpenAI-style chat-completions call against the configured endpoint.
    - never retries; every failure is a ProviderError
    - `transport` lets tests swap the network for httpx.MockTransport
    """

    def __init__(
        self,
        config: RequestConfig,
        *,
        endpoint: Optional[ProviderEndpoint] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if not config.api_key:
            raise ConfigError(f"{config.provider.label} API key is not set")
        self.config = config
        self.endpoint = endpoint or endpoint_for(config.provider)
        self._transport = transport

    def _http_client(self) -> httpx.Client:
        kwargs: Dict[str, Any] = {"timeout": httpx.Timeout(self.config.request_timeout)}
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return httpx.Client(**kwargs)

    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
        }

    def build_payload(self, messages: Sequence[Message], *, stream: bool) -> Dict[str, Any]:
        if not messages:
            raise ConfigError("Nothing to ask")
        payload: Dict[str, Any] = {
            "model": self.config.model,
            "messages": [m.to_dict() for m in messages],
            "stream": stream,
        }
        logger.debug("POST %s %s", self.endpoint.url, payload)
        return payload

    def complete(self, messages: Sequence[Message]) -> str:
        payload = self.build_payload(messages, stream=False)
        try:
            with self._http_client() as client:
                response = client.post(self.endpoint.url, json=payload, headers=self.headers())
        except httpx.HTTPError as e:
            raise _classify_http_exception(e) from e
        _raise_for_status(response)
        return _extract_reply(response)

    @contextmanager
    def open_stream(
        self,
        messages: Sequence[Message],
        on_fragment: Optional[Callable[[str], None]] = None,
        on_complete: Optional[Callable[[str], None]] = None,
    ) -> Iterator[StreamDecoder]:
        """
        Send a streaming request and yield a decoder bound to the open response.

        The timeout bounds connecting and waiting for the response headers only;
        once the body starts, the provider may pause between chunks for as long
        as it likes. The connection is closed when the block exits, whether or
        not the decoder reached [DONE].
        """
        payload = self.build_payload(messages, stream=True)
        try:
            with self._http_client() as client:
                request = client.build_request("POST", self.endpoint.url, json=payload, headers=self.headers())
                response = client.send(request, stream=True)
                try:
                    _raise_for_status(response)
                    # Read by the transport when the body is first iterated
                    request.extensions["timeout"]["read"] = None
                    yield StreamDecoder(_iter_lines(response), on_fragment=on_fragment, on_complete=on_complete)
                finally:
                    response.close()
        except httpx.HTTPError as e:
            raise _classify_http_exception(e) from e

    def ask(
        self,
        messages: Sequence[Message],
        on_fragment: Optional[Callable[[str], None]] = None,
        on_complete: Optional[Callable[[str], None]] = None,
    ) -> str:
        if not self.config.stream:
            reply = self.complete(messages)
            if on_fragment is not None:
                on_fragment(reply)
            if on_complete is not None:
                on_complete(reply)
            return reply
        with self.open_stream(messages, on_fragment=on_fragment, on_complete=on_complete) as decoder:
            return decoder.read_all()

