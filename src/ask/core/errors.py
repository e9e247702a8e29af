from __future__ import annotations
from typing import Optional


class AskError(Exception):
    """Base class for every failure the core reports to the CLI."""


class ConfigError(AskError, ValueError):
    """
    Caller/config issue detected before any network call: missing provider,
    model or key, unsupported model, unreadable settings file, empty question.
    The fix is to change input/config.
    """


class ProviderError(AskError):
    """Base class for provider-level failures."""


class HttpStatusError(ProviderError):
    """Non-2xx response from the provider. Carries the raw body for the user."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = int(status_code)
        self.body = body
        super().__init__(f"Request failed with status: {self.status_code} {body!r}")


class TransportError(ProviderError):
    """
    DNS, TLS, connect, timeout or read failure. Raised mid-stream as well;
    any partial reply is dropped.
    """


class EmptyReplyError(ProviderError):
    """Non-streaming body had no usable choices[0].message.content."""


class MalformedChunkError(ProviderError):
    """A `data:` payload that is not JSON. Logged and skipped by the decoder."""

    def __init__(self, payload: str, reason: Optional[str] = None):
        self.payload = payload
        super().__init__(reason or f"Malformed stream chunk: {payload[:80]!r}")
