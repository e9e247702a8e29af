from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

DEFAULT_TIMEOUT = 60.0


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"


class Provider(str, Enum):
    DEEPSEEK = "deepseek"
    QWEN = "qwen"
    GROK = "grok"

    @property
    def label(self) -> str:
        return {"deepseek": "DeepSeek", "qwen": "Qwen", "grok": "Grok"}[self.value]


class RenderMode(str, Enum):
    SPINNER = "spinner"  # block on the stream, animate a spinner, print once
    LIVE = "live"        # redraw as fragments arrive, with scroll/quit keys


@dataclass(frozen=True)
class Message:
    role: Role
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class RequestConfig:
    """
    Everything the provider client needs for one request.
    timeout=None means DEFAULT_TIMEOUT.
    """
    provider: Provider
    model: str
    api_key: str = field(repr=False)
    timeout: Optional[float] = None
    stream: bool = True

    @property
    def request_timeout(self) -> float:
        return float(self.timeout) if self.timeout is not None else DEFAULT_TIMEOUT
