from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Tuple, Union

from ask.core.errors import ConfigError
from ask.core.types import Provider


@dataclass(frozen=True)
class ProviderEndpoint:
    url: str
    models: Tuple[str, ...]

    def supports(self, model: str) -> bool:
        return model in self.models


# All supported backends speak the OpenAI chat-completions wire format;
# they differ only in URL and accepted model names.
ENDPOINTS: Dict[Provider, ProviderEndpoint] = {
    Provider.DEEPSEEK: ProviderEndpoint(
        url="https://api.deepseek.com/chat/completions",
        models=("deepseek-chat",),
    ),
    Provider.QWEN: ProviderEndpoint(
        url="https://dashscope.aliyuncs.com/compatible-mode/v1/chat/completions",
        models=("qwen-plus", "qwen-flash"),
    ),
    Provider.GROK: ProviderEndpoint(
        url="https://api.x.ai/v1/chat/completions",
        models=("grok-3",),
    ),
}


def parse_provider(name: Union[str, Provider]) -> Provider:
    if isinstance(name, Provider):
        return name
    key = str(name).strip().lower()
    try:
        return Provider(key)
    except ValueError:
        allowed = ", ".join(p.value for p in Provider)
        raise ConfigError(f"Unknown provider '{name}' (expected one of: {allowed})") from None


def endpoint_for(provider: Union[str, Provider]) -> ProviderEndpoint:
    return ENDPOINTS[parse_provider(provider)]


def all_models() -> Tuple[str, ...]:
    return tuple(m for ep in ENDPOINTS.values() for m in ep.models)
