from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
from dotenv import load_dotenv
from rich.console import Console

from .config_loader import Settings, default_config_path, load_settings
from .core.ask_session import AskSession
from .core.errors import ConfigError
from .core.types import RenderMode, RequestConfig
from .providers.client import ProviderClient
from .providers.endpoints import endpoint_for, parse_provider
from .secrets.sources import SecretsResolver
from .ui.render import TerminalRenderer

logger = logging.getLogger(__name__)


def build_resolver(settings: Settings) -> SecretsResolver:
    secrets_cfg = settings.secrets or {}
    method = secrets_cfg.get("method", "env")
    mapping = secrets_cfg.get("mapping", {})
    try:
        return SecretsResolver(method=method, mapping=mapping)
    except ValueError as e:
        raise ConfigError(str(e)) from e


def resolve_request_config(settings: Settings, secrets: SecretsResolver) -> RequestConfig:
    """
    Check the provider/model/key combination and freeze it into a RequestConfig.
    Everything here fails before any network call.
    """
    if not settings.provider:
        raise ConfigError("AI provider is not set")
    if not settings.model:
        raise ConfigError("AI model is not set")

    provider = parse_provider(settings.provider)
    endpoint = endpoint_for(provider)
    if not endpoint.supports(settings.model):
        raise ConfigError(
            f"{provider.label} provider only supports {' and '.join(endpoint.models)} "
            f"model{'s' if len(endpoint.models) > 1 else ''}"
        )

    api_key = secrets.secret(provider.value)
    if not api_key:
        raise ConfigError(f"{provider.label} API key is not set")

    return RequestConfig(
        provider=provider,
        model=settings.model,
        api_key=api_key,
        timeout=settings.timeout,
        stream=settings.stream,
    )


def build_app(
    config_path: Optional[Path] = None,
    *,
    console: Optional[Console] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> Dict[str, Any]:
    """
    Composition root: load settings + env, resolve the key, build the client,
    renderer and session for this invocation.
    Returns: dict with settings, request, session.
    """
    load_dotenv()
    path = config_path or default_config_path()
    settings = load_settings(path)

    request = resolve_request_config(settings, build_resolver(settings))
    client = ProviderClient(request, transport=transport)
    renderer = TerminalRenderer(console)

    mode = RenderMode(settings.render)
    if mode is RenderMode.LIVE and not renderer.interactive:
        logger.debug("stdout is not a terminal; using spinner mode")
        mode = RenderMode.SPINNER

    return {
        "settings": settings,
        "paths": {"config_file": path},
        "request": request,
        "session": AskSession(client, renderer, mode=mode),
    }
