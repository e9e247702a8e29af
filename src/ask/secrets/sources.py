# src/ask/secrets/sources.py

from __future__ import annotations
from typing import Protocol, Optional, Dict, Iterable, List, Union
import logging
import os

import keyring as _keyring
from keyring.errors import KeyringError

logger = logging.getLogger(__name__)

KEYRING_SERVICE = "ask"


class SecretSource(Protocol):
    def get(self, service: str) -> Optional[str]: ...


class EnvSource:
    def get(self, service: str) -> Optional[str]:
        # Allow mapping to be an explicit env var key OR a provider name
        # 1) exact env var name
        val = os.getenv(service)
        if val and val.strip():
            return val.strip()
        # 2) derived names: ASK_DEEPSEEK_KEY, then DEEPSEEK_API_KEY
        name = service.upper()
        for key in (f"ASK_{name}_KEY", f"{name}_API_KEY"):
            val = os.getenv(key)
            if val and val.strip():
                return val.strip()
        return None


class SystemKeyringSource:
    """
    Looks up `keyring get ask <provider>` first, then a credential stored
    under the provider's own service name.
    """

    def get(self, service: str) -> Optional[str]:
        try:
            val = _keyring.get_password(KEYRING_SERVICE, service)
            if val:
                return val.strip()
            cred = _keyring.get_credential(service, None)
        except KeyringError as e:
            logger.debug("keyring lookup for %r failed: %s", service, e)
            return None
        if cred is not None and getattr(cred, "password", None):
            return cred.password.strip()
        return None


_ALLOWED_METHODS = {"env", "keyring"}


def _normalise_methods(method: Union[str, Iterable[str]]) -> List[str]:
    if isinstance(method, str):
        methods = [method]
    else:
        methods = list(method)
    norm = []
    for m in methods:
        key = str(m).strip().lower()
        if key not in _ALLOWED_METHODS:
            raise ValueError(f"Unknown secrets method '{m}'. Allowed: {sorted(_ALLOWED_METHODS)}")
        if key not in norm:
            norm.append(key)
    return norm


def build_secret_sources(method: Union[str, Iterable[str]]) -> List[SecretSource]:
    sources: List[SecretSource] = []
    for name in _normalise_methods(method):
        if name == "env":
            sources.append(EnvSource())
        elif name == "keyring":
            sources.append(SystemKeyringSource())
    return sources


class SecretsResolver:
    """
    Resolve API keys using one or more methods in order.
    mapping: per-provider map of names -> service/env-key
      e.g. { "deepseek": { "api_key": "MY_DEEPSEEK_TOKEN" } }
    """
    def __init__(self, method: Union[str, Iterable[str]] = "env", mapping: Optional[Dict[str, Dict[str, str]]] = None):
        self._sources = build_secret_sources(method)
        self._map = mapping or {}

    def secret(self, provider: str, name: str = "api_key") -> Optional[str]:
        service = self._map.get(provider, {}).get(name, provider)
        for src in self._sources:
            val = src.get(service)
            if val:
                return val
        return None
