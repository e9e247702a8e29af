# src/ask/config_loader.py

from __future__ import annotations
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .core.errors import ConfigError
from .core.types import RenderMode

ENV_PREFIX = "ASK_"
CONFIG_FILE_ENV = "ASK_CONFIG_FILE"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass
class Settings:
    """
    User settings persisted at ~/.config/ask.json.
    API keys are never part of this object; they come from SecretsResolver.
    """
    provider: Optional[str] = None
    model: Optional[str] = None
    timeout: Optional[float] = None
    stream: bool = True
    render: str = RenderMode.SPINNER.value
    presets: Dict[str, str] = field(default_factory=dict)
    secrets: Dict[str, Any] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return self == Settings()

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "provider": self.provider,
            "model": self.model,
            "timeout": self.timeout,
            "stream": self.stream,
            "render": self.render,
            "presets": dict(self.presets),
        }
        if self.secrets:
            data["secrets"] = dict(self.secrets)
        return data


def default_config_path(env: Optional[Mapping[str, str]] = None) -> Path:
    env = os.environ if env is None else env
    override = env.get(CONFIG_FILE_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "ask.json"


def parse_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"'{key}' must be a boolean")


def parse_timeout(value: Any, key: str = "timeout") -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ConfigError(f"'{key}' must be a number of seconds")
    try:
        secs = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{key}' must be a number of seconds") from None
    if secs <= 0:
        raise ConfigError(f"'{key}' must be greater than zero")
    return secs


def parse_render(value: Any, key: str = "render") -> str:
    text = str(value).strip().lower()
    allowed = [m.value for m in RenderMode]
    if text not in allowed:
        raise ConfigError(f"Unknown {key} '{value}' (expected one of: {', '.join(allowed)})")
    return text


def _optional_str(raw: Dict[str, Any], key: str) -> Optional[str]:
    val = raw.get(key)
    if val is None:
        return None
    if not isinstance(val, str):
        raise ConfigError(f"'{key}' must be a string")
    return val.strip().lower() or None


def _from_raw(raw: Dict[str, Any]) -> Settings:
    presets = raw.get("presets") or {}
    if not isinstance(presets, dict) or not all(isinstance(k, str) and isinstance(v, str) for k, v in presets.items()):
        raise ConfigError("'presets' must be a mapping of name -> prompt")
    secrets = raw.get("secrets") or {}
    if not isinstance(secrets, dict):
        raise ConfigError("'secrets' must be a mapping")

    return Settings(
        provider=_optional_str(raw, "provider"),
        model=_optional_str(raw, "model"),
        timeout=parse_timeout(raw.get("timeout")),
        stream=parse_bool(raw.get("stream", True), "stream"),
        render=parse_render(raw.get("render", RenderMode.SPINNER.value)),
        presets=dict(presets),
        secrets=dict(secrets),
    )


def _apply_env(settings: Settings, env: Mapping[str, str]) -> Settings:
    def get(name: str) -> Optional[str]:
        val = env.get(ENV_PREFIX + name)
        return val if val else None  # empty values are ignored

    if (val := get("PROVIDER")) is not None:
        settings.provider = val.strip().lower()
    if (val := get("MODEL")) is not None:
        settings.model = val.strip().lower()
    if (val := get("TIMEOUT")) is not None:
        settings.timeout = parse_timeout(val, ENV_PREFIX + "TIMEOUT")
    if (val := get("STREAM")) is not None:
        settings.stream = parse_bool(val, ENV_PREFIX + "STREAM")
    if (val := get("RENDER")) is not None:
        settings.render = parse_render(val, ENV_PREFIX + "RENDER")
    return settings


def load_settings(path: Path, *, env: Optional[Mapping[str, str]] = None, apply_env: bool = True) -> Settings:
    """
    Read settings from `path` (a missing file means defaults), then layer the
    ASK_* environment overrides on top unless apply_env is False.
    """
    raw: Dict[str, Any] = {}
    if path.exists():
        text = path.read_text(encoding="utf-8")
        if text.strip():
            try:
                raw = json.loads(text)
            except ValueError as e:
                raise ConfigError(f"Settings file is not valid JSON: {path} ({e})") from e
            if not isinstance(raw, dict):
                raise ConfigError(f"Settings file must hold a JSON object: {path}")

    settings = _from_raw(raw)
    if apply_env:
        settings = _apply_env(settings, os.environ if env is None else env)
    return settings


def save_settings(settings: Settings, path: Path) -> bool:
    """Write settings as pretty JSON. Returns False when there was nothing to write."""
    if not path.exists() and settings.is_empty():
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(settings.to_json(), indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return True
