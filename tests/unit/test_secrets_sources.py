# tests/unit/test_secrets_sources.py

from __future__ import annotations
import sys
from pathlib import Path
import pytest
from keyring.errors import KeyringError

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from ask.secrets.sources import (  # type: ignore
    SecretsResolver,
    build_secret_sources,
)
import ask.secrets.sources as src  # type: ignore


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("ASK_DEEPSEEK_KEY", "DEEPSEEK_API_KEY", "MY_TOKEN", "deepseek"):
        monkeypatch.delenv(name, raising=False)


def test_env_prefixed_key(monkeypatch):
    monkeypatch.setenv("ASK_DEEPSEEK_KEY", " sk-env ")
    r = SecretsResolver(method="env")
    assert r.secret("deepseek") == "sk-env"


def test_env_mapping_to_exact_name(monkeypatch):
    monkeypatch.setenv("MY_TOKEN", "sk-mapped")
    r = SecretsResolver(method=["env"], mapping={"deepseek": {"api_key": "MY_TOKEN"}})
    assert r.secret("deepseek") == "sk-mapped"


def test_env_falls_back_to_vendor_name(monkeypatch):
    monkeypatch.setenv("DEEPSEEK_API_KEY", "sk-vendor")
    assert SecretsResolver().secret("deepseek") == "sk-vendor"


def test_env_missing_returns_none():
    assert SecretsResolver(method="env").secret("deepseek") is None


def test_unknown_method_raises():
    with pytest.raises(ValueError):
        build_secret_sources("nope")


def test_keyring_then_env(monkeypatch):
    monkeypatch.setenv("ASK_DEEPSEEK_KEY", "sk-from-env")

    class FakeKeyring:
        def get_password(self, service, account):
            return "sk-from-keyring" if (service, account) == ("ask", "deepseek") else None

        def get_credential(self, service, _):
            return None

    monkeypatch.setattr(src, "_keyring", FakeKeyring(), raising=True)
    r = SecretsResolver(method=["keyring", "env"])
    assert r.secret("deepseek") == "sk-from-keyring"

    # Keyring miss -> env wins
    class KR2:
        def get_password(self, *_): return None
        def get_credential(self, *_): return None

    monkeypatch.setattr(src, "_keyring", KR2(), raising=True)
    assert SecretsResolver(method=["keyring", "env"]).secret("deepseek") == "sk-from-env"


def test_keyring_credential_fallback(monkeypatch):
    class Cred:
        password = "sk-cred"

    class KR:
        def get_password(self, *_): return None
        def get_credential(self, service, _):
            return Cred() if service == "deepseek" else None

    monkeypatch.setattr(src, "_keyring", KR(), raising=True)
    assert SecretsResolver(method="keyring").secret("deepseek") == "sk-cred"


def test_keyring_backend_error_is_a_miss(monkeypatch):
    monkeypatch.setenv("ASK_DEEPSEEK_KEY", "sk-from-env")

    class Broken:
        def get_password(self, *_): raise KeyringError("no backend")
        def get_credential(self, *_): raise KeyringError("no backend")

    monkeypatch.setattr(src, "_keyring", Broken(), raising=True)
    assert SecretsResolver(method=["keyring", "env"]).secret("deepseek") == "sk-from-env"
