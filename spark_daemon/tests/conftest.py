"""Shared fixtures: a throwaway vault and a scripted backend."""

import pytest

from spark_daemon.common.config import ProviderSettings, SparkConfig
from spark_daemon.providers import BaseProvider, CompletionResult, ProviderRegistry, Usage


@pytest.fixture
def vault(tmp_path):
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def write_file(vault):
    """write_file("notes/a.md", "text") -> absolute Path inside the vault"""
    def _write(relative, content):
        path = vault / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path
    return _write


class StubProvider(BaseProvider):
    """Backend that records calls and returns a scripted reply"""

    reply = "OK"
    error = None
    calls = []

    def _create_client(self, api_key):
        return None

    def _complete(self, prompt, system, model, max_tokens, temperature):
        StubProvider.calls.append({
            "provider": self.name,
            "prompt": prompt,
            "system": system,
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if StubProvider.error is not None:
            raise StubProvider.error
        return CompletionResult(content=StubProvider.reply, usage=Usage(input_tokens=3, output_tokens=1))


@pytest.fixture
def stub_provider():
    StubProvider.reply = "OK"
    StubProvider.error = None
    StubProvider.calls = []
    yield StubProvider
    StubProvider.error = None


@pytest.fixture
def stub_registry(stub_provider):
    registry = ProviderRegistry()
    registry.register_provider("claude", "anthropic", stub_provider)
    registry.register_provider("backup", "openai", stub_provider)
    return registry


@pytest.fixture
def secrets():
    return {"claude": "sk-test", "backup": "sk-backup"}


@pytest.fixture
def config():
    cfg = SparkConfig()
    cfg.ai.providers["backup"] = ProviderSettings(type="openai", model="gpt-4o")
    return cfg
