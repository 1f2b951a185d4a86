from __future__ import annotations

import os

import pytest

from storyscenes.ssm import ParameterStore, hydrate_api_keys, hydrate_env


class FakeSSM:
    def __init__(self, values: dict[str, str]) -> None:
        self.values = values
        self.requests: list[tuple[str, bool]] = []

    def get_parameter(self, Name: str, WithDecryption: bool):
        self.requests.append((Name, WithDecryption))
        if Name not in self.values:
            raise KeyError(Name)
        return {"Parameter": {"Value": self.values[Name]}}


def test_parameter_store_caches_values():
    client = FakeSSM({"/keys/openai": "sk-ssm"})
    store = ParameterStore(client=client)

    assert store.get("/keys/openai") == "sk-ssm"
    assert store.get("/keys/openai") == "sk-ssm"
    assert client.requests == [("/keys/openai", True)]


def test_parameter_store_rejects_empty_name():
    with pytest.raises(ValueError):
        ParameterStore(client=FakeSSM({})).get("")


def test_hydrate_env_fills_missing_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    store = ParameterStore(client=FakeSSM({"/keys/openai": "sk-ssm"}))

    assert hydrate_env("OPENAI_API_KEY", "/keys/openai", store)
    assert os.environ["OPENAI_API_KEY"] == "sk-ssm"


def test_hydrate_env_keeps_existing_value(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-local")
    client = FakeSSM({"/keys/openai": "sk-ssm"})

    assert not hydrate_env("OPENAI_API_KEY", "/keys/openai", ParameterStore(client=client))
    assert client.requests == []


def test_hydrate_api_keys_skips_unset_parameters(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    store = ParameterStore(client=FakeSSM({"/keys/openai": "sk-ssm"}))

    filled = hydrate_api_keys({"OPENAI_API_KEY": "/keys/openai", "ANTHROPIC_API_KEY": None}, store)

    assert filled == ["OPENAI_API_KEY"]


def test_hydrate_env_propagates_lookup_failures(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    with pytest.raises(KeyError):
        hydrate_env("ANTHROPIC_API_KEY", "/keys/missing", ParameterStore(client=FakeSSM({})))
