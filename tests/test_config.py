from __future__ import annotations

import pytest

from random_win.config import Settings
from random_win.models import ContractPolicy
from random_win.project_constants import (
    DEFAULT_PROCESSING_FEE,
    DEFAULT_STATE_FILE,
    TONCENTER_JSONRPC_URL,
)

ENV_VARS = (
    "RANDOM_WIN_STATE_FILE",
    "RANDOM_WIN_CREATE_POLICY",
    "RANDOM_WIN_PROCESSING_FEE",
    "RPC_URL",
    "TONCENTER_API_KEY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    s = Settings.from_env()
    assert s.state_file == DEFAULT_STATE_FILE
    assert s.create_policy == "anyone"
    assert s.processing_fee == DEFAULT_PROCESSING_FEE
    assert s.rpc_url is None
    assert s.policy == ContractPolicy()


def test_env_values(monkeypatch):
    monkeypatch.setenv("RANDOM_WIN_STATE_FILE", "/tmp/rw.json")
    monkeypatch.setenv("RANDOM_WIN_CREATE_POLICY", "OWNER")
    monkeypatch.setenv("RANDOM_WIN_PROCESSING_FEE", "0.02")
    monkeypatch.setenv("RPC_URL", "https://rpc.example/jsonRPC")

    s = Settings.from_env()
    assert s.state_file == "/tmp/rw.json"
    assert s.create_policy == "owner"
    assert s.processing_fee == 20_000_000
    assert s.rpc_url == "https://rpc.example/jsonRPC"
    assert s.policy == ContractPolicy(create_policy="owner", processing_fee=20_000_000)


def test_toncenter_key_builds_url(monkeypatch):
    monkeypatch.setenv("TONCENTER_API_KEY", "secret")
    assert Settings.from_env().rpc_url == f"{TONCENTER_JSONRPC_URL}?api_key=secret"


def test_overrides_win(monkeypatch):
    monkeypatch.setenv("RPC_URL", "https://env.example")
    monkeypatch.setenv("RANDOM_WIN_STATE_FILE", "env.json")
    s = Settings.from_env(
        rpc_url_override="https://cli.example",
        state_file_override="cli.json",
        create_policy_override="owner",
    )
    assert s.rpc_url == "https://cli.example"
    assert s.state_file == "cli.json"
    assert s.create_policy == "owner"


def test_invalid_policy(monkeypatch):
    monkeypatch.setenv("RANDOM_WIN_CREATE_POLICY", "admins")
    with pytest.raises(RuntimeError):
        Settings.from_env()


def test_invalid_processing_fee(monkeypatch):
    monkeypatch.setenv("RANDOM_WIN_PROCESSING_FEE", "lots")
    with pytest.raises(RuntimeError):
        Settings.from_env()

