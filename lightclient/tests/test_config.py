"""
Tests for LightClientConfig.
"""

import json
import os

import pytest

from lightclient.config import LightClientConfig
from lightclient.core.errors import ConfigError

ENV_VARS = [
    "LIGHTCLIENT_STATE_DIR",
    "LIGHTCLIENT_GENESIS",
    "LIGHTCLIENT_SOURCE",
    "LIGHTCLIENT_S3_ENDPOINT",
    "LIGHTCLIENT_S3_REGION",
    "LIGHTCLIENT_SYNC_WORKERS",
    "LIGHTCLIENT_SYNC_MAX_RETRIES",
    "LIGHTCLIENT_SYNC_BACKOFF_BASE",
    "LIGHTCLIENT_QUORUM_INCLUSIVE",
    "LIGHTCLIENT_KEEP_CHECKPOINTS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = LightClientConfig.from_env()
    assert config.state_dir == "~/.lightclient"
    assert config.max_workers == 8
    assert config.max_retries == 5
    assert config.backoff_base_seconds == 0.1
    assert config.quorum_inclusive is False
    assert config.keep_checkpoints == 0
    assert config.source_url is None
    assert config.resolved_genesis_path == os.path.join(config.state_path, "genesis.json")
    assert config.state_path == os.path.expanduser("~/.lightclient")


def test_from_env(monkeypatch):
    monkeypatch.setenv("LIGHTCLIENT_STATE_DIR", "/var/lib/lc")
    monkeypatch.setenv("LIGHTCLIENT_SOURCE", "s3://bucket/prefix")
    monkeypatch.setenv("LIGHTCLIENT_SYNC_WORKERS", "3")
    monkeypatch.setenv("LIGHTCLIENT_SYNC_BACKOFF_BASE", "0.5")
    monkeypatch.setenv("LIGHTCLIENT_QUORUM_INCLUSIVE", "true")
    monkeypatch.setenv("LIGHTCLIENT_KEEP_CHECKPOINTS", "100")

    config = LightClientConfig.from_env()
    assert config.state_dir == "/var/lib/lc"
    assert config.source_url == "s3://bucket/prefix"
    assert config.max_workers == 3
    assert config.backoff_base_seconds == 0.5
    assert config.quorum_policy().inclusive is True
    assert config.keep_checkpoints == 100
    assert config.checkpoints_dir == "/var/lib/lc/checkpoints"


@pytest.mark.parametrize("value,expected", [("1", True), ("yes", True), ("TRUE", True), ("0", False), ("no", False)])
def test_quorum_inclusive_env_spellings(monkeypatch, value, expected):
    monkeypatch.setenv("LIGHTCLIENT_QUORUM_INCLUSIVE", value)
    assert LightClientConfig.from_env().quorum_policy().inclusive is expected


@pytest.mark.parametrize(
    "name,value",
    [
        ("LIGHTCLIENT_SYNC_WORKERS", "0"),
        ("LIGHTCLIENT_SYNC_WORKERS", "many"),
        ("LIGHTCLIENT_SYNC_MAX_RETRIES", "-1"),
        ("LIGHTCLIENT_SYNC_BACKOFF_BASE", "fast"),
        ("LIGHTCLIENT_QUORUM_INCLUSIVE", "maybe"),
    ],
)
def test_invalid_env_values(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError):
        LightClientConfig.from_env()


def test_from_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"state_dir": "/data", "max_workers": 2, "quorum_inclusive": True}))
    config = LightClientConfig.from_file(str(path))
    assert config.state_dir == "/data"
    assert config.max_workers == 2
    assert config.quorum_inclusive is True
    assert config.max_retries == 5


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        "[]",
        json.dumps({"unknown_key": 1}),
        json.dumps({"max_workers": "8"}),
        json.dumps({"quorum_inclusive": 1}),
        json.dumps({"s3_region": None}),
    ],
)
def test_invalid_files(tmp_path, content):
    path = tmp_path / "config.json"
    path.write_text(content)
    with pytest.raises(ConfigError):
        LightClientConfig.from_file(str(path))


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        LightClientConfig.from_file(str(tmp_path / "absent.json"))


def test_overrides_skip_none():
    config = LightClientConfig().with_overrides(state_dir="/x", source_url=None)
    assert config.state_dir == "/x"
    assert config.source_url is None
    with pytest.raises(ConfigError):
        LightClientConfig().with_overrides(max_workers=0)
