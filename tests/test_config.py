import importlib
from pathlib import Path

import pytest


def reload_config_module():
    import sys
    sys.modules.pop("config", None)
    return importlib.import_module("config")


def test_config_defaults(monkeypatch):
    # Ensure no env leaks
    for name in (
        "API_URL",
        "USER_KEY",
        "ACCOUNT",
        "KEYS_PATH",
        "MODEL_WEIGHTS",
        "ALLOWED_DOMAIN_SUFFIXES",
        "ALLOWED_HOSTS",
        "DEBOUNCE_SECONDS",
        "SEARCH_K",
        "LOWER_SCORE_IS_BETTER",
    ):
        monkeypatch.delenv(name, raising=False)

    cfg_mod = reload_config_module()
    cfg = cfg_mod.Config(_env_file=None)

    assert cfg.API_URL == "https://gif-search.woodie.dev"
    assert cfg.USER_KEY is None
    assert cfg.MODEL_WEIGHTS == {"0": 0.5, "1": 0.5}
    assert cfg.DEBOUNCE_SECONDS == 0.3
    assert cfg.LOWER_SCORE_IS_BETTER is True
    assert cfg.SEARCH_K is None
    expected_keys = str((Path(__file__).parent.parent / "favsearch_keys.yaml").resolve())
    assert cfg.KEYS_PATH == expected_keys
    assert cfg.validation_rules.allows("media.tenor.co")
    assert cfg.validation_rules.allows("cdn.discordapp.net")
    assert cfg.enabled_models == ["0", "1"]


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("API_URL", "http://localhost:9000/")
    monkeypatch.setenv("USER_KEY", "k" * 32)
    monkeypatch.setenv("MODEL_WEIGHTS", "0=1,1=0")
    monkeypatch.setenv("ALLOWED_HOSTS", "example.org,media.tenor.co")
    monkeypatch.setenv("ALLOWED_DOMAIN_SUFFIXES", '[".cdn.example"]')
    monkeypatch.setenv("SEARCH_K", "25")
    monkeypatch.setenv("KEYS_PATH", "/tmp/favsearch/keys.yaml")

    cfg_mod = reload_config_module()
    cfg = cfg_mod.Config(_env_file=None)

    assert cfg.API_URL == "http://localhost:9000"
    assert cfg.USER_KEY == "k" * 32
    assert cfg.MODEL_WEIGHTS == {"0": 1.0, "1": 0.0}
    assert cfg.enabled_models == ["0"]
    assert cfg.ALLOWED_HOSTS == ["example.org", "media.tenor.co"]
    assert cfg.ALLOWED_DOMAIN_SUFFIXES == [".cdn.example"]
    assert cfg.SEARCH_K == 25
    assert cfg.KEYS_PATH == str(Path("/tmp/favsearch/keys.yaml").resolve())


def test_model_weights_json(monkeypatch):
    monkeypatch.setenv("MODEL_WEIGHTS", '{"0": 0.25, "X_CLIP": 1}')
    cfg_mod = reload_config_module()
    cfg = cfg_mod.Config(_env_file=None)
    assert cfg.MODEL_WEIGHTS == {"0": 0.25, "X_CLIP": 1.0}


def test_weight_out_of_range_rejected(monkeypatch):
    monkeypatch.setenv("MODEL_WEIGHTS", "0=1.5")
    with pytest.raises(Exception):  # noqa: B017
        reload_config_module()


def test_invalid_api_url_rejected(monkeypatch):
    monkeypatch.setenv("API_URL", "ftp://example.org")
    with pytest.raises(Exception):  # noqa: B017
        reload_config_module()


def test_blank_user_key_is_unset(monkeypatch):
    monkeypatch.setenv("USER_KEY", "   ")
    cfg_mod = reload_config_module()
    cfg = cfg_mod.Config(_env_file=None)
    assert cfg.USER_KEY is None
