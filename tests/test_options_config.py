"""
tests/test_options_config.py — Tunables & Config Loader Tests
==============================================================
"""

from __future__ import annotations

import logging
from unittest.mock import patch

import pytest

from hubbub.config import DEFAULT_REDIS_URL, LOG_FORMAT, configure_logging, load_config
from hubbub.engine.options import DEFAULT_OPTIONS, Options


class TestOptions:
    def test_catalogue_defaults(self):
        opts = Options()
        assert opts.get_int("news_edit_time") == 900
        assert opts.get_float("rank_aging_factor") == 2.2
        assert opts.get_str("password_hash_algorithm") == "sha1"

    def test_override(self):
        assert Options({"news_edit_time": "60"}).get_int("news_edit_time") == 60

    def test_unparsable_value_falls_back_to_catalogue(self):
        assert Options({"news_edit_time": "soon"}).get_int("news_edit_time") == 900

    def test_unknown_key_uses_caller_default(self):
        assert Options().get_int("no_such_option", 7) == 7

    @pytest.mark.parametrize("raw,expected", [("yes", True), ("0", False), (1, True)])
    def test_get_bool(self, raw, expected):
        assert Options({"flag": raw}).get_bool("flag") is expected

    def test_as_dict_covers_catalogue(self):
        merged = Options({"extra": 1}).as_dict()
        assert set(DEFAULT_OPTIONS) <= set(merged)
        assert merged["extra"] == 1


class TestConfigureLogging:
    def test_installs_format(self):
        with patch("hubbub.config.logging.basicConfig") as basic_config:
            configure_logging("debug")
        kwargs = basic_config.call_args.kwargs
        assert kwargs["level"] == logging.DEBUG
        assert kwargs["format"] == LOG_FORMAT

    def test_unknown_level_defaults_to_info(self):
        with patch("hubbub.config.logging.basicConfig") as basic_config:
            configure_logging("chatty")
        assert basic_config.call_args.kwargs["level"] == logging.INFO


class TestLoadConfig:
    @pytest.fixture(autouse=True)
    def _no_env(self, monkeypatch):
        monkeypatch.delenv("REDIS_URL", raising=False)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="config.yaml.example"):
            load_config(tmp_path / "config.yaml")

    def test_reads_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "redis_url: redis://cache:6379/2\n"
            "log_level: debug\n"
            "options:\n"
            "  rank_aging_factor: 1.8\n",
            encoding="utf-8",
        )
        cfg = load_config(path)
        assert cfg.redis_url == "redis://cache:6379/2"
        assert cfg.log_level == "DEBUG"
        assert Options(cfg.options).get_float("rank_aging_factor") == 1.8

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        cfg = load_config(path)
        assert cfg.redis_url == DEFAULT_REDIS_URL
        assert cfg.options == {}

    def test_env_overrides_redis_url(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("redis_url: redis://yaml:6379/0\n", encoding="utf-8")
        monkeypatch.setenv("REDIS_URL", "redis://env:6379/1")
        assert load_config(path).redis_url == "redis://env:6379/1"

    def test_options_must_be_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("options:\n  - a\n  - b\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(path)
