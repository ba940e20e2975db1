"""Tests for settings loading, overrides and the config hash."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from annexfacts.config import (
    DEFAULT_NEGATIVE_INDICATORS,
    AnnexConfig,
    APIStyle,
    LLMProvider,
    get_config,
)
from annexfacts.schemas.signals import SIGNAL_KEYS


class TestDefaults:

    def test_defaults(self, config):
        assert config.require_llm is False
        assert config.enable_extraction is True
        assert config.llm.provider == LLMProvider.OPENAI
        assert config.llm.api_style == APIStyle.CHAT
        assert config.llm.temperature == 0.0
        assert config.extraction.max_files == 20
        assert config.extraction.max_chars_per_file == 4500
        assert config.extraction.concurrency == 3
        assert config.scanner.excerpt_max_chars == 1200
        assert config.gate.overlap_threshold == 0.2

    def test_every_signal_has_keywords(self, config):
        for key in SIGNAL_KEYS:
            assert config.scanner.signal_keywords[key]
            assert config.gate.field_keywords[key]

    def test_negative_indicators(self, config):
        assert "may" in config.gate.negative_indicators
        assert config.gate.negative_indicators == DEFAULT_NEGATIVE_INDICATORS

    def test_frozen(self, config):
        with pytest.raises(ValidationError):
            config.require_llm = True

    def test_invalid_threshold_rejected(self):
        with pytest.raises(ValidationError):
            AnnexConfig(_env_file=None, gate={"overlap_threshold": 1.5})


class TestLoading:

    def test_environment_nested_fields(self, monkeypatch):
        monkeypatch.setenv("ANNEX_LLM__MODEL", "gpt-env")
        monkeypatch.setenv("ANNEX_REQUIRE_LLM", "true")
        config = AnnexConfig(_env_file=None)
        assert config.llm.model == "gpt-env"
        assert config.require_llm is True

    def test_yaml_overrides(self, tmp_path):
        path = tmp_path / "strict.yaml"
        path.write_text(
            "require_llm: true\n"
            "extraction:\n"
            "  concurrency: 1\n"
            "llm:\n"
            "  api_style: responses\n"
        )
        config = get_config(str(path))
        assert config.require_llm is True
        assert config.extraction.concurrency == 1
        assert config.llm.api_style == APIStyle.RESPONSES

    def test_keyword_overrides_beat_yaml(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("enable_extraction: true\n")
        assert get_config(str(path), enable_extraction=False).enable_extraction is False

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert get_config(str(path)).require_llm is False


class TestConfigHash:

    def test_deterministic(self):
        a = AnnexConfig(_env_file=None)
        b = AnnexConfig(_env_file=None)
        assert a.config_hash() == b.config_hash()
        assert len(a.config_hash()) == 16

    def test_credential_excluded(self):
        a = AnnexConfig(_env_file=None, llm={"api_key": "sk-one"})
        b = AnnexConfig(_env_file=None, llm={"api_key": "sk-two"})
        assert a.config_hash() == b.config_hash()

    def test_settings_change_hash(self):
        a = AnnexConfig(_env_file=None)
        b = AnnexConfig(_env_file=None, llm={"model": "gpt-other"})
        assert a.config_hash() != b.config_hash()
