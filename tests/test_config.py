"""Tests for configuration models."""

import pytest
from pagedistill.models.config import (
    READABILITY_CDN_URL,
    BrowserConfig,
    DistillConfig,
    ExtractorChoice,
    ServerConfig,
)
from pydantic import ValidationError


class TestDefaults:
    def test_defaults(self):
        config = DistillConfig()

        assert config.browser.provider == "remote"
        assert config.browser.navigation_timeout == 30.0
        assert config.extraction.readability_script == READABILITY_CDN_URL
        assert config.extraction.domdistiller_script is None
        assert config.server.api_key is None
        assert config.log_level == "INFO"

    def test_extractor_from_flag(self):
        assert ExtractorChoice.from_flag(True) is ExtractorChoice.READABILITY
        assert ExtractorChoice.from_flag(False) is ExtractorChoice.DOM_DISTILLER


class TestValidation:
    def test_unknown_keys_rejected(self):
        with pytest.raises(ValidationError):
            DistillConfig(browser={"endpont": "https://typo.example.com"})

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValidationError):
            BrowserConfig(provider="firefox")

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            BrowserConfig(navigation_timeout=0)


class TestEnvExpansion:
    def test_api_token_expanded(self, monkeypatch):
        monkeypatch.setenv("BROWSER_API_TOKEN", "tok-123")
        assert BrowserConfig(api_token="$BROWSER_API_TOKEN").api_token == "tok-123"

    def test_braced_syntax(self, monkeypatch):
        monkeypatch.setenv("SERVICE_KEY", "k")
        assert ServerConfig(api_key="${SERVICE_KEY}").api_key == "k"

    def test_unset_variable_left_alone(self, monkeypatch):
        monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)
        assert BrowserConfig(api_token="$NOT_SET_ANYWHERE").api_token == "$NOT_SET_ANYWHERE"


class TestYaml:
    def test_from_yaml(self):
        config = DistillConfig.from_yaml(
            """
browser:
  provider: local
  max_browsers: 4
extraction:
  domdistiller_script: ./vendor/domdistiller.js
server:
  port: 9000
log_level: DEBUG
"""
        )

        assert config.browser.provider == "local"
        assert config.browser.max_browsers == 4
        assert config.extraction.domdistiller_script == "./vendor/domdistiller.js"
        assert config.server.port == 9000
        assert config.log_level == "DEBUG"

    def test_empty_yaml(self):
        assert DistillConfig.from_yaml("") == DistillConfig()

    def test_yaml_file_round_trip(self, tmp_path):
        original = DistillConfig(browser={"endpoint": "https://browser.example.com"})
        path = tmp_path / "distill.yaml"
        path.write_text(original.to_yaml())

        assert DistillConfig.from_yaml_file(path) == original
