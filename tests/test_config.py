"""
Tests for configuration loading.
"""
import pytest

from chatrouter.config import AppConfig, load_app_config
from chatrouter.core.catalog import DEFAULT_GOOGLE_MODELS, DEFAULT_SAMBA_MODELS

CONFIG_YAML = """
providers:
  google:
    api_keys_env: TEST_GOOGLE_KEYS
  openrouter:
    api_key_env: TEST_OPENROUTER_KEY
    models:
      - vendor/model-a:free
  sambanova:
    api_key_env: TEST_SAMBA_KEY
prompts:
  system: Answer in English.
  include_date: true
memories:
  - Works as a nurse
app:
  title: Test App
  url: https://test.example
"""


class TestFromDict:
    def test_defaults(self):
        config = AppConfig.from_dict({}, environ={})

        assert config.google_keys == []
        assert config.openrouter_key == ""
        assert config.google_models == DEFAULT_GOOGLE_MODELS
        assert config.samba_models == DEFAULT_SAMBA_MODELS
        assert not config.include_date

    def test_google_keys_are_comma_separated(self):
        config = AppConfig.from_dict(
            {}, environ={"GOOGLE_API_KEYS": " key-a, key-b ,,key-c "}
        )
        assert config.google_keys == ["key-a", "key-b", "key-c"]


class TestLoadAppConfig:
    def test_loads_yaml_and_reads_keys_from_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text(CONFIG_YAML, encoding="utf-8")
        monkeypatch.setenv("TEST_GOOGLE_KEYS", "g1,g2")
        monkeypatch.setenv("TEST_OPENROUTER_KEY", "or-secret")
        monkeypatch.setenv("TEST_SAMBA_KEY", "samba-secret")

        config = load_app_config(str(path))

        assert config.google_keys == ["g1", "g2"]
        assert config.openrouter_key == "or-secret"
        assert config.samba_key == "samba-secret"
        assert config.openrouter_models == ["vendor/model-a:free"]
        assert config.system_prompt == "Answer in English."
        assert config.include_date
        assert config.memories == ["Works as a nurse"]
        assert config.app_title == "Test App"
        assert config.app_url == "https://test.example"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_app_config(str(tmp_path / "missing.yaml"))

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_app_config(str(path))
