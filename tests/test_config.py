"""
Tests for pipeline settings loading and validation.
"""

import pytest

from paperlens.config import (
    API_KEY_ENV_VAR,
    DEFAULT_CONTEXT_LENGTH,
    DEFAULT_LLM_MODEL,
    DEFAULT_LLM_URL,
    PipelineConfig,
    load_pipeline_config,
)
from paperlens.errors import ConfigurationError


class TestDefaults:
    def test_default_budget(self):
        config = PipelineConfig()
        assert config.context_length == DEFAULT_CONTEXT_LENGTH == 8192
        assert config.available_budget == 5734

    def test_default_prompt_has_placeholder(self):
        assert "{text}" in PipelineConfig().interpretation_prompt

    def test_defaults_are_openai(self):
        assert DEFAULT_LLM_URL == "https://api.openai.com/v1/chat/completions"
        assert DEFAULT_LLM_MODEL == "gpt-3.5-turbo"


class TestValidate:
    def test_valid_config_passes(self):
        PipelineConfig(llm_api_key="k").validate()

    @pytest.mark.parametrize("field,value,fragment", [
        ("llm_api_key", "", "API key"),
        ("llm_model", "  ", "model"),
        ("llm_url", "", "endpoint URL"),
    ])
    def test_missing_values(self, field, value, fragment):
        config = PipelineConfig(**{"llm_api_key": "k", field: value})
        with pytest.raises(ConfigurationError, match=fragment):
            config.validate()

    @pytest.mark.parametrize("context_length", [0, -5])
    def test_non_positive_context(self, context_length):
        with pytest.raises(ConfigurationError, match="positive"):
            PipelineConfig(llm_api_key="k", context_length=context_length).validate()

    @pytest.mark.parametrize("reserve", [0, 1.5, -0.2])
    def test_reserve_fraction_range(self, reserve):
        with pytest.raises(ConfigurationError, match="reserve fraction"):
            PipelineConfig(llm_api_key="k", reserve_fraction=reserve).validate()

    def test_empty_budget(self):
        with pytest.raises(ConfigurationError, match="no room"):
            PipelineConfig(llm_api_key="k", context_length=1).validate()

    def test_error_message_has_label(self):
        with pytest.raises(ConfigurationError) as exc_info:
            PipelineConfig().validate()
        assert str(exc_info.value).startswith("Configuration error: ")


class TestLoad:
    def test_missing_file_uses_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv(API_KEY_ENV_VAR, raising=False)
        config = load_pipeline_config(tmp_path / "absent.yaml")
        assert config == PipelineConfig()

    def test_llm_section_is_read(self, tmp_path):
        settings = tmp_path / "settings.yaml"
        settings.write_text(
            "llm:\n"
            "  llm_url: http://localhost:11434/v1\n"
            "  llm_model: qwen2.5:7b\n"
            "  llm_api_key: ollama\n"
            "  context_length: 32768\n"
            "  unknown_setting: ignored\n",
            encoding="utf-8",
        )

        config = load_pipeline_config(settings)

        assert config.llm_url == "http://localhost:11434/v1"
        assert config.llm_model == "qwen2.5:7b"
        assert config.llm_api_key == "ollama"
        assert config.context_length == 32768
        assert config.available_budget == 22937

    def test_flat_file_is_read(self, tmp_path):
        settings = tmp_path / "settings.yaml"
        settings.write_text("llm_model: local-model\ncontext_length: 4096\n", encoding="utf-8")

        config = load_pipeline_config(settings)

        assert config.llm_model == "local-model"
        assert config.context_length == 4096

    def test_api_key_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv(API_KEY_ENV_VAR, "sk-from-env")
        settings = tmp_path / "settings.yaml"
        settings.write_text("llm:\n  llm_model: m\n", encoding="utf-8")

        assert load_pipeline_config(settings).llm_api_key == "sk-from-env"

    def test_file_key_wins_over_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv(API_KEY_ENV_VAR, "sk-from-env")
        settings = tmp_path / "settings.yaml"
        settings.write_text("llm:\n  llm_api_key: sk-from-file\n", encoding="utf-8")

        assert load_pipeline_config(settings).llm_api_key == "sk-from-file"

    def test_invalid_yaml_is_configuration_error(self, tmp_path):
        settings = tmp_path / "settings.yaml"
        settings.write_text("llm: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="could not parse"):
            load_pipeline_config(settings)

    def test_empty_llm_section_uses_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv(API_KEY_ENV_VAR, raising=False)
        settings = tmp_path / "settings.yaml"
        settings.write_text("llm:\n", encoding="utf-8")

        assert load_pipeline_config(settings) == PipelineConfig()

    def test_quoted_number_is_converted(self, tmp_path):
        settings = tmp_path / "settings.yaml"
        settings.write_text("llm:\n  context_length: '8192'\n  temperature: '0.2'\n", encoding="utf-8")

        config = load_pipeline_config(settings)

        assert config.context_length == 8192
        assert config.temperature == 0.2
        assert config.available_budget == 5734

    def test_non_numeric_value_is_configuration_error(self, tmp_path):
        settings = tmp_path / "settings.yaml"
        settings.write_text("llm:\n  context_length: large\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="context_length"):
            load_pipeline_config(settings)


class TestFromDict:
    def test_unknown_keys_ignored(self):
        assert PipelineConfig.from_dict({"colour": "blue"}) == PipelineConfig()

    def test_list_for_number_is_configuration_error(self):
        with pytest.raises(ConfigurationError, match="max_output_tokens"):
            PipelineConfig.from_dict({"max_output_tokens": [1, 2]})
