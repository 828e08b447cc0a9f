"""
PaperLens Configuration Module
Centralized configuration for the interpretation pipeline.

Module-level constants hold application paths and defaults. The per-run
pipeline settings (endpoint, model, credential, context length, prompt
template...) live in a PipelineConfig value that is loaded once from
settings.yaml and injected into the pipeline at construction.
"""

import math
import os
from dataclasses import dataclass, fields
from pathlib import Path

import yaml

from paperlens.errors import ConfigurationError

# Debug Mode Configuration
DEBUG_MODE = os.environ.get('DEBUG', 'false').lower() == 'true'

# Application Paths
APP_NAME = "PaperLens"
APPDATA_DIR = Path(os.environ.get('APPDATA', os.path.expanduser('~/.config'))) / APP_NAME
CACHE_DIR = APPDATA_DIR / "cache"
LOGS_DIR = APPDATA_DIR / "logs"
CONFIG_DIR = APPDATA_DIR / "config"

# Saved interpretations, one JSON file per document identity
INTERPRETATIONS_DIR = CACHE_DIR / "interpretations"

# Ensure directories exist
for directory in [APPDATA_DIR, CACHE_DIR, LOGS_DIR, CONFIG_DIR, INTERPRETATIONS_DIR]:
    directory.mkdir(parents=True, exist_ok=True)

SETTINGS_FILE = CONFIG_DIR / "settings.yaml"

# Credential can be kept out of settings.yaml
API_KEY_ENV_VAR = "PAPERLENS_API_KEY"

# LLM Service Defaults (OpenAI-compatible chat completions)
DEFAULT_LLM_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_LLM_MODEL = "gpt-3.5-turbo"
DEFAULT_CONTEXT_LENGTH = 8192  # Tokens advertised by the provider
LLM_TIMEOUT_SECONDS = 600  # Long documents stream for several minutes
LLM_MAX_OUTPUT_TOKENS = 2000
LLM_TEMPERATURE = 0.7
CONNECTION_TEST_MAX_TOKENS = 50
CONNECTION_TEST_PROMPT = 'Reply with "connection OK" to confirm the connection.'

# Context Budget
# 30% of the context window is kept back for the prompt wrapper and the response
RESERVE_FRACTION = 0.7

# Two-stage (map-reduce) interpretation
SUMMARY_DELAY_SECONDS = 1.0  # Fixed pause between chunk summary calls (rate limits)
SUMMARY_BUDGET_FACTOR = 0.8  # Share of the per-chunk budget given to each summary
CHARS_PER_SUMMARY_TOKEN = 3  # Mixed-script characters per token

# Documents shorter than this carry too little text to interpret
MIN_DOCUMENT_CHARS = 100

DEFAULT_INTERPRETATION_PROMPT = """Please give a professional interpretation of the following academic paper, covering:
1. Overview of the main content
2. Analysis of the research methodology
3. Key findings and conclusions
4. Academic value and significance
5. Possible limitations and directions for improvement

Paper content:
{text}

Please answer in a clear, easy-to-read format."""

# Logging Configuration
LOG_FILE = LOGS_DIR / "processing.log"
LOG_FORMAT = "[%(levelname)s %(asctime)s] %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


@dataclass(frozen=True)
class PipelineConfig:
    """
    Settings injected once when an interpretation pipeline is built.

    Attributes:
        llm_url: Chat-completions endpoint (base URL or full /chat/completions URL)
        llm_model: Model identifier sent with every request
        llm_api_key: Bearer credential for the provider
        context_length: Provider-advertised maximum context in tokens
        reserve_fraction: Share of the context usable for document text
        interpretation_prompt: Template with a {text} placeholder
        max_output_tokens: Response cap for every completion call
        temperature: Sampling temperature for every completion call
        summary_delay_seconds: Pause between successive chunk summaries
        timeout_seconds: HTTP timeout for provider calls
        min_document_chars: Shortest extracted text accepted for interpretation
    """

    llm_url: str = DEFAULT_LLM_URL
    llm_model: str = DEFAULT_LLM_MODEL
    llm_api_key: str = ""
    context_length: int = DEFAULT_CONTEXT_LENGTH
    reserve_fraction: float = RESERVE_FRACTION
    interpretation_prompt: str = DEFAULT_INTERPRETATION_PROMPT
    max_output_tokens: int = LLM_MAX_OUTPUT_TOKENS
    temperature: float = LLM_TEMPERATURE
    summary_delay_seconds: float = SUMMARY_DELAY_SECONDS
    timeout_seconds: float = LLM_TIMEOUT_SECONDS
    min_document_chars: int = MIN_DOCUMENT_CHARS

    @property
    def available_budget(self) -> int:
        """Tokens of document text that fit one request: floor(context * reserve)."""
        return math.floor(self.context_length * self.reserve_fraction)

    def validate(self) -> None:
        """
        Check the settings before any network call is made.

        Raises:
            ConfigurationError: If the endpoint, model or credential is missing,
                or the context budget would be empty
        """
        missing = [
            name for name, value in (
                ("endpoint URL", self.llm_url),
                ("model", self.llm_model),
                ("API key", self.llm_api_key),
            )
            if not value or not str(value).strip()
        ]
        if missing:
            raise ConfigurationError(
                f"missing {', '.join(missing)}; configure the language model in {SETTINGS_FILE}"
            )

        if self.context_length <= 0:
            raise ConfigurationError(f"context length must be positive, got {self.context_length}")

        if not 0 < self.reserve_fraction <= 1:
            raise ConfigurationError(
                f"reserve fraction must be in (0, 1], got {self.reserve_fraction}"
            )

        if self.available_budget < 1:
            raise ConfigurationError(
                f"context length {self.context_length} with reserve fraction "
                f"{self.reserve_fraction} leaves no room for document text"
            )

    @classmethod
    def from_dict(cls, data: dict) -> "PipelineConfig":
        """
        Build a config from a settings mapping, ignoring unknown keys.

        Values are converted to the type of the field's default, so a quoted
        number in YAML ('8192') is accepted.

        Raises:
            ConfigurationError: If a value cannot be converted
        """
        values = {}
        for f in fields(cls):
            value = data.get(f.name)
            if value is None:
                continue
            expected = type(f.default)
            try:
                values[f.name] = expected(value)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"setting '{f.name}' must be {expected.__name__}, got {value!r}"
                ) from e
        return cls(**values)


def load_pipeline_config(settings_file: Path | None = None) -> PipelineConfig:
    """
    Load pipeline settings from YAML, with defaults for anything not set.

    The settings file has a top-level 'llm' section, for example:

        llm:
          llm_url: http://localhost:11434/v1
          llm_model: qwen2.5:7b
          context_length: 32768

    The API key is taken from PAPERLENS_API_KEY when the file does not set one.

    Args:
        settings_file: Path to settings.yaml (defaults to CONFIG_DIR/settings.yaml)

    Returns:
        PipelineConfig (not yet validated)
    """
    settings_file = Path(settings_file) if settings_file else SETTINGS_FILE
    data = {}

    try:
        with open(settings_file, encoding='utf-8') as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            loaded = {}
        data = loaded['llm'] if 'llm' in loaded else loaded
        if not isinstance(data, dict):
            # 'llm:' with nothing under it
            data = {}
        if DEBUG_MODE:
            from paperlens.logging_config import debug_log
            debug_log(f"[Config] Loaded pipeline settings from {settings_file}")
    except FileNotFoundError:
        if DEBUG_MODE:
            from paperlens.logging_config import debug_log
            debug_log(f"[Config] Settings file not found at {settings_file}. Using defaults.")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"could not parse {settings_file}: {e}") from e

    if not data.get('llm_api_key'):
        data = {**data, 'llm_api_key': os.environ.get(API_KEY_ENV_VAR, '')}

    return PipelineConfig.from_dict(data)
