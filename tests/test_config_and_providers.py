"""Tests for configuration loading and the provider model client."""

import pytest
from pydantic import ValidationError

from flowbuilder.config import AppConfig, LogLevel, get_config, get_testing_config, reset_config, validate_config
from flowbuilder.core.exceptions import ConfigurationError, ModelProviderError
from flowbuilder.factory import create_app
from flowbuilder.integrations.llm import LLM_PROVIDERS, ProviderModelClient


@pytest.fixture(autouse=True)
def clean_config():
    reset_config()
    yield
    reset_config()


class TestAppConfig:
    """Test cases for AppConfig."""

    def test_defaults(self):
        config = AppConfig()

        assert config.default_llm_provider == "openai"
        assert config.default_llm_model == "gpt-4"
        assert config.default_temperature == 0.7
        assert config.knowledge_base_max_documents == 3
        assert config.knowledge_base_snippet_length == 1000
        assert config.is_sqlite

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("FLOWBUILDER_PORT", "9000")
        monkeypatch.setenv("FLOWBUILDER_DEBUG", "yes")
        monkeypatch.setenv("FLOWBUILDER_DEFAULT_LLM_MODEL", "gpt-3.5-turbo")
        monkeypatch.setenv("FLOWBUILDER_CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)

        config = get_config()

        assert config.port == 9000
        assert config.debug is True
        assert config.default_llm_model == "gpt-3.5-turbo"
        assert config.cors_origins == ["http://localhost:3000", "http://localhost:5173"]
        assert config.get_provider_api_keys()["openai"] == "sk-test"
        assert config.get_provider_api_keys()["gemini"] is None
        assert get_config() is config

    def test_rejects_unknown_database_scheme(self):
        with pytest.raises(ValidationError):
            AppConfig(database_url="oracle://db")

    def test_rejects_out_of_range_temperature(self):
        with pytest.raises(ValidationError):
            AppConfig(default_temperature=3.5)

    def test_invalid_environment_value(self):
        with pytest.raises(ConfigurationError) as exc_info:
            AppConfig.from_env({"FLOWBUILDER_PORT": "not-a-port"})

        assert exc_info.value.context["config_key"] == "port"

    def test_lowercase_log_level(self):
        assert AppConfig.from_env({"FLOWBUILDER_LOG_LEVEL": "debug"}).log_level == LogLevel.DEBUG

    def test_validate_config_rejects_unknown_provider(self):
        config = get_testing_config().model_copy(update={"default_llm_provider": "mystery"})

        with pytest.raises(ConfigurationError) as exc_info:
            validate_config(config)

        assert "default_llm_provider" in exc_info.value.message

    def test_create_app_rejects_invalid_config(self):
        config = get_testing_config().model_copy(update={"default_llm_provider": "mystery"})

        with pytest.raises(ConfigurationError):
            create_app(config)

    def test_create_app_reads_dotenv(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text("FLOWBUILDER_APP_NAME=FromDotenv\nOPENAI_API_KEY=sk-dotenv\n")
        monkeypatch.chdir(tmp_path)
        # Registered first so the values dotenv writes are removed afterwards
        for name in ("FLOWBUILDER_APP_NAME", "OPENAI_API_KEY"):
            monkeypatch.setenv(name, "unset")
            monkeypatch.delenv(name)

        app = create_app()

        assert app.title == "FromDotenv"
        assert app.state.config.openai_api_key == "sk-dotenv"
        assert get_config() is app.state.config

    def test_testing_config_is_in_memory(self):
        config = get_testing_config()

        assert config.database_url == "sqlite:///:memory:"
        validate_config(config)


class TestProviderModelClient:
    """Test cases for ProviderModelClient."""

    def test_known_provider(self):
        client = ProviderModelClient(api_keys={"openai": "sk-test"})

        answer = client.call_model("openai", "gpt-4", "You are a helpful assistant.", "What is the capital?", 0.7)

        assert answer == "OpenAI gpt-4 response to: What is the capital?..."

    def test_long_prompts_are_previewed(self):
        client = ProviderModelClient(api_keys={"claude": "key"})

        answer = client.call_model("claude", "claude-3-haiku", "", "x" * 80, 0.5)

        assert answer.endswith("x" * 50 + "...")

    def test_missing_key(self):
        client = ProviderModelClient(api_keys={"openai": None})

        with pytest.raises(ModelProviderError) as exc_info:
            client.call_model("openai", "gpt-4", "", "hi", 0.7)

        assert exc_info.value.message == "OpenAI API key not configured"

    def test_unknown_provider(self):
        with pytest.raises(ModelProviderError):
            ProviderModelClient(api_keys={"openai": "sk"}).get_provider("mistral")

    def test_from_config(self):
        client = ProviderModelClient.from_config(get_testing_config())

        assert client.call_model("openai", "gpt-4", "", "hi", 0.7).startswith("OpenAI gpt-4")
        assert set(LLM_PROVIDERS) == {"openai", "gemini", "claude"}
