"""Configuration management for the flow builder service.

Every ``AppConfig`` field can be set from a ``FLOWBUILDER_<FIELD>`` environment
variable (``FLOWBUILDER_PORT``, ``FLOWBUILDER_DEFAULT_LLM_MODEL``...). Provider
credentials keep their conventional unprefixed names.
"""

import os
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ValidationError, field_validator

from .core.exceptions import ConfigurationError

ENV_PREFIX = "FLOWBUILDER_"

# Field name -> environment variable read without the prefix
PROVIDER_KEY_ENV = {
    "openai_api_key": "OPENAI_API_KEY",
    "gemini_api_key": "GEMINI_API_KEY",
    "anthropic_api_key": "ANTHROPIC_API_KEY",
}


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class DatabaseType(str, Enum):
    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"


class AppConfig(BaseModel):
    """Settings for the API server, storage, logging and workflow components."""

    # Server
    app_name: str = Field(default="Flow Builder", description="Name reported by the API")
    app_version: str = Field(default="1.0.0", description="Version reported by the API")
    debug: bool = Field(default=False, description="FastAPI debug mode and uvicorn access log")
    host: str = Field(default="0.0.0.0", description="Interface uvicorn binds to")
    port: int = Field(default=8000, ge=1, le=65535, description="Port uvicorn listens on")
    reload: bool = Field(default=False, description="Restart the server on code changes")
    cors_origins: List[str] = Field(default=["*"], description="Origins allowed to call the API")
    cors_methods: List[str] = Field(default=["GET", "POST", "PUT", "DELETE"], description="Methods allowed by CORS")

    # Storage
    database_url: str = Field(default="sqlite:///./flowbuilder.db", description="SQLAlchemy database URL")
    database_echo: bool = Field(default=False, description="Echo SQL statements")

    # Logging
    log_level: LogLevel = Field(default=LogLevel.INFO)
    log_format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    log_file: Optional[str] = Field(default=None, description="Also log to this file, rotated by size")
    log_max_size: int = Field(default=10 * 1024 * 1024, description="Bytes per log file before rotation")
    log_backup_count: int = Field(default=5, description="Rotated log files to keep")
    structured_logging: bool = Field(default=False, description="Emit JSON log lines")

    # Workflow component defaults, used when a node leaves the setting empty
    default_llm_provider: str = Field(default="openai")
    default_llm_model: str = Field(default="gpt-4")
    default_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    default_system_prompt: str = Field(default="You are a helpful assistant.")
    knowledge_base_max_documents: int = Field(default=3, ge=1, description="Matching documents folded into the context")
    knowledge_base_snippet_length: int = Field(default=1000, ge=1, description="Characters kept per matching document")

    # Provider credentials
    openai_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v):
        scheme = v.split('://')[0].lower().split('+')[0] if v else ""
        if scheme not in {db_type.value for db_type in DatabaseType}:
            raise ValueError(f"Unsupported database URL '{v}', expected one of: sqlite, postgresql, mysql")
        return v

    @field_validator('log_level', mode='before')
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v

    @field_validator('cors_origins', 'cors_methods', mode='before')
    @classmethod
    def split_comma_list(cls, v):
        if isinstance(v, str):
            return [item.strip() for item in v.split(',') if item.strip()]
        return v

    @property
    def database_type(self) -> DatabaseType:
        return DatabaseType(self.database_url.split('://')[0].lower().split('+')[0])

    @property
    def is_sqlite(self) -> bool:
        return self.database_type == DatabaseType.SQLITE

    def get_database_connect_args(self) -> Dict[str, Any]:
        """SQLite connections are shared with FastAPI's worker threads."""
        return {"check_same_thread": False} if self.is_sqlite else {}

    def get_provider_api_keys(self) -> Dict[str, Optional[str]]:
        """Credentials keyed by provider name."""
        return {
            "openai": self.openai_api_key,
            "gemini": self.gemini_api_key,
            "claude": self.anthropic_api_key,
        }

    def get_uvicorn_config(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "reload": self.reload,
            "log_level": self.log_level.value.lower(),
            "access_log": self.debug,
        }

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> 'AppConfig':
        """
        Build the configuration from environment variables.

        Values are passed to pydantic as strings and coerced by the field types.

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for name in cls.model_fields:
            env_name = PROVIDER_KEY_ENV.get(name, f"{ENV_PREFIX}{name.upper()}")
            if env_name in environ:
                values[name] = environ[env_name]

        try:
            return cls(**values)
        except ValidationError as e:
            invalid = [".".join(str(part) for part in error["loc"]) for error in e.errors()]
            raise ConfigurationError(
                f"Invalid configuration in environment: {e}",
                config_key=", ".join(invalid)
            ) from e


# Process-wide configuration
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Configuration of this process, read from the environment on first use."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def load_config(config_file: Optional[str] = None) -> AppConfig:
    """Load ``config_file`` (or ``./.env``) into the environment, then rebuild the configuration."""
    from dotenv import load_dotenv

    global _config
    env_file = config_file or '.env'
    if os.path.exists(env_file):
        load_dotenv(env_file)
    elif config_file:
        raise ConfigurationError(f"Configuration file not found: {config_file}", config_key="config_file")

    _config = AppConfig.from_env()
    return _config


def reset_config():
    """Forget the process configuration (mainly for testing)."""
    global _config
    _config = None


def validate_config(config: AppConfig) -> None:
    """
    Check the settings that pydantic cannot check on its own.

    Creates missing directories for the SQLite file and the log file.

    Raises:
        ConfigurationError: Listing every problem found
    """
    problems = []

    directories = []
    if config.is_sqlite and ":memory:" not in config.database_url:
        directories.append(("database_url", os.path.dirname(config.database_url.split(":///", 1)[-1])))
    if config.log_file:
        directories.append(("log_file", os.path.dirname(config.log_file)))

    for key, directory in directories:
        if directory and not os.path.isdir(directory):
            try:
                os.makedirs(directory, exist_ok=True)
            except OSError as e:
                problems.append((key, f"cannot create directory {directory}: {e}"))

    if config.default_llm_provider not in config.get_provider_api_keys():
        problems.append(("default_llm_provider", f"unknown provider '{config.default_llm_provider}'"))

    if problems:
        raise ConfigurationError(
            "Configuration validation failed: " + "; ".join(f"{key}: {message}" for key, message in problems),
            config_key=", ".join(key for key, _ in problems)
        )


def get_testing_config() -> AppConfig:
    """In-memory database, quiet logs and a dummy OpenAI key."""
    return AppConfig(
        debug=True,
        database_url="sqlite:///:memory:",
        log_level=LogLevel.WARNING,
        openai_api_key="test-openai-key"
    )
