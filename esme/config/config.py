"""
Configuration management for e-SME.
"""

import os
import yaml
import re
from datetime import datetime
from typing import Dict, Optional, Any
from pathlib import Path
from pydantic import BaseModel, Field
from dotenv import load_dotenv


class DatabaseConfig(BaseModel):
    """Database configuration."""
    url: str = Field(default="sqlite:///./esme.db")
    echo: bool = Field(default=False)


class LLMConfig(BaseModel):
    """LLM configuration."""
    api_key: str
    model: str = Field(default="gemini-2.5-flash")
    base_url: Optional[str] = Field(
        default="https://generativelanguage.googleapis.com/v1beta/openai/",
        description="OpenAI-compatible endpoint serving the model"
    )
    max_tokens: int = Field(default=2048)
    temperature: float = Field(default=0.7)


class SlackConfig(BaseModel):
    """Slack app configuration."""
    client_id: str
    client_secret: str
    signing_secret: str
    app_id: Optional[str] = None
    redirect_uri: Optional[str] = None
    channel_prefix: str = Field(default="esme", description="Namespace tag prepended to every mirrored channel name")
    reply_in_thread: bool = Field(default=False, description="Post event-triggered answers as thread replies to the question")
    signature_tolerance_seconds: int = Field(default=300, description="Maximum request timestamp skew accepted by the signature check")


class GoogleConfig(BaseModel):
    """Google OAuth client used to refresh document access tokens."""
    client_id: str
    client_secret: str
    token_url: str = Field(default="https://oauth2.googleapis.com/token")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")


class BotConfig(BaseModel):
    """Bot configuration."""
    name: str = Field(default="e-SME", description="Display name used in Slack messages")
    frontend_url: str = Field(default="http://localhost:8080", description="URL of the web app, linked from Slack")
    default_system_prompt: str = Field(
        default="You are a helpful AI assistant that analyzes documents and answers questions based on their content.",
        description="System prompt used when a conversation does not override it"
    )


class Config(BaseModel):
    """Main configuration model."""
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    llm: LLMConfig
    slack: SlackConfig
    google: GoogleConfig
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    bot: BotConfig = Field(default_factory=BotConfig)


def substitute_variables(value: Any, env_config: Optional['EnvironmentConfig'] = None) -> Any:
    """
    Substitute variables in configuration values.

    Variable formats:
    - ${variable_name} - standard variable substitution
    - ${variable_name|default_value} - variable with default fallback

    Priority order:
    1. Environment variables (highest priority)
    2. .env file variables
    3. Built-in variables
    4. Default value (if specified with | syntax)
    5. Empty string if not found

    Args:
        value: Configuration value that may contain variables
        env_config: Environment configuration instance

    Returns:
        Value with variables substituted
    """
    if not isinstance(value, str):
        return value

    variable_pattern = r'\$\{([^}]*)\}'

    def replace_variable(match):
        variable_content = match.group(1)

        if not variable_content.strip():
            return ""

        if '|' in variable_content:
            variable_name, default_value = variable_content.split('|', 1)
            variable_name = variable_name.strip()
            default_value = default_value.strip()
        else:
            variable_name = variable_content.strip()
            default_value = None

        env_value = os.getenv(variable_name)
        if env_value is not None:
            return env_value

        if env_config:
            env_value = env_config.get(variable_name)
            if env_value is not None:
                return env_value

        builtin_value = _get_builtin_variable(variable_name)
        if builtin_value is not None:
            return builtin_value

        if default_value is not None:
            return default_value

        return ""

    result = re.sub(variable_pattern, replace_variable, value)

    # Empty results are dropped so pydantic defaults apply
    if result == "" or result == "None":
        return None

    return result


def _get_builtin_variable(variable_name: str) -> Optional[str]:
    """Get built-in variable value."""
    builtin_variables = {
        'today': datetime.now().strftime('%Y-%m-%d')
    }

    return builtin_variables.get(variable_name)


def _substitute_config_values(config_data: Any, env_config: Optional['EnvironmentConfig'] = None) -> Any:
    """Recursively substitute variables in configuration data, omitting keys whose value ends up None."""
    if isinstance(config_data, dict):
        result = {}
        for key, value in config_data.items():
            substituted_value = _substitute_config_values(value, env_config)
            if substituted_value is not None:
                result[key] = substituted_value
        return result
    elif isinstance(config_data, list):
        return [_substitute_config_values(item, env_config) for item in config_data]
    elif isinstance(config_data, str):
        return substitute_variables(config_data, env_config)
    else:
        return config_data


def load_config(config_path: str, env_config: Optional['EnvironmentConfig'] = None) -> Config:
    """Load configuration from YAML file with variable substitution."""
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_file, 'r') as f:
        config_data = yaml.safe_load(f) or {}

    if env_config is None:
        env_config = get_env_config()

    config_data = _substitute_config_values(config_data, env_config)

    return Config(**config_data)


class EnvironmentConfig:
    """Environment configuration manager with .env fallback support."""

    def __init__(self, env_file_path: Optional[str] = None):
        """
        Initialize environment configuration.

        Args:
            env_file_path: Path to .env file. If None, will look for .env in current directory.
        """
        self.env_file_path = env_file_path or ".env"
        self._load_env_file()

    def _load_env_file(self) -> None:
        """Load environment variables from .env file if it exists."""
        env_path = Path(self.env_file_path)
        if env_path.exists():
            load_dotenv(env_path)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get an environment variable (process environment first, then values loaded from .env)."""
        value = os.getenv(key)
        if value is not None:
            return value
        return default

    def get_config_path(self) -> str:
        """Get configuration file path, overridable with ESME_CONFIG."""
        return self.get("ESME_CONFIG", default="config.yaml")


_env_config: Optional[EnvironmentConfig] = None


def get_env_config() -> EnvironmentConfig:
    """Get the process environment configuration."""
    global _env_config
    if _env_config is None:
        _env_config = EnvironmentConfig()
    return _env_config


def initialize_env_config(env_file_path: Optional[str] = None) -> EnvironmentConfig:
    """Initialize environment configuration with optional .env file path."""
    global _env_config
    _env_config = EnvironmentConfig(env_file_path)
    return _env_config
