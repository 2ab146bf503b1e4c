"""
Configuration management for e-SME.
"""

from .config import Config, load_config, DatabaseConfig, LLMConfig, SlackConfig, GoogleConfig, LoggingConfig, BotConfig, get_env_config, initialize_env_config, EnvironmentConfig

__all__ = ["Config", "load_config", "DatabaseConfig", "LLMConfig", "SlackConfig", "GoogleConfig", "LoggingConfig", "BotConfig", "get_env_config", "initialize_env_config", "EnvironmentConfig"]
