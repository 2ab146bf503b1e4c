"""
Main entry point for the e-SME Slack bridge.
"""

import uvicorn
import logging
from pathlib import Path

from esme.config import load_config, get_env_config
from esme.api.main import create_app

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def configure_logging(log_level: str = "INFO"):
    """Set the root and esme.* loggers to one level and format."""
    level_name = log_level.upper() if log_level.upper() in LOG_LEVELS else "INFO"
    numeric_level = getattr(logging, level_name)

    logging.basicConfig(level=numeric_level, format=LOG_FORMAT, force=True)
    logging.getLogger().setLevel(numeric_level)

    # Module loggers created at import time keep their own level unless reset
    esme_loggers = [name for name in logging.Logger.manager.loggerDict if name.startswith('esme')]
    for name in ['esme'] + esme_loggers:
        esme_logger = logging.getLogger(name)
        esme_logger.setLevel(numeric_level)
        esme_logger.propagate = True


def uvicorn_log_config(log_level: str) -> dict:
    """Let uvicorn's loggers propagate to the root handler set up above."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "loggers": {
            name: {"level": log_level.upper(), "propagate": True}
            for name in ("uvicorn", "uvicorn.error", "uvicorn.access")
        },
    }


logger = logging.getLogger(__name__)


def main():
    env_config = get_env_config()
    config_path = Path(env_config.get_config_path())

    if not config_path.exists():
        logger.error(f"Configuration file not found: {config_path} (copy config.example.yaml or set ESME_CONFIG)")
        return

    config = load_config(str(config_path))
    app = create_app(config)

    # After create_app so every esme.* module logger exists
    configure_logging(config.logging.level)
    logger.info(f"Loaded configuration from {config_path}, starting {config.bot.name}")

    uvicorn.run(
        app,
        host=env_config.get("HOST", "0.0.0.0"),
        port=int(env_config.get("PORT", "8000")),
        log_config=uvicorn_log_config(config.logging.level)
    )


if __name__ == "__main__":
    main()
