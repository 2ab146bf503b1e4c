"""
Test logging configuration to ensure all loggers work properly.
"""

import logging

from esme.config import LoggingConfig


def _clear_root_handlers():
    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    for handler in original_handlers:
        root_logger.removeHandler(handler)
    return original_handlers


def _restore_root_handlers(original_handlers):
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in original_handlers:
        root_logger.addHandler(handler)


def test_existing_esme_loggers_are_configured():
    """Loggers created at import time are reset to the configured level."""
    from main import configure_logging
    import esme.api.main  # noqa: F401  (creates the esme.* loggers)

    original_handlers = _clear_root_handlers()
    try:
        configure_logging("INFO")

        for logger_name in ['esme.api.slack', 'esme.api.main', 'esme.services.sync', 'esme.services.channels']:
            logger = logging.getLogger(logger_name)
            assert logger.level <= logging.INFO, f"Logger {logger_name} level {logger.level} should be <= INFO"
            assert logger.propagate is True, f"Logger {logger_name} should propagate to parent"
            logger.info(f"Test message from {logger_name}")
    finally:
        _restore_root_handlers(original_handlers)


def test_new_logger_automatically_configured():
    """A logger created after configuration inherits from 'esme'."""
    from main import configure_logging

    original_handlers = _clear_root_handlers()
    try:
        configure_logging("WARNING")

        new_logger = logging.getLogger('esme.new_module')
        assert new_logger.propagate is True
        assert new_logger.getEffectiveLevel() == logging.WARNING
    finally:
        configure_logging("INFO")
        _restore_root_handlers(original_handlers)


def test_log_output_format(caplog):
    logger = logging.getLogger('esme.services.sync')

    with caplog.at_level(logging.INFO, logger='esme.services.sync'):
        logger.info("Answered Slack message 1700000100.000200")

    assert "Answered Slack message 1700000100.000200" in caplog.text


def test_logging_config_model():
    """Test that LoggingConfig model works correctly."""
    assert LoggingConfig().level == "INFO"
    assert LoggingConfig(level="DEBUG").level == "DEBUG"


def test_configurable_log_levels():
    """Test that different log levels can be configured."""
    from main import configure_logging

    original_handlers = _clear_root_handlers()
    try:
        for level in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            configure_logging(level)
            assert logging.getLogger().level == getattr(logging, level)
            assert logging.getLogger('esme').level == getattr(logging, level)
    finally:
        configure_logging("INFO")
        _restore_root_handlers(original_handlers)


def test_uvicorn_loggers_propagate_to_root():
    from main import uvicorn_log_config

    log_config = uvicorn_log_config("debug")

    assert log_config["disable_existing_loggers"] is False
    assert log_config["loggers"]["uvicorn.access"] == {"level": "DEBUG", "propagate": True}
    assert "handlers" not in log_config
