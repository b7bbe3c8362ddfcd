import os
import sys

from loguru import logger

from alarm_clock.config.config_loader import load_config

DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | {level:<8} | {extra[tag]} | {message}"
)

_logger_initialized = False


def setup_logging():
    """Configure loguru sinks from the `log` section of the config."""
    global _logger_initialized
    if _logger_initialized:
        return logger

    log_config = load_config().get("log", {})
    log_level = os.environ.get("LOG_LEVEL") or log_config.get("log_level", "INFO")
    log_format = os.environ.get("LOG_FORMAT") or log_config.get(
        "log_format", DEFAULT_FORMAT
    )

    logger.remove()
    logger.configure(extra={"tag": "alarm_clock"})
    logger.add(sys.stdout, format=log_format, level=log_level)

    log_dir = log_config.get("log_dir")
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, log_config.get("log_file", "alarm_clock.log"))
        logger.add(
            log_file,
            format=log_format,
            level=log_level,
            rotation="10 MB",
            retention="7 days",
            enqueue=True,
        )

    _logger_initialized = True
    return logger
