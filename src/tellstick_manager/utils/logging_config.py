import logging
from .logging import LogConfig, get_logger

# Web server loggers kept at the application level
SERVER_LOGGERS = [
    "tellstick_manager.interfaces.api",
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "fastapi",
    "starlette",
]


def setup_logging(log_level: str = "INFO", log_to_file: bool = True) -> logging.Logger:
    """
    Set up logging for the API service.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Also write to the daily rotated file under logs/

    Returns:
        The API logger
    """
    level_name = log_level.upper()
    debug = level_name == "DEBUG"

    LogConfig.setup(
        app_name="tellstick_manager",
        debug=debug,
        log_to_file=log_to_file,
        log_to_console=True
    )

    logging_level = getattr(logging, level_name, logging.INFO)
    for logger_name in SERVER_LOGGERS:
        module_logger = logging.getLogger(logger_name)
        module_logger.setLevel(logging_level)
        # Make sure these loggers propagate to root
        module_logger.propagate = True

    if debug:
        logging.getLogger("tellstick_manager").setLevel(logging.DEBUG)

    logger = get_logger("tellstick_manager.api")
    logger.info(f"API logging configured with level: {level_name}")
    return logger
