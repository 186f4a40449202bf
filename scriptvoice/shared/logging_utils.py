"""
Logging utilities for the pipeline services.
"""
import logging
import os

LOGGER_NAMESPACE = "scriptvoice"
DEFAULT_LOG_LEVEL = "INFO"


def resolve_log_level(log_level: str | None = None) -> int:
    """Map a level name (or ``LOG_LEVEL`` when omitted) to a logging level; unknown names give INFO."""
    name = (log_level or os.getenv("LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(service_name: str, log_level: str | None = None) -> logging.Logger:
    """
    Setup logging for one pipeline service.

    Args:
        service_name: Name of the service for log identification
        log_level: Logging level name; defaults to the ``LOG_LEVEL`` environment variable

    Returns:
        Logger named ``scriptvoice.<service_name>``
    """
    logger = logging.getLogger(f"{LOGGER_NAMESPACE}.{service_name}")
    logger.setLevel(resolve_log_level(log_level))

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            f"%(asctime)s - {service_name} - %(levelname)s - %(message)s"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
