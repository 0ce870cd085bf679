"""Logging configuration and utilities."""

import os
import sys
import logging
import logging.handlers
from pathlib import Path
import structlog
from structlog.stdlib import LoggerFactory

from btc_tunnel.models.config import TunnelConfig


def setup_logging(config: TunnelConfig) -> None:
    """Setup structured logging with the specified configuration."""

    level = getattr(logging, config.log_level.upper())

    # Configure standard library logging
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stdout,
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if config.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        root = logging.getLogger()
        # One rotating handler per file, however many engines are configured
        for handler in root.handlers:
            if (isinstance(handler, logging.handlers.RotatingFileHandler)
                    and handler.baseFilename == os.path.abspath(log_path)):
                return

        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=config.log_max_size_mb * 1024 * 1024,
            backupCount=config.log_backup_count
        )
        file_handler.setLevel(level)
        root.addHandler(file_handler)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
