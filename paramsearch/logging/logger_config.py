import structlog
import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Optional

def setup_logging(
    log_level: str = "INFO",
    log_to_file: bool = False,
    log_dir: Optional[str] = None
):
    """Setup structlog on top of the standard logging module"""

    level = getattr(logging, log_level.upper(), None)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level '{log_level}'")

    # Configure structlog with compatible processors
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    # Console renderer for interactive sessions, JSON for everything else
    if sys.stdout.isatty():
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure standard logging
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear existing handlers
    root_logger.handlers.clear()

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter('%(message)s'))
    root_logger.addHandler(console_handler)

    # File handler
    if log_to_file:
        path = Path(log_dir or "logs")
        path.mkdir(parents=True, exist_ok=True)
        today = datetime.now().strftime('%Y%m%d')
        file_handler = logging.FileHandler(
            path / f"paramsearch_{today}.log",
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
        ))
        root_logger.addHandler(file_handler)

    structlog.get_logger().info("Logging system initialized", level=log_level)

def setup_logging_from_settings(settings=None):
    """Setup logging using the process-wide settings"""
    if settings is None:
        from ..core.config import settings
    setup_logging(settings.log_level, settings.log_to_file, settings.log_dir)

