"""
Centralized Logging Configuration
=================================

Unified logging setup: colored console output, a rotating log file, and
quieter third-party loggers.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from colorama import Fore, Style, init as colorama_init

colorama_init(autoreset=True)

APP_LOGGER_NAME = "SiteSmith"

# Marks handlers installed here so repeated setup replaces only our own
_HANDLER_FLAG = "_sitesmith_handler"


class ColoredFormatter(logging.Formatter):
    """Level- and component-colored single-line formatter."""

    def __init__(self, include_function: bool = False, use_colors: bool = True):
        self.include_function = include_function
        self.use_colors = use_colors
        super().__init__()

        self.level_colors = {
            logging.DEBUG: Fore.CYAN,
            logging.INFO: Fore.GREEN,
            logging.WARNING: Fore.YELLOW,
            logging.ERROR: Fore.RED,
            logging.CRITICAL: Fore.RED + Style.BRIGHT,
        }

        self.component_colors = {
            'generation': Fore.MAGENTA,
            'turn_controller': Fore.BLUE,
            'publish': Fore.CYAN,
            'route': Fore.GREEN,
            'factory': Fore.BLUE,
        }

    def format(self, record: logging.LogRecord) -> str:
        timestamp = self.formatTime(record, '%H:%M:%S')
        level = record.levelname
        name = self._clean_logger_name(record.name)
        message = record.getMessage()

        if self.use_colors:
            level_part = f"{self.level_colors.get(record.levelno, '')}{level:8}{Style.RESET_ALL}"
            name_part = f"{self._component_color(name)}{name:24}{Style.RESET_ALL}"
        else:
            level_part = f"{level:8}"
            name_part = f"{name:24}"

        line = f"[{timestamp}] {level_part} {name_part}"
        if self.include_function and record.levelno >= logging.WARNING:
            line = f"{line} [{record.funcName}:{record.lineno}]"
        line = f"{line} {message}"

        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line

    def _clean_logger_name(self, name: str) -> str:
        """Shorten logger names for readability."""
        replacements = {
            'sitesmith.services.generation.': 'gen.',
            'sitesmith.services.': 'svc.',
            'sitesmith.routes.': 'route.',
            'sitesmith.utils.': 'util.',
            'sitesmith.': '',
        }
        for old, new in replacements.items():
            if name.startswith(old):
                name = new + name[len(old):]
                break
        if len(name) > 24:
            name = name[:21] + "..."
        return name

    def _component_color(self, name: str) -> str:
        lowered = name.lower()
        for component, color in self.component_colors.items():
            if component in lowered:
                return color
        return Fore.WHITE


def _parse_level(level: Union[str, int, None]) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level or 'INFO').upper(), logging.INFO)


def setup_application_logging(
    level: Union[str, int, None] = 'INFO',
    log_dir: Optional[Path] = None,
    development: bool = False,
) -> logging.Logger:
    """Configure root logging. Safe to call more than once.

    Args:
        level: Console log level
        log_dir: Directory for ``app.log``; no file handler when None
        development: Include function/line info on warnings and keep
            werkzeug request logs
    """
    log_level = _parse_level(level)
    root_logger = logging.getLogger()

    # Keep foreign handlers (pytest caplog), replace ours
    for handler in list(root_logger.handlers):
        if getattr(handler, _HANDLER_FLAG, False):
            root_logger.removeHandler(handler)
    root_logger.setLevel(min(log_level, logging.DEBUG) if log_dir else log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(ColoredFormatter(include_function=development, use_colors=True))
    setattr(console_handler, _HANDLER_FLAG, True)
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / "app.log",
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding='utf-8',
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(ColoredFormatter(include_function=True, use_colors=False))
        setattr(file_handler, _HANDLER_FLAG, True)
        root_logger.addHandler(file_handler)

    _configure_specific_loggers(development)

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.debug(f"Logging configured - Level: {logging.getLevelName(log_level)}")
    return app_logger


def _configure_specific_loggers(development: bool) -> None:
    """Reduce third-party verbosity."""
    logging.getLogger('aiohttp').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.pool').setLevel(logging.WARNING)
    if not development:
        logging.getLogger('werkzeug').setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the application namespace."""
    return logging.getLogger(f"{APP_LOGGER_NAME}.{name}")


__all__ = ['ColoredFormatter', 'setup_application_logging', 'get_logger', 'APP_LOGGER_NAME']
