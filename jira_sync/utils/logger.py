"""
Logging Configuration Module
Root logger setup for the service and CLI scripts: a console handler plus a
rotating log file, both driven by the ``logging`` config section.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, List, Optional, Union

from jira_sync.config_manager import ConfigManager

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_LOG_FILE = './logs/jira_sync.log'
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 5

# Handlers installed here carry this name prefix so a second setup replaces them
HANDLER_PREFIX = 'jira_sync.'

# Chatty at INFO on every request, statement or job run
NOISY_LOGGERS = ('urllib3', 'requests', 'sqlalchemy.engine', 'apscheduler')


def resolve_level(level: Union[str, int, None]) -> int:
    """Map a level name or number to a logging level; unknown names mean INFO."""
    if isinstance(level, int) and not isinstance(level, bool):
        return level
    value = getattr(logging, str(level or '').upper(), None)
    return value if isinstance(value, int) else logging.INFO


def build_handlers(log_config: Dict) -> List[logging.Handler]:
    """Console handler, plus a rotating file handler unless ``file`` is blank."""
    console = logging.StreamHandler(sys.stdout)
    console.set_name(f"{HANDLER_PREFIX}console")
    handlers = [console]

    log_file = log_config.get('file', DEFAULT_LOG_FILE)
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=int(log_config.get('max_bytes') or DEFAULT_MAX_BYTES),
            backupCount=int(log_config.get('backup_count', DEFAULT_BACKUP_COUNT)),
            encoding='utf-8'
        )
        file_handler.set_name(f"{HANDLER_PREFIX}file")
        handlers.append(file_handler)

    return handlers


def setup_logging(level: Optional[str] = None, log_config: Optional[Dict] = None) -> None:
    """
    Configure the root logger. Call once at process startup.

    Args:
        level: Overrides ``logging.level`` (a ``--log-level`` flag, say)
        log_config: ``logging`` section; read from ConfigManager when omitted
    """
    if log_config is None:
        log_config = ConfigManager().get_logging_config()

    log_level = resolve_level(level or log_config.get('level'))
    formatter = logging.Formatter(log_config.get('format') or DEFAULT_FORMAT)

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if (handler.get_name() or '').startswith(HANDLER_PREFIX):
            root_logger.removeHandler(handler)
            handler.close()

    root_logger.setLevel(log_level)
    for handler in build_handlers(log_config):
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Module logger; pass ``__name__``."""
    return logging.getLogger(name)
