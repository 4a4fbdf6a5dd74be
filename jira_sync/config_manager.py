"""
Configuration Manager Module
Reads config/config.yaml, resolves ${VAR} placeholders from the environment
(and a .env file), and hands each consumer its own section.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, List

import yaml
from dotenv import load_dotenv

CONFIG_FILE_NAME = 'config.yaml'
REPO_CONFIG_DIR = Path(__file__).resolve().parent.parent / 'config'
CONTAINER_CONFIG_DIR = Path('/app/config')

# ${NAME} or ${NAME:-default}
PLACEHOLDER_PATTERN = re.compile(r'\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}')


def find_config_dir() -> Path:
    """
    Locate the configuration directory.

    ``$CONFIG_DIR`` wins; otherwise the repository's ``config/``, then
    ``./config`` and finally the container mount are tried in order.
    """
    override = os.getenv('CONFIG_DIR')
    if override:
        return Path(override)

    for candidate in (REPO_CONFIG_DIR, Path.cwd() / 'config', CONTAINER_CONFIG_DIR):
        if candidate.is_dir():
            return candidate

    raise FileNotFoundError("Configuration directory not found (set CONFIG_DIR)")


def _lookup(match: re.Match) -> str:
    value = os.getenv(match.group(1))
    if value is not None:
        return value
    if match.group(2) is not None:
        return match.group(2)
    # Unset without a default: keep the placeholder so the gap is visible
    return match.group(0)


def _as_scalar(text: str) -> Any:
    """Give a substituted value its YAML scalar type; anything structured stays text."""
    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError:
        return text
    if parsed is None or isinstance(parsed, (bool, int, float)):
        return parsed
    return text


def resolve_placeholders(value: Any) -> Any:
    """Substitute placeholders in every string leaf of a parsed document."""
    if isinstance(value, dict):
        return {key: resolve_placeholders(item) for key, item in value.items()}
    if isinstance(value, list):
        return [resolve_placeholders(item) for item in value]
    if not isinstance(value, str) or '${' not in value:
        return value

    resolved = PLACEHOLDER_PATTERN.sub(_lookup, value)
    if resolved != value and PLACEHOLDER_PATTERN.fullmatch(value):
        return _as_scalar(resolved)
    return resolved


def load_config_file(path: Path) -> Dict:
    """Parse a YAML config file and resolve its placeholders; a missing file is empty."""
    if not path.is_file():
        return {}

    with open(path, 'r', encoding='utf-8') as f:
        document = yaml.safe_load(f) or {}

    if not isinstance(document, dict):
        raise ValueError(f"{path} must hold a mapping of config sections")

    return resolve_placeholders(document)


class ConfigManager:
    """
    Process-wide configuration.

    The first instantiation loads ``.env`` and the YAML file; later calls
    return the same object until ``reload()`` re-reads both.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._config = None
            instance.config_path = None
            cls._instance = instance
        return cls._instance

    def __init__(self):
        if self._config is None:
            self.reload()

    def reload(self) -> None:
        load_dotenv()
        self.config_path = find_config_dir() / CONFIG_FILE_NAME
        self._config = load_config_file(self.config_path)

    def section(self, name: str) -> Dict:
        """Top-level section by name; absent or blank sections are empty."""
        value = self._config.get(name)
        return value if isinstance(value, dict) else {}

    def get_jira_config(self) -> Dict:
        return self.section('jira')

    def get_database_config(self) -> Dict:
        return self.section('database')

    def get_sync_config(self) -> Dict:
        return self.section('sync')

    def get_logging_config(self) -> Dict:
        return self.section('logging')

    def get_scheduler_config(self) -> Dict:
        return self.section('scheduler')

    def get_project_keys(self) -> List[str]:
        """Allow-listed Jira project keys for issue import."""
        return [str(key) for key in self.get_sync_config().get('project_keys') or []]
