import os
import yaml
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Any
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Cosmetics-Regulatory-Monitor/1.0 (Educational/Research Purpose)"

# Optional environment variables with defaults
OPTIONAL_ENV_VARS = {
    'DATABASE_URL': 'sqlite:///./data/regulatory_monitor.db',
    'DB_POOL_SIZE': '10',
    'DB_MAX_OVERFLOW': '20',
    'DB_POOL_TIMEOUT': '30',
    'DB_POOL_RECYCLE': '3600',
    'DB_ECHO': 'false',
    'LOG_LEVEL': 'INFO',
    'OPENAI_MODEL': 'gpt-4o-mini',
    'OPENAI_BASE_URL': '',
    'FETCH_TIMEOUT_SECONDS': '30',
    'ANALYSIS_TIMEOUT_SECONDS': '60',
    'MONITOR_USER_AGENT': DEFAULT_USER_AGENT,
    'MAX_CONCURRENCY': '1',
    'MONITOR_RUN_TIME': '09:00'
}

VALID_SOURCE_TYPES = {'federal', 'state', 'agency', 'international', 'industry'}
VALID_LOG_LEVELS = {'DEBUG', 'INFO', 'WARNING', 'ERROR'}


def _env(name: str) -> str:
    return os.getenv(name, OPTIONAL_ENV_VARS[name])


@dataclass
class MonitorSettings:
    """Runtime settings for the monitoring pipeline."""
    database_url: str = OPTIONAL_ENV_VARS['DATABASE_URL']
    cron_secret: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_model: str = OPTIONAL_ENV_VARS['OPENAI_MODEL']
    openai_base_url: Optional[str] = None
    fetch_timeout_seconds: float = 30.0
    analysis_timeout_seconds: float = 60.0
    user_agent: str = DEFAULT_USER_AGENT
    max_concurrency: int = 1
    run_time: str = OPTIONAL_ENV_VARS['MONITOR_RUN_TIME']
    log_level: str = OPTIONAL_ENV_VARS['LOG_LEVEL']

    @classmethod
    def from_env(cls) -> "MonitorSettings":
        """
        Build settings from environment variables.

        Raises:
            ValueError: If a numeric setting cannot be parsed or is out of range
        """
        try:
            settings = cls(
                database_url=_env('DATABASE_URL'),
                cron_secret=os.getenv('CRON_SECRET') or None,
                openai_api_key=os.getenv('OPENAI_API_KEY') or None,
                openai_model=_env('OPENAI_MODEL'),
                openai_base_url=_env('OPENAI_BASE_URL') or None,
                fetch_timeout_seconds=float(_env('FETCH_TIMEOUT_SECONDS')),
                analysis_timeout_seconds=float(_env('ANALYSIS_TIMEOUT_SECONDS')),
                user_agent=_env('MONITOR_USER_AGENT'),
                max_concurrency=int(_env('MAX_CONCURRENCY')),
                run_time=_env('MONITOR_RUN_TIME'),
                log_level=_env('LOG_LEVEL').upper()
            )
        except ValueError as e:
            raise ValueError(f"Invalid monitoring setting: {e}") from e

        if settings.fetch_timeout_seconds <= 0 or settings.analysis_timeout_seconds <= 0:
            raise ValueError("Timeouts must be positive")
        if settings.max_concurrency < 1:
            raise ValueError("MAX_CONCURRENCY must be at least 1")
        if settings.log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of: {', '.join(sorted(VALID_LOG_LEVELS))}")
        return settings


def get_config_path(config_path: Optional[str] = None) -> Path:
    """
    Get the source list configuration file path.

    Args:
        config_path: Optional custom path to configuration file

    Returns:
        Path to the configuration file
    """
    if config_path is None:
        # Default to config/sources.yaml relative to project root
        project_root = Path(__file__).parent.parent.parent
        config_path = project_root / "config" / "sources.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    return config_path


def load_sources_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the monitored source list from YAML.

    Args:
        config_path: Path to the configuration file. If None, uses default.

    Returns:
        Dictionary containing the source configuration data.

    Raises:
        FileNotFoundError: If configuration file is not found
        ValueError: If YAML is invalid or required fields are missing
    """
    try:
        config_file = get_config_path(config_path)

        with open(config_file, 'r', encoding='utf-8') as file:
            config = yaml.safe_load(file)

        if not config:
            raise ValueError("Configuration file is empty")

        errors = validate_sources_config(config)
        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

        logger.info(f"Configuration loaded successfully from {config_file}")
        return config

    except FileNotFoundError:
        logger.error(f"Configuration file not found: {config_path}")
        raise
    except yaml.YAMLError as e:
        logger.error(f"Invalid YAML in configuration file: {e}")
        raise ValueError(f"Invalid YAML in configuration file: {e}")


def validate_sources_config(config: Any) -> List[str]:
    """
    Validate the structure of a source list configuration.

    Returns:
        List of validation error messages (empty if valid)
    """
    if not isinstance(config, dict):
        return ["Configuration must be a mapping"]

    sources = config.get('sources')
    if not isinstance(sources, list) or not sources:
        return ["'sources' must be a non-empty list"]

    errors = []
    seen_names = set()
    for index, source in enumerate(sources):
        label = f"sources[{index}]"
        if not isinstance(source, dict):
            errors.append(f"{label} must be a mapping")
            continue

        for field_name in ('name', 'url'):
            if not source.get(field_name):
                errors.append(f"{label} missing required field '{field_name}'")

        url = source.get('url', '')
        if url and not str(url).startswith(('http://', 'https://')):
            errors.append(f"{label} has invalid URL: {url}")

        source_type = source.get('source_type', 'agency')
        if source_type not in VALID_SOURCE_TYPES:
            errors.append(f"{label} has invalid source_type '{source_type}'")

        name = source.get('name')
        if name in seen_names:
            errors.append(f"{label} duplicates source name '{name}'")
        seen_names.add(name)

    return errors


def get_source_definitions(config: Optional[Dict] = None) -> List[Dict[str, Any]]:
    """
    Get normalized source definitions from configuration.

    Args:
        config: Configuration dictionary (optional)

    Returns:
        List of dicts with name, url, source_type and is_active
    """
    if config is None:
        config = load_sources_config()

    return [
        {
            'name': source['name'],
            'url': source['url'],
            'source_type': source.get('source_type', 'agency'),
            'is_active': bool(source.get('is_active', True))
        }
        for source in config.get('sources', [])
    ]
