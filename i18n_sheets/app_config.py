"""Application configuration for the sheet sync."""
import json
import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Any, Tuple

import jsonschema
import yaml
from dotenv import load_dotenv

from i18n_sheets.errors import ConfigError
from i18n_sheets.logging_config import setup_logger

DEFAULT_CONFIG_FILE = 'i18n-sheets.config.json'
DEFAULT_SHEET_RANGE = 'A:Z'
DEFAULT_REQUESTS_PER_MINUTE = 60
DEFAULT_LOG_FILE_PATH = 'logs/i18n_sheets.log'

DEFAULT_CONFIG_TEMPLATE = {
    "sourceDir": "./i18n",
    "locales": ["ko", "en"],
    "domains": []
}

# Locale and domain names become path components, so they may not contain separators.
FILE_NAME_PATTERN = r"^[^/\\]+$"

# Unknown fields are allowed so the file can also carry `logging`, `spreadsheetId` and `range`.
SYNC_CONFIG_SCHEMA = {
    "type": "object",
    "required": ["sourceDir", "locales", "domains"],
    "properties": {
        "sourceDir": {"type": "string", "minLength": 1},
        "locales": {
            "type": "array",
            "minItems": 1,
            "uniqueItems": True,
            "items": {"type": "string", "pattern": FILE_NAME_PATTERN}
        },
        "domains": {
            "type": "array",
            "uniqueItems": True,
            "items": {"type": "string", "pattern": FILE_NAME_PATTERN}
        },
        "spreadsheetId": {"type": "string"},
        "range": {"type": "string"},
        "requestsPerMinute": {"type": "integer", "minimum": 1},
        "logging": {
            "type": "object",
            "properties": {
                "log_level": {"type": "string"},
                "log_file_path": {"type": "string"},
                "log_to_console": {"type": "boolean"}
            }
        }
    }
}

REQUIRED_ENV_VARS = {
    'client_email': 'GOOGLE_SHEETS_CLIENT_EMAIL',
    'private_key': 'GOOGLE_SHEETS_PRIVATE_KEY',
    'spreadsheet_id': 'GOOGLE_SHEETS_SPREADSHEET_ID',
}


@dataclass(frozen=True)
class SyncConfig:
    """Where the translation files live and which of them take part in a sync."""
    source_dir: str
    locales: Tuple[str, ...]
    domains: Tuple[str, ...]


@dataclass(frozen=True)
class SheetConfig:
    """Target spreadsheet and service-account credentials."""
    spreadsheet_id: str
    sheet_range: str
    client_email: str
    private_key: str
    requests_per_minute: int = DEFAULT_REQUESTS_PER_MINUTE


@dataclass
class AppConfig:
    """Application configuration dataclass."""
    config_path: str
    sync: SyncConfig
    sheet: SheetConfig
    dry_run: bool
    logger: logging.Logger


def load_dotenv_files(config_dir: str) -> Optional[str]:
    """Load a .env file next to the config file, falling back to the current directory."""
    for candidate in (os.path.join(config_dir, '.env'), os.path.join(os.getcwd(), '.env')):
        if os.path.exists(candidate):
            load_dotenv(candidate)
            return candidate
    return None


def _parse_config_text(config_path: str, text: str) -> Any:
    if config_path.endswith(('.yaml', '.yml')):
        return yaml.safe_load(text)
    return json.loads(text)


def load_raw_config(config_path: str) -> Dict[str, Any]:
    """
    Read and validate the config file.

    Args:
        config_path (str): Path to a JSON (or .yaml/.yml) config file.

    Returns:
        Dict[str, Any]: The validated document.

    Raises:
        ConfigError: If the file is missing, unparsable or fails schema validation.
    """
    if not os.path.exists(config_path):
        raise ConfigError("Configuration file not found. Run 'i18n-sheets init' to create one.", config_path)

    try:
        with open(config_path, 'r', encoding='utf-8') as config_file_stream:
            raw = _parse_config_text(config_path, config_file_stream.read())
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not parse configuration file: {e}", config_path) from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Could not read configuration file: {e}", config_path) from e

    try:
        jsonschema.validate(instance=raw, schema=SYNC_CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        location = "/".join(str(part) for part in e.absolute_path) or "<root>"
        raise ConfigError(f"'{location}': {e.message}", config_path) from e

    return raw


def build_sync_config(raw: Mapping[str, Any]) -> SyncConfig:
    """Build the immutable sync configuration from a validated config document."""
    return SyncConfig(
        source_dir=os.path.abspath(raw['sourceDir']),
        locales=tuple(raw['locales']),
        domains=tuple(raw['domains'])
    )


def load_sync_config(config_path: str) -> Tuple[SyncConfig, Dict[str, Any]]:
    """Load the config file and return the sync configuration and the raw document."""
    raw = load_raw_config(config_path)
    return build_sync_config(raw), raw


def normalize_private_key(private_key: str) -> str:
    """Turn literal ``\\n`` sequences (common in .env files) into newlines."""
    return private_key.replace('\\n', '\n')


def load_sheet_config(raw: Mapping[str, Any], environ: Optional[Mapping[str, str]] = None) -> SheetConfig:
    """
    Resolve the spreadsheet target and credentials.

    ``spreadsheetId``, ``range`` and ``requestsPerMinute`` in the config file
    take precedence over the environment. Credentials only come from the
    environment.

    Raises:
        ConfigError: Listing every missing value at once.
    """
    environ = os.environ if environ is None else environ

    values = {field: environ.get(env_name, '') for field, env_name in REQUIRED_ENV_VARS.items()}
    if raw.get('spreadsheetId'):
        values['spreadsheet_id'] = raw['spreadsheetId']

    missing: List[str] = [REQUIRED_ENV_VARS[field] for field, value in values.items() if not value]
    if missing:
        raise ConfigError(
            "Missing required environment variables: " + ", ".join(missing)
            + ". Add them to your .env file."
        )

    requests_per_minute = raw.get('requestsPerMinute') or environ.get('SHEETS_REQUESTS_PER_MINUTE')
    try:
        requests_per_minute = int(requests_per_minute or DEFAULT_REQUESTS_PER_MINUTE)
    except ValueError as e:
        raise ConfigError(f"SHEETS_REQUESTS_PER_MINUTE must be an integer: {e}") from e
    if requests_per_minute < 1:
        raise ConfigError("SHEETS_REQUESTS_PER_MINUTE must be at least 1.")

    return SheetConfig(
        spreadsheet_id=values['spreadsheet_id'],
        sheet_range=raw.get('range') or environ.get('SHEET_RANGE') or DEFAULT_SHEET_RANGE,
        client_email=values['client_email'],
        private_key=normalize_private_key(values['private_key']),
        requests_per_minute=requests_per_minute
    )


def init_config(config_path: str = DEFAULT_CONFIG_FILE, force: bool = False) -> str:
    """
    Write the default configuration file.

    Raises:
        ConfigError: If the file exists and ``force`` is not set, or it cannot be written.
    """
    config_path = os.path.abspath(config_path)
    if os.path.exists(config_path) and not force:
        raise ConfigError("Configuration file already exists. Use --force to overwrite it.", config_path)
    try:
        with open(config_path, 'w', encoding='utf-8') as f:
            f.write(json.dumps(DEFAULT_CONFIG_TEMPLATE, indent=2))
            f.write('\n')
    except OSError as e:
        raise ConfigError(f"Error creating config file: {e}", config_path) from e
    return config_path


def _setup_logger_from_config(raw: Mapping[str, Any], log_level_override: Optional[str]) -> logging.Logger:
    """Set up logger based on the `logging` section of the config file."""
    log_config = raw.get('logging', {})
    log_level_str = (log_level_override or log_config.get('log_level', 'INFO')).upper()
    log_file_path = log_config.get('log_file_path', DEFAULT_LOG_FILE_PATH)
    log_to_console = log_config.get('log_to_console', True)
    return setup_logger(log_level_str, log_file_path, log_to_console)


def load_app_config(
        config_path: str = DEFAULT_CONFIG_FILE,
        dry_run: bool = False,
        log_level: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None
) -> AppConfig:
    """
    Load application configuration from the config file, .env and the environment.

    Everything is validated before any translation file or the spreadsheet is touched.

    Returns:
        AppConfig: The loaded application configuration.
    """
    config_path = os.path.abspath(config_path)

    dotenv_path = load_dotenv_files(os.path.dirname(config_path))

    sync_config, raw = load_sync_config(config_path)

    logger = _setup_logger_from_config(raw, log_level)

    if dotenv_path:
        logger.info("Loaded environment variables from: %s", dotenv_path)
    else:
        logger.info("No .env file found. Relying on system environment variables if any.")

    sheet_config = load_sheet_config(raw, environ)

    logger.info(
        "Loaded configuration from %s: %d locale(s), %d domain(s), source dir '%s'.",
        config_path,
        len(sync_config.locales),
        len(sync_config.domains),
        sync_config.source_dir
    )

    return AppConfig(
        config_path=config_path,
        sync=sync_config,
        sheet=sheet_config,
        dry_run=dry_run,
        logger=logger
    )
