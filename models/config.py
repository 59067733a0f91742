import json
import os
from dataclasses import dataclass
from datetime import time
from typing import Any, Dict, Tuple

from dateutil.parser import ParserError, parse

from models.rules import DEFAULT_DISPLAY_FIELDS, DISPLAY_FIELD_ATTRIBUTES

DEFAULT_CONFIG_FILE = 'monitor_config.json'
DEFAULT_BASELINE_FILE = 'rule_baseline.json'
DEFAULT_CSS = """
body { font-family: Calibri, Arial, sans-serif; font-size: 10pt; }
table { border-collapse: collapse; width: 100%; }
th, td { border: 1px solid #999999; padding: 4px; text-align: left; }
th { background-color: #1f4e79; color: #ffffff; }
.band-even { background-color: #ffffff; }
.band-odd { background-color: #e7eef6; }
.client-side { background-color: #ffc7ce; font-weight: bold; }
.modified { color: #c00000; font-weight: bold; }
"""

REQUIRED_KEYS = ('from_address', 'to_address', 'smtp_server')


class ConfigError(ValueError):
    """Raised when the monitor configuration file is missing or invalid."""


# Static configuration, built once at start and passed to every component
@dataclass(frozen=True)
class MonitorConfig:
    from_address: str
    to_address: str
    smtp_server: str
    smtp_port: int = 25
    smtp_starttls: bool = False
    subject: str = 'Mail Rule Monitor: forwarding/deleting rules detected'
    heartbeat_subject: str = 'Mail Rule Monitor: no rule changes detected'
    css: str = DEFAULT_CSS
    heartbeat_enabled: bool = False
    heartbeat_window_start: time = time(7, 0)
    heartbeat_window_minutes: int = 30
    baseline_file: str = DEFAULT_BASELINE_FILE
    display_fields: Tuple[str, ...] = DEFAULT_DISPLAY_FIELDS
    mailboxes: Tuple[str, ...] = ()
    credentials_file: str = 'client_secret.json'
    token_file: str = 'token.pickle'


def parse_time_of_day(value: str) -> time:
    """Parses a daily time such as '07:30' or '7:30 AM' into a datetime.time."""
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"Invalid time of day: {value!r}")
    try:
        return parse(value).time().replace(second=0, microsecond=0)
    except (ParserError, OverflowError, ValueError) as e:
        raise ConfigError(f"Invalid time of day {value!r}: {e}") from e


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    raise ConfigError(f"'{key}' must be true or false, got {value!r}")


def _as_int(key: str, value: Any, minimum: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise ConfigError(f"'{key}' must be an integer >= {minimum}, got {value!r}")
    return value


def _as_str_tuple(key: str, value: Any) -> Tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"'{key}' must be a list of strings")
    return tuple(value)


def config_from_dict(data: Dict[str, Any]) -> MonitorConfig:
    """Validates a parsed config mapping and builds the immutable MonitorConfig."""
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a JSON object")

    missing = [key for key in REQUIRED_KEYS if not data.get(key)]
    if missing:
        raise ConfigError(f"Missing required configuration keys: {', '.join(missing)}")

    unknown = set(data) - set(MonitorConfig.__dataclass_fields__)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    values: Dict[str, Any] = dict(data)
    if 'smtp_port' in values:
        values['smtp_port'] = _as_int('smtp_port', values['smtp_port'], minimum=1)
    for key in ('smtp_starttls', 'heartbeat_enabled'):
        if key in values:
            values[key] = _as_bool(key, values[key])
    if 'heartbeat_window_minutes' in values:
        values['heartbeat_window_minutes'] = _as_int('heartbeat_window_minutes', values['heartbeat_window_minutes'])
    if 'heartbeat_window_start' in values:
        values['heartbeat_window_start'] = parse_time_of_day(values['heartbeat_window_start'])
    if 'mailboxes' in values:
        values['mailboxes'] = _as_str_tuple('mailboxes', values['mailboxes'])
    if 'display_fields' in values:
        fields = _as_str_tuple('display_fields', values['display_fields'])
        unsupported = [f for f in fields if f not in DISPLAY_FIELD_ATTRIBUTES]
        if unsupported:
            raise ConfigError(f"Unsupported display fields: {', '.join(unsupported)}")
        if not fields:
            raise ConfigError("'display_fields' must name at least one field")
        values['display_fields'] = fields

    return MonitorConfig(**values)


def load_config(file_path: str = DEFAULT_CONFIG_FILE) -> MonitorConfig:
    """Loads and validates the JSON configuration file."""
    if not os.path.exists(file_path):
        raise ConfigError(f"Configuration file not found at {file_path}")

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Could not read configuration file {file_path}: {e}") from e

    return config_from_dict(data)
