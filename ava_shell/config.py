"""
Configuration: node connection and shell settings.

Loading priority (first file found wins):
  1. Project dir .avash.conf.yml
  2. Global ~/.ava-shell/config.yml

Environment variables (also read from .env files) override file values.
The shell reads configuration; it never writes it back.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import yaml
from dotenv import load_dotenv

from .logger import get_logger

_log = get_logger(__name__)

CONFIG_DIR = Path.home() / ".ava-shell"
CONFIG_FILE = CONFIG_DIR / "config.yml"
HISTORY_FILE = CONFIG_DIR / "history.txt"
PROJECT_CONFIG_NAME = ".avash.conf.yml"

NODE_PROTOCOLS = {"http", "https"}


# ── Configuration metadata and validation ──


@dataclass
class ConfigFieldSpec:
    """Configuration field definition with validation rules."""
    key: str
    field_name: str
    description: str
    value_type: str  # "str", "int", "float", "bool"
    default: Any
    validator: Optional[Callable[[Any], tuple]] = None  # (valid, coerced_value, error_msg)


def _validate_int_range(value: Any, min_val: int, max_val: int) -> tuple[bool, int, str]:
    """Validate integer within range."""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return False, 0, "Must be an integer"
    if parsed < min_val or parsed > max_val:
        return False, max(min_val, min(max_val, parsed)), f"Must be between {min_val} and {max_val}"
    return True, parsed, ""


def _validate_float_range(value: Any, min_val: float, max_val: float) -> tuple[bool, float, str]:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return False, 0.0, "Must be a number"
    if parsed < min_val or parsed > max_val:
        return False, max(min_val, min(max_val, parsed)), f"Must be between {min_val} and {max_val}"
    return True, parsed, ""


def _validate_enum(value: Any, valid_values: set) -> tuple[bool, str, str]:
    """Validate value is in allowed set."""
    val_str = str(value).strip().lower()
    if val_str not in valid_values:
        return False, "", f"Must be one of: {', '.join(sorted(valid_values))}"
    return True, val_str, ""


def _validate_bool(value: Any) -> tuple[bool, bool, str]:
    """Validate boolean value."""
    if isinstance(value, bool):
        return True, value, ""
    if isinstance(value, str):
        val_lower = value.strip().lower()
        if val_lower in ("1", "true", "yes", "on"):
            return True, True, ""
        if val_lower in ("0", "false", "no", "off"):
            return True, False, ""
    return False, False, "Must be true/false, yes/no, on/off, or 1/0"


def _validate_host(value: Any) -> tuple[bool, str, str]:
    host = str(value or "").strip()
    host = host.removeprefix("http://").removeprefix("https://").rstrip("/")
    if not host or "/" in host or " " in host:
        return False, "", "Must be a host name or IP address"
    return True, host, ""


CONFIG_FIELDS: Dict[str, ConfigFieldSpec] = {
    "node-host": ConfigFieldSpec(
        key="node-host",
        field_name="node_host",
        description="Host name of the AVA node",
        value_type="str",
        default="127.0.0.1",
        validator=_validate_host,
    ),
    "node-port": ConfigFieldSpec(
        key="node-port",
        field_name="node_port",
        description="HTTP port of the AVA node",
        value_type="int",
        default=9650,
        validator=lambda v: _validate_int_range(v, 1, 65535),
    ),
    "node-protocol": ConfigFieldSpec(
        key="node-protocol",
        field_name="node_protocol",
        description="http or https",
        value_type="str",
        default="http",
        validator=lambda v: _validate_enum(v, NODE_PROTOCOLS),
    ),
    "request-timeout": ConfigFieldSpec(
        key="request-timeout",
        field_name="request_timeout",
        description="Seconds before a node request times out",
        value_type="int",
        default=30,
        validator=lambda v: _validate_int_range(v, 1, 600),
    ),
    "poll-interval": ConfigFieldSpec(
        key="poll-interval",
        field_name="poll_interval",
        description="Seconds between transaction status checks",
        value_type="float",
        default=3.0,
        validator=lambda v: _validate_float_range(v, 0.5, 300.0),
    ),
    "specs-dir": ConfigFieldSpec(
        key="specs-dir",
        field_name="specs_dir",
        description="Extra directory of <context>/<command>.json definitions",
        value_type="str",
        default=None,
    ),
    "verbose": ConfigFieldSpec(
        key="verbose",
        field_name="verbose",
        description="Show INFO logs on the console",
        value_type="bool",
        default=False,
        validator=_validate_bool,
    ),
    "log-file": ConfigFieldSpec(
        key="log-file",
        field_name="log_file",
        description="Log file path, or false to disable file logging",
        value_type="str",
        default=None,
    ),
}


def validate_config_value(key: str, value: Any) -> tuple[bool, Any, str]:
    """
    Validate a configuration value.

    Returns:
        (is_valid, coerced_value, error_message)
    """
    if key not in CONFIG_FIELDS:
        return False, None, f"Unknown configuration key: {key}"
    spec = CONFIG_FIELDS[key]
    if spec.validator is None:
        return True, value, ""
    return spec.validator(value)


class Config:
    def __init__(self):
        for spec in CONFIG_FIELDS.values():
            setattr(self, spec.field_name, spec.default)
        self._config_source: Optional[str] = None

    @classmethod
    def load(cls, project_dir: str = ".") -> "Config":
        config = cls()
        project_path = Path(project_dir).resolve()

        for env_path in [CONFIG_DIR / ".env", project_path / ".env"]:
            if env_path.exists():
                load_dotenv(env_path, override=False)

        for candidate in [project_path / PROJECT_CONFIG_NAME, CONFIG_FILE]:
            if candidate.exists():
                config._load_yaml(candidate)
                config._config_source = str(candidate)
                break

        config._apply_env()
        return config

    def _load_yaml(self, filepath: Path):
        try:
            with open(filepath) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            _log.warning("Ignoring unreadable config %s: %s", filepath, e)
            return
        if not isinstance(data, dict):
            _log.warning("Ignoring config %s: top level must be a mapping", filepath)
            return

        for key, value in data.items():
            self._set(key, value, source=str(filepath))

    def _set(self, key: str, value: Any, source: str) -> bool:
        if key not in CONFIG_FIELDS:
            _log.warning("%s: unknown configuration key %s", source, key)
            return False
        spec = CONFIG_FIELDS[key]
        is_valid, coerced, error = validate_config_value(key, value)
        if not is_valid:
            _log.warning("%s: invalid %s=%r (%s), using %r", source, key, value, error, spec.default)
            setattr(self, spec.field_name, spec.default)
            return False
        setattr(self, spec.field_name, coerced)
        return True

    def _apply_env(self):
        env_map = {
            "AVA_NODE_HOST": "node-host",
            "AVA_NODE_PORT": "node-port",
            "AVA_NODE_PROTOCOL": "node-protocol",
            "AVA_VERBOSE": "verbose",
        }
        for env_var, key in env_map.items():
            val = os.environ.get(env_var)
            if val:
                self._set(key, val, source=env_var)

    def log_target(self):
        """Translate ``log-file`` into what ``setup_logger`` accepts."""
        if self.log_file is None:
            return None
        if str(self.log_file).strip().lower() in ("false", "off", "no", "0"):
            return False
        return self.log_file

    def summary(self) -> dict:
        return {
            "Node": f"{self.node_protocol}://{self.node_host}:{self.node_port}",
            "Request timeout": f"{self.request_timeout}s",
            "Poll interval": f"{self.poll_interval}s",
            "Specs dir": self.specs_dir or "(packaged only)",
            "Verbose": "ON" if self.verbose else "OFF",
            "Config": self._config_source or "(defaults)",
        }
