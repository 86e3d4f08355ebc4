from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Final, Optional

import jsonschema
import yaml

from .infrastructure.error_handling import ConfigError
from .utils import getenv_f, getenv_i

logger: Final = logging.getLogger(__name__)

DEFAULT_API_VERSION: Final[str] = "v23.0"
GRAPH_BASE_URL: Final[str] = "https://graph.facebook.com"

# Polling: start at 0.4s, never wait more than 5 minutes between status checks.
POLL_INITIAL_INTERVAL_SEC: Final[float] = 0.4
POLL_MAX_INTERVAL_SEC: Final[float] = 300.0
POLL_MIN_INTERVAL_SEC: Final[float] = 0.1
# Async jobs still running after 45 minutes are abandoned.
POLL_DEADLINE_SEC: Final[float] = 45 * 60

JOB_MAX_RETRIES: Final[int] = 3
JOB_RETRY_COOLDOWN_SEC: Final[float] = 60.0

# Graph batch API accepts at most 50 requests per call.
BATCH_SIZE: Final[int] = 50
MAX_PAGES: Final[int] = 1000

META_TIMEOUT: Final[float] = 30.0

SETTINGS_PATH_DEFAULT: Final[str] = "config/settings.yaml"

SETTINGS_SCHEMA: Final[Dict[str, Any]] = {
    "type": "object",
    "properties": {
        "insights": {
            "type": "object",
            "properties": {
                "api_version": {"type": "string", "pattern": r"^v\d+\.\d+$"},
                "poll_initial_interval_sec": {"type": "number", "exclusiveMinimum": 0},
                "poll_max_interval_sec": {"type": "number", "exclusiveMinimum": 0},
                "poll_min_interval_sec": {"type": "number", "minimum": 0},
                "poll_deadline_sec": {"type": "number", "exclusiveMinimum": 0},
                "max_retries": {"type": "integer", "minimum": 0},
                "retry_cooldown_sec": {"type": "number", "minimum": 0},
                "batch_size": {"type": "integer", "minimum": 1, "maximum": 50},
                "max_pages": {"type": "integer", "minimum": 1},
                "timeout_sec": {"type": "number", "exclusiveMinimum": 0},
            },
            "additionalProperties": False,
        },
    },
}


@dataclass(frozen=True)
class InsightsSettings:
    api_version: str = DEFAULT_API_VERSION
    poll_initial_interval_sec: float = POLL_INITIAL_INTERVAL_SEC
    poll_max_interval_sec: float = POLL_MAX_INTERVAL_SEC
    poll_min_interval_sec: float = POLL_MIN_INTERVAL_SEC
    poll_deadline_sec: float = POLL_DEADLINE_SEC
    max_retries: int = JOB_MAX_RETRIES
    retry_cooldown_sec: float = JOB_RETRY_COOLDOWN_SEC
    batch_size: int = BATCH_SIZE
    max_pages: int = MAX_PAGES
    timeout_sec: float = META_TIMEOUT

    @staticmethod
    def from_env(base: Optional["InsightsSettings"] = None) -> "InsightsSettings":
        base = base or InsightsSettings()
        return replace(
            base,
            api_version=os.getenv("FB_API_VERSION") or base.api_version,
            poll_deadline_sec=getenv_f("META_POLL_DEADLINE_SEC", base.poll_deadline_sec),
            max_retries=getenv_i("META_INSIGHTS_MAX_RETRIES", base.max_retries),
            retry_cooldown_sec=getenv_f("META_RETRY_COOLDOWN_SEC", base.retry_cooldown_sec),
            batch_size=getenv_i("META_BATCH_SIZE", base.batch_size),
            max_pages=getenv_i("META_MAX_PAGES", base.max_pages),
            timeout_sec=getenv_f("META_TIMEOUT", base.timeout_sec),
        )


def load_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.debug("Settings file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse {path}: {e}") from e


def validate_settings(cfg: Dict[str, Any]) -> None:
    if not isinstance(cfg, dict):
        raise ConfigError("Settings payload must be a dictionary.")
    try:
        jsonschema.validate(instance=cfg, schema=SETTINGS_SCHEMA)
    except jsonschema.ValidationError as e:
        where = ".".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigError(f"Invalid settings at {where}: {e.message}") from e
    insights = cfg.get("insights") or {}
    lo = insights.get("poll_min_interval_sec", POLL_MIN_INTERVAL_SEC)
    hi = insights.get("poll_max_interval_sec", POLL_MAX_INTERVAL_SEC)
    if lo > hi:
        raise ConfigError(f"poll_min_interval_sec ({lo}) exceeds poll_max_interval_sec ({hi})")


def load_settings(path: Optional[str] = SETTINGS_PATH_DEFAULT, *, apply_env: bool = True) -> InsightsSettings:
    """Read the ``insights:`` section of a YAML settings file, then apply env overrides."""
    cfg = load_yaml(path) if path else {}
    validate_settings(cfg)
    section = cfg.get("insights") or {}
    known = {f.name for f in fields(InsightsSettings)}
    settings = InsightsSettings(**{k: v for k, v in section.items() if k in known})
    if apply_env:
        settings = InsightsSettings.from_env(settings)
    return settings
