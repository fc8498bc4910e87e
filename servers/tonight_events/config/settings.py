"""
Pipeline configuration.

Configuration is a plain nested dict. Defaults come from
get_default_config(); a JSON file can override any subset of keys.
"""

import copy
import json
from pathlib import Path
from typing import Any, Optional

import structlog

log = structlog.get_logger(__name__)


class ConfigurationError(Exception):
    """Raised when configuration or a required input artifact is unusable."""
    pass


def get_default_config() -> dict[str, Any]:
    """Return default config for a new checkout."""
    return {
        "paths": {
            "sources_csv": "sources.csv",
            "fetch_results": "fetch_results.json",
            "html_dir": "html_dumps",
            "output_dir": "processed_data",
            "report": "tonights_events.md",
        },
        "report": {
            "title": "Live Music Events in SF Bay Area",
            "template": "report.md",
        },
        "fetch": {
            "timeout_seconds": 30.0,
            "min_delay_seconds": 1.0,
            "max_delay_seconds": 3.0,
            "require_https": False,
            "allowed_domains": [],
            "max_attempts": 2,
            "user_agent": (
                "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
                "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36"
            ),
        },
        "cleanup": {
            "model": "anthropic/claude-3.5-haiku",
            "api_url": "https://openrouter.ai/api/v1/chat/completions",
            "api_key_env": "OPENROUTER_API_KEY",
            "timeout_seconds": 120.0,
            "max_attempts": 3,
        },
    }


def load_config(path: Optional[Path] = None) -> dict[str, Any]:
    """
    Load config, overlaying a JSON file on the defaults.

    Args:
        path: Optional JSON config file

    Returns:
        Merged config dict

    Raises:
        ConfigurationError: If the file is missing or not a JSON object
    """
    config = get_default_config()
    if path is None:
        return config

    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        overrides = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Config file {path} is not valid JSON: {e}") from e

    if not isinstance(overrides, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")

    log.info("config_loaded", path=str(path), sections=sorted(overrides))
    return _deep_merge(config, overrides)


def validate_config(config: dict[str, Any]) -> list[str]:
    """
    Validate config and return list of errors.

    Returns:
        List of error messages (empty if valid)
    """
    errors: list[str] = []

    for section in ("paths", "report", "fetch", "cleanup"):
        if not isinstance(config.get(section), dict):
            errors.append(f"Missing required section: {section}")
    if errors:
        return errors

    for key in ("sources_csv", "fetch_results", "html_dir", "output_dir", "report"):
        if not config["paths"].get(key):
            errors.append(f"Missing required field: paths.{key}")

    fetch = config["fetch"]
    min_delay = fetch.get("min_delay_seconds", 0)
    max_delay = fetch.get("max_delay_seconds", 0)
    if min_delay < 0 or max_delay < min_delay:
        errors.append(
            f"Invalid fetch delay range: {min_delay}-{max_delay} (need 0 <= min <= max)"
        )
    if fetch.get("timeout_seconds", 0) <= 0:
        errors.append("fetch.timeout_seconds must be positive")

    allowed = fetch.get("allowed_domains", [])
    if not isinstance(allowed, list) or not all(isinstance(d, str) and d for d in allowed):
        errors.append("fetch.allowed_domains must be a list of domain names")

    for section in ("fetch", "cleanup"):
        attempts = config[section].get("max_attempts", 1)
        if not isinstance(attempts, int) or attempts < 1:
            errors.append(f"{section}.max_attempts must be a positive integer")

    if not config["cleanup"].get("model"):
        errors.append("Missing required field: cleanup.model")

    return errors


def require_valid_config(config: dict[str, Any]) -> dict[str, Any]:
    """Return config unchanged, or raise ConfigurationError listing every problem."""
    errors = validate_config(config)
    if errors:
        raise ConfigurationError("Invalid configuration: " + "; ".join(errors))
    return config


def resolve_path(config: dict[str, Any], key: str, base_dir: Path) -> Path:
    """Resolve a paths.* entry against base_dir (absolute paths are kept)."""
    path = Path(config["paths"][key])
    return path if path.is_absolute() else base_dir / path


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged
