"""
Configuration Module for the ISR Blog.

This module provides configuration loading and management for the blog service.
Configuration is loaded from config.yml and supports environment variables and
Docker secrets for the two credentials the service needs:

    NEXT_PUBLIC_STORYBLOK_CONTENT_API_ACCESS_TOKEN  Storyblok read token
    REVALIDATION_SECRET                             Webhook shared secret

Usage:
    >>> from config import load_config, resolve_secret
    >>> config = load_config()
    >>> token = resolve_secret(config.get("storyblok", {}), "access_token",
    ...                        STORYBLOK_TOKEN_ENV)
"""
import os
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


logger = logging.getLogger(__name__)
DEFAULT_TIMEZONE = "UTC"

STORYBLOK_TOKEN_ENV = "NEXT_PUBLIC_STORYBLOK_CONTENT_API_ACCESS_TOKEN"
REVALIDATION_SECRET_ENV = "REVALIDATION_SECRET"


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from config.yml file.

    Args:
        config_path: Path to config.yml file. If None, looks in current directory
                    and parent directories.

    Returns:
        Dictionary containing configuration settings. Sections missing from
        the file are filled in from get_default_config().

    Example:
        >>> config = load_config()
        >>> region = config["storyblok"]["region"]
    """
    if config_path is None:
        # Try to find config.yml in current directory or parent directories
        current = Path.cwd()
        for parent in [current] + list(current.parents):
            candidate = parent / "config.yml"
            if candidate.exists():
                config_path = str(candidate)
                break

        # If still not found, check the project root (where this file is located)
        if config_path is None:
            project_root = Path(__file__).parent.parent.parent
            candidate = project_root / "config.yml"
            if candidate.exists():
                config_path = str(candidate)

    if config_path is None:
        logger.warning("config.yml not found, using default configuration")
        return get_default_config()

    try:
        with open(config_path, "r") as f:
            config = yaml.safe_load(f)
    except FileNotFoundError:
        logger.warning(f"Configuration file not found: {config_path}")
        return get_default_config()
    except yaml.YAMLError as e:
        logger.error(f"Error parsing configuration file: {e}")
        return get_default_config()

    if config is None:
        config = {}
    if not isinstance(config, dict):
        logger.warning("Configuration root must be a mapping, using default configuration")
        return get_default_config()

    config = _merge_defaults(config, get_default_config())
    # Validate timezone at load time to keep behavior consistent everywhere.
    config["timezone"] = get_timezone_name(config)
    logger.info(f"Loaded configuration from {config_path}")
    return config


def get_default_config() -> Dict[str, Any]:
    """Return default configuration when config.yml is not available.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "timezone": DEFAULT_TIMEZONE,
        "site_title": "ISR Blog Example",
        "storyblok": {
            "region": "eu",
            "starts_with": "blog/",
            "per_page": 100,
            "timeout": 30,
            "access_token_file": "/run/secrets/storyblok_access_token"
        },
        "revalidation": {
            "max_workers": 10,
            "prerender_count": 2,
            "secret_file": "/run/secrets/revalidation_secret"
        },
        "relay": {
            "revalidate_url": "http://127.0.0.1:5000/api/revalidate",
            "timeout": 30
        },
        "cors": {
            "enabled": False,
            "origins": []
        }
    }


def _merge_defaults(config: Dict[str, Any], defaults: Dict[str, Any]) -> Dict[str, Any]:
    """Fill keys missing from config with values from defaults, one level of sections deep."""
    merged = dict(defaults)
    for key, value in config.items():
        if isinstance(value, dict) and isinstance(defaults.get(key), dict):
            merged[key] = {**defaults[key], **value}
        else:
            merged[key] = value
    return merged


def get_timezone_name(config: Dict[str, Any]) -> str:
    """Return a validated timezone name from config, with UTC fallback."""
    tz_name = config.get("timezone", DEFAULT_TIMEZONE)
    if not isinstance(tz_name, str) or not tz_name.strip():
        logger.warning(f"Invalid timezone configuration {tz_name!r}; falling back to {DEFAULT_TIMEZONE}")
        return DEFAULT_TIMEZONE

    tz_name = tz_name.strip()
    try:
        ZoneInfo(tz_name)
    except ZoneInfoNotFoundError:
        logger.warning(f"Unknown timezone '{tz_name}'; falling back to {DEFAULT_TIMEZONE}")
        return DEFAULT_TIMEZONE

    return tz_name


def get_timezone(config: Dict[str, Any]) -> ZoneInfo:
    """Return a validated ZoneInfo instance from config."""
    return ZoneInfo(get_timezone_name(config))


def read_secret_file(filepath: str) -> Optional[str]:
    """Read a Docker secret from a file.

    Docker secrets are mounted as files in /run/secrets/ directory.
    This function reads the content of the secret file.

    Args:
        filepath: Path to the secret file

    Returns:
        Content of the secret file (stripped of whitespace), or None if file doesn't exist

    Example:
        >>> token = read_secret_file("/run/secrets/revalidation_secret")
    """
    try:
        with open(filepath, "r") as f:
            return f.read().strip()
    except FileNotFoundError:
        logger.debug(f"Secret file not found: {filepath}")
        return None
    except OSError as e:
        logger.error(f"Error reading secret file {filepath}: {e}")
        return None


def resolve_secret(section: Dict[str, Any], key: str, env_var: str) -> Optional[str]:
    """Resolve a credential from a config section.

    Priority: inline config value > "<key>_file" secret file > environment variable.

    Args:
        section: Config section dictionary (e.g. config["storyblok"])
        key: Name of the inline key (e.g. "access_token"); the file variant
             is looked up as "<key>_file"
        env_var: Environment variable consulted last

    Returns:
        The secret value, or None if no source provides a non-empty value
    """
    value = section.get(key)
    if not value:
        secret_file = section.get(f"{key}_file")
        if secret_file:
            value = read_secret_file(secret_file)
    if not value:
        value = os.environ.get(env_var)
    return value or None
