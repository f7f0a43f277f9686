"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
YAML configuration file (~/.castkit/config.yaml).
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".castkit"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"

DEFAULT_API_URL = "https://api.warpcast.com"
DEFAULT_RATE_LIMIT_REQUESTS = 100
DEFAULT_RATE_LIMIT_INTERVAL_SECONDS = 60
DEFAULT_CACHE_CAPACITY = 1000
DEFAULT_CACHE_TTL_SECONDS = 30 * 60
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0

# --- Global Configuration Store (Simple Approach) ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}  # For testing purposes
_loaded = False

def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flattens nested YAML mappings into dotted keys ('cache.ttl_seconds')."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{dotted}."))
        else:
            flat[dotted] = value
    return flat

def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values passed to get_config

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. Load from YAML file (Lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. Load from .env file (Medium priority)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False): # override=False: ENV VARS take precedence
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug(".env file not found at or above current directory.")

    # 3. Environment Variables (Highest priority) are handled by os.getenv in get_config

    _loaded = True
    logger.info("Configuration loading process completed.")

def reset_configuration() -> None:
    """Forgets loaded configuration so the next load_configuration re-reads it."""
    global _config, _loaded
    _config = {}
    _loaded = False

def get_config(key: str, default: Any = None, coerce: bool = True) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable (key upper-cased, dots become underscores)
    3. YAML config
    4. Default value

    Args:
        key: The configuration key
        default: Default value if the key is not found
        coerce: Convert environment strings to bool/int/float where they parse

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = key.upper().replace('.', '_')
    if env_key in os.environ:
        value = os.environ[env_key]
        if not coerce:
            return value
        # Try to convert common types
        if value.lower() == 'true':
            return True
        elif value.lower() == 'false':
            return False
        try:
            if '.' in value:
                return float(value)
            else:
                return int(value)
        except (ValueError, TypeError):
            return value

    if key in _config:
        return _config[key]

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default

def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None

# --- Convenience Functions ---

def get_api_url() -> str:
    return str(get_config('WARPCAST_API_URL') or DEFAULT_API_URL)

def get_fid() -> Optional[int]:
    """The agent's own fid, if configured."""
    fid = get_config('WARPCAST_FID')
    if fid is None or fid == "":
        return None
    try:
        return int(fid)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric WARPCAST_FID: {fid!r}")
        return None

def get_private_key() -> Optional[str]:
    """Custody private key (hex). Never logged."""
    # Hex keys made only of digits must stay strings
    key = get_config('WARPCAST_PRIVATE_KEY', coerce=False)
    return str(key) if key else None

def get_bearer_token() -> Optional[str]:
    """Pre-provisioned bearer token that bypasses signing."""
    token = get_config('WARPCAST_BEARER_TOKEN', coerce=False)
    return str(token) if token else None

def get_rate_limit() -> Dict[str, float]:
    return {
        'max_requests': int(get_config('rate_limit.requests', DEFAULT_RATE_LIMIT_REQUESTS)),
        'time_window': float(get_config('rate_limit.interval_seconds', DEFAULT_RATE_LIMIT_INTERVAL_SECONDS)),
    }

def get_cache_settings() -> Dict[str, float]:
    return {
        'max_items': int(get_config('cache.capacity', DEFAULT_CACHE_CAPACITY)),
        'ttl': float(get_config('cache.ttl_seconds', DEFAULT_CACHE_TTL_SECONDS)),
    }

def get_http_timeout() -> float:
    return float(get_config('http.timeout_seconds', DEFAULT_HTTP_TIMEOUT_SECONDS))

def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration keys: {sorted(config_dict)}")

def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
