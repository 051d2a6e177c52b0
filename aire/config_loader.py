# File: aire/config_loader.py

"""
Handles loading and caching of the project's YAML configuration file (`config/config.yaml`)
and sets up centralized logging based on the loaded configuration.

Provides a globally accessible CONFIG dictionary after initial import.
The config path may be overridden with the AIRE_CONFIG_PATH environment
variable, which is also read from a `.env` file at the project root.
Falls back to an empty config and basic logging if loading fails.
"""

import os
import sys
import logging
import logging.handlers
from functools import lru_cache

import yaml
from dotenv import load_dotenv

from aire.exceptions import ConfigFileNotFoundError, ConfigError

# --- Determine Project Root ---
PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(PACKAGE_DIR, '..'))

# --- Load .env (optional) ---
DOTENV_PATH = os.path.join(PROJECT_ROOT, '.env')
if os.path.exists(DOTENV_PATH):
    load_dotenv(dotenv_path=DOTENV_PATH)

# --- Define Config Path ---
CONFIG_FILE_NAME = 'config.yaml'
DEFAULT_CONFIG_PATH = os.path.join(PROJECT_ROOT, 'config', CONFIG_FILE_NAME)
CONFIG_PATH = os.getenv('AIRE_CONFIG_PATH', DEFAULT_CONFIG_PATH)

DEFAULT_LOG_FORMAT = '%(asctime)s - [%(levelname)s] - %(name)s - %(message)s'


# --- Configuration Loading Function ---
@lru_cache()
def load_config(config_path=CONFIG_PATH):
    """Loads the configuration from the YAML file.

    Uses LRU cache to load each path only once.

    Args:
        config_path (str): The path to the configuration YAML file.

    Raises:
        ConfigFileNotFoundError: If the config file doesn't exist.
        ConfigError: If the file cannot be parsed or is not a mapping.

    Returns:
        dict: A dictionary containing the configuration settings.
    """
    log = logging.getLogger(__name__)
    log.info(f"Attempting to load configuration from: {config_path}")
    if not os.path.exists(config_path):
        msg = f"Configuration file not found at: {config_path}"
        log.error(msg)
        raise ConfigFileNotFoundError(msg)
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        msg = f"Error parsing YAML configuration file: {config_path}. Error: {e}"
        log.error(msg, exc_info=True)
        raise ConfigError(msg) from e
    except OSError as e:
        msg = f"Could not read configuration file {config_path}: {e}"
        log.error(msg, exc_info=True)
        raise ConfigError(msg) from e

    if config is None:
        log.warning(f"Configuration file is empty: {config_path}")
        return {}
    if not isinstance(config, dict):
        msg = f"Configuration root must be a mapping, got {type(config).__name__}: {config_path}"
        log.error(msg)
        raise ConfigError(msg)
    log.info("Configuration loaded successfully.")
    return config


# --- Central Logging Setup Function ---
def setup_logging(config):
    """Configures root logger with console and optional file handlers.

    Reads logging level, format, and file settings from the provided config dict.
    Removes pre-existing handlers before adding new ones.

    Args:
        config (dict): The loaded configuration dictionary (expects a 'logging' key).
    """
    if not isinstance(config, dict):
        config = {}
    log_cfg = config.get('logging', {}) or {}
    log_format = log_cfg.get('format', DEFAULT_LOG_FORMAT)
    root_log_level = getattr(logging, str(log_cfg.get('level', 'INFO')).upper(), logging.INFO)
    file_log_level = getattr(logging, str(log_cfg.get('log_file_level', 'DEBUG')).upper(), logging.DEBUG)
    console_log_level = getattr(logging, str(log_cfg.get('log_console_level', 'INFO')).upper(), logging.INFO)
    log_to_file = log_cfg.get('log_to_file', False)

    root_logger = logging.getLogger()
    root_logger.setLevel(min(root_log_level, file_log_level, console_log_level))
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)
    logging.debug(f"Console logging configured at level: {logging.getLevelName(console_log_level)}")

    if log_to_file:
        log_file_path = os.path.join(PROJECT_ROOT, log_cfg.get('log_filename', 'aire.log'))
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file_path, maxBytes=5*1024*1024, backupCount=3, encoding='utf-8')
        except OSError as e:
            logging.error(f"Failed to configure file logging: {e}", exc_info=True)
            return
        file_handler.setLevel(file_log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        logging.debug(f"File logging configured at level: {logging.getLevelName(file_log_level)} to {log_file_path}")


# --- Load config and Setup Logging on Import ---
CONFIG = {}
try:
    CONFIG = load_config()
    setup_logging(CONFIG)
except ConfigError as e:
    logging.basicConfig(level=logging.WARNING, format='%(asctime)s [%(levelname)s] %(message)s')
    logging.warning(f"Failed to load configuration: {e}. Using fallback logging and empty config.")


# --- Convenience Accessors ---
def get_config():
    """Returns the cached configuration dictionary."""
    return CONFIG


def get_setting(*keys, default=None):
    """Walks nested config sections, e.g. get_setting('alerts', 'dedup_window_hours').

    Returns `default` as soon as a key is missing or a section is not a mapping.
    """
    node = CONFIG
    for key in keys:
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return node
