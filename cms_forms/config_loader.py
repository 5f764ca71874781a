"""
Configuration loading utilities for the CMS admin panel.

This module loads config.yaml, deep-merges it over the built-in defaults and
exposes the form-level feature flags as a validated ``FormConfig`` model.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging
from copy import deepcopy

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigurationLoadError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.yaml")

_config_cache: Optional[Dict[str, Any]] = None


class FormConfig(BaseModel):
    """Feature flags for one form instance. Each flag only gates a subsystem."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    mode: str = 'edit'
    enable_auto_save: bool = Field(default=False, alias='enableAutoSave')
    auto_save_interval: int = Field(default=2000, alias='autoSaveInterval', ge=0)
    enable_smart_validation: bool = Field(default=False, alias='enableSmartValidation')
    show_validation_panel: bool = Field(default=False, alias='showValidationPanel')
    show_backup_manager: bool = Field(default=False, alias='showBackupManager')
    show_preview_button: bool = Field(default=False, alias='showPreviewButton')
    enable_keyboard_shortcuts: bool = Field(default=True, alias='enableKeyboardShortcuts')

    @field_validator('mode')
    @classmethod
    def _check_mode(cls, value: str) -> str:
        value = str(value).lower()
        if value not in ('create', 'edit'):
            raise ValueError("mode must be 'create' or 'edit'")
        return value


def deep_merge(base_dict: Dict[str, Any], update_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries, with update_dict taking precedence.

    Args:
        base_dict: Base dictionary (defaults)
        update_dict: Dictionary to merge in (user config)

    Returns:
        Merged dictionary
    """
    result = deepcopy(base_dict)

    for key, value in update_dict.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = deepcopy(value)

    return result


def get_default_config() -> Dict[str, Any]:
    """
    Get the built-in configuration.

    Returns:
        Dictionary with default configuration
    """
    return {
        'app': {
            'name': 'CMS Admin',
            'version': '1.0.0',
            'debug': False
        },
        'ui': {
            'page_title': 'Panel de Contenido',
            'sidebar_title': 'Contenido',
            'viewport_width': 1280,
            'tabs_breakpoint': 768
        },
        'logging': {
            'level': 'INFO'
        },
        'schemas': {
            'directory': 'schemas'
        },
        'forms': {
            'mode': 'edit',
            'enable_auto_save': True,
            'auto_save_interval': 2000,
            'enable_smart_validation': True,
            'show_validation_panel': True,
            'show_backup_manager': True,
            'show_preview_button': True,
            'enable_keyboard_shortcuts': True
        },
        'storage': {
            'content_dir': 'content',
            'backup_dir': 'backups',
            'max_backups': 20
        },
        'media': {
            'library': []
        }
    }


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load application configuration.

    A missing, empty or unreadable file falls back to the defaults with a
    logged warning; it never raises.

    Args:
        config_path: Optional path to config file (defaults to config.yaml)

    Returns:
        Complete configuration dictionary
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    config_path = Path(config_path)

    default_config = get_default_config()

    if not config_path.exists():
        logger.warning(f"Configuration file not found: {config_path}")
        logger.info("Using default configuration")
        return default_config

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            user_config = yaml.safe_load(f)

        if user_config is None:
            logger.warning(f"Configuration file is empty: {config_path}")
            return default_config

        if not isinstance(user_config, dict):
            logger.error(f"Configuration file is not a valid dictionary: {config_path}")
            logger.info("Using default configuration")
            return default_config

        config = deep_merge(default_config, user_config)

        logger.info(f"Successfully loaded configuration from {config_path}")
        return config

    except yaml.YAMLError as e:
        logger.error(f"YAML parsing error in {config_path}: {e}")
        logger.info("Using default configuration")
        return default_config

    except (IOError, OSError) as e:
        logger.error(f"Failed to read configuration file {config_path}: {e}")
        logger.info("Using default configuration")
        return default_config


def get_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Cached configuration; loaded on first use."""
    global _config_cache
    if _config_cache is None:
        _config_cache = load_config(config_path)
    return _config_cache


def reload_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Drop the cache and read the configuration again."""
    global _config_cache
    _config_cache = None
    return get_config(config_path)


def get_config_value(section: str, key: str, default: Any = None) -> Any:
    """
    Read one value from the cached configuration.

    Args:
        section: Top-level section name (e.g. 'ui')
        key: Key inside the section
        default: Returned when the section or key is missing

    Returns:
        The configured value or ``default``
    """
    section_values = get_config().get(section)
    if not isinstance(section_values, dict):
        return default
    return section_values.get(key, default)


def get_form_config(config: Dict[str, Any], overrides: Optional[Dict[str, Any]] = None) -> FormConfig:
    """
    Build the ``FormConfig`` for a form from the ``forms`` section.

    Args:
        config: Complete configuration dictionary
        overrides: Per-form values taking precedence over the config file

    Returns:
        FormConfig instance

    Raises:
        ConfigurationLoadError: If the flags do not validate
    """
    values = deep_merge(config.get('forms') or {}, overrides or {})
    try:
        return FormConfig.model_validate(values)
    except ValidationError as e:
        raise ConfigurationLoadError(DEFAULT_CONFIG_PATH, e,
                                     f"Invalid 'forms' configuration: {e.error_count()} error(s)")

