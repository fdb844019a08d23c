from constants import *
import copy
import yaml
import os

import logging

# Retrieve main logger
logger = logging.getLogger("main")


# Cache variable
_cached_settings = None


def merge_settings(defaults, overrides):
    """Merge user settings section by section over the defaults"""
    merged_settings = copy.deepcopy(defaults)
    for section, values in (overrides or {}).items():
        if isinstance(values, dict) and section in merged_settings and isinstance(merged_settings[section], dict):
            merged_settings[section].update(values)
        else:
            merged_settings[section] = values
    return merged_settings


def load_settings(force=False, config_file=None):
    global _cached_settings

    if _cached_settings and not force:
        return _cached_settings

    config_file = config_file or CONFIG_FILE
    if os.path.exists(config_file):
        logger.debug(f"Reading configuration file: {config_file}")
        with open(config_file, "r") as yaml_file:
            settings = yaml.safe_load(yaml_file) or {}

        # Deep merge with defaults to ensure new keys are present
        settings = merge_settings(DEFAULT_SETTINGS, settings)

    else:
        settings = copy.deepcopy(DEFAULT_SETTINGS)
        os.makedirs(os.path.dirname(config_file), exist_ok=True)
        with open(config_file, "w") as yaml_file:
            yaml.dump(settings, yaml_file)

    _cached_settings = settings
    return settings


def verify_settings(section, data):
    success = True
    errors = []
    if section == "storage":
        for key in ("upload_dir", "cache_dir"):
            path = data.get(key)
            if path and not os.path.isdir(path):
                success = False
                errors.append({"path": f"storage/{key}", "error": f"Path {path} does not exists."})
    elif section == "addons":
        limit = data.get("image_dedup_limit")
        if not isinstance(limit, int) or limit < 1:
            success = False
            errors.append({"path": "addons/image_dedup_limit", "error": "Limit must be a positive integer."})
    return success, errors


def set_settings_section(section, data, config_file=None):
    success, errors = verify_settings(section, data)
    if not success:
        return success, errors

    settings = load_settings(force=True, config_file=config_file)
    settings.setdefault(section, {}).update(data)
    with open(config_file or CONFIG_FILE, "w") as yaml_file:
        yaml.dump(settings, yaml_file)
    reload_conf(config_file=config_file)
    return success, errors


def reload_conf(config_file=None):
    """Reload application settings cache"""
    global _cached_settings
    _cached_settings = None
    return load_settings(force=True, config_file=config_file)
