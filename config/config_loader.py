import json
import os

from logger.logger import console_message

DEFAULT_CONFIG = {
    "max_steps": 100,
    "num_workers": 1,
    "chunk_size": 4096,
    "log_frequency": 100,
    "show_progress": True,
    "use_accelerated": False,
    "save_results": False,
    "output_directory": "logs/",
    "log_file_prefix": "turing_space_",
}

# Expected types for validation
CONFIG_SCHEMA = {
    "max_steps": int,
    "num_workers": int,
    "chunk_size": int,
    "log_frequency": int,
    "show_progress": bool,
    "use_accelerated": bool,
    "save_results": bool,
    "output_directory": str,
    "log_file_prefix": str,
}

# Lower bounds for the integer settings
CONFIG_MINIMUMS = {
    "max_steps": 0,
    "num_workers": 1,
    "chunk_size": 1,
    "log_frequency": 1,
}


def validate_config(config):
    for key, expected_type in CONFIG_SCHEMA.items():
        if key not in config:
            raise ValueError(f"Missing required configuration key: {key}")
        value = config[key]
        # bool is an int subclass; don't let True pass as a step count.
        if expected_type is int and isinstance(value, bool):
            raise TypeError(f"Config key '{key}' expected {expected_type}, got {type(value)}.")
        if not isinstance(value, expected_type):
            raise TypeError(f"Config key '{key}' expected {expected_type}, got {type(value)}.")

    unknown = set(config) - set(CONFIG_SCHEMA)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    for key, minimum in CONFIG_MINIMUMS.items():
        if config[key] < minimum:
            raise ValueError(f"Config key '{key}' must be >= {minimum}, got {config[key]}.")


def build_config(overrides=None):
    """Merge ``overrides`` over the defaults and validate the result."""
    config = DEFAULT_CONFIG.copy()
    config.update(overrides or {})
    validate_config(config)
    return config


def load_config(path="config/runtime_config.json", verbose=False):
    if not os.path.exists(path):
        raise FileNotFoundError(f"Configuration file not found at: {path}")

    with open(path, "r", encoding="utf-8") as f:
        user_config = json.load(f)

    # Merge defaults with overrides
    config = build_config(user_config)

    if verbose:
        console_message(f"Loaded config from {path}:")
        for key, value in config.items():
            console_message(f"  {key}: {value}")

    return config
