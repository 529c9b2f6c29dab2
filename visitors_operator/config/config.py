"""
Loads the library config at import time, validates it, and applies the
initial logging setup
"""

# Standard
import os

# First Party
import aconfig
import alog

# Local
from .validation import get_invalid_params

CONFIG_DIR = os.path.dirname(__file__)


def _load(file_name: str, override_env_vars: bool) -> aconfig.Config:
    return aconfig.Config.from_yaml(
        os.path.join(CONFIG_DIR, file_name), override_env_vars=override_env_vars
    )


# Env vars may override any library config key, but never the validation rules
library_config = _load("config.yaml", override_env_vars=True)
validation_config = _load("config_validation.yaml", override_env_vars=False)

invalid_params = get_invalid_params(library_config, validation_config)
assert not invalid_params, f"Invalid library config values: {invalid_params}"

alog.configure(
    default_level=library_config.log_level,
    filters=library_config.log_filters,
    formatter="json" if library_config.log_json else "pretty",
    thread_id=library_config.log_thread_id,
)
