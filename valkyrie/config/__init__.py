"""Configuration module for Valkyrie.

Provides focused pieces for different configuration concerns:
- Config: Main configuration class (required variables + settings)
- Settings: Optional environment tunables
- load_environment: Layered ``.env`` loading
"""

from valkyrie.config.main import (
    REQUIRED_ENV_VARS,
    Config,
    ConfigurationError,
    load_environment,
)
from valkyrie.config.settings import Settings

__all__ = [
    "Config",
    "ConfigurationError",
    "REQUIRED_ENV_VARS",
    "Settings",
    "load_environment",
]
