"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from environment
variables when it is instantiated.  Defaults are provided for all
fields.  Tests and embedding code can construct ``Settings`` with
explicit values and hand it to ``create_app``.
"""

import os
from dataclasses import dataclass, field


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = field(default_factory=lambda: os.getenv("PROJECT_NAME", "Countdown API"))
    api_version: str = field(default_factory=lambda: os.getenv("API_VERSION", "1.0.0"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_file: str = field(default_factory=lambda: os.getenv("LOG_FILE", ""))

    # Path of the JSON file holding the whole counter collection.  A
    # relative path is resolved against the current working directory.
    counters_file: str = field(default_factory=lambda: os.getenv("COUNTERS_FILE", "counters.json"))

    # When the counters file exists but cannot be decoded, startup fails
    # by default.  With this flag set the bad file is renamed to a
    # timestamped backup and the service starts with an empty collection.
    start_empty_on_corrupt: bool = field(default_factory=lambda: _env_flag("START_EMPTY_ON_CORRUPT"))

    host: str = field(default_factory=lambda: os.getenv("ADDR", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "3000")))


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables
# should be set before importing this module.
settings = Settings()
