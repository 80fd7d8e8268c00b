# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Configuration loader for tracker settings.

Settings are read from an INI-style configuration file or environment
variables.

Example:
    Configuration file format (config.ini)::

        [tracker]
        base_url = https://mail.example.com
        inject_pixel = true
        track_links = true
        open_path = /email/t
        click_path = /email/n
        expire_days = 60
        token_length = 32
        db_path = /data/mail_tracker.db

    Loading the configuration::

        config = load_tracker_config("/etc/mail-tracker/config.ini")
        # Returns TrackerConfig dataclass
"""

from __future__ import annotations

import configparser
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from mail_tracker.logger import get_logger


@dataclass
class TrackerConfig:
    """Tracker configuration.

    Attributes:
        base_url: Site root; tracking URLs and empty links resolve against it.
        inject_pixel: Insert the open-tracking pixel into HTML parts.
        track_links: Rewrite anchor hrefs through the click-tracking endpoint.
        open_path: Path of the open-pixel endpoint (token is appended).
        click_path: Path of the click-redirect endpoint.
        expire_days: Age after which records may be purged (0 disables).
        token_length: Length of generated correlation tokens.
        db_path: Database connection string.
    """

    base_url: str = "http://localhost"
    inject_pixel: bool = True
    track_links: bool = True
    open_path: str = "/email/t"
    click_path: str = "/email/n"
    expire_days: int = 60
    token_length: int = 32
    db_path: str = "/data/mail_tracker.db"


logger = get_logger("config_loader")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _converter(type_name: Any):
    if type_name in (bool, "bool"):
        return _parse_bool
    if type_name in (int, "int"):
        return int
    return str


def load_tracker_config(config_path: str | None = None) -> TrackerConfig:
    """Load tracker configuration from config file or environment.

    Priority: config file > environment variables > defaults.

    Environment variables:
        MT_BASE_URL, MT_INJECT_PIXEL, MT_TRACK_LINKS, MT_OPEN_PATH,
        MT_CLICK_PATH, MT_EXPIRE_DAYS, MT_TOKEN_LENGTH, MT_DB_PATH

    Args:
        config_path: Optional path to config.ini file

    Returns:
        TrackerConfig with parsed settings, using defaults for missing values.
    """
    defaults = TrackerConfig()
    config_values: dict[str, Any] = {}

    for f in fields(TrackerConfig):
        default = getattr(defaults, f.name)
        env_var = f"MT_{f.name.upper()}"
        env_value = os.environ.get(env_var)
        if env_value is None:
            config_values[f.name] = default
            continue
        try:
            config_values[f.name] = _converter(f.type)(env_value)
        except ValueError:
            logger.warning("Invalid value for %s, using default", env_var)
            config_values[f.name] = default

    if config_path and Path(config_path).exists():
        parser = configparser.ConfigParser()
        parser.read(config_path)

        if parser.has_section("tracker"):
            for f in fields(TrackerConfig):
                raw = parser.get("tracker", f.name, fallback=None)
                if raw is None or not raw.strip():
                    continue
                try:
                    config_values[f.name] = _converter(f.type)(raw.strip())
                except ValueError:
                    logger.warning(
                        "Invalid value for [tracker] %s in %s, keeping %r",
                        f.name, config_path, config_values[f.name],
                    )

    return TrackerConfig(**config_values)
