"""
hubbub.config — YAML Configuration Loader
==========================================

Reads ``config.yaml`` for infrastructure settings (store URL, log level) and
the flat ``options`` mapping of engine tunables.  Secrets can live in a
``.env`` file: ``REDIS_URL`` from the environment wins over the YAML value.

Usage::

    from hubbub.config import configure_logging, load_config
    from hubbub.engine.options import Options
    from hubbub.store.redis_store import create_store

    cfg = load_config()              # reads ./config.yaml by default
    configure_logging(cfg.log_level)
    store = create_store(cfg.redis_url)
    options = Options(cfg.options)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

DEFAULT_REDIS_URL = "redis://localhost:6379/0"

LOG_FORMAT = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class HubbubConfig:
    """Immutable configuration loaded from ``config.yaml``.

    ``options`` is passed verbatim to :class:`~hubbub.engine.options.Options`;
    unknown keys are kept, missing keys fall back to the catalogue defaults.
    """

    redis_url: str = DEFAULT_REDIS_URL
    log_level: str = "INFO"
    options: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> HubbubConfig:
    """Read *path* and return a :class:`HubbubConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ValueError
        If ``options`` is present but is not a mapping.
    """
    load_dotenv()

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    options = raw.get("options") or {}
    if not isinstance(options, dict):
        raise ValueError("'options' must be a mapping of tunable name → value")

    return HubbubConfig(
        redis_url=os.getenv("REDIS_URL") or raw.get("redis_url") or DEFAULT_REDIS_URL,
        log_level=str(raw.get("log_level", "INFO")).upper(),
        options=dict(options),
    )


def configure_logging(level: str = "INFO") -> None:
    """Install the console log format used by every Hubbub process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )
