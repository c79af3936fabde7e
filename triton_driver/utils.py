"""Utility functions for triton-machine-driver."""

from __future__ import annotations

import os
import shutil
import time
from pathlib import Path
from typing import Callable, Optional

from triton_driver.constants import _LOG_VERBOSE, TRUTHY


def log(level: str, message: str) -> None:
    """Lightweight structured logging with coloured level tags."""
    if level == "DEBUG" and not _LOG_VERBOSE:
        return
    colours = {
        "INFO": "\033[0;34m",
        "WARN": "\033[1;33m",
        "ERROR": "\033[0;31m",
        "SUCCESS": "\033[0;32m",
        "DEBUG": "\033[0;90m",
    }
    colour = colours.get(level, "")
    reset = "\033[0m" if colour else ""
    print(f"{colour}[{level}]{reset} {message}", flush=True)


def get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def get_env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.lower() in TRUTHY


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def remove_directory(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)


def wait_for(predicate: Callable[[], bool], max_attempts: int, interval: float) -> bool:
    """Poll ``predicate`` up to ``max_attempts`` times, sleeping ``interval`` between tries."""
    for attempt in range(max_attempts):
        if predicate():
            return True
        if attempt + 1 < max_attempts:
            time.sleep(interval)
    return False


def short_id(identifier: str) -> str:
    """Return the leading segment of a UUID-style id, e.g. ``ca291f66``."""
    return identifier.split("-", 1)[0]
