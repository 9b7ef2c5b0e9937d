"""Logging setup for the lottery client.

``LOG_LEVEL`` picks the level (default INFO). ``LOG_FILE``, when set, adds a
file handler next to the console one.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_configured = False


def _ensure_configured() -> None:
    global _configured
    if _configured:
        return

    level = getattr(logging, os.getenv('LOG_LEVEL', 'INFO').upper(), logging.INFO)
    log_file = os.getenv('LOG_FILE', '')
    formatter = logging.Formatter(LOG_FORMAT)

    root = logging.getLogger()
    root.setLevel(level)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding='utf-8')
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
        except OSError:
            root.exception('Cannot open log file %s, logging to console only', log_file)

    _configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for ``name``; root handlers are installed on first use."""
    _ensure_configured()
    return logging.getLogger(name)
