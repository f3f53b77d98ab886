"""Optional JSON settings, so the image base and tool path need not be typed every run.

Example ``funcmatch.json``::

    {
        "base_address": "0x1D1C85C",
        "dump_tool": "/opt/ghs/gdump",
        "paired_singles": true
    }
"""
import json
import logging
from pathlib import Path

from .errors import InputError

DEFAULT_PATH = Path("funcmatch.json")


def load_config(path=None) -> dict:
    """Load settings from *path*, or from funcmatch.json in the working directory."""
    explicit = path is not None
    path = Path(path) if explicit else DEFAULT_PATH
    if not path.exists():
        if explicit:
            raise InputError(f"config file {path} not found")
        logging.warning("%s not found; using command-line defaults", path)
        return {}
    with path.open("r", encoding="utf-8") as fh:
        try:
            cfg = json.load(fh)
        except json.JSONDecodeError as exc:
            logging.error("Failed to parse %s: %s", path, exc)
            return {}
    if not isinstance(cfg, dict):
        logging.error("Ignoring %s: expected a JSON object", path)
        return {}
    return cfg


def address_setting(value):
    """Accept ``"0x1D1C85C"`` as well as plain integers."""
    if value is None or isinstance(value, int):
        return value
    return int(str(value), 0)
