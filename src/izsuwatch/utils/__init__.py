"""Shared utilities for izsuwatch."""

from .io import get_data_path, read_json, write_json
from .text import name_key, normalize_turkish, to_int, to_number

__all__ = [
    "get_data_path",
    "read_json",
    "write_json",
    "name_key",
    "normalize_turkish",
    "to_int",
    "to_number",
]
