"""JSON filesystem storage utilities."""

from .persistence import load_json_file, save_json_file

__all__ = ["load_json_file", "save_json_file"]
