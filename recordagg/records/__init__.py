"""Record access helpers shared by the aggregation engine."""

from .paths import PathToken, get_path, parse_path, set_path

__all__ = ["PathToken", "get_path", "parse_path", "set_path"]
