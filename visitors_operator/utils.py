"""
Helpers for reading and writing nested dicts with dotted keys
"""

# Standard
from typing import Any

# Local
from .constants import NESTED_DICT_DELIM


def _not_a_dict(parents: list, depth: int) -> TypeError:
    return TypeError(f"{NESTED_DICT_DELIM.join(parents[:depth])} is not a dict")


def nested_set(dct: dict, key: str, val: Any):
    """Set val at a 'foo.bar' key, creating any missing levels on the way

    Raises:
        TypeError: If an existing level on the path is not a dict
    """
    *parents, leaf = key.split(NESTED_DICT_DELIM)
    for depth, part in enumerate(parents, start=1):
        dct = dct.setdefault(part, {})
        if not isinstance(dct, dict):
            raise _not_a_dict(parents, depth)
    dct[leaf] = val


def nested_get(dct: dict, key: str, dflt: Any = None) -> Any:
    """Get the value at a 'foo.bar' key. A missing or null level anywhere on
    the path gives dflt.

    Raises:
        TypeError: If an existing level on the path is not a dict
    """
    *parents, leaf = key.split(NESTED_DICT_DELIM)
    for depth, part in enumerate(parents, start=1):
        dct = dct.get(part)
        if dct is None:
            return dflt
        if not isinstance(dct, dict):
            raise _not_a_dict(parents, depth)
    return dct.get(leaf, dflt)
