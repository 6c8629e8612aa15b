"""
Core Utility Functions.

Common utilities used across the application.
"""

import math
from typing import Any, Iterable, List, Union

import numpy as np


def convert_numpy(obj: Any) -> Any:
    """
    Convert numpy types to Python native types for JSON serialization.

    Recursively converts numpy arrays, scalars, and nested structures
    to their Python equivalents.

    Args:
        obj: Any object that may contain numpy types

    Returns:
        Object with numpy types converted to Python natives

    Examples:
        >>> convert_numpy(np.float64(0.5))
        0.5
        >>> convert_numpy({'gender:f': np.float64(0.25)})
        {'gender:f': 0.25}
    """
    if isinstance(obj, np.bool_):
        return bool(obj)
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, dict):
        return {convert_numpy(k): convert_numpy(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [convert_numpy(v) for v in obj]
    elif isinstance(obj, tuple):
        return tuple(convert_numpy(v) for v in obj)
    elif isinstance(obj, set):
        return list(convert_numpy(v) for v in obj)
    return obj


def to_score(value: Union[str, bytes, int, float]) -> float:
    """
    Coerce a stored numeric value to float.

    Redis returns hash values as strings (or bytes without
    decode_responses); infinities are spelled ``inf``/``-inf``.

    Raises:
        ValueError: If the value is not numeric
    """
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    return float(value)


def is_finite_number(value: Any) -> bool:
    """True for real, finite ints/floats (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def dedupe_preserving_order(items: Iterable[str]) -> List[str]:
    """Drop repeated entries, keeping the first occurrence of each."""
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result
