"""
JSON Utilities for the EADVFS Simulator

This module provides utilities for JSON serialization, including a custom
JSON encoder that can handle NumPy data types and enums.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Union

import numpy as np


class NumpyJSONEncoder(json.JSONEncoder):
    """
    Custom JSON encoder that handles NumPy types.

    This encoder converts NumPy data types to their standard Python equivalents
    so they can be properly serialized to JSON. It handles:
    - numpy integers and floats
    - numpy booleans
    - numpy arrays
    - Enum members (serialized by value)

    Example usage:
        import json
        from eadvfs.utils.json_utils import NumpyJSONEncoder

        data = {'array': np.array([1, 2, 3]), 'bool': np.bool_(True)}
        json_str = json.dumps(data, cls=NumpyJSONEncoder)
    """
    def default(self, obj: Any) -> Any:
        if isinstance(obj, np.integer):
            return int(obj)
        elif isinstance(obj, np.floating):
            return float(obj)
        elif isinstance(obj, np.ndarray):
            return obj.tolist()
        elif isinstance(obj, np.bool_):
            return bool(obj)
        elif isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


def save_json(data: Any, filepath: Union[str, Path], pretty: bool = True) -> None:
    """
    Save data to a JSON file with NumPy type handling

    Args:
        data: Data to save
        filepath: Path to the output file
        pretty: Whether to format with indentation (default: True)
    """
    indent = 4 if pretty else None
    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, cls=NumpyJSONEncoder)


def load_json(filepath: Union[str, Path]) -> Any:
    """
    Load data from a JSON file

    Args:
        filepath: Path to the JSON file

    Returns:
        Loaded data

    Raises:
        ValueError: If the file is not valid JSON
    """
    with open(filepath, 'r', encoding='utf-8') as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {filepath}: {exc}") from exc
