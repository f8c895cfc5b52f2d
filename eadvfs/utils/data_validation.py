# eadvfs/utils/data_validation.py

"""
Data Validation Utilities

This module validates task descriptors before they reach the simulation
engine. Anything malformed is rejected with a ValueError so the run never
starts on bad input.
"""

import logging
import math
from typing import Any, Dict, List, Mapping, Sequence

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('arrival_time', 'burst')
OPTIONAL_DEFAULTS = {'memory_kb': 0.0, 'io_weight': 0.0}


def _as_number(record_index: int, name: str, value: Any) -> float:
    """Convert a field to float, rejecting booleans, text and non-finite values"""
    if isinstance(value, bool):
        raise ValueError(f"Task record {record_index}: {name} is not numeric ({value!r})")
    if not isinstance(value, (int, float)):
        try:
            value = float(value)
        except (TypeError, ValueError):
            raise ValueError(f"Task record {record_index}: {name} is not numeric ({value!r})") from None
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        raise ValueError(f"Task record {record_index}: {name} must be finite, got {value}")
    return value


def validate_task_record(record_index: int, record: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Validate one task descriptor

    Args:
        record_index: Position of the record in the input, used in messages
        record: Mapping with arrival_time, burst and optional memory_kb, io_weight, id

    Returns:
        Normalised dictionary with every field present as a float (id as int)
    """
    if not isinstance(record, Mapping):
        raise ValueError(f"Task record {record_index}: expected an object, got {type(record).__name__}")

    for name in REQUIRED_FIELDS:
        if name not in record:
            raise ValueError(f"Task record {record_index}: missing required field '{name}'")

    validated: Dict[str, Any] = {}
    for name in REQUIRED_FIELDS:
        validated[name] = _as_number(record_index, name, record[name])
    for name, default in OPTIONAL_DEFAULTS.items():
        value = record.get(name)
        validated[name] = default if value is None else _as_number(record_index, name, value)

    if validated['arrival_time'] < 0:
        raise ValueError(f"Task record {record_index}: arrival_time must be >= 0")
    if validated['burst'] <= 0:
        raise ValueError(f"Task record {record_index}: burst must be > 0")
    if validated['memory_kb'] < 0:
        raise ValueError(f"Task record {record_index}: memory_kb must be >= 0")
    if not 0.0 <= validated['io_weight'] <= 1.0:
        raise ValueError(f"Task record {record_index}: io_weight must lie in [0, 1]")

    if record.get('id') is not None:
        task_id = _as_number(record_index, 'id', record['id'])
        if not task_id.is_integer():
            raise ValueError(f"Task record {record_index}: id must be an integer")
        validated['id'] = int(task_id)

    return validated


def validate_task_records(records: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """
    Validate a whole workload

    Args:
        records: Task descriptors in input order

    Returns:
        List of normalised descriptors in the same order
    """
    if not records:
        raise ValueError("Workload contains no tasks")

    validated = [validate_task_record(i, record) for i, record in enumerate(records)]

    # Explicit ids must be unique; records without an id are numbered by position
    seen = set()
    for index, record in enumerate(validated):
        task_id = record.get('id', index + 1)
        if task_id in seen:
            raise ValueError(f"Duplicate task id {task_id}")
        seen.add(task_id)

    logger.debug(f"Validated {len(validated)} task records")
    return validated
