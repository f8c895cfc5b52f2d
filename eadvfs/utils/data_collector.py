"""
Data Collection Utilities

This module saves simulation output to CSV and JSON files: the periodic
analysis records, per-task results, telemetry time series, the execution
timeline and the run summary.
"""

import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from eadvfs.utils.json_utils import save_json
from eadvfs.utils.reporter import CSV_COLUMNS

logger = logging.getLogger(__name__)


def ensure_output_dir(base_path='results', experiment_id=None):
    """
    Ensure the output directory for one experiment exists

    Args:
        base_path: Base path for results directory
        experiment_id: Optional custom experiment ID (if None, timestamp is used)

    Returns:
        Tuple of (experiment id, directory path)
    """
    experiment_id = experiment_id or datetime.now().strftime('%Y%m%d_%H%M%S')
    data_dir = os.path.join(base_path, experiment_id)
    os.makedirs(data_dir, exist_ok=True)
    logger.info(f"Created output directory for experiment: {experiment_id}")
    return experiment_id, data_dir


def save_snapshot_records(snapshots, file_path, top_n=3):
    """
    Save the periodic analysis records as CSV

    Args:
        snapshots: Snapshots in emission order
        file_path: Destination CSV path
        top_n: Number of ranked consumers per row

    Returns:
        The DataFrame that was written
    """
    columns = CSV_COLUMNS if top_n == 3 else _columns_for(top_n)
    df = pd.DataFrame([s.to_record(top_n) for s in snapshots], columns=columns)
    _write_csv(df, file_path)
    logger.info(f"Saved {len(df)} analysis records to {file_path}")
    return df


def _columns_for(top_n):
    columns = CSV_COLUMNS[:5]
    for rank in range(1, top_n + 1):
        columns += [f'top{rank}_pid', f'top{rank}_cpu_ms']
    return columns + ['hotspots']


def save_task_metrics(tasks, file_path):
    """
    Save per-task results to CSV

    Args:
        tasks: Task table of a finished run
        file_path: Destination CSV path
    """
    rows = []
    for task in tasks:
        row = task.to_dict()
        row['turnaround_time'] = task.turnaround_time
        row['waiting_time'] = task.waiting_time
        rows.append(row)

    df = pd.DataFrame(rows)
    _write_csv(df, file_path)
    logger.info(f"Saved {len(rows)} task metrics to {file_path}")
    return df


def save_time_series_metrics(series, file_path):
    """
    Save telemetry series sharing one timeline to CSV

    Args:
        series: Mapping of name to TimeSeries, all recorded at the same steps
        file_path: Destination CSV path
    """
    if not series:
        logger.warning("No telemetry series to save")
        return None

    lengths = {name: len(s) for name, s in series.items()}
    if len(set(lengths.values())) != 1:
        raise ValueError(f"Telemetry series have different lengths: {lengths}")

    first = next(iter(series.values()))
    data = {'time': first.timestamps()}
    for name, s in series.items():
        data[name] = s.values()

    df = pd.DataFrame(data)
    df = df.replace([np.inf, -np.inf], np.nan)
    _write_csv(df, file_path)
    logger.info(f"Saved time series metrics to {file_path}")
    return df


def save_execution_records(records, file_path):
    """Save the merged execution timeline (Gantt entries) to CSV"""
    df = pd.DataFrame(
        [{'task_id': r.task_id, 'start': r.start, 'duration': r.duration, 'end': r.end} for r in records],
        columns=['task_id', 'start', 'duration', 'end'],
    )
    _write_csv(df, file_path)
    logger.info(f"Saved {len(df)} execution records to {file_path}")
    return df


def save_run_summary(summaries: Dict[str, Dict[str, Any]], file_path: str,
                     metadata: Optional[Dict[str, Any]] = None) -> None:
    """
    Save run summaries to a JSON file

    Args:
        summaries: Mapping of policy name to its summary dictionary
        file_path: Destination JSON path
        metadata: Optional extra fields stored alongside the summaries
    """
    payload: Dict[str, Any] = {
        'generated_at': datetime.now().isoformat(timespec='seconds'),
        'runs': summaries,
    }
    if metadata:
        payload['metadata'] = metadata
    save_json(payload, file_path)
    logger.info(f"Saved run summary to {file_path}")


def save_run_outputs(result, data_dir) -> List[str]:
    """
    Save every per-run artefact into a directory

    Returns:
        Paths of the files written
    """
    prefix = os.path.join(data_dir, result.policy.replace(' ', '_'))
    paths = [
        f"{prefix}_analysis.csv",
        f"{prefix}_tasks.csv",
        f"{prefix}_timeseries.csv",
        f"{prefix}_gantt.csv",
    ]
    save_snapshot_records(result.snapshots, paths[0])
    save_task_metrics(result.tasks, paths[1])
    save_time_series_metrics(result.state.series, paths[2])
    save_execution_records(result.state.execution_records, paths[3])
    return paths


def _write_csv(df, file_path):
    directory = os.path.dirname(str(file_path))
    if directory:
        os.makedirs(directory, exist_ok=True)
    df.to_csv(file_path, index=False)
