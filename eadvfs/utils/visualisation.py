"""
Visualisation Utilities

This module provides functions for visualising simulation runs: the
execution timeline, the telemetry series with their forecasts, and bar
charts comparing policies.
"""

import os

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from eadvfs.config.params import VISUALISATION


def ensure_output_dir(path=VISUALISATION['save_path']):
    """Ensure the output directory exists"""
    if not os.path.exists(path):
        os.makedirs(path)
    return path


def _finish(output_path):
    if output_path:
        plt.savefig(output_path, dpi=150, bbox_inches='tight')
        plt.close()
    else:
        plt.tight_layout()
        plt.show()


def plot_execution_timeline(execution_records, tasks, policy_name, output_path=None):
    """
    Plot the execution timeline as a Gantt chart

    Args:
        execution_records: Merged ExecutionRecord list of a run
        tasks: Task table, used for arrival markers
        policy_name: Name of the speed policy
        output_path: Path to save the plot
    """
    plt.figure(figsize=(12, 6))

    if not execution_records:
        plt.title(f"No execution records for {policy_name}")
        _finish(output_path)
        return

    df = pd.DataFrame(
        [{'task': f"P{r.task_id}", 'start': r.start, 'duration': r.duration} for r in execution_records]
    )
    labels = [f"P{task.id}" for task in tasks]
    colors = plt.cm.tab10(np.linspace(0, 1, max(len(labels), 1)))
    color_by_label = dict(zip(labels, colors))

    for _, record in df.iterrows():
        plt.barh(y=record['task'], width=record['duration'], left=record['start'],
                 color=color_by_label.get(record['task'], '#607D8B'), edgecolor='black', alpha=0.8)

    # Arrival markers
    for task in tasks:
        plt.scatter(task.arrival_time, f"P{task.id}", marker='|', color='red', s=100)
    plt.scatter([], [], marker='|', color='red', label='Arrival Time')

    plt.legend(loc='upper right')
    plt.xlabel('Time (ms)')
    plt.ylabel('Task')
    plt.title(f'Execution Timeline - {policy_name}')
    plt.grid(axis='x', linestyle='--', alpha=0.7)
    _finish(output_path)


def plot_telemetry(series, snapshots, policy_name, output_path=None):
    """
    Plot CPU utilisation, memory (with clamped forecasts) and power over time

    Args:
        series: Mapping of series name to TimeSeries
        snapshots: Snapshots of the run, used for forecast markers
        policy_name: Name of the speed policy
        output_path: Path to save the plot
    """
    names = [name for name in ('cpu_util', 'memory_kb', 'power_w') if name in series]
    fig, axes = plt.subplots(len(names), 1, figsize=(12, 3 * len(names)), sharex=True, squeeze=False)
    colors = VISUALISATION['colors']
    ylabels = {'cpu_util': 'CPU Utilisation (%)', 'memory_kb': 'Memory (kb)', 'power_w': 'Power (W)'}

    for ax, name in zip(axes[:, 0], names):
        s = series[name]
        if len(s) == 0:
            ax.set_title(f"No {name} data")
            continue
        if name == 'power_w':
            ax.step(s.timestamps(), s.values(), where='pre', color=colors[name])
        else:
            ax.plot(s.timestamps(), s.values(), marker='o', markersize=2, color=colors[name])
        ax.set_ylabel(ylabels[name])
        ax.grid(True, linestyle='--', alpha=0.7)

        if name == 'memory_kb' and snapshots:
            ax.scatter([snap.timestamp for snap in snapshots],
                       [snap.forecast.value for snap in snapshots],
                       marker='x', color=colors['forecast'], label='Clamped forecast')
            ax.legend(loc='upper right')

    axes[-1, 0].set_xlabel('Time (ms)')
    fig.suptitle(f'Telemetry - {policy_name}')
    _finish(output_path)


def plot_policy_comparison(summaries, metric_name, title, ylabel, output_path=None):
    """
    Compare a specific metric across speed policies

    Args:
        summaries: Dictionary mapping policy names to their run summaries
        metric_name: Name of the metric to compare
        title: Plot title
        ylabel: Y-axis label
        output_path: Path to save the plot
    """
    plt.figure(figsize=(10, 6))

    policies = []
    values = []
    for policy, summary in summaries.items():
        value = summary.get(metric_name)
        if isinstance(value, (int, float, np.number)) and not isinstance(value, bool):
            policies.append(policy)
            values.append(float(value))

    if not policies:
        plt.title(f"No data available for {metric_name}")
        _finish(output_path)
        return

    colors = [get_policy_color(policy) for policy in policies]
    plt.bar(policies, values, color=colors, alpha=0.8, edgecolor='black')
    plt.title(title)
    plt.ylabel(ylabel)
    plt.grid(axis='y', linestyle='--', alpha=0.7)

    # Add values on top of bars
    top = max(values) if max(values) > 0 else 1.0
    for i, v in enumerate(values):
        plt.text(i, v + top * 0.02, f'{v:.2f}', ha='center', va='bottom', fontweight='bold')

    _finish(output_path)


def get_policy_color(policy):
    """Get color based on policy name"""
    colors = VISUALISATION['colors']
    if policy.startswith('fixed'):
        return colors['fixed']
    return colors['adaptive']


def generate_run_plots(result, output_dir):
    """
    Save the timeline and telemetry plots of one run

    Returns:
        Paths of the saved images
    """
    ensure_output_dir(output_dir)
    name = result.policy.replace(' ', '_')
    paths = [
        os.path.join(output_dir, f"{name}_timeline.png"),
        os.path.join(output_dir, f"{name}_telemetry.png"),
    ]
    plot_execution_timeline(result.state.execution_records, result.tasks, result.policy, paths[0])
    plot_telemetry(result.state.series, result.snapshots, result.policy, paths[1])
    return paths
