"""
Performance Metrics Calculation

This module calculates the end-of-run summary for a simulation: turnaround,
waiting and response times, makespan, CPU utilisation and energy.
"""

import statistics


class MetricsCalculator:
    """Calculator for analysing simulation performance metrics"""

    def calculate_task_metrics(self, tasks):
        """
        Calculate timing metrics over finished tasks

        Args:
            tasks: Full task table of a run

        Returns:
            Dictionary containing calculated metrics
        """
        finished = [task for task in tasks if task.finish_time is not None]
        if not finished:
            return {
                'count': len(tasks),
                'finished': 0,
                'unfinished': len(tasks),
                'avg_turnaround_time': 0.0,
                'avg_waiting_time': 0.0,
                'avg_response_time': 0.0,
            }

        turnaround_times = [task.turnaround_time for task in finished]
        waiting_times = [task.waiting_time for task in finished]
        response_times = [task.response_time for task in finished]

        return {
            'count': len(tasks),
            'finished': len(finished),
            'unfinished': len(tasks) - len(finished),
            'avg_turnaround_time': sum(turnaround_times) / len(finished),
            'avg_waiting_time': sum(waiting_times) / len(finished),
            'avg_response_time': sum(response_times) / len(finished),
        }

    def calculate_series_metrics(self, series):
        """
        Calculate summary statistics for a telemetry series

        Args:
            series: TimeSeries to summarise

        Returns:
            Dictionary with mean, max and variance of the recorded values
        """
        values = list(series.values())
        if not values:
            return {'mean': 0.0, 'max': 0.0, 'variance': 0.0}

        return {
            'mean': sum(values) / len(values),
            'max': series.max_observed,
            'variance': statistics.variance(values) if len(values) > 1 else 0.0,
        }

    def calculate_run_summary(self, result):
        """
        Calculate the final summary of a simulation run

        Args:
            result: SimulationResult returned by SingleProcessor.run()

        Returns:
            Dictionary of scalar metrics keyed by name
        """
        state = result.state
        makespan = result.makespan
        summary = {'policy': result.policy}
        summary.update(self.calculate_task_metrics(result.tasks))
        summary.update({
            'makespan': makespan,
            'cpu_utilization': state.busy_time / max(1.0, makespan) * 100.0,
            'busy_time': state.busy_time,
            'total_energy_j': state.energy_j,
            'idle_energy_j': state.idle_energy_j,
            'end_time': state.current_time,
            'cutoff': state.cutoff,
            'snapshots': len(result.snapshots),
        })
        summary['avg_cpu_util_series'] = self.calculate_series_metrics(state.series['cpu_util'])['mean']
        summary['peak_memory_kb'] = state.series['memory_kb'].max_observed
        return summary


def format_summary(summary, execution_records=None, tasks=None):
    """
    Render the end-of-run summary block

    Args:
        summary: Dictionary from MetricsCalculator.calculate_run_summary
        execution_records: Optional list of ExecutionRecord for the Gantt line
        tasks: Optional task table for per-task detail
    """
    lines = [
        f"===== {summary['policy']} Simulation Results =====",
        f"Processes: {summary['count']} ({summary['unfinished']} unfinished)",
        f"Avg Turnaround (ms): {summary['avg_turnaround_time']:.3f}",
        f"Avg Waiting (ms): {summary['avg_waiting_time']:.3f}",
        f"Avg Response (ms): {summary['avg_response_time']:.3f}",
        f"Makespan (ms): {summary['makespan']:.3f}",
        f"Total Energy (J): {summary['total_energy_j']:.3f}",
        f"CPU Utilization (%): {summary['cpu_utilization']:.3f}",
    ]
    if summary['cutoff']:
        lines.append(f"Run stopped at the safety horizon (t={summary['end_time']:.1f}ms)")

    if execution_records:
        lines.append("")
        lines.append("Gantt chart (pid:duration_ms):")
        lines.append(" ".join(f"[P{r.task_id}:{round(r.duration)}ms]" for r in execution_records))

    if tasks:
        lines.append("")
        lines.append("Detailed per-process:")
        for task in tasks:
            start = "-" if task.start_time is None else f"{task.start_time:.3f}"
            finish = "-" if task.finish_time is None else f"{task.finish_time:.3f}"
            lines.append(
                f"P{task.id} arrival={task.arrival_time:.3f} burst={task.burst:.3f} "
                f"start={start} finish={finish}"
            )
    return "\n".join(lines)
