#!/usr/bin/env python3
"""
EADVFS Simulator command line

Loads a workload (trace file, random workload or the built-in sample),
simulates it under the energy-aware speed policy and optionally under fixed
speed baselines, prints the periodic analysis and the final summary, and
writes the analysis records to CSV.
"""

import argparse
import logging
import os
import sys
from typing import Dict, Optional, Sequence

from eadvfs.analysis import Analyzer
from eadvfs.config.params import REPORTING, SIMULATION, VISUALISATION
from eadvfs.processors.single_processor import SingleProcessor
from eadvfs.schedulers.speed_controller import SpeedController, SpeedTable
from eadvfs.schedulers.srtf import SRTFScheduler
from eadvfs.task_generator import TaskGenerator, load_tasks, sample_tasks
from eadvfs.utils.data_collector import (
    ensure_output_dir,
    save_run_outputs,
    save_run_summary,
    save_snapshot_records,
)
from eadvfs.utils.metrics import MetricsCalculator, format_summary
from eadvfs.utils.reporter import Reporter, format_snapshot

logger = logging.getLogger(__name__)

EXIT_INPUT_ERROR = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='eadvfs-sim',
        description="Energy-aware DVFS scheduling simulation with telemetry analysis",
    )
    parser.add_argument('input', nargs='?', default=None,
                        help='Trace file: text with "arrival burst [memory_kb io_weight]" per line, or JSON. '
                             'The built-in sample workload is used when omitted.')
    parser.add_argument('--random', type=int, metavar='N', default=None,
                        help='Simulate N randomly generated tasks instead of a trace')
    parser.add_argument('--seed', type=int, default=None, help='Random seed for --random (None for entropy)')
    parser.add_argument('--csv', default=REPORTING['csv_path'],
                        help=f"Analysis CSV path (default: {REPORTING['csv_path']})")
    parser.add_argument('--output-dir', default=None,
                        help='Directory for task, time series, timeline and summary files')
    parser.add_argument('--fixed-speed', metavar='LABEL', default=None,
                        help='Pin every slice to one speed level instead of the adaptive policy')
    parser.add_argument('--compare', action='store_true',
                        help='Also run every fixed speed level and print a comparison')
    parser.add_argument('--horizon', type=float, default=SIMULATION['horizon'],
                        help=f"Safety horizon in ms (default: {SIMULATION['horizon']:.0f})")
    parser.add_argument('--quantum', type=float, default=SIMULATION['quantum'],
                        help=f"Slice cap in ms (default: {SIMULATION['quantum']:.0f})")
    parser.add_argument('--report-interval', type=float, default=REPORTING['interval'],
                        help=f"Snapshot interval in ms (default: {REPORTING['interval']:.0f})")
    parser.add_argument('--generate-plots', action='store_true', default=False,
                        help='Save timeline and telemetry plots')
    parser.add_argument('--quiet', action='store_true', help='Do not print the periodic analysis blocks')
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], help='Logging level (default: WARNING)')
    return parser


def load_workload(args):
    """
    Obtain the task list requested on the command line

    Raises:
        FileNotFoundError, OSError: If the trace file cannot be read
        ValueError: If the trace file is malformed
    """
    if args.input is not None:
        return load_tasks(args.input)
    if args.random is not None:
        return TaskGenerator(config={'count': args.random}, seed=args.seed).generate_tasks()
    print("No input file given - using sample workload.")
    return sample_tasks()


def build_processor(args, fixed_speed=None):
    controller = SpeedController(SpeedTable.default(), fixed_level=fixed_speed)
    reporter = Reporter(Analyzer(), config={'interval': args.report_interval})
    return SingleProcessor(
        scheduler=SRTFScheduler(),
        speed_controller=controller,
        reporter=reporter,
        config={'horizon': args.horizon, 'quantum': args.quantum},
    )


def simulate(tasks, args, fixed_speed=None):
    """
    Run one policy over private copies of the tasks

    Returns:
        Tuple of (SimulationResult, summary dictionary)
    """
    processor = build_processor(args, fixed_speed=fixed_speed)
    processor.add_tasks([task.copy() for task in tasks])
    result = processor.run()
    summary = MetricsCalculator().calculate_run_summary(result)
    return result, summary


def format_comparison(summaries: Dict[str, Dict]) -> str:
    """Render one line per policy with the headline metrics"""
    header_fmt = "{:<16} {:>12} {:>12} {:>14} {:>12} {:>8}"
    row_fmt = "{:<16} {:>12.4f} {:>12.3f} {:>14.3f} {:>12.3f} {:>8.2f}"
    lines = [header_fmt.format("Policy", "Energy(J)", "Makespan", "AvgTurnaround", "AvgWaiting", "Util%")]
    for policy, s in summaries.items():
        lines.append(row_fmt.format(
            policy, s['total_energy_j'], s['makespan'], s['avg_turnaround_time'],
            s['avg_waiting_time'], s['cpu_utilization'],
        ))
    return "\n".join(lines)


def run_headless(args, tasks) -> int:
    logger.info(f"Using {len(tasks)} tasks")

    runs = [args.fixed_speed]
    if args.compare:
        runs += [level.label for level in SpeedTable.default() if level.label != args.fixed_speed]
        if args.fixed_speed is not None:
            runs.append(None)

    results = []
    summaries: Dict[str, Dict] = {}
    for fixed_speed in runs:
        result, summary = simulate(tasks, args, fixed_speed=fixed_speed)
        results.append(result)
        summaries[result.policy] = summary

    primary = results[0]
    tasks_by_id = {task.id: task for task in primary.tasks}
    if not args.quiet:
        for snapshot in primary.snapshots:
            print()
            print(format_snapshot(snapshot, tasks_by_id))

    print()
    print(format_summary(summaries[primary.policy], primary.state.execution_records, primary.tasks))

    if len(results) > 1:
        print()
        print(format_comparison(summaries))

    save_snapshot_records(primary.snapshots, args.csv)
    print(f"\nAnalysis CSV saved to {args.csv}")

    plot_dir = None
    if args.output_dir is not None:
        _, data_dir = ensure_output_dir(args.output_dir)
        for result in results:
            save_run_outputs(result, data_dir)
        save_run_summary(summaries, os.path.join(data_dir, 'summary.json'),
                         metadata={'input': args.input, 'tasks': len(tasks)})
        plot_dir = data_dir
        print(f"Run outputs saved to {data_dir}")

    if args.generate_plots:
        # Imported lazily so runs without plots never load matplotlib
        from eadvfs.utils.visualisation import generate_run_plots, plot_policy_comparison

        plot_dir = plot_dir or VISUALISATION['save_path']
        for result in results:
            generate_run_plots(result, plot_dir)
        if len(results) > 1:
            plot_policy_comparison(summaries, 'total_energy_j', 'Total Energy by Policy', 'Energy (J)',
                                   os.path.join(plot_dir, 'energy_comparison.png'))
            plot_policy_comparison(summaries, 'avg_turnaround_time', 'Average Turnaround by Policy',
                                   'Turnaround (ms)', os.path.join(plot_dir, 'turnaround_comparison.png'))
        print(f"Plots saved to {plot_dir}")

    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.input is not None and args.random is not None:
        parser.error("a trace file and --random cannot be combined")

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        tasks = load_workload(args)
    except (OSError, ValueError) as exc:
        logger.error(f"Failed to load workload: {exc}")
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_INPUT_ERROR

    try:
        return run_headless(args, tasks)
    except ValueError as exc:
        logger.error(f"Invalid configuration: {exc}")
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    sys.exit(main())
