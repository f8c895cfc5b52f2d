"""
Configuration Parameters

Defines default parameters for the power model, the scheduling heuristics,
the telemetry analysis and the reporting loop. Times are in milliseconds,
power in Watts and memory in kilobytes.
"""

# Simulation Parameters
SIMULATION = {
    'quantum': 50.0,             # Maximum length of one uninterrupted slice
    'horizon': 100000.0,         # Safety cutoff for the simulated clock
    'epsilon': 1e-9,             # Remaining work below this counts as finished
    'degenerate_step': 1.0,      # Clock nudge when a slice has no positive length
}

# Power Model Parameters (illustrative operating points)
POWER_MODEL = {
    'levels': [
        {'speed': 1.0, 'power': 1.5, 'label': '1.0GHz'},
        {'speed': 1.5, 'power': 2.6, 'label': '1.5GHz'},
        {'speed': 2.0, 'power': 4.5, 'label': '2.0GHz'},
    ],
    'idle_power': 0.2,           # Deep idle draw
}

# Speed Controller Parameters
SPEED_CONTROLLER = {
    'lookahead_window': 200.0,   # Window used to predict utilisation
    'short_threshold': 30.0,     # Remaining work at or below this is "short"
    'short_fraction_threshold': 0.6,
    'util_threshold': 0.6,
    'long_job_threshold': 200.0, # Average remaining work above this favours low speed
    'mid_index': None,           # None = len(levels) // 2
}

# Telemetry Analysis Parameters
ANALYSIS = {
    'moving_average_window': 200.0,
    'regression_points': 10,
    'min_regression_points': 5,
    'forecast_horizon': 500.0,
    'cap_floor': 100.0,          # Forecast cap when nothing has been observed yet
    'memory_warning_kb': 1024.0 * 1024.0,
    'hotspot_cpu_ms': 100.0,
    'hotspot_remaining_ms': 50.0,
    'cpu_bound_fraction': 0.7,
    'io_bound_weight': 0.6,
}

# Reporting Parameters
REPORTING = {
    'interval': 100.0,
    'top_n': 3,
    'csv_path': 'analysis.csv',
}

# Built-in workload: (arrival_ms, burst_ms, memory_kb, io_weight)
SAMPLE_WORKLOAD = [
    (0.0, 200.0, 20000.0, 0.1),
    (20.0, 80.0, 10000.0, 0.7),
    (40.0, 150.0, 50000.0, 0.2),
    (100.0, 400.0, 120000.0, 0.05),
    (250.0, 60.0, 8000.0, 0.8),
]

# Random Workload Parameters
TASK_GENERATION = {
    'count': 12,
    'mean_interarrival': 60.0,   # Mean gap between Poisson arrivals
    'burst_min': 10.0,
    'burst_max': 400.0,
    'memory_min': 1000.0,
    'memory_max': 100000.0,
    'io_weight_max': 0.9,
}

# Visualisation Parameters
VISUALISATION = {
    'colors': {
        'cpu_util': '#2196F3',   # Blue
        'memory_kb': '#7B1FA2',  # Purple
        'power_w': '#FF5722',    # Deep Orange
        'forecast': '#009688',   # Teal
        'adaptive': '#FF5252',   # Red
        'fixed': '#69F0AE',      # Green
    },
    'save_path': 'results/',
}
