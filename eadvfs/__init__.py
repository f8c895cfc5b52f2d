"""
EADVFS Simulator

Discrete-event simulation of shortest-remaining-time scheduling combined with
dynamic voltage/frequency scaling and runtime telemetry analysis.
"""

__version__ = "0.3.0"
