# Processor package initialisation
from .single_processor import SimulationResult, SimulationState, SingleProcessor
