# Import scheduling components for easier access
from .srtf import SRTFScheduler
from .speed_controller import SpeedController, SpeedDecision, SpeedLevel, SpeedTable
