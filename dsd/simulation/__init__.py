"""Before/after image simulation."""

from dsd.simulation.lip_check import LipValidator, parse_lip_answer
from dsd.simulation.orchestrator import SimulationOrchestrator
from dsd.simulation.prompts import (
    build_simulation_prompt,
    classify_simulation_mode,
    detect_simulation_note,
)

__all__ = [
    "LipValidator",
    "SimulationOrchestrator",
    "build_simulation_prompt",
    "classify_simulation_mode",
    "detect_simulation_note",
    "parse_lip_answer",
]
