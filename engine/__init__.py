# engine/__init__.py
from .molecules import Molecule, MoleculeFamily
from .rates import RateConstants
from .interface import SimulationEngine, EngineCallError
from .reference_engine import ReferenceEngine
from .selection import BrushSelector
from .tracking import CellTracker
from .scheduler import RunScheduler
from .session_manager import VisualizerSession, VisualizerConfig

__all__ = [
    "Molecule", "MoleculeFamily", "RateConstants", "SimulationEngine", "EngineCallError", "ReferenceEngine",
    "BrushSelector", "CellTracker", "RunScheduler", "VisualizerSession", "VisualizerConfig",
]
