import os, sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
import numpy as np

from engine.reference_engine import ReferenceEngine
from engine.session_manager import VisualizerSession


def run(seed: int) -> np.ndarray:
    session = VisualizerSession(engine=ReferenceEngine(seed=seed))
    session.set_input_value("TGFBin", 1.0)
    session.stamp_at(40, 40)
    session.scheduler.run_for(50)
    return session.field


a, b = run(3), run(3)
print("deterministic:", bool(np.array_equal(a, b)), "max =", float(a.max()))
