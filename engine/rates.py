from __future__ import annotations
from dataclasses import dataclass, fields, asdict
from typing import Dict, Tuple, Any
import json
import logging

logger = logging.getLogger(__name__)


# UI ranges for each coefficient (min, max)
RATE_RANGES: Dict[str, Tuple[float, float]] = {
    "k_input": (0.1, 5.0),
    "k_feedback": (0.1, 5.0),
    "k_degradation": (0.01, 1.0),
    "k_receptor": (0.1, 5.0),
    "k_inhibition": (0.1, 5.0),
    "k_activation": (0.1, 5.0),
    "k_production": (0.001, 0.1),
    "k_diffusion": (0.01, 1.0),
}

RATE_LABELS: Dict[str, str] = {
    "k_input": "Input rate",
    "k_feedback": "Feedback rate",
    "k_degradation": "Degradation rate",
    "k_receptor": "Receptor rate",
    "k_inhibition": "Inhibition rate",
    "k_activation": "Activation rate",
    "k_production": "Production rate",
    "k_diffusion": "Diffusion rate",
}


@dataclass
class RateConstants:
    """
    The fixed 8-coefficient tuple pushed to the engine.
    Field order is the order expected by ``set_rate_constants``.
    """
    k_input: float = 1.0
    k_feedback: float = 0.5
    k_degradation: float = 0.1
    k_receptor: float = 2.0
    k_inhibition: float = 0.5
    k_activation: float = 1.0
    k_production: float = 0.01
    k_diffusion: float = 0.2

    def __post_init__(self):
        for f in fields(self):
            _check_positive(f.name, getattr(self, f.name))

    @staticmethod
    def names() -> Tuple[str, ...]:
        return tuple(f.name for f in fields(RateConstants))

    def as_tuple(self) -> Tuple[float, ...]:
        return tuple(float(getattr(self, name)) for name in self.names())

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)

    def set(self, name: str, value: float) -> None:
        if name not in self.names():
            raise ValueError(f"Unknown rate constant '{name}'")
        _check_positive(name, value)
        setattr(self, name, float(value))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RateConstants":
        unknown = set(data) - set(cls.names())
        if unknown:
            raise ValueError(f"Unknown rate constants: {', '.join(sorted(unknown))}")
        return cls(**{k: float(v) for k, v in data.items()})


def _check_positive(name: str, value: float) -> None:
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Rate constant {name} must be numeric, got {value!r}") from None
    if not v > 0.0:
        raise ValueError(f"Rate constant {name} must be positive, got {v}")


def load_rate_constants(path: str) -> RateConstants:
    """Load rate constants from a JSON object file; missing keys keep defaults."""
    with open(path, "r", encoding="utf-8") as fh:
        raw = json.load(fh)
    if not isinstance(raw, dict):
        raise ValueError(f"Rate constants file {path} must contain a JSON object")
    rates = RateConstants.from_dict(raw)
    logger.info(f"Loaded rate constants from {path}")
    return rates
