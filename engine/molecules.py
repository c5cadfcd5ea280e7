"""
Molecule catalog for the ECM grid model.

Primary (ECM) and feedback molecules are the two field namespaces that can be
displayed; input molecules are only ever written as per-cell overrides.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple


class MoleculeFamily(Enum):
    PRIMARY = 0
    FEEDBACK = 1
    INPUT = 2

    @property
    def hue(self) -> str:
        """Hue family used to color fields of this namespace."""
        return "cool" if self is MoleculeFamily.FEEDBACK else "warm"


@dataclass(frozen=True)
class Molecule:
    name: str
    index: int
    family: MoleculeFamily

    def __str__(self) -> str:
        return self.name


def _catalog(names: Tuple[str, ...], family: MoleculeFamily) -> List[Molecule]:
    return [Molecule(name, i, family) for i, name in enumerate(names)]


PRIMARY_MOLECULES = _catalog((
    "proCI", "proCIII", "fibronectin", "periostin", "TNC", "PAI1", "CTGF",
    "EDAFN", "TIMP1", "TIMP2", "proMMP1", "proMMP2", "proMMP3", "proMMP8",
    "proMMP9", "proMMP12", "proMMP14",
), MoleculeFamily.PRIMARY)

FEEDBACK_MOLECULES = _catalog((
    "TGFBfb", "AngIIfb", "IL6fb", "ET1fb",
), MoleculeFamily.FEEDBACK)

INPUT_MOLECULES = _catalog((
    "AngIIin", "TGFBin", "tensionin", "IL6in", "IL1in", "TNFain", "NEin",
    "PDGFin", "ET1in", "NPin", "E2in",
), MoleculeFamily.INPUT)

DEFAULT_MOLECULE = PRIMARY_MOLECULES[0]

_DISPLAYABLE: Dict[str, Molecule] = {m.name: m for m in PRIMARY_MOLECULES + FEEDBACK_MOLECULES}
_INPUTS: Dict[str, Molecule] = {m.name: m for m in INPUT_MOLECULES}


def find_molecule(name: str) -> Molecule:
    """Look up a displayable (primary or feedback) molecule by name."""
    try:
        return _DISPLAYABLE[name]
    except KeyError:
        raise ValueError(f"Unknown molecule '{name}'") from None


def find_input_molecule(name: str) -> Molecule:
    try:
        return _INPUTS[name]
    except KeyError:
        raise ValueError(f"Unknown input molecule '{name}'") from None


def displayable_molecules(family: Optional[MoleculeFamily] = None) -> List[Molecule]:
    if family is MoleculeFamily.PRIMARY:
        return list(PRIMARY_MOLECULES)
    if family is MoleculeFamily.FEEDBACK:
        return list(FEEDBACK_MOLECULES)
    return list(PRIMARY_MOLECULES) + list(FEEDBACK_MOLECULES)
