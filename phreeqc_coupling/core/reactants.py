"""
Reaction definitions shared across all chemical systems.

Each reactant keeps one amount per mesh node, indexed by global node id,
so that the deck writer and the result parser can address it with the
same id the engine sees.
"""

from dataclasses import dataclass, field
from typing import List

import numpy as np


def format_number(value) -> str:
    """Shortest text that round-trips the float."""
    return repr(float(value))


@dataclass
class EquilibriumPhase:
    """Mineral or gas phase reacting instantaneously to equilibrium."""
    name: str
    amount: np.ndarray
    saturation_index: float = 0.0

    def print(self, global_id: int) -> str:
        return (f"{self.name} {format_number(self.saturation_index)} "
                f"{format_number(self.amount[global_id])}")


@dataclass
class KineticReactant:
    """
    Phase or species reacting at a finite rate over the time step.

    A reactant with fix_amount keeps its configured amount: it is left out
    of the output columns and never updated from results.
    """
    name: str
    amount: np.ndarray
    chemical_formula: str = ""
    parameters: List[float] = field(default_factory=list)
    fix_amount: bool = False

    def print(self, global_id: int) -> List[str]:
        lines = [self.name]
        if self.chemical_formula:
            lines.append(f"    -formula {self.chemical_formula}")
        lines.append(f"    -m {format_number(self.amount[global_id])}")
        if self.parameters:
            lines.append("    -parms " + " ".join(format_number(p) for p in self.parameters))
        return lines


@dataclass
class ReactionRate:
    """BASIC rate expression of one kinetic reactant."""
    kinetic_reactant: str
    expression_statements: List[str]

    def print(self) -> List[str]:
        lines = [self.kinetic_reactant, "-start"]
        for line_number, statement in enumerate(self.expression_statements, start=1):
            lines.append(f"{line_number} {statement}")
        lines.append("-end")
        return lines


@dataclass
class SurfaceSite:
    """Sorption site; density in sites/nm2, area in m2/g, mass in g."""
    name: str
    site_density: float
    specific_surface_area: float
    mass: float

    def print(self) -> str:
        return (f"{self.name} {format_number(self.site_density)} "
                f"{format_number(self.specific_surface_area)} {format_number(self.mass)}")


@dataclass
class SecondaryVariable:
    """Scalar evaluated by the engine per node, written back only in the gather direction."""
    name: str
    value: np.ndarray


@dataclass
class UserPunch:
    secondary_variables: List[SecondaryVariable]
    statements: List[str]

    def print(self) -> List[str]:
        lines = [
            "USER_PUNCH",
            "    -headings " + " ".join(v.name for v in self.secondary_variables),
            "-start",
        ]
        for line_number, statement in enumerate(self.statements, start=1):
            lines.append(f"{line_number} {statement}")
        lines.append("-end")
        return lines


@dataclass
class Knobs:
    """Numerical controls of the speciation engine."""
    max_iter: int = 100
    relative_convergence_tolerance: float = 1e-12
    tolerance: float = 1e-15
    step_size: int = 100
    scaling: bool = False

    def print(self) -> List[str]:
        return [
            "KNOBS",
            f"    -iterations {self.max_iter}",
            f"    -convergence_tolerance {format_number(self.relative_convergence_tolerance)}",
            f"    -tolerance {format_number(self.tolerance)}",
            f"    -step_size {self.step_size}",
            f"    -diagonal_scale {str(self.scaling).lower()}",
        ]
