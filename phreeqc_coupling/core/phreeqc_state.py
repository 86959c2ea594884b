"""
Chemical System State
Per-node aqueous solutions plus the reaction definitions shared across nodes
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence, Tuple
import logging

import numpy as np

from ..core_config import CONFIG
from ..exceptions import ConfigurationError
from .reactants import (
    EquilibriumPhase,
    KineticReactant,
    Knobs,
    ReactionRate,
    SurfaceSite,
    UserPunch,
    format_number,
)

logger = logging.getLogger(__name__)


class ChargeBalance(Enum):
    """Quantity adjusted by the engine to reach electroneutrality"""
    PH = "pH"
    PE = "pe"


@dataclass
class Component:
    """Named amount; the name is the join key to a transport process variable."""
    name: str
    amount: float = 0.0
    chemical_formula: str = ""


@dataclass
class ChemicalSystem:
    """
    Aqueous solution of one mesh node

    Holds pH, pe and the component amounts in mol/kgw. pH is the
    chemistry-side view of the hydrogen transport variable.
    """
    components: List[Component] = field(default_factory=list)
    pH: float = CONFIG.DEFAULT_PH
    pe: float = CONFIG.DEFAULT_PE
    temperature: float = CONFIG.DEFAULT_TEMPERATURE_C
    pressure: float = CONFIG.DEFAULT_PRESSURE_ATM
    charge_balance: Optional[ChargeBalance] = None

    def __post_init__(self):
        seen = set()
        for component in self.components:
            if component.name in seen:
                raise ConfigurationError(
                    "Component names must be unique within a chemical system",
                    field="components",
                    value=component.name
                )
            seen.add(component.name)

    def find_component(self, name: str) -> Optional[Component]:
        for component in self.components:
            if component.name == name:
                return component
        return None

    def component_index(self) -> Dict[str, int]:
        return {component.name: i for i, component in enumerate(self.components)}

    def print(self) -> List[str]:
        """Body lines of the SOLUTION block."""
        ph_line = f"    pH {format_number(self.pH)}"
        pe_line = f"    pe {format_number(self.pe)}"
        if self.charge_balance is ChargeBalance.PH:
            ph_line += " charge"
        elif self.charge_balance is ChargeBalance.PE:
            pe_line += " charge"

        lines = [
            f"    temp {format_number(self.temperature)}",
            f"    pressure {format_number(self.pressure)}",
            ph_line,
            pe_line,
            f"    units {CONFIG.SOLUTION_UNITS}",
        ]
        for component in self.components:
            line = f"    {component.name} {format_number(component.amount)}"
            if component.chemical_formula:
                line += f" as {component.chemical_formula}"
            lines.append(line)
        return lines


class ChemicalSystemStore:
    """
    In-memory container of all chemical systems

    Local index ``0..num_chemical_systems-1`` addresses the per-node
    solutions; ``node_ids[local_id]`` gives the global mesh node id used
    by transport vectors and by the engine protocol. Reaction definitions
    are shared by all nodes and keep per-node amounts by global id.
    """

    def __init__(self,
                 node_ids: Sequence[int],
                 chemical_systems: List[ChemicalSystem],
                 equilibrium_phases: Optional[List[EquilibriumPhase]] = None,
                 kinetic_reactants: Optional[List[KineticReactant]] = None,
                 reaction_rates: Optional[List[ReactionRate]] = None,
                 surface: Optional[List[SurfaceSite]] = None,
                 user_punch: Optional[UserPunch] = None,
                 knobs: Optional[Knobs] = None):
        """
        Args:
            node_ids: Local to global node id mapping (read-only)
            chemical_systems: One solution per entry of node_ids
            equilibrium_phases: Phases shared by all nodes
            kinetic_reactants: Kinetic reactants shared by all nodes
            reaction_rates: Rate expressions for the kinetic reactants
            surface: Surface sites shared by all nodes
            user_punch: Secondary variables and their BASIC statements
            knobs: Numerical controls of the engine
        """
        self.node_ids = np.asarray(node_ids, dtype=np.int64)
        self.node_ids.setflags(write=False)

        if self.node_ids.ndim != 1:
            raise ConfigurationError("Node id mapping must be one-dimensional", field="node_ids")
        if len(self.node_ids) != len(chemical_systems):
            raise ConfigurationError(
                f"Got {len(chemical_systems)} chemical systems for {len(self.node_ids)} nodes",
                field="chemical_systems"
            )
        if len(self.node_ids) and self.node_ids.min() < 0:
            raise ConfigurationError("Node ids must be non-negative", field="node_ids",
                                     value=int(self.node_ids.min()))
        if len(np.unique(self.node_ids)) != len(self.node_ids):
            raise ConfigurationError("Node ids must be unique", field="node_ids")

        self._chemical_systems = chemical_systems
        self.equilibrium_phases = equilibrium_phases or []
        self.kinetic_reactants = kinetic_reactants or []
        self.reaction_rates = reaction_rates or []
        self.surface = surface or []
        self.user_punch = user_punch
        self.knobs = knobs or Knobs()

        reactant_names = {r.name for r in self.kinetic_reactants}
        for rate in self.reaction_rates:
            if rate.kinetic_reactant not in reactant_names:
                raise ConfigurationError(
                    "Reaction rate refers to an unknown kinetic reactant",
                    field="reaction_rates",
                    value=rate.kinetic_reactant
                )

        logger.info(f"ChemicalSystemStore initialized with {self.num_chemical_systems} chemical systems, "
                    f"{len(self.equilibrium_phases)} equilibrium phases, "
                    f"{len(self.kinetic_reactants)} kinetic reactants, {len(self.surface)} surface sites")

    @property
    def num_chemical_systems(self) -> int:
        return len(self._chemical_systems)

    @property
    def has_surface(self) -> bool:
        return bool(self.surface)

    def get(self, local_id: int) -> ChemicalSystem:
        if not 0 <= local_id < len(self._chemical_systems):
            raise IndexError(f"Chemical system {local_id} out of range "
                             f"[0, {len(self._chemical_systems)})")
        return self._chemical_systems[local_id]

    def global_id(self, local_id: int) -> int:
        return int(self.node_ids[local_id])

    def local_ids_by_global_id(self) -> Dict[int, int]:
        return {int(g): local_id for local_id, g in enumerate(self.node_ids)}

    def __len__(self) -> int:
        return self.num_chemical_systems

    def __iter__(self) -> Iterator[Tuple[int, int, ChemicalSystem]]:
        """Yield (local_id, global_id, chemical_system) in local-index order"""
        for local_id, chemical_system in enumerate(self._chemical_systems):
            yield local_id, int(self.node_ids[local_id]), chemical_system
