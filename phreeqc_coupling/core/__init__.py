"""
Core components of the PHREEQC coupling engine
"""

from .dump import DumpManager
from .input_deck import InputDeckWriter
from .output_parser import OutputParser
from .phreeqc_engine import IPhreeqcSession, PhreeqcEngine
from .phreeqc_io import BasicOutputSetups, ItemType, OutputItem, OutputItemSchema, build_output_schema
from .phreeqc_solver import CouplingDriver
from .phreeqc_state import ChargeBalance, ChemicalSystem, ChemicalSystemStore, Component
from .reactants import (
    EquilibriumPhase,
    KineticReactant,
    Knobs,
    ReactionRate,
    SecondaryVariable,
    SurfaceSite,
    UserPunch,
)

__all__ = [
    "DumpManager",
    "InputDeckWriter",
    "OutputParser",
    "IPhreeqcSession",
    "PhreeqcEngine",
    "BasicOutputSetups",
    "ItemType",
    "OutputItem",
    "OutputItemSchema",
    "build_output_schema",
    "CouplingDriver",
    "ChargeBalance",
    "ChemicalSystem",
    "ChemicalSystemStore",
    "Component",
    "EquilibriumPhase",
    "KineticReactant",
    "Knobs",
    "ReactionRate",
    "SecondaryVariable",
    "SurfaceSite",
    "UserPunch",
]
