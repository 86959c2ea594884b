"""
PHREEQC coupling: sequential non-iterative coupling of transport solutions
with the PHREEQC speciation engine
"""

from .core import (
    ChemicalSystem,
    ChemicalSystemStore,
    Component,
    CouplingDriver,
    DumpManager,
    InputDeckWriter,
    ItemType,
    OutputItemSchema,
    OutputParser,
    PhreeqcEngine,
)
from .coupling_builder import create_coupling_driver
from .schemas import CouplingConfig, load_coupling_config

__all__ = [
    "ChemicalSystem",
    "ChemicalSystemStore",
    "Component",
    "CouplingDriver",
    "DumpManager",
    "InputDeckWriter",
    "ItemType",
    "OutputItemSchema",
    "OutputParser",
    "PhreeqcEngine",
    "create_coupling_driver",
    "CouplingConfig",
    "load_coupling_config",
]

__version__ = "0.1.0"
