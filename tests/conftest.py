"""
Shared pytest fixtures for the phreeqc-coupling test suite.

Provides:
- Test markers registration
- Chemical system stores of a small three-node mesh
- Coupling configurations and mock engine sessions
"""
import os
import sys

import numpy as np
import pytest

# Ensure project root is in path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from phreeqc_coupling.core.phreeqc_io import BasicOutputSetups, build_output_schema
from phreeqc_coupling.core.phreeqc_state import ChemicalSystem, ChemicalSystemStore, Component
from phreeqc_coupling.core.reactants import (
    EquilibriumPhase,
    KineticReactant,
    ReactionRate,
    SecondaryVariable,
    SurfaceSite,
    UserPunch,
)
from phreeqc_coupling.schemas import CouplingConfig
from tests.mocks import MockPhreeqcSession


# =============================================================================
# Pytest Markers Registration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks tests requiring PHREEQC")
    config.addinivalue_line("markers", "unit: marks unit tests (fast, no external deps)")


# =============================================================================
# Mesh Fixtures
# =============================================================================

# Local order differs from global order on purpose
NODE_IDS = [4, 0, 7]
NUM_GLOBAL_NODES = 8


@pytest.fixture
def node_ids():
    """Local to global node ids of a three-node partition."""
    return list(NODE_IDS)


def make_chemical_systems(n: int):
    return [
        ChemicalSystem(components=[Component("Ca", 1.0e-3), Component("C", 2.0e-3, "HCO3")],
                       pH=7.0, pe=4.0)
        for _ in range(n)
    ]


@pytest.fixture
def simple_store(node_ids):
    """Store with two components and no reactants."""
    return ChemicalSystemStore(node_ids, make_chemical_systems(len(node_ids)))


@pytest.fixture
def full_store(node_ids):
    """Store with one of every reaction definition.

    Calcite is an equilibrium phase, Quartz a kinetic reactant with a rate,
    Goethite a fixed-amount kinetic reactant, Hfo_w a surface site and
    'si_calcite' a secondary variable.
    """
    return ChemicalSystemStore(
        node_ids,
        make_chemical_systems(len(node_ids)),
        equilibrium_phases=[EquilibriumPhase("Calcite", np.full(NUM_GLOBAL_NODES, 0.5))],
        kinetic_reactants=[
            KineticReactant("Quartz", np.full(NUM_GLOBAL_NODES, 2.0), "SiO2", [1.0, 0.5]),
            KineticReactant("Goethite", np.full(NUM_GLOBAL_NODES, 0.1), fix_amount=True),
        ],
        reaction_rates=[ReactionRate("Quartz", ["rate = 1e-10 * SR(\"Quartz\")",
                                                "save rate * time"])],
        surface=[SurfaceSite("Hfo_w", 2.31, 600.0, 0.09)],
        user_punch=UserPunch([SecondaryVariable("si_calcite", np.zeros(NUM_GLOBAL_NODES))],
                             ["PUNCH SI(\"Calcite\")"]),
    )


@pytest.fixture
def output_file(tmp_path):
    return tmp_path / "test_phreeqc.out"


@pytest.fixture
def basic_output_setups(output_file):
    return BasicOutputSetups(output_file=output_file)


@pytest.fixture
def simple_schema(simple_store, basic_output_setups):
    return build_output_schema(simple_store, basic_output_setups)


@pytest.fixture
def full_schema(full_store, basic_output_setups):
    return build_output_schema(full_store, basic_output_setups)


# =============================================================================
# Coupling Fixtures
# =============================================================================

@pytest.fixture
def calcite_config() -> CouplingConfig:
    """Ca and H transported, calcite in equilibrium."""
    return CouplingConfig.model_validate({
        "database": "phreeqc.dat",
        "solution": {
            "temperature": 25.0,
            "components": [{"name": "Ca"}, {"name": "C", "chemical_formula": "HCO3"}],
        },
        "equilibrium_phases": [{"name": "Calcite", "initial_amount": 0.1}],
        "process_variables": [
            {"process_id": 0, "name": "Ca"},
            {"process_id": 1, "name": "H"},
        ],
    })


@pytest.fixture
def mock_session():
    return MockPhreeqcSession()


@pytest.fixture
def project_file_name(tmp_path):
    """Project prefix inside the test's temporary directory."""
    return str(tmp_path / "column")
