"""
Coupling builder

Creates a ready-to-run CouplingDriver from a CouplingConfig and the
mesh's local-to-global node id mapping.
"""

from typing import Callable, Optional, Sequence
import logging

import numpy as np

from .core_config import CONFIG
from .core.dump import DumpManager
from .core.input_deck import InputDeckWriter
from .core.output_parser import OutputParser
from .core.phreeqc_engine import PhreeqcEngine
from .core.phreeqc_io import BasicOutputSetups, build_output_schema
from .core.phreeqc_solver import CouplingDriver
from .core.phreeqc_state import ChargeBalance, ChemicalSystem, ChemicalSystemStore, Component
from .core.reactants import (
    EquilibriumPhase,
    KineticReactant,
    Knobs,
    ReactionRate,
    SecondaryVariable,
    SurfaceSite,
    UserPunch,
)
from .exceptions import ConfigurationError
from .schemas import CouplingConfig

logger = logging.getLogger(__name__)


def _create_chemical_system(config: CouplingConfig) -> ChemicalSystem:
    solution = config.solution
    return ChemicalSystem(
        components=[Component(c.name, 0.0, c.chemical_formula) for c in solution.components],
        pH=solution.pH,
        pe=solution.pe,
        temperature=solution.temperature,
        pressure=solution.pressure,
        charge_balance=ChargeBalance(solution.charge_balance) if solution.charge_balance else None,
    )


def create_chemical_system_store(config: CouplingConfig,
                                 node_ids: Sequence[int],
                                 num_global_nodes: Optional[int] = None) -> ChemicalSystemStore:
    """
    Allocate one chemical system per node and the shared reaction definitions

    Args:
        config: Coupling configuration
        node_ids: Local to global node id mapping
        num_global_nodes: Length of per-node amount arrays; defaults to
            max(node_ids) + 1

    Returns:
        ChemicalSystemStore
    """
    node_ids = np.asarray(node_ids, dtype=np.int64)
    if num_global_nodes is None:
        num_global_nodes = int(node_ids.max()) + 1 if len(node_ids) else 0
    if len(node_ids) and node_ids.max() >= num_global_nodes:
        raise ConfigurationError("Node id exceeds the global node count",
                                 field="num_global_nodes", value=num_global_nodes)

    def per_node(value: float) -> np.ndarray:
        return np.full(num_global_nodes, value, dtype=float)

    equilibrium_phases = [
        EquilibriumPhase(p.name, per_node(p.initial_amount), p.saturation_index)
        for p in config.equilibrium_phases
    ]
    kinetic_reactants = [
        KineticReactant(r.name, per_node(r.initial_amount), r.chemical_formula,
                        list(r.parameters), r.fix_amount)
        for r in config.kinetic_reactants
    ]
    reaction_rates = [ReactionRate(r.kinetic_reactant, list(r.expression_statements))
                      for r in config.rates]
    surface = [SurfaceSite(s.name, s.site_density, s.specific_surface_area, s.mass)
               for s in config.surface]

    user_punch = None
    if config.user_punch is not None:
        user_punch = UserPunch(
            secondary_variables=[SecondaryVariable(name, per_node(0.0))
                                 for name in config.user_punch.headings],
            statements=list(config.user_punch.statements),
        )

    knobs = Knobs(**config.knobs.model_dump())

    return ChemicalSystemStore(
        node_ids=node_ids,
        chemical_systems=[_create_chemical_system(config) for _ in range(len(node_ids))],
        equilibrium_phases=equilibrium_phases,
        kinetic_reactants=kinetic_reactants,
        reaction_rates=reaction_rates,
        surface=surface,
        user_punch=user_punch,
        knobs=knobs,
    )


def create_coupling_driver(config: CouplingConfig,
                           node_ids: Sequence[int],
                           project_file_name: str,
                           num_global_nodes: Optional[int] = None,
                           session_factory: Optional[Callable[[], object]] = None) -> CouplingDriver:
    """
    Build the full coupling pipeline

    Args:
        config: Coupling configuration
        node_ids: Local to global node id mapping from the mesh
        project_file_name: Prefix of the deck, result and dump files
        num_global_nodes: Size of the transport vectors
        session_factory: Engine session factory (IPhreeqcSession by default)

    Returns:
        CouplingDriver; call initialize() or use it as a context manager
    """
    store = create_chemical_system_store(config, node_ids, num_global_nodes)

    basic_output_setups = BasicOutputSetups(
        output_file=CONFIG.output_file(project_file_name).absolute(),
        use_high_precision=config.output.use_high_precision,
    )
    output_schema = build_output_schema(store, basic_output_setups)

    dump = None
    if config.dump:
        dump = DumpManager(CONFIG.dump_file(project_file_name).absolute(), store.node_ids)

    driver = CouplingDriver(
        store=store,
        writer=InputDeckWriter(store, output_schema, dump),
        parser=OutputParser(store, output_schema),
        engine=PhreeqcEngine(session_factory),
        database=CONFIG.get_phreeqc_database(config.database),
        input_file=CONFIG.input_file(project_file_name).absolute(),
        output_file=basic_output_setups.output_file,
        process_id_to_component_name_map=config.process_id_to_component_name_map,
        dump=dump,
        hydrogen_variable=config.hydrogen_variable,
    )
    logger.info(f"Created coupling driver for {store.num_chemical_systems} chemical systems "
                f"(project '{project_file_name}')")
    return driver
