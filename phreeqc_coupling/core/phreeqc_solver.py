"""
Coupling driver for sequential non-iterative reactive transport

Once per transport time step: scatter the transport solution into the
chemical systems, write the input deck, run the engine, read the results
and gather them back into the transport solution.
"""

import math
from pathlib import Path
from typing import List, Optional, Sequence, Tuple
import logging

import numpy as np

from ..core_config import CONFIG
from ..exceptions import ConfigurationError, InvalidConcentrationError
from .dump import DumpManager
from .input_deck import InputDeckWriter
from .output_parser import OutputParser
from .phreeqc_engine import PhreeqcEngine
from .phreeqc_state import ChemicalSystemStore

logger = logging.getLogger(__name__)


def concentration_to_pH(concentration: float) -> float:
    return -math.log10(concentration)


def pH_to_concentration(pH: float) -> float:
    return 10.0 ** (-pH)


class CouplingDriver:
    """
    Orchestrates one chemistry step against a single engine session

    Transport vectors are matched to chemistry by variable name through
    ``process_id_to_component_name_map``. The hydrogen variable is carried
    as pH on the chemistry side.
    """

    def __init__(self,
                 store: ChemicalSystemStore,
                 writer: InputDeckWriter,
                 parser: OutputParser,
                 engine: PhreeqcEngine,
                 database,
                 input_file,
                 output_file,
                 process_id_to_component_name_map: Sequence[Tuple[int, str]],
                 dump: Optional[DumpManager] = None,
                 hydrogen_variable: str = CONFIG.HYDROGEN_VARIABLE_NAME):
        """
        Args:
            store: Chemical systems and shared reaction definitions
            writer: Input deck writer bound to store
            parser: Result parser bound to store
            engine: Engine driver owning the session
            database: Thermodynamic database path
            input_file: Path the input deck is written to
            output_file: Path the engine writes results to
            process_id_to_component_name_map: (process id, variable name) pairs
            dump: Restart state manager, or None when restart chemistry is off
            hydrogen_variable: Name of the hydrogen transport variable
        """
        self.store = store
        self.writer = writer
        self.parser = parser
        self.engine = engine
        self.database = Path(database)
        self.input_file = Path(input_file)
        self.output_file = Path(output_file)
        self.process_id_to_component_name_map: List[Tuple[int, str]] = [
            (int(pid), name) for pid, name in process_id_to_component_name_map
        ]
        self.dump = dump
        self.hydrogen_variable = hydrogen_variable

        if store.num_chemical_systems:
            known = {c.name for c in store.get(0).components}
            for pid, name in self.process_id_to_component_name_map:
                if name != hydrogen_variable and name not in known:
                    logger.warning(f"Process variable '{name}' (process {pid}) is not a chemical "
                                   f"component and will not be coupled")

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def initialize(self):
        """Acquire the session and load the database once"""
        if self.engine.is_initialized:
            return
        self.engine.initialize()
        try:
            self.engine.load_database(self.database)
            self.engine.enable_result_output()
            if self.dump is not None:
                self.engine.enable_dump_output()
        except Exception:
            # A half-configured session must not be reused
            self.engine.close()
            raise

    def close(self):
        self.engine.close()

    def execute_initial_calculation(self, process_solutions: Sequence[np.ndarray]):
        """Equilibrate the initial state; no kinetics, no restart state"""
        self._calculate(process_solutions, dt=None, use_dump=False)

    def run_step(self, process_solutions: Sequence[np.ndarray], dt: float):
        """
        Run one chemistry step of length dt

        Args:
            process_solutions: Transport vectors indexed by process id,
                each addressable by global node id
            dt: Time step length in seconds
        """
        if dt is None or not math.isfinite(dt) or dt <= 0:
            raise ConfigurationError("Time step length must be positive and finite",
                                     field="dt", value=dt)
        self._calculate(process_solutions, dt=dt, use_dump=True)

    def _calculate(self, process_solutions, dt: Optional[float], use_dump: bool):
        self.initialize()

        self.set_aqueous_solutions(process_solutions)

        if self.dump is not None:
            if use_dump:
                self.dump.load(self.dump.dump_file, self.store.num_chemical_systems)
            else:
                self.dump.clear()

        try:
            self.writer.write(self.input_file, dt)
        finally:
            # Previous solutions are only needed while writing this deck
            if self.dump is not None:
                self.dump.clear()

        self.engine.execute(self.input_file)

        self.parser.read(self.output_file)

        self.update_process_solutions(process_solutions)
        logger.debug(f"Chemistry step done for {self.store.num_chemical_systems} chemical systems"
                     + (f", dt={dt}" if dt is not None else " (initial calculation)"))

    def _check_process_ids(self, process_solutions):
        for pid, name in self.process_id_to_component_name_map:
            if not 0 <= pid < len(process_solutions):
                raise ConfigurationError(
                    f"No transport solution for process {pid} ('{name}')",
                    field="process_solutions", value=len(process_solutions)
                )

    def set_aqueous_solutions(self, process_solutions: Sequence[np.ndarray]):
        """Scatter: transport vectors -> component amounts and pH"""
        self._check_process_ids(process_solutions)
        for local_id, global_id, chemical_system in self.store:
            for pid, name in self.process_id_to_component_name_map:
                value = float(process_solutions[pid][global_id])
                if name == self.hydrogen_variable:
                    if not (value > 0 and math.isfinite(value)):
                        raise InvalidConcentrationError(name, global_id, value)
                    chemical_system.pH = concentration_to_pH(value)
                    continue
                component = chemical_system.find_component(name)
                if component is not None:
                    component.amount = value

    def update_process_solutions(self, process_solutions: Sequence[np.ndarray]):
        """Gather: component amounts and pH -> transport vectors"""
        self._check_process_ids(process_solutions)
        for local_id, global_id, chemical_system in self.store:
            for pid, name in self.process_id_to_component_name_map:
                if name == self.hydrogen_variable:
                    process_solutions[pid][global_id] = pH_to_concentration(chemical_system.pH)
                    continue
                component = chemical_system.find_component(name)
                if component is not None:
                    process_solutions[pid][global_id] = component.amount
