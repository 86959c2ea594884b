"""
PHREEQC input deck writer

Serializes the chemical systems and the shared reaction definitions into
the engine's script grammar. Node blocks are written in local-index order,
the same order the result parser assumes.
"""

import io
from pathlib import Path
from typing import List, Optional, TextIO
import logging

from ..core_config import CONFIG
from ..exceptions import CouplingIOError
from .dump import DumpManager
from .phreeqc_io import OutputItemSchema
from .phreeqc_state import ChemicalSystemStore
from .reactants import format_number

logger = logging.getLogger(__name__)


def _write_block(out: TextIO, lines: List[str]):
    out.write("\n".join(lines))
    out.write("\n\n")


class InputDeckWriter:
    """
    Builds the input deck for one coupling step

    Per node the deck holds a fresh SOLUTION (plus the node's previous
    solution when restart state is loaded), isolation markers, and the
    reaction blocks run against that solution only.
    """

    def __init__(self,
                 store: ChemicalSystemStore,
                 output_schema: OutputItemSchema,
                 dump: Optional[DumpManager] = None):
        self.store = store
        self.output_schema = output_schema
        self.dump = dump

    @property
    def has_previous_solutions(self) -> bool:
        return self.dump is not None and bool(self.dump.aqueous_solutions_prev)

    def surface_solution_id(self, global_id: int) -> int:
        """
        Solution a node's surface equilibrates with

        Fresh solutions occupy ids 1..N; once restart state is loaded the
        previous solutions occupy N+1..2N and the surface uses those.
        """
        if self.has_previous_solutions:
            return self.store.num_chemical_systems + global_id + 1
        return global_id + 1

    def render(self, dt: Optional[float] = None) -> str:
        out = io.StringIO()
        self.print(out, dt)
        return out.getvalue()

    def write(self, path, dt: Optional[float] = None) -> Path:
        """
        Write the deck to a file

        Args:
            path: Input deck path
            dt: Time step length in seconds; None for an equilibrium-only run

        Returns:
            Path written
        """
        path = Path(path)
        logger.debug(f"Writing phreeqc inputs into file '{path}'")
        text = self.render(dt)
        try:
            with open(path, 'w', encoding='utf-8') as f:
                f.write(text)
        except OSError as e:
            raise CouplingIOError(f"Could not write phreeqc input file: {e}",
                                  path=path, operation="write") from e
        return path

    def print(self, out: TextIO, dt: Optional[float] = None):
        store = self.store

        _write_block(out, store.knobs.print())
        _write_block(out, self.output_schema.print())

        if store.user_punch is not None:
            _write_block(out, store.user_punch.print())

        if store.reaction_rates:
            lines = ["RATES"]
            for rate in store.reaction_rates:
                lines.extend(rate.print())
            _write_block(out, lines)

        for local_id, global_id, chemical_system in store:
            self._print_chemical_system(out, local_id, global_id, dt)

        if self.dump is not None:
            self.dump.print(out, store.num_chemical_systems)

    def _print_chemical_system(self, out: TextIO, local_id: int, global_id: int,
                               dt: Optional[float]):
        store = self.store
        solution_id = global_id + 1

        out.write(f"SOLUTION {solution_id}\n")
        _write_block(out, store.get(local_id).print())

        if self.has_previous_solutions:
            _write_block(out, [self.dump.aqueous_solutions_prev[local_id]])

        # Isolate the fresh solution from the reaction run below
        out.write("USE solution none\n")
        out.write("END\n\n")

        out.write(f"USE solution {solution_id}\n\n")

        if store.equilibrium_phases:
            lines = [f"EQUILIBRIUM_PHASES {solution_id}"]
            lines += [f"    {phase.print(global_id)}" for phase in store.equilibrium_phases]
            _write_block(out, lines)

        if store.kinetic_reactants and dt is not None:
            lines = [f"KINETICS {solution_id}"]
            for reactant in store.kinetic_reactants:
                lines += [f"    {line}" for line in reactant.print(global_id)]
            lines.append(f"    -steps {format_number(dt)}")
            _write_block(out, lines)

        if store.surface:
            lines = [
                f"SURFACE {solution_id}",
                f"    -equilibrate with solution {self.surface_solution_id(global_id)}",
                f"    -sites_units {CONFIG.SURFACE_SITES_UNITS}",
            ]
            lines += [f"    {site.print()}" for site in store.surface]
            _write_block(out, lines)
            out.write(f"SAVE solution {solution_id}\n")

        out.write("END\n\n")
