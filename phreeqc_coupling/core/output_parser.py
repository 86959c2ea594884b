"""
PHREEQC result parser

Reads the selected output written by the engine back into the chemical
systems. The result stream carries no node ids, so lines are attributed
to nodes purely by position, in local-index order.
"""

from functools import partial
from pathlib import Path
from typing import Callable, List, Optional, TextIO, Tuple
import logging

from ..exceptions import (
    CouplingIOError,
    ResultConversionError,
    SchemaMismatchError,
    UnmatchedItemError,
)
from .phreeqc_io import ItemType, OutputItemSchema
from .phreeqc_state import ChemicalSystemStore

logger = logging.getLogger(__name__)


class OutputParser:
    """
    Tokenizes result lines, validates them against the output schema and
    dispatches each value to its container

    All lines are parsed and every item is matched before anything in the
    store is modified, so a failing read leaves the store untouched.
    """

    def __init__(self, store: ChemicalSystemStore, output_schema: OutputItemSchema):
        self.store = store
        self.output_schema = output_schema

        # name -> definition, built once and reused for every node
        self._equilibrium_phases = {p.name: p for p in store.equilibrium_phases}
        self._kinetic_reactants = {r.name: r for r in store.kinetic_reactants}
        self._secondary_variables = (
            {v.name: v for v in store.user_punch.secondary_variables}
            if store.user_punch is not None else {}
        )

    @property
    def num_skipped_lines(self) -> int:
        """Engine lines echoed ahead of each node's result line"""
        # Initial solution, plus the surface equilibration when a surface is defined
        return 2 if self.store.has_surface else 1

    def read(self, path) -> int:
        """
        Read the result file into the store

        Args:
            path: Selected output file written by the engine

        Returns:
            Number of chemical systems updated
        """
        path = Path(path)
        logger.debug(f"Reading phreeqc results from file '{path}'")
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return self.parse(f, source=path)
        except OSError as e:
            raise CouplingIOError(f"Could not open phreeqc result file: {e}",
                                  path=path, operation="read") from e

    def parse(self, stream: TextIO, source=None) -> int:
        # Headline
        stream.readline()

        rows = []
        for local_id, global_id, _ in self.store:
            for _ in range(self.num_skipped_lines):
                stream.readline()

            line = stream.readline()
            if not line:
                raise CouplingIOError(
                    f"Error when reading calculation result of solution {global_id} after the reaction",
                    path=source, operation="read"
                )
            rows.append((local_id, global_id, self.parse_line(line, global_id)))

        updates: List[Callable[[], None]] = []
        for local_id, global_id, values in rows:
            updates.extend(self._bind(local_id, global_id, values))

        for update in updates:
            update()

        logger.debug(f"Updated {len(rows)} chemical systems with {len(self.output_schema)} items each")
        return len(rows)

    def parse_line(self, line: str, node_id: int) -> List[float]:
        """
        Split a result line, drop diagnostic columns and convert the rest

        Args:
            line: One data line; tabs and runs of spaces separate tokens
            node_id: Global node id, for error context

        Returns:
            One value per accepted item, in schema order
        """
        items = line.split()
        dropped_item_ids = self.output_schema.dropped_item_ids

        kept: List[Tuple[int, str]] = [(item_id, item) for item_id, item in enumerate(items)
                                       if item_id not in dropped_item_ids]
        if len(kept) != len(self.output_schema):
            raise SchemaMismatchError(
                expected=len(self.output_schema),
                found=len(kept),
                node_id=node_id,
                hint=f"Result line has {len(items)} columns, "
                     f"schema expects {self.output_schema.num_columns}"
            )

        accepted_items = []
        for item_id, item in kept:
            # float() also takes digit separators, the engine never writes them
            if "_" in item:
                raise ResultConversionError(node_id, item_id, item)
            try:
                accepted_items.append(float(item))
            except ValueError as e:
                raise ResultConversionError(node_id, item_id, item) from e
        return accepted_items

    def _bind(self, local_id: int, global_id: int,
              values: List[float]) -> List[Callable[[], None]]:
        """Resolve every schema item of one node to a deferred assignment"""
        chemical_system = self.store.get(local_id)
        components = {c.name: c for c in chemical_system.components}

        updates = []
        for accepted_item, value in zip(self.output_schema.accepted_items, values):
            item_name = accepted_item.name
            item_type = accepted_item.item_type

            if item_type is ItemType.PH:
                updates.append(partial(setattr, chemical_system, "pH", value))
            elif item_type is ItemType.PE:
                updates.append(partial(setattr, chemical_system, "pe", value))
            elif item_type is ItemType.COMPONENT:
                component = self._find(components, item_name, "component", global_id)
                updates.append(partial(setattr, component, "amount", value))
            elif item_type is ItemType.EQUILIBRIUM_PHASE:
                phase = self._find(self._equilibrium_phases, item_name,
                                   "equilibrium phase", global_id)
                updates.append(partial(phase.amount.__setitem__, global_id, value))
            elif item_type is ItemType.KINETIC_REACTANT:
                reactant = self._find(self._kinetic_reactants, item_name,
                                      "kinetic reactant", global_id)
                updates.append(partial(reactant.amount.__setitem__, global_id, value))
            elif item_type is ItemType.SECONDARY_VARIABLE:
                variable = self._find(self._secondary_variables, item_name,
                                      "secondary variable", global_id)
                updates.append(partial(variable.value.__setitem__, global_id, value))
        return updates

    @staticmethod
    def _find(named: dict, name: str, kind: str, node_id: Optional[int]):
        try:
            return named[name]
        except KeyError:
            raise UnmatchedItemError(name, kind, node_id) from None
