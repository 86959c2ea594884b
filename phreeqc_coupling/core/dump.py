"""
Restart (dump) state of the aqueous solutions

The engine dumps every node's solution as a SOLUTION_RAW record after a
step. Before the next deck is written those records are read back and
renumbered into the id range N+1..2N, so that a surface can equilibrate
with the solution as it was before the current step.
"""

import re
from pathlib import Path
from typing import List, Optional, Sequence, TextIO
import logging

import numpy as np

from ..exceptions import DumpFileError

logger = logging.getLogger(__name__)

_RAW_HEADER = re.compile(r"^(\s*SOLUTION_RAW\s+)(\S+)(.*)$")


def _compact_ranges(ids: Sequence[int]) -> str:
    """[1, 2, 3, 5] -> '1-3 5'"""
    ids = sorted(ids)
    parts = []
    start = prev = None
    for i in ids:
        if start is None:
            start = prev = i
        elif i == prev + 1:
            prev = i
        else:
            parts.append(f"{start}-{prev}" if prev != start else f"{start}")
            start = prev = i
    if start is not None:
        parts.append(f"{start}-{prev}" if prev != start else f"{start}")
    return " ".join(parts)


class DumpManager:
    """
    Reads and requests the per-node restart records

    Attributes:
        dump_file: File the engine writes the records to
        aqueous_solutions_prev: One record per node in local-index order,
            empty until load() succeeds
    """

    def __init__(self, dump_file, node_ids: Sequence[int]):
        self.dump_file = Path(dump_file)
        self.node_ids = np.asarray(node_ids, dtype=np.int64)
        self.aqueous_solutions_prev: List[str] = []

    def clear(self):
        self.aqueous_solutions_prev = []

    def load(self, path=None, num_chemical_systems: Optional[int] = None):
        """
        Read exactly one record per node

        Args:
            path: Dump file (defaults to dump_file)
            num_chemical_systems: Number of nodes N

        Raises:
            DumpFileError: File cannot be read, or its records do not
                cover every node exactly once
        """
        path = Path(path) if path is not None else self.dump_file
        if num_chemical_systems is None:
            num_chemical_systems = len(self.node_ids)
        if num_chemical_systems != len(self.node_ids):
            raise DumpFileError(
                f"Expected {len(self.node_ids)} chemical systems, got {num_chemical_systems}",
                path=path, operation="read"
            )

        try:
            with open(path, 'r', encoding='utf-8') as f:
                lines = f.read().splitlines()
        except OSError as e:
            raise DumpFileError(f"Could not open phreeqc dump file: {e}",
                                path=path, operation="read") from e

        records = self._split_records(lines)
        if len(records) < num_chemical_systems:
            raise DumpFileError(
                f"Dump file holds {len(records)} solution records for "
                f"{num_chemical_systems} chemical systems",
                path=path, operation="read"
            )

        local_ids = {int(g) + 1: local_id for local_id, g in enumerate(self.node_ids)}
        solutions_prev: List[str] = [None] * num_chemical_systems
        for record in records:
            match = _RAW_HEADER.match(record[0])
            if match is None or not match.group(2).isdigit():
                raise DumpFileError(f"Invalid solution number in '{record[0].strip()}'",
                                    path=path, operation="read")
            solution_id = int(match.group(2))

            local_id = local_ids.get(solution_id)
            if local_id is None:
                raise DumpFileError(f"Solution {solution_id} does not belong to any chemical system",
                                    path=path, operation="read")
            if solutions_prev[local_id] is not None:
                raise DumpFileError(f"Solution {solution_id} appears more than once",
                                    path=path, operation="read")

            header = f"{match.group(1)}{num_chemical_systems + solution_id}{match.group(3)}"
            solutions_prev[local_id] = "\n".join([header] + record[1:])

        self.aqueous_solutions_prev = solutions_prev
        logger.debug(f"Read {num_chemical_systems} previous solutions from {path}")

    @staticmethod
    def _split_records(lines: List[str]) -> List[List[str]]:
        """Group lines into SOLUTION_RAW records, each up to the next record or END"""
        records = []
        current = None
        for line in lines:
            stripped = line.strip()
            if stripped.startswith("SOLUTION_RAW"):
                if current:
                    records.append(current)
                current = [line.rstrip()]
            elif stripped == "END":
                if current:
                    records.append(current)
                current = None
            elif current is not None and stripped:
                current.append(line.rstrip())
        if current:
            records.append(current)
        return records

    def print(self, stream: TextIO, num_chemical_systems: Optional[int] = None):
        """Ask the engine to dump every node's solution at the end of the run"""
        if num_chemical_systems is None:
            num_chemical_systems = len(self.node_ids)
        solution_ids = [int(g) + 1 for g in self.node_ids[:num_chemical_systems]]
        stream.write("DUMP\n")
        stream.write(f"    -file {self.dump_file}\n")
        stream.write("    -append false\n")
        stream.write(f"    -solution {_compact_ranges(solution_ids)}\n")
        stream.write("END\n")
