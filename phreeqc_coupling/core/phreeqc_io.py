"""
PHREEQC output schema
Declares which result columns the engine emits, in which order, and which
of them carry no usable state
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional
import logging

logger = logging.getLogger(__name__)


class ItemType(Enum):
    """Kinds of result items; each kind names the container it updates"""
    PH = "pH"
    PE = "pe"
    COMPONENT = "Component"
    EQUILIBRIUM_PHASE = "EquilibriumPhase"
    KINETIC_REACTANT = "KineticReactant"
    SECONDARY_VARIABLE = "SecondaryVariable"


@dataclass(frozen=True)
class OutputItem:
    name: str
    item_type: ItemType


@dataclass
class BasicOutputSetups:
    """
    Leading SELECTED_OUTPUT settings

    Each enabled diagnostic column (simulation number, state, solution
    number, distance, time, step) is emitted ahead of pH and is dropped
    when results are read back.
    """
    output_file: Path
    use_high_precision: bool = True
    display_simulation_id: bool = True
    display_state: bool = True
    display_solution_id: bool = True
    display_distance: bool = True
    display_current_time: bool = True
    display_time_step: bool = True

    def _diagnostic_flags(self):
        return [
            ("-simulation", self.display_simulation_id),
            ("-state", self.display_state),
            ("-solution", self.display_solution_id),
            ("-distance", self.display_distance),
            ("-time", self.display_current_time),
            ("-step", self.display_time_step),
        ]

    @property
    def num_dropped_items(self) -> int:
        return sum(1 for _, shown in self._diagnostic_flags() if shown)

    def print(self) -> List[str]:
        lines = [
            f"    -file {self.output_file}",
            f"    -high_precision {str(self.use_high_precision).lower()}",
        ]
        for option, shown in self._diagnostic_flags():
            lines.append(f"    {option} {str(shown).lower()}")
        lines.append("    -pH true")
        lines.append("    -pe true")
        return lines


class OutputItemSchema:
    """
    Ordered list of accepted result items plus the column ids to drop

    After dropping, every result line must carry exactly one value per
    accepted item.
    """

    def __init__(self,
                 accepted_items: List[OutputItem],
                 dropped_item_ids: Iterable[int],
                 basic_output_setups: Optional[BasicOutputSetups] = None):
        self.accepted_items = list(accepted_items)
        self.dropped_item_ids: FrozenSet[int] = frozenset(dropped_item_ids)
        self.basic_output_setups = basic_output_setups

    def __len__(self) -> int:
        return len(self.accepted_items)

    @property
    def num_columns(self) -> int:
        """Raw column count of a result line"""
        return len(self.accepted_items) + len(self.dropped_item_ids)

    def items_of_type(self, item_type: ItemType) -> List[OutputItem]:
        return [item for item in self.accepted_items if item.item_type is item_type]

    def print(self) -> List[str]:
        """SELECTED_OUTPUT block requesting exactly the declared columns"""
        lines = ["SELECTED_OUTPUT"]
        if self.basic_output_setups is not None:
            lines.extend(self.basic_output_setups.print())

        for option, item_type in [("-totals", ItemType.COMPONENT),
                                  ("-equilibrium_phases", ItemType.EQUILIBRIUM_PHASE),
                                  ("-kinetic_reactants", ItemType.KINETIC_REACTANT)]:
            names = [item.name for item in self.items_of_type(item_type)]
            if names:
                lines.append(f"    {option} " + " ".join(names))
        return lines


def build_output_schema(store, basic_output_setups: BasicOutputSetups) -> OutputItemSchema:
    """
    Build the output schema matching the engine's column order

    Columns come out as: diagnostic columns, pH, pe, component totals,
    (amount, delta) per equilibrium phase, (amount, delta) per kinetic
    reactant, then user punch headings.

    Args:
        store: ChemicalSystemStore providing components and reactants
        basic_output_setups: Result file and diagnostic column settings

    Returns:
        OutputItemSchema
    """
    components = store.get(0).components if store.num_chemical_systems else []

    accepted_items = [OutputItem("pH", ItemType.PH), OutputItem("pe", ItemType.PE)]
    accepted_items += [OutputItem(c.name, ItemType.COMPONENT) for c in components]

    num_dropped_basic_items = basic_output_setups.num_dropped_items
    dropped_item_ids = list(range(num_dropped_basic_items))

    # Each phase and reactant is followed by its delta column
    column = num_dropped_basic_items + 2 + len(components)
    for phase in store.equilibrium_phases:
        accepted_items.append(OutputItem(phase.name, ItemType.EQUILIBRIUM_PHASE))
        dropped_item_ids.append(column + 1)
        column += 2

    for reactant in store.kinetic_reactants:
        if reactant.fix_amount:
            continue
        accepted_items.append(OutputItem(reactant.name, ItemType.KINETIC_REACTANT))
        dropped_item_ids.append(column + 1)
        column += 2

    if store.user_punch is not None:
        accepted_items += [OutputItem(v.name, ItemType.SECONDARY_VARIABLE)
                           for v in store.user_punch.secondary_variables]

    schema = OutputItemSchema(accepted_items, dropped_item_ids, basic_output_setups)
    logger.debug(f"Output schema: {len(schema)} accepted items, "
                 f"{len(schema.dropped_item_ids)} dropped columns")
    return schema
