#!/usr/bin/env python
"""
Example usage of the PHREEQC coupling
Upwind advection of four transport variables through a calcite column,
with one chemistry step after every transport step
"""

import logging
from pathlib import Path

import numpy as np

from phreeqc_coupling import create_coupling_driver, load_coupling_config

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

NUM_CELLS = 20
DT = 720.0  # s


def advect(vector: np.ndarray, inflow: float):
    """First-order upwind step, courant number 1: shift by one cell"""
    vector[1:] = vector[:-1].copy()
    vector[0] = inflow


def main():
    config = load_coupling_config(Path(__file__).parent / "calcite_column.yaml")
    node_ids = np.arange(NUM_CELLS)

    # Ca, C, Cl, H; initial pore water and inflow
    initial = [1e-4, 1e-4, 1e-5, 10 ** -8.0]
    inflow = [0.0, 1e-3, 1.2e-3, 10 ** -3.0]
    process_solutions = [np.full(NUM_CELLS, value) for value in initial]

    with create_coupling_driver(config, node_ids, "calcite_column") as driver:
        driver.execute_initial_calculation(process_solutions)

        for step in range(1, 2 * NUM_CELLS + 1):
            for vector, value in zip(process_solutions, inflow):
                advect(vector, value)
            driver.run_step(process_solutions, DT)

            if step % 10 == 0:
                calcite = driver.store.equilibrium_phases[0].amount
                logger.info(f"step {step}: outlet Ca={process_solutions[0][-1]:.3e} mol/kgw, "
                            f"pH={-np.log10(process_solutions[3][-1]):.2f}, "
                            f"cells with calcite left={int(np.count_nonzero(calcite > 1e-12))}")


if __name__ == "__main__":
    main()
