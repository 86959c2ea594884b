"""
End-to-end tests of the coupling step against a mock engine session.

Transport vectors have 8 entries (global ids 0..7); the chemistry
partition owns global ids 4, 0 and 7 in that local order.
"""

import logging
from pathlib import Path

import numpy as np
import pytest

from phreeqc_coupling import CouplingConfig, create_coupling_driver
from phreeqc_coupling.core.phreeqc_solver import concentration_to_pH, pH_to_concentration
from phreeqc_coupling.coupling_builder import create_chemical_system_store
from phreeqc_coupling.exceptions import (
    ConfigurationError,
    DumpFileError,
    InvalidConcentrationError,
    PhreeqcDatabaseError,
    PhreeqcExecutionError,
)
from tests.mocks import MockPhreeqcSession
from tests.mocks.mock_phreeqc import MockPhreeqcSessionFailure, create_mock_session_factory

NUM_GLOBAL_NODES = 8


def transport_vectors():
    """Ca and H transport solutions; entries outside the partition are sentinels."""
    ca = np.full(NUM_GLOBAL_NODES, -1.0)
    h = np.full(NUM_GLOBAL_NODES, -1.0)
    for i, g in enumerate([4, 0, 7]):
        ca[g] = 1.0e-3 * (i + 1)
        h[g] = 10.0 ** -(7.0 + 0.25 * i)
    return [ca, h]


def make_driver(config, node_ids, project_file_name, session):
    return create_coupling_driver(config, node_ids, project_file_name,
                                  num_global_nodes=NUM_GLOBAL_NODES,
                                  session_factory=create_mock_session_factory(session))


@pytest.mark.unit
class TestPHConversion:

    @pytest.mark.parametrize("c", [1e-14, 3.7e-9, 1e-7, 2.5e-3, 0.9, 1.0, 12.0])
    def test_duality(self, c):
        c_back = pH_to_concentration(concentration_to_pH(c))

        assert abs(c_back - c) / c < 1e-9

    def test_neutral_water(self):
        assert concentration_to_pH(1e-7) == pytest.approx(7.0)
        assert pH_to_concentration(7.0) == pytest.approx(1e-7)


@pytest.mark.unit
class TestCouplingStep:
    """Tests for scatter, engine run and gather."""

    def test_identity_round_trip(self, calcite_config, node_ids, project_file_name, mock_session):
        vectors = transport_vectors()
        before = [v.copy() for v in vectors]

        with make_driver(calcite_config, node_ids, project_file_name, mock_session) as driver:
            driver.run_step(vectors, dt=86400.0)

        for after, expected in zip(vectors, before):
            np.testing.assert_allclose(after, expected, rtol=1e-12)

    def test_scenario_fixed_results(self, calcite_config, node_ids, project_file_name):
        """Stub returns fixed values per solution; all three nodes must receive them."""
        fixed = {
            # solution id (global id + 1): (pH, Ca, Calcite)
            5: (8.1, 2.0e-3, 0.09),
            1: (8.2, 2.5e-3, 0.08),
            8: (6.5, 3.0e-3, 0.07),
        }

        def reaction(solution_id, solution):
            pH, ca, calcite = fixed[solution_id]
            solution.pH = pH
            solution.components["Ca"] = ca
            solution.phases["Calcite"] = calcite

        session = MockPhreeqcSession(reaction=reaction)
        vectors = transport_vectors()
        ca, h = vectors

        with make_driver(calcite_config, node_ids, project_file_name, session) as driver:
            driver.run_step(vectors, dt=86400.0)
            store = driver.store

            for local_id, global_id, cs in store:
                pH, ca_amount, calcite = fixed[global_id + 1]
                assert cs.pH == pH
                assert cs.find_component("Ca").amount == ca_amount
                assert store.equilibrium_phases[0].amount[global_id] == calcite
                assert ca[global_id] == ca_amount
                # Hydrogen comes back through pH, not as a component
                assert h[global_id] == pH_to_concentration(pH)
                assert cs.find_component("H") is None

        # Entries outside the partition are not touched
        for g in (1, 2, 3, 5, 6):
            assert ca[g] == -1.0 and h[g] == -1.0

        deck = session.last_deck
        assert deck.kinetics_steps == {}
        assert deck.solution_order == [5, 1, 8]
        assert "-steps" not in session.deck_texts[-1]

    def test_scatter_writes_pH_from_hydrogen(self, calcite_config, node_ids,
                                             project_file_name, mock_session):
        vectors = transport_vectors()

        with make_driver(calcite_config, node_ids, project_file_name, mock_session) as driver:
            driver.run_step(vectors, dt=60.0)

        deck = mock_session.last_deck
        assert deck.solutions[5].pH == pytest.approx(7.0)
        assert deck.solutions[1].pH == pytest.approx(7.25)
        assert deck.solutions[8].pH == pytest.approx(7.5)
        assert deck.solutions[1].components["Ca"] == pytest.approx(2.0e-3)
        assert "H" not in deck.solutions[1].components

    def test_engine_failure_leaves_vectors_untouched(self, calcite_config, node_ids,
                                                      project_file_name):
        vectors = transport_vectors()
        before = [v.copy() for v in vectors]

        with make_driver(calcite_config, node_ids, project_file_name,
                         MockPhreeqcSessionFailure()) as driver:
            with pytest.raises(PhreeqcExecutionError) as exc_info:
                driver.run_step(vectors, dt=86400.0)

        assert "Phase not found" in exc_info.value.engine_message
        for after, expected in zip(vectors, before):
            np.testing.assert_array_equal(after, expected)

    def test_non_positive_hydrogen(self, calcite_config, node_ids, project_file_name, mock_session):
        vectors = transport_vectors()
        vectors[1][0] = 0.0

        with make_driver(calcite_config, node_ids, project_file_name, mock_session) as driver:
            with pytest.raises(InvalidConcentrationError):
                driver.run_step(vectors, dt=1.0)

        assert not any(name == "run_file" for name, _ in mock_session.calls)

    @pytest.mark.parametrize("dt", [0.0, -1.0, float("nan"), float("inf")])
    def test_invalid_time_step(self, calcite_config, node_ids, project_file_name, mock_session, dt):
        with make_driver(calcite_config, node_ids, project_file_name, mock_session) as driver:
            with pytest.raises(ConfigurationError):
                driver.run_step(transport_vectors(), dt=dt)

    def test_missing_process_solution(self, calcite_config, node_ids, project_file_name, mock_session):
        with make_driver(calcite_config, node_ids, project_file_name, mock_session) as driver:
            with pytest.raises(ConfigurationError):
                driver.run_step(transport_vectors()[:1], dt=1.0)

    def test_session_reused_across_steps(self, calcite_config, node_ids,
                                         project_file_name, mock_session):
        vectors = transport_vectors()

        with make_driver(calcite_config, node_ids, project_file_name, mock_session) as driver:
            driver.execute_initial_calculation(vectors)
            driver.run_step(vectors, dt=1.0)
            driver.run_step(vectors, dt=1.0)

        names = [name for name, _ in mock_session.calls]
        assert names.count("load_database") == 1
        assert names.count("run_file") == 3
        assert names[-1] == "destroy"

    def test_unmapped_process_variable_is_ignored(self, calcite_config, node_ids,
                                                  project_file_name, mock_session, caplog):
        config = calcite_config.model_copy(update={
            "process_variables": calcite_config.process_variables + [
                calcite_config.process_variables[0].model_copy(update={"process_id": 2,
                                                                       "name": "Tracer"})
            ]
        })
        vectors = transport_vectors() + [np.arange(NUM_GLOBAL_NODES, dtype=float)]

        with caplog.at_level(logging.WARNING, logger="phreeqc_coupling"):
            driver = make_driver(config, node_ids, project_file_name, mock_session)
        assert "Tracer" in caplog.text

        with driver:
            driver.run_step(vectors, dt=1.0)
        np.testing.assert_array_equal(vectors[2], np.arange(NUM_GLOBAL_NODES, dtype=float))


@pytest.mark.unit
class TestSessionSetup:
    """Tests for acquiring the engine session through the driver."""

    def test_failed_database_load_releases_session(self, calcite_config, node_ids,
                                                   project_file_name):
        session = MockPhreeqcSessionFailure("ERROR: LoadDatabase: Unable to open:phreeqc.dat.",
                                            fail_database=True)
        driver = make_driver(calcite_config, node_ids, project_file_name, session)

        with pytest.raises(PhreeqcDatabaseError):
            with driver:
                pass

        assert session.destroyed
        assert not driver.engine.is_initialized

    def test_retry_after_failed_setup_runs_full_setup(self, calcite_config, node_ids,
                                                      project_file_name):
        session = MockPhreeqcSessionFailure(fail_database=True)
        driver = make_driver(calcite_config, node_ids, project_file_name, session)

        with pytest.raises(PhreeqcDatabaseError):
            driver.initialize()

        session.fail_database = False
        driver.initialize()

        names = [name for name, _ in session.calls]
        assert names == ["load_database", "destroy",
                         "load_database", "set_selected_output_file_on"]
        assert driver.engine.is_initialized
        driver.close()


@pytest.mark.unit
class TestKineticsAndSecondaryVariables:

    @pytest.fixture
    def kinetic_config(self, calcite_config):
        data = calcite_config.model_dump()
        data["kinetic_reactants"] = [
            {"name": "Quartz", "initial_amount": 2.0, "parameters": [1.0]},
            {"name": "Goethite", "initial_amount": 0.5, "fix_amount": True},
        ]
        data["rates"] = [
            {"kinetic_reactant": "Quartz", "expression_statements": ["save 1e-10 * time"]},
            {"kinetic_reactant": "Goethite", "expression_statements": ["save 0"]},
        ]
        data["user_punch"] = {"headings": ["si_calcite"], "statements": ["PUNCH SI(\"Calcite\")"]}
        return CouplingConfig.model_validate(data)

    def test_reactants_and_punch_values(self, kinetic_config, node_ids, project_file_name):
        def reaction(solution_id, solution):
            solution.kinetics["Quartz"] -= 0.001 * solution_id
            solution.punch["si_calcite"] = -0.1 * solution_id

        session = MockPhreeqcSession(reaction=reaction)

        with make_driver(kinetic_config, node_ids, project_file_name, session) as driver:
            driver.run_step(transport_vectors(), dt=86400.0)
            store = driver.store

        quartz, goethite = store.kinetic_reactants
        si = store.user_punch.secondary_variables[0].value
        for g in node_ids:
            assert quartz.amount[g] == pytest.approx(2.0 - 0.001 * (g + 1))
            assert si[g] == pytest.approx(-0.1 * (g + 1))
        assert np.all(goethite.amount == 0.5)
        assert session.last_deck.kinetics_steps == {5: 86400.0, 1: 86400.0, 8: 86400.0}
        assert session.last_deck.kinetic_reactants == ["Quartz"]


@pytest.mark.unit
class TestRestartState:
    """Surface chemistry with previous-step solutions from the dump file."""

    @pytest.fixture
    def surface_config(self, calcite_config):
        data = calcite_config.model_dump()
        data["surface"] = [{"name": "Hfo_w", "site_density": 2.31,
                            "specific_surface_area": 600.0, "mass": 0.09}]
        data["dump"] = True
        return CouplingConfig.model_validate(data)

    def test_two_steps(self, surface_config, node_ids, project_file_name, mock_session):
        vectors = transport_vectors()

        with make_driver(surface_config, node_ids, project_file_name, mock_session) as driver:
            driver.execute_initial_calculation(vectors)
            first = mock_session.last_deck
            assert Path(driver.dump.dump_file).exists()

            driver.run_step(vectors, dt=3600.0)
            second = mock_session.last_deck

            assert driver.dump.aqueous_solutions_prev == []

        assert mock_session.dump_file_on
        assert first.raw_solution_ids == []
        assert first.surfaces == {5: 5, 1: 1, 8: 8}
        # N + g + 1 with N = 3
        assert second.raw_solution_ids == [8, 4, 11]
        assert second.surfaces == {5: 8, 1: 4, 8: 11}
        assert second.dump_solution_ids == [1, 5, 8]
        np.testing.assert_allclose(vectors[0][[4, 0, 7]], [1e-3, 2e-3, 3e-3], rtol=1e-12)

    def test_step_without_dump_file(self, surface_config, node_ids, project_file_name,
                                    mock_session):
        with make_driver(surface_config, node_ids, project_file_name, mock_session) as driver:
            with pytest.raises(DumpFileError):
                driver.run_step(transport_vectors(), dt=1.0)


@pytest.mark.unit
class TestCouplingBuilder:

    def test_file_names(self, calcite_config, node_ids, project_file_name, mock_session):
        driver = make_driver(calcite_config, node_ids, project_file_name, mock_session)

        assert driver.input_file == Path(project_file_name + "_phreeqc.inp").absolute()
        assert driver.output_file == Path(project_file_name + "_phreeqc.out").absolute()
        assert driver.dump is None

    def test_default_global_node_count(self, calcite_config, node_ids):
        store = create_chemical_system_store(calcite_config, node_ids)

        assert len(store.equilibrium_phases[0].amount) == 8
        assert np.all(store.equilibrium_phases[0].amount == 0.1)

    def test_node_id_beyond_global_count(self, calcite_config, node_ids):
        with pytest.raises(ConfigurationError):
            create_chemical_system_store(calcite_config, node_ids, num_global_nodes=5)

    def test_solution_template(self, calcite_config, node_ids):
        store = create_chemical_system_store(calcite_config, node_ids)
        cs = store.get(1)

        assert [c.name for c in cs.components] == ["Ca", "C"]
        assert cs.components[1].chemical_formula == "HCO3"
        assert cs is not store.get(0)
