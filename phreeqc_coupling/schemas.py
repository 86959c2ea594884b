"""
Configuration schemas for the coupling engine

Pydantic models describing one chemical system setup: the solution
template shared by all nodes, the reaction definitions, numerical
controls, output settings and the transport variable mapping.
"""

from pathlib import Path
from typing import List, Literal, Optional
import logging

import yaml
from pydantic import BaseModel, Field, ValidationError

from .core_config import CONFIG
from .exceptions import ConfigurationError, CouplingIOError

logger = logging.getLogger(__name__)


class ComponentConfig(BaseModel):
    """Transported chemical component"""
    name: str = Field(..., min_length=1, description="Element or master species name, e.g. 'Ca'")
    chemical_formula: str = Field("", description="Formula for the 'as' clause, e.g. 'HCO3'")


class SolutionConfig(BaseModel):
    """Aqueous solution template applied to every node"""
    temperature: float = Field(CONFIG.DEFAULT_TEMPERATURE_C, description="Temperature in Celsius")
    pressure: float = Field(CONFIG.DEFAULT_PRESSURE_ATM, description="Pressure in atm", gt=0)
    pH: float = Field(CONFIG.DEFAULT_PH, description="Initial pH if hydrogen is not transported")
    pe: float = Field(CONFIG.DEFAULT_PE, description="Initial pe")
    charge_balance: Optional[Literal["pH", "pe"]] = Field(
        None, description="Quantity adjusted for electroneutrality"
    )
    components: List[ComponentConfig] = Field(default_factory=list)


class EquilibriumPhaseConfig(BaseModel):
    name: str = Field(..., min_length=1)
    saturation_index: float = Field(0.0, description="Target saturation index")
    initial_amount: float = Field(0.0, description="Initial moles per node", ge=0)


class KineticReactantConfig(BaseModel):
    name: str = Field(..., min_length=1)
    chemical_formula: str = Field("")
    initial_amount: float = Field(0.0, description="Initial moles per node", ge=0)
    parameters: List[float] = Field(default_factory=list, description="Values passed as -parms")
    fix_amount: bool = Field(False, description="Keep the amount constant between steps")


class ReactionRateConfig(BaseModel):
    kinetic_reactant: str = Field(..., min_length=1)
    expression_statements: List[str] = Field(..., min_length=1, description="BASIC statements")


class SurfaceSiteConfig(BaseModel):
    name: str = Field(..., min_length=1)
    site_density: float = Field(..., description="Sites per nm2", gt=0)
    specific_surface_area: float = Field(..., description="m2 per g", gt=0)
    mass: float = Field(..., description="Sorbent mass in g", gt=0)


class UserPunchConfig(BaseModel):
    headings: List[str] = Field(..., min_length=1, description="Secondary variable names")
    statements: List[str] = Field(..., min_length=1, description="BASIC statements")


class KnobsConfig(BaseModel):
    max_iter: int = Field(CONFIG.DEFAULT_MAX_ITER, gt=0)
    relative_convergence_tolerance: float = Field(CONFIG.DEFAULT_RELATIVE_CONVERGENCE_TOLERANCE, gt=0)
    tolerance: float = Field(CONFIG.DEFAULT_TOLERANCE, gt=0)
    step_size: int = Field(CONFIG.DEFAULT_STEP_SIZE, gt=0)
    scaling: bool = Field(CONFIG.DEFAULT_SCALING)


class OutputConfig(BaseModel):
    use_high_precision: bool = Field(True)


class ProcessVariableConfig(BaseModel):
    process_id: int = Field(..., ge=0, description="Index of the transport solution vector")
    name: str = Field(..., min_length=1, description="Transport variable name")


class CouplingConfig(BaseModel):
    """Complete chemical system setup"""
    database: str = Field(CONFIG.PHREEQC_DATABASE_NAME, description="Database name or path")
    solution: SolutionConfig = Field(default_factory=SolutionConfig)
    equilibrium_phases: List[EquilibriumPhaseConfig] = Field(default_factory=list)
    kinetic_reactants: List[KineticReactantConfig] = Field(default_factory=list)
    rates: List[ReactionRateConfig] = Field(default_factory=list)
    surface: List[SurfaceSiteConfig] = Field(default_factory=list)
    user_punch: Optional[UserPunchConfig] = None
    knobs: KnobsConfig = Field(default_factory=KnobsConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    dump: bool = Field(False, description="Carry previous-step solutions via a dump file")
    process_variables: List[ProcessVariableConfig] = Field(default_factory=list)
    hydrogen_variable: str = Field(CONFIG.HYDROGEN_VARIABLE_NAME)

    def model_post_init(self, __context):
        """Cross-field consistency checks"""
        for field_name, names in [
            ("solution.components", [c.name for c in self.solution.components]),
            ("equilibrium_phases", [p.name for p in self.equilibrium_phases]),
            ("kinetic_reactants", [r.name for r in self.kinetic_reactants]),
            ("surface", [s.name for s in self.surface]),
            ("process_variables", [v.name for v in self.process_variables]),
        ]:
            duplicates = sorted({n for n in names if names.count(n) > 1})
            if duplicates:
                raise ConfigurationError(f"Duplicate names in {field_name}",
                                         field=field_name, value=", ".join(duplicates))

        reactant_names = {r.name for r in self.kinetic_reactants}
        for rate in self.rates:
            if rate.kinetic_reactant not in reactant_names:
                raise ConfigurationError("Rate given for an unknown kinetic reactant",
                                         field="rates", value=rate.kinetic_reactant)

        if self.kinetic_reactants and not self.rates:
            logger.warning("Kinetic reactants defined without rates; "
                           "the database must provide them")

    @property
    def process_id_to_component_name_map(self):
        return [(v.process_id, v.name) for v in self.process_variables]


def load_coupling_config(path) -> CouplingConfig:
    """
    Load a coupling configuration from a YAML file

    Args:
        path: YAML file

    Returns:
        Validated CouplingConfig
    """
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise CouplingIOError(f"Could not open coupling configuration: {e}",
                              path=path, operation="read") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in coupling configuration: {e}",
                                 field=str(path)) from e

    try:
        config = CouplingConfig.model_validate(data or {})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid coupling configuration: {e}", field=str(path)) from e

    logger.info(f"Loaded coupling configuration from {path}")
    return config
