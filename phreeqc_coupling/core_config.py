"""
Core Configuration Module for the PHREEQC coupling engine

Centralizes constants, default numerical controls and file naming so the
deck writer, parser and driver agree on them.
"""

from dataclasses import dataclass
from pathlib import Path
import os
from typing import Optional
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CoreConfig:
    """
    Centralized configuration for the coupling engine.

    Using frozen=True ensures these values cannot be modified at runtime.
    """

    # Transport variable carrying hydrogen ion concentration (mol/kgw).
    # Chemistry sees it as pH = -log10(c).
    HYDROGEN_VARIABLE_NAME: str = "H"

    # Aqueous solution defaults
    DEFAULT_TEMPERATURE_C: float = 25.0
    DEFAULT_PRESSURE_ATM: float = 1.0
    DEFAULT_PH: float = 7.0
    DEFAULT_PE: float = 4.0
    SOLUTION_UNITS: str = "mol/kgw"

    # KNOBS defaults
    DEFAULT_MAX_ITER: int = 100
    DEFAULT_RELATIVE_CONVERGENCE_TOLERANCE: float = 1e-12
    DEFAULT_TOLERANCE: float = 1e-15
    DEFAULT_STEP_SIZE: int = 100
    DEFAULT_SCALING: bool = False

    # Surface complexation
    SURFACE_SITES_UNITS: str = "DENSITY"

    # File naming: <project>_phreeqc.<ext>
    INPUT_FILE_SUFFIX: str = "_phreeqc.inp"
    OUTPUT_FILE_SUFFIX: str = "_phreeqc.out"
    DUMP_FILE_SUFFIX: str = "_phreeqc.dmp"

    # PHREEQC database selection
    PHREEQC_DATABASE_NAME: str = "phreeqc.dat"

    def input_file(self, project_file_name: str) -> Path:
        return Path(project_file_name + self.INPUT_FILE_SUFFIX)

    def output_file(self, project_file_name: str) -> Path:
        return Path(project_file_name + self.OUTPUT_FILE_SUFFIX)

    def dump_file(self, project_file_name: str) -> Path:
        return Path(project_file_name + self.DUMP_FILE_SUFFIX)

    def get_phreeqc_database(self, db_name: Optional[str] = None) -> Path:
        """Get PHREEQC database path from environment or use default.

        Args:
            db_name: Database filename (e.g., 'phreeqc.dat', 'pitzer.dat').
                     If None, uses PHREEQC_DATABASE_NAME from config.

        Returns:
            Path to the database file

        Search order:
            1. PHREEQC_DATABASE environment variable
            2. System PHREEQC installations
            3. Database directory shipped with phreeqpython
        """
        if db_name is None:
            db_name = self.PHREEQC_DATABASE_NAME

        # An explicit path wins over discovery
        if Path(db_name).is_absolute() or os.sep in db_name:
            return Path(db_name)

        env_path = os.getenv('PHREEQC_DATABASE')
        if env_path and os.path.exists(env_path):
            logger.debug(f"Using PHREEQC database from PHREEQC_DATABASE env: {env_path}")
            return Path(env_path)

        common_dirs = [
            "/usr/local/share/phreeqc/database",
            "/usr/share/phreeqc/database",
            os.path.join(os.path.expanduser("~"), "phreeqc", "database"),
            r"C:\Program Files\USGS\phreeqc\database",
        ]

        for dir_path in common_dirs:
            full_path = Path(dir_path) / db_name
            if full_path.exists():
                logger.debug(f"Using PHREEQC database from system path: {full_path}")
                return full_path

        try:
            import phreeqpython
            phreeqpy_db = Path(phreeqpython.__file__).parent / "database" / db_name
            if phreeqpy_db.exists():
                logger.debug(f"Using PHREEQC database from phreeqpython: {phreeqpy_db}")
                return phreeqpy_db
        except ImportError:
            logger.warning("phreeqpython not available and database not found in system paths")

        # May not exist; loading will fail with a PhreeqcDatabaseError
        logger.warning(f"Database {db_name} not found in any location, returning name as given")
        return Path(db_name)


# Create singleton instance
CONFIG = CoreConfig()
