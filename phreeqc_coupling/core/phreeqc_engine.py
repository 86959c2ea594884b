"""
PHREEQC Engine - one long-lived IPhreeqc session per coupling instance

The session is created once, the thermodynamic database is loaded once,
and every coupling step runs one input deck against it. Any non-OK status
is fatal.
"""

from pathlib import Path
from typing import Callable, Optional
import logging

from ..exceptions import (
    PhreeqcDatabaseError,
    PhreeqcExecutionError,
    PhreeqcSessionError,
)

logger = logging.getLogger(__name__)

IPQ_OK = 0


class IPhreeqcSession:
    """
    Narrow adapter over the IPhreeqc handle shipped with phreeqpython

    Methods return the raw IPhreeqc status: 0 is OK, for LoadDatabase and
    RunFile a positive value is the number of errors.
    """

    def __init__(self, dll_path: Optional[str] = None):
        from phreeqpython.viphreeqc import VIPhreeqc

        self.ip = VIPhreeqc(dll_path)
        self.instance_id = self.ip.id_

    def load_database(self, path: str) -> int:
        return self.ip.dll.LoadDatabase(self.instance_id, str(path).encode('utf-8'))

    def set_selected_output_file_on(self, on: bool = True) -> int:
        return self.ip.dll.SetSelectedOutputFileOn(self.instance_id, int(on))

    def set_dump_file_on(self, on: bool = True) -> int:
        return self.ip.dll.SetDumpFileOn(self.instance_id, int(on))

    def run_file(self, path: str) -> int:
        return self.ip.dll.RunFile(self.instance_id, str(path).encode('utf-8'))

    def get_error_string(self) -> str:
        return self.ip.get_error_string()

    def destroy(self):
        self.ip.dll.DestroyIPhreeqc(self.instance_id)


class PhreeqcEngine:
    """
    Synchronous driver of one engine session

    Use as a context manager, or call initialize() and close() explicitly.
    A session must not be shared by concurrent coupling steps.
    """

    def __init__(self, session_factory: Optional[Callable[[], object]] = None):
        """
        Args:
            session_factory: Callable returning a new session; defaults to
                IPhreeqcSession. Tests inject an in-process stub here.
        """
        self.session_factory = session_factory or IPhreeqcSession
        self.session = None
        self.database: Optional[Path] = None

    @property
    def is_initialized(self) -> bool:
        return self.session is not None

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        # Don't suppress exceptions
        return False

    def initialize(self):
        """Obtain a session handle"""
        if self.session is not None:
            return
        try:
            session = self.session_factory()
        except (OSError, MemoryError) as e:
            raise PhreeqcSessionError(
                f"Failed to initialize phreeqc instance: {e}"
            ) from e
        if session is None or getattr(session, "instance_id", 0) < 0:
            raise PhreeqcSessionError(
                "Failed to initialize phreeqc instance, due to lack of memory",
                status=getattr(session, "instance_id", None)
            )
        self.session = session
        logger.info("PHREEQC session created")

    def _require_session(self):
        if self.session is None:
            raise PhreeqcSessionError("PHREEQC session is not initialized",
                                      hint="Call initialize() before using the engine")
        return self.session

    def load_database(self, path):
        """Load the thermodynamic database into the session"""
        session = self._require_session()
        path = Path(path)
        status = session.load_database(str(path))
        if status != IPQ_OK:
            raise PhreeqcDatabaseError(path, engine_message=session.get_error_string())
        self.database = path
        logger.info(f"Loaded PHREEQC database: {path}")

    def enable_result_output(self):
        """Have the engine write SELECTED_OUTPUT to its file"""
        session = self._require_session()
        status = session.set_selected_output_file_on(True)
        if status != IPQ_OK:
            raise PhreeqcSessionError("Failed to switch on the selected output file", status=status)

    def enable_dump_output(self):
        """Have the engine write DUMP records to their file"""
        session = self._require_session()
        status = session.set_dump_file_on(True)
        if status != IPQ_OK:
            raise PhreeqcSessionError("Failed to switch on the dump file", status=status)

    def execute(self, script_path) -> int:
        """
        Run an input deck synchronously

        Args:
            script_path: Path of the input deck

        Returns:
            IPQ_OK

        Raises:
            PhreeqcExecutionError: with the engine's own error string
        """
        session = self._require_session()
        logger.info("Phreeqc: Executing chemical calculation")
        status = session.run_file(str(script_path))
        if status != IPQ_OK:
            error_string = session.get_error_string()
            logger.error(f"PHREEQC failed on '{script_path}': {error_string}")
            raise PhreeqcExecutionError(script_path, status=status, engine_message=error_string)
        return status

    def close(self):
        """Release the session; safe to call more than once"""
        if self.session is None:
            return
        session, self.session = self.session, None
        session.destroy()
        logger.debug("PHREEQC session released")
