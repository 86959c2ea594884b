"""
Exception hierarchy for the PHREEQC coupling engine.

Every failure in a coupling step is unrecoverable at step granularity:
callers get one of these exceptions and the step is not applied.
All exceptions inherit from CouplingError for easy catching.
"""
from typing import Any, Dict, Optional


class CouplingError(Exception):
    """Base exception for all coupling errors.

    Attributes:
        message: Human-readable error description
        details: Optional dictionary with additional context
        hint: Optional suggestion for resolution
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        hint: Optional[str] = None
    ):
        self.message = message
        self.details = details or {}
        self.hint = hint
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the full error message."""
        parts = [self.message]
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"[{details_str}]")
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        return " ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for structured error reports."""
        result = {
            "error": self.__class__.__name__,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.hint:
            result["hint"] = self.hint
        return result


# =============================================================================
# File I/O Exceptions
# =============================================================================

class CouplingIOError(CouplingError):
    """Input deck, result file or dump file could not be opened, written or read."""

    def __init__(
        self,
        message: str,
        path: Any = None,
        operation: Optional[str] = None,
        hint: Optional[str] = None
    ):
        details = {}
        if path is not None:
            details["path"] = str(path)
        if operation:
            details["operation"] = operation
        self.path = path
        super().__init__(message=message, details=details, hint=hint)


class DumpFileError(CouplingIOError):
    """Restart (dump) file is missing, truncated or inconsistent with the node set."""
    pass


# =============================================================================
# PHREEQC Engine Exceptions
# =============================================================================

class PhreeqcError(CouplingError):
    """Base exception for errors reported by the speciation engine."""
    pass


class PhreeqcSessionError(PhreeqcError):
    """Engine session could not be created or the handle is invalid."""

    def __init__(
        self,
        message: str = "Failed to create PHREEQC session",
        status: Optional[int] = None,
        hint: str = "Check that phreeqpython and its IPhreeqc library are installed"
    ):
        details = {"status": status} if status is not None else None
        super().__init__(message=message, details=details, hint=hint)


class PhreeqcDatabaseError(PhreeqcError):
    """Thermodynamic database could not be found or parsed."""

    def __init__(
        self,
        database: Any,
        engine_message: Optional[str] = None,
        hint: str = "Set PHREEQC_DATABASE environment variable to a valid database path"
    ):
        details = {"database": str(database)}
        if engine_message:
            details["engine_error"] = engine_message.strip()
        super().__init__(
            message="Failed in loading the thermodynamic database",
            details=details,
            hint=hint
        )


class PhreeqcExecutionError(PhreeqcError):
    """Speciation calculation returned a non-OK status.

    The engine's own error string is kept on ``engine_message``.
    """

    def __init__(
        self,
        script_path: Any,
        status: Optional[int] = None,
        engine_message: Optional[str] = None,
        hint: Optional[str] = None
    ):
        self.engine_message = (engine_message or "").strip()
        details = {"script": str(script_path)}
        if status is not None:
            details["status"] = status
        if self.engine_message:
            details["engine_error"] = self.engine_message
        super().__init__(
            message="Failed in performing speciation calculation",
            details=details,
            hint=hint
        )


# =============================================================================
# Result Parsing Exceptions
# =============================================================================

class ResultConversionError(CouplingError):
    """A result token could not be converted to a number."""

    def __init__(self, node_id: int, column: int, text: str):
        self.node_id = node_id
        self.column = column
        self.text = text
        super().__init__(
            message=f"Could not convert string '{text}' to float",
            details={"chemical_system": node_id, "column": column}
        )


class SchemaMismatchError(CouplingError):
    """Result line does not carry the declared number of output items."""

    def __init__(
        self,
        expected: int,
        found: int,
        node_id: Optional[int] = None,
        message: str = "Number of result items does not match the output schema",
        hint: Optional[str] = None
    ):
        self.expected = expected
        self.found = found
        details = {"expected": expected, "found": found}
        if node_id is not None:
            details["chemical_system"] = node_id
        super().__init__(message=message, details=details, hint=hint)


class UnmatchedItemError(CouplingError):
    """Output item name has no counterpart in the chemical system."""

    def __init__(self, item_name: str, item_kind: str, node_id: Optional[int] = None):
        self.item_name = item_name
        details = {"kind": item_kind}
        if node_id is not None:
            details["chemical_system"] = node_id
        super().__init__(
            message=f"Could not find {item_kind} '{item_name}'",
            details=details
        )


# =============================================================================
# Configuration Exceptions
# =============================================================================

class ConfigurationError(CouplingError):
    """Coupling setup is inconsistent."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
        hint: Optional[str] = None
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message=message, details=details, hint=hint)


class InvalidConcentrationError(CouplingError):
    """Transport vector holds a concentration that cannot be turned into chemistry input."""

    def __init__(self, variable: str, node_id: int, value: float):
        super().__init__(
            message=f"Invalid concentration of '{variable}'",
            details={"chemical_system": node_id, "value": value},
            hint="Hydrogen concentration must be positive and finite to compute pH"
        )
