from __future__ import annotations
from enum import IntEnum
from typing import Optional


class FaultCode(IntEnum):
    OUT_OF_MEMORY = 1
    UNKNOWN_PROCEDURE = 2
    ADDRESS_OUT_OF_RANGE = 3
    UNMATCHED_BRACKET = 4
    UNKNOWN = 999


class PBrainError(Exception):
    """Base class for interpreter errors."""


class ConfigError(PBrainError):
    """Raised when a run configuration is rejected before execution."""


class PBrainFault(PBrainError):
    """Raised for runtime faults. Always fatal to the whole run."""

    code: FaultCode = FaultCode.UNKNOWN

    def __init__(self, message: str, *, cell: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        # Cursor at the moment of the fault; filled in by the interpreter
        # when the raising site does not know it.
        self.cell = cell
        self.step_index: Optional[int] = None


class OutOfMemory(PBrainFault):
    code = FaultCode.OUT_OF_MEMORY


class UnknownProcedure(PBrainFault):
    code = FaultCode.UNKNOWN_PROCEDURE

    def __init__(self, key: int, *, cell: Optional[int] = None) -> None:
        super().__init__(f"No procedure defined for key {key}", cell=cell)
        self.key = key


class AddressOutOfRange(PBrainFault):
    code = FaultCode.ADDRESS_OUT_OF_RANGE


class UnmatchedBracket(PBrainFault):
    code = FaultCode.UNMATCHED_BRACKET

    def __init__(self, index: int, *, cell: Optional[int] = None) -> None:
        super().__init__(f"Cannot find matching ] for [ at offset {index}", cell=cell)
        self.index = index


class UnknownFault(PBrainFault):
    code = FaultCode.UNKNOWN


def format_diagnostic(fault: PBrainFault) -> str:
    cell = fault.cell if fault.cell is not None else 0
    return f"Error {int(fault.code)}, cell {cell}"
