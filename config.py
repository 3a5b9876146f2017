"""Run configuration for the pbrain interpreter.

Everything the reference build fixed at compile time (cell width, character
width, initial tape size, static vs. dynamic memory) is resolved here once,
before a run starts.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

import numpy as np

from faults import ConfigError


UNIT_BYTE = "byte"
UNIT_WIDE = "wide"

REDEFINE_FIRST = "first"
REDEFINE_LAST = "last"

DEFAULT_TAPE_SIZE = 30000
DEFAULT_RECURSION_LIMIT = 100000

CELL_DTYPES = {
    8: np.int8,
    16: np.int16,
    32: np.int32,
    64: np.int64,
}


@dataclass(frozen=True)
class InterpreterConfig:
    cell_bits: int = 32
    unit: str = UNIT_WIDE
    tape_size: int = DEFAULT_TAPE_SIZE
    growable: bool = True
    max_cells: Optional[int] = None
    redefine: str = REDEFINE_FIRST
    recursion_limit: int = DEFAULT_RECURSION_LIMIT

    def validate(self) -> "InterpreterConfig":
        if self.cell_bits not in CELL_DTYPES:
            supported = ", ".join(str(b) for b in sorted(CELL_DTYPES))
            raise ConfigError(f"Unsupported cell width {self.cell_bits}; expected one of {supported}")
        if self.unit not in (UNIT_BYTE, UNIT_WIDE):
            raise ConfigError(f"Unknown I/O unit '{self.unit}'")
        if self.tape_size <= 0:
            raise ConfigError("Tape size must be positive")
        if self.max_cells is not None and self.max_cells < self.tape_size:
            raise ConfigError("max_cells must be at least the initial tape size")
        if self.redefine not in (REDEFINE_FIRST, REDEFINE_LAST):
            raise ConfigError(f"Unknown redefinition policy '{self.redefine}'")
        if self.recursion_limit < 100:
            raise ConfigError("Recursion limit must be at least 100")
        return self

    @property
    def cell_dtype(self) -> type:
        return CELL_DTYPES[self.cell_bits]
