from __future__ import annotations
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from config import CELL_DTYPES, DEFAULT_TAPE_SIZE
from faults import AddressOutOfRange, OutOfMemory


class Tape:
    """Memory tape of fixed-width signed cells with a single cursor.

    Cells live in a numpy array of the configured integer dtype. Arithmetic is
    done on Python ints and wrapped back into range before storing, so cell
    overflow never raises. A growable tape doubles its capacity whenever the
    cursor reaches the current bound; that is the only allocation point.
    """

    def __init__(
        self,
        size: int = DEFAULT_TAPE_SIZE,
        *,
        cell_bits: int = 32,
        growable: bool = True,
        max_cells: Optional[int] = None,
    ) -> None:
        if size <= 0:
            raise ValueError("Tape size must be positive")
        dtype = CELL_DTYPES[cell_bits]
        info = np.iinfo(dtype)
        self.cell_bits = cell_bits
        self.growable = growable
        self.max_cells = max_cells
        self._dtype = dtype
        self._min = int(info.min)
        self._span = 1 << cell_bits
        self._cells: NDArray[np.signedinteger] = np.zeros(size, dtype=dtype)
        self.cursor = 0
        self.grow_count = 0

    @property
    def capacity(self) -> int:
        return int(self._cells.shape[0])

    @property
    def cells(self) -> NDArray[np.signedinteger]:
        # Read-only view; writes go through set().
        view = self._cells.view()
        view.flags.writeable = False
        return view

    def wrap(self, value: int) -> int:
        return ((int(value) - self._min) % self._span) + self._min

    def current(self) -> int:
        return int(self._cells[self.cursor])

    def set(self, value: int) -> None:
        self._cells[self.cursor] = self.wrap(value)

    def inc(self) -> None:
        self.set(int(self._cells[self.cursor]) + 1)

    def dec(self) -> None:
        self.set(int(self._cells[self.cursor]) - 1)

    def right(self) -> None:
        target = self.cursor + 1
        if target == self.capacity:
            self._grow(target)
        self.cursor = target

    def left(self) -> None:
        if self.cursor == 0:
            raise AddressOutOfRange("Memory address out of range", cell=0)
        self.cursor -= 1

    def _grow(self, target: int) -> None:
        if not self.growable:
            raise OutOfMemory(f"Fixed tape of {self.capacity} cells exhausted", cell=target)
        new_capacity = self.capacity * 2
        if self.max_cells is not None:
            if target >= self.max_cells:
                raise OutOfMemory(f"Tape limit of {self.max_cells} cells exhausted", cell=target)
            new_capacity = min(new_capacity, self.max_cells)
        try:
            grown = np.zeros(new_capacity, dtype=self._dtype)
        except MemoryError:
            raise OutOfMemory(f"Cannot grow tape to {new_capacity} cells", cell=target)
        grown[: self.capacity] = self._cells
        self._cells = grown
        self.grow_count += 1
