"""
Storage primitives for the register machine.

Models the register cells as fixed-width clocked registers. All values are
non-negative and wrap modulo 2**width on load.
"""

from __future__ import annotations

WORD_BITS = 64
NUM_REGISTERS = 6


class Register:
    """N-bit clocked register."""

    def __init__(self, width: int = WORD_BITS):
        self.width = width
        self.value = 0
        self._mask = (1 << width) - 1

    def load(self, val: int):
        self.value = val & self._mask


class RegisterFile:
    """
    Six general-purpose registers of equal width.

    Indexing reads a register's value; item assignment loads (and wraps)
    a new one. Register indices outside 0-5 raise IndexError.
    """

    def __init__(self, count: int = NUM_REGISTERS, width: int = WORD_BITS):
        self.width = width
        self.cells = [Register(width) for _ in range(count)]

    def __getitem__(self, idx: int) -> int:
        if idx < 0:
            raise IndexError(f"register index {idx} out of range")
        return self.cells[idx].value

    def __setitem__(self, idx: int, val: int):
        if idx < 0:
            raise IndexError(f"register index {idx} out of range")
        self.cells[idx].load(val)

    def __len__(self) -> int:
        return len(self.cells)

    def clear(self):
        for cell in self.cells:
            cell.load(0)

    def values(self) -> list[int]:
        return [cell.value for cell in self.cells]

    def load_all(self, values: list[int]):
        if len(values) != len(self.cells):
            raise ValueError(
                f"expected {len(self.cells)} register values, got {len(values)}")
        for cell, val in zip(self.cells, values):
            cell.load(val)
