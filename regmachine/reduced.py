"""
reduced: Closed-form replacements for the hot loops of known programs.

Simulating these programs instruction by instruction is correct but slow:
their inner loops count up one at a time to values in the millions. The
reductions here read the program's own constants and compute the same
results directly.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .machine import RegisterMachine, DEFAULT_MAX_STEPS
from .opcodes import OP_BANI, OP_BORI, OP_MULI, OP_SETI
from .program import Program


class ReductionError(ValueError):
    """The program does not have the shape a reduction expects."""


# ---------------------------------------------------------------------------
# Chronal hash loop
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChronalHash:
    """One outer-loop pass of the hash program:

        x = signal | spread
        signal = seed
        loop:
            signal = ((signal + (x & byte_mask)) & mask) * multiplier & mask
            if x < byte_mask + 1: done
            x //= byte_mask + 1

    The program spells `x //= 256` as an inner loop that counts up until
    (k + 1) * 256 > x, which is what makes direct simulation slow.
    """

    seed: int
    multiplier: int
    mask: int
    spread: int
    byte_mask: int = 0xFF
    signal_register: int = 0

    @property
    def base(self) -> int:
        return self.byte_mask + 1

    def __call__(self, signal: int) -> int:
        x = signal | self.spread
        signal = self.seed
        while True:
            signal = (((signal + (x & self.byte_mask)) & self.mask)
                      * self.multiplier) & self.mask
            if x < self.base:
                return signal
            x //= self.base

    @classmethod
    def from_program(cls, program: Program) -> ChronalHash:
        instrs = list(program)

        spread_at = next(
            (i for i, ins in enumerate(instrs) if ins.op == OP_BORI), None)
        if spread_at is None:
            raise ReductionError("no bori instruction to spread the signal")
        spread_ins = instrs[spread_at]
        signal, x_reg = spread_ins.a, spread_ins.c

        seed = None
        for ins in instrs[spread_at + 1:]:
            if ins.op == OP_SETI and ins.c == signal:
                seed = ins.a
                break
        if seed is None:
            raise ReductionError(f"no seti reseeding register {signal}")

        multiplier = mask = byte_mask = None
        for ins in instrs[spread_at + 1:]:
            if ins.op == OP_MULI and ins.a == ins.c == signal and multiplier is None:
                multiplier = ins.b
            elif ins.op == OP_BANI and ins.a == ins.c == signal and mask is None:
                mask = ins.b
            elif ins.op == OP_BANI and ins.a == x_reg and byte_mask is None:
                byte_mask = ins.b
        if multiplier is None:
            raise ReductionError(f"no muli scaling register {signal}")
        if mask is None:
            raise ReductionError(f"no bani masking register {signal}")
        if byte_mask is None:
            raise ReductionError(f"no bani extracting the low byte of register {x_reg}")

        return cls(seed=seed, multiplier=multiplier, mask=mask,
                   spread=spread_ins.b, byte_mask=byte_mask,
                   signal_register=signal)


# ---------------------------------------------------------------------------
# Divisor-sum loop
# ---------------------------------------------------------------------------

def divisor_sum(n: int) -> int:
    """Sum of all positive divisors of n (0 for n == 0)."""
    total = 0
    for d in range(1, math.isqrt(n) + 1):
        if n % d == 0:
            total += d
            if d != n // d:
                total += n // d
    return total


def divisor_sum_shortcut(program: Program, checkpoint: int,
                         target_register: int, register0: int = 0,
                         max_steps: int = DEFAULT_MAX_STEPS) -> int:
    """Final register 0 of a program that sums the divisors of a target.

    Runs the setup code until the checkpoint (the start of the nested
    divisor loop) is reached, then reads the target from target_register.
    """
    machine = RegisterMachine(program, register0)
    if not machine.run_until(checkpoint, max_steps):
        raise ReductionError(
            f"instruction {checkpoint} not reached after {machine.steps} steps")
    return divisor_sum(machine.regs[target_register])
