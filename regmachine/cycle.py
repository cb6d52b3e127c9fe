"""
cycle: Halting bounds for programs that loop until a signal matches
register 0.

Such a program derives a new signal value on every pass of its outer loop
and halts only when that value equals register 0. Seeding register 0 with
the first signal halts in the fewest instructions; seeding it with the last
signal produced before the stream starts repeating halts in the most,
because after the repeat no new value is ever offered.

Two ways to produce the stream:

  direct   run the machine with an unmatchable register 0 and sample the
           signal register each time the checkpoint instruction is reached
  reduced  iterate a closed-form step function (see reduced.py)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator

from .chips import WORD_BITS
from .machine import RegisterMachine, DEFAULT_MAX_STEPS
from .opcodes import OP_EQRR
from .program import Program


SIGNAL_SAFETY_CAP = 10_000_000

# Register 0 value for direct runs: signals are compared for equality, and
# the all-ones word is outside every supported program's signal range.
DEFAULT_SENTINEL = (1 << WORD_BITS) - 1


class CycleNotFound(RuntimeError):
    """The signal stream ended or hit its cap before any value repeated."""


class CheckpointError(ValueError):
    """No unique comparison against register 0 in the program."""


@dataclass
class CycleBounds:
    first: int                  # fewest instructions to halt
    last: int                   # most instructions to halt
    repeat: int                 # the value that recurred
    sequence: list[int] = field(default_factory=list)

    @property
    def distinct(self) -> int:
        return len(self.sequence)


def find_checkpoint(program: Program) -> tuple[int, int]:
    """Locate the instruction comparing a register against register 0.

    Returns (instruction index, signal register).
    """
    found = []
    for idx, instr in enumerate(program):
        if instr.op != OP_EQRR or instr.a == instr.b:
            continue
        if instr.a == 0:
            found.append((idx, instr.b))
        elif instr.b == 0:
            found.append((idx, instr.a))
    if len(found) != 1:
        raise CheckpointError(
            f"expected exactly one eqrr against register 0, found {len(found)}")
    return found[0]


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------

class CycleDriver:
    """Records signal values until one repeats.

    Args:
        program: the program being analysed.
        checkpoint: instruction index at which the signal is sampled, before
            that instruction executes. Located with find_checkpoint() when
            omitted.
        signal_register: register holding the signal at the checkpoint.
        step_fn: closed-form `signal -> next signal`. When given, the
            reduced strategy is used instead of simulating the program.
        initial_signal: signal register value the reduced strategy starts
            from (its value when the outer loop is first entered).
        sentinel: register 0 seed for the direct strategy.
        max_signals: safety cap on the number of distinct signals.
        max_steps: step budget for the direct strategy's machine.
    """

    def __init__(self, program: Program,
                 checkpoint: int | None = None,
                 signal_register: int | None = None,
                 step_fn: Callable[[int], int] | None = None,
                 initial_signal: int = 0,
                 sentinel: int = DEFAULT_SENTINEL,
                 max_signals: int = SIGNAL_SAFETY_CAP,
                 max_steps: int | None = None):
        if checkpoint is None or signal_register is None:
            found_checkpoint, found_signal = find_checkpoint(program)
            if checkpoint is None:
                checkpoint = found_checkpoint
            if signal_register is None:
                signal_register = found_signal
        self.program = program
        self.checkpoint = checkpoint
        self.signal_register = signal_register
        self.step_fn = step_fn
        self.initial_signal = initial_signal
        self.sentinel = sentinel
        self.max_signals = max_signals
        self.max_steps = max_steps
        self.machine: RegisterMachine | None = None

    @property
    def strategy(self) -> str:
        return "direct" if self.step_fn is None else "reduced"

    def iter_signals(self) -> Iterator[int]:
        """Yield signal values in the order the program produces them."""
        if self.step_fn is None:
            return self._direct_signals()
        return self._reduced_signals()

    def _direct_signals(self) -> Iterator[int]:
        machine = RegisterMachine(self.program, self.sentinel)
        self.machine = machine
        while machine.run_until(self.checkpoint, self.max_steps):
            yield machine.regs[self.signal_register]
        state = "halted" if machine.halted else "ran out of steps"
        raise CycleNotFound(
            f"machine {state} after {machine.steps} steps without a repeated signal")

    def _reduced_signals(self) -> Iterator[int]:
        signal = self.initial_signal
        while True:
            signal = self.step_fn(signal)
            yield signal

    def find_bounds(self) -> CycleBounds:
        seen: set[int] = set()
        sequence: list[int] = []
        for signal in self.iter_signals():
            if signal in seen:
                return CycleBounds(first=sequence[0], last=sequence[-1],
                                   repeat=signal, sequence=sequence)
            if len(sequence) >= self.max_signals:
                raise CycleNotFound(
                    f"no repeat within {self.max_signals} signals")
            seen.add(signal)
            sequence.append(signal)
        raise CycleNotFound("signal stream ended without a repeat")


def find_bounds(program: Program, checkpoint: int | None = None,
                signal_register: int | None = None, **kwargs) -> CycleBounds:
    """First and last-before-repeat signal values for program."""
    return CycleDriver(program, checkpoint, signal_register, **kwargs).find_bounds()


def halting_steps(program: Program, seeds: Iterable[int],
                  max_steps: int = DEFAULT_MAX_STEPS) -> dict[int, int | None]:
    """Executed-step count for each register 0 seed, None if it never
    halted within max_steps. Each seed gets its own machine."""
    results: dict[int, int | None] = {}
    for seed in seeds:
        result = RegisterMachine(program, seed).run(max_steps)
        results[seed] = result.steps if result.halted else None
    return results
