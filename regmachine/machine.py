"""
Register machine with six registers, sixteen opcodes and an instruction
pointer bound to one of the registers.

Each step mirrors the instruction pointer into the bound register, executes
one instruction, then reads the (possibly rewritten) register back and
advances past it. A program jumps by writing to the bound register, so a
jump to N is written as N - 1.
"""

from __future__ import annotations

from dataclasses import dataclass

from .chips import RegisterFile, NUM_REGISTERS, WORD_BITS
from .opcodes import Instruction, OPCODE_NAMES, execute
from .program import Program


# Step budget used by the command line and seed trials when none is given.
DEFAULT_MAX_STEPS = 50_000_000


@dataclass
class RunResult:
    registers: list[int]
    steps: int
    halted: bool

    @property
    def register0(self) -> int:
        return self.registers[0]


# ---------------------------------------------------------------------------
# Machine
# ---------------------------------------------------------------------------

class RegisterMachine:
    """Executes one Program against a private register file."""

    def __init__(self, program: Program, register0: int = 0,
                 width: int = WORD_BITS):
        self.program = program
        self.ip_register = program.ip_register
        self.regs = RegisterFile(NUM_REGISTERS, width)
        self.ip = 0
        self.halted = False

        # --- Counters ---
        self.steps = 0
        self.jumps = 0
        self.op_counts: dict[int, int] = {}

        self.reset(register0)

    # -------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------

    def reset(self, register0: int = 0):
        """Zero all registers except register 0 and restart at ip 0."""
        self.regs.clear()
        self.regs[0] = register0
        self.ip = 0
        self.halted = False
        self.reset_counters()

    @property
    def registers(self) -> list[int]:
        return self.regs.values()

    def in_range(self) -> bool:
        return 0 <= self.ip < len(self.program)

    def current_instruction(self) -> Instruction | None:
        if not self.in_range():
            return None
        return self.program[self.ip]

    # -------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------

    def step(self) -> bool:
        """Execute one instruction. Returns True if still running."""
        if self.halted:
            return False
        if not self.in_range():
            self.halted = True
            return False

        instr = self.program[self.ip]
        self.regs[self.ip_register] = self.ip
        execute(instr, self.regs)
        self.ip = self.regs[self.ip_register] + 1

        self.steps += 1
        self.op_counts[instr.op] = self.op_counts.get(instr.op, 0) + 1
        if instr.c == self.ip_register:
            self.jumps += 1
        return True

    def run(self, max_steps: int | None = None) -> RunResult:
        """Step until the machine halts or max_steps (counted from the last
        reset) have executed."""
        while max_steps is None or self.steps < max_steps:
            if not self.step():
                break
        # Budget ran out exactly as ip left the program: nothing left to run.
        if not self.in_range():
            self.halted = True
        return RunResult(self.registers, self.steps, self.halted)

    def run_until(self, ip: int, max_steps: int | None = None) -> bool:
        """Step until the next instruction to execute is `ip`.

        Returns False if the machine halts or exhausts max_steps first.
        """
        while max_steps is None or self.steps < max_steps:
            if not self.step():
                return False
            if self.ip == ip:
                return True
        return False

    # -------------------------------------------------------------------
    # Counters
    # -------------------------------------------------------------------

    def reset_counters(self):
        self.steps = 0
        self.jumps = 0
        self.op_counts = {}

    def stats(self) -> dict:
        return {
            "steps": self.steps,
            "jumps": self.jumps,
            "ip": self.ip,
            "halted": self.halted,
            "ops": {OPCODE_NAMES[op]: n for op, n in sorted(self.op_counts.items())},
        }

    def stats_summary(self) -> str:
        s = self.stats()
        ops = ", ".join(f"{name}={n}" for name, n in s["ops"].items())
        return (
            f"Steps: {s['steps']}\n"
            f"Jumps: {s['jumps']}\n"
            f"IP: {s['ip']} ({'halted' if s['halted'] else 'running'})\n"
            f"Ops: {ops or '(none)'}"
        )


def run_program(program: Program, register0: int = 0,
                max_steps: int | None = None) -> RunResult:
    """Run a fresh machine for program with register 0 seeded."""
    return RegisterMachine(program, register0).run(max_steps)
