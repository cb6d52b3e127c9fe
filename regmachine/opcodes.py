"""
Opcode set for the six-register machine.

Sixteen operations, each reading up to two source operands (A, B) and
writing destination register C. The suffix letters name the operand modes:
"r" dereferences a register, "i" uses the operand as an immediate literal.
"""

from __future__ import annotations

from dataclasses import dataclass

from .chips import RegisterFile


# ---------------------------------------------------------------------------
# Opcode tags
# ---------------------------------------------------------------------------

OP_ADDR = 0x0
OP_ADDI = 0x1
OP_MULR = 0x2
OP_MULI = 0x3
OP_BANR = 0x4
OP_BANI = 0x5
OP_BORR = 0x6
OP_BORI = 0x7
OP_SETR = 0x8
OP_SETI = 0x9
OP_GTIR = 0xA
OP_GTRI = 0xB
OP_GTRR = 0xC
OP_EQIR = 0xD
OP_EQRI = 0xE
OP_EQRR = 0xF

OPCODE_NAMES = {
    OP_ADDR: "addr", OP_ADDI: "addi", OP_MULR: "mulr", OP_MULI: "muli",
    OP_BANR: "banr", OP_BANI: "bani", OP_BORR: "borr", OP_BORI: "bori",
    OP_SETR: "setr", OP_SETI: "seti", OP_GTIR: "gtir", OP_GTRI: "gtri",
    OP_GTRR: "gtrr", OP_EQIR: "eqir", OP_EQRI: "eqri", OP_EQRR: "eqrr",
}
NAME_TO_OPCODE = {name: op for op, name in OPCODE_NAMES.items()}

ALL_OPCODES = tuple(OPCODE_NAMES)

# Operand modes: (A is a register, B is a register). C is always a register.
# B is ignored by setr and seti.
OPERAND_MODES = {
    OP_ADDR: (True, True),   OP_ADDI: (True, False),
    OP_MULR: (True, True),   OP_MULI: (True, False),
    OP_BANR: (True, True),   OP_BANI: (True, False),
    OP_BORR: (True, True),   OP_BORI: (True, False),
    OP_SETR: (True, False),  OP_SETI: (False, False),
    OP_GTIR: (False, True),  OP_GTRI: (True, False),  OP_GTRR: (True, True),
    OP_EQIR: (False, True),  OP_EQRI: (True, False),  OP_EQRR: (True, True),
}


@dataclass(frozen=True)
class Instruction:
    op: int
    a: int
    b: int
    c: int

    @property
    def name(self) -> str:
        return OPCODE_NAMES[self.op]

    def __str__(self) -> str:
        return f"{self.name} {self.a} {self.b} {self.c}"


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

def evaluate(op: int, a: int, b: int, regs: RegisterFile) -> int:
    """Compute an opcode's result without storing it."""
    if op == OP_ADDR:
        return regs[a] + regs[b]
    elif op == OP_ADDI:
        return regs[a] + b
    elif op == OP_MULR:
        return regs[a] * regs[b]
    elif op == OP_MULI:
        return regs[a] * b
    elif op == OP_BANR:
        return regs[a] & regs[b]
    elif op == OP_BANI:
        return regs[a] & b
    elif op == OP_BORR:
        return regs[a] | regs[b]
    elif op == OP_BORI:
        return regs[a] | b
    elif op == OP_SETR:
        return regs[a]
    elif op == OP_SETI:
        return a
    elif op == OP_GTIR:
        return 1 if a > regs[b] else 0
    elif op == OP_GTRI:
        return 1 if regs[a] > b else 0
    elif op == OP_GTRR:
        return 1 if regs[a] > regs[b] else 0
    elif op == OP_EQIR:
        return 1 if a == regs[b] else 0
    elif op == OP_EQRI:
        return 1 if regs[a] == b else 0
    elif op == OP_EQRR:
        return 1 if regs[a] == regs[b] else 0
    raise ValueError(f"unknown opcode {op!r}")


def execute(instr: Instruction, regs: RegisterFile) -> int:
    """Execute one instruction against regs. Returns the stored value."""
    regs[instr.c] = evaluate(instr.op, instr.a, instr.b, regs)
    return regs[instr.c]
