"""
program: Loader for register-machine program text.

Format:

    #ip 0
    seti 5 0 1
    addi 0 1 0

The first non-blank line binds the instruction pointer to a register; every
following non-blank line is one instruction with three integer operands.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .chips import NUM_REGISTERS
from .opcodes import Instruction, NAME_TO_OPCODE, OPERAND_MODES


class ProgramError(ValueError):
    """Malformed program text."""

    def __init__(self, message: str, line: int | None = None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


@dataclass(frozen=True)
class Program:
    ip_register: int
    instructions: tuple[Instruction, ...]

    def __len__(self) -> int:
        return len(self.instructions)

    def __getitem__(self, idx: int) -> Instruction:
        return self.instructions[idx]

    def __iter__(self):
        return iter(self.instructions)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _parse_int(token: str, lineno: int | None) -> int:
    try:
        val = int(token)
    except ValueError:
        raise ProgramError(f"expected integer operand, got {token!r}", lineno) from None
    if val < 0:
        raise ProgramError(f"operand {val} is negative", lineno)
    return val


def _check_register(idx: int, role: str, lineno: int | None):
    if not 0 <= idx < NUM_REGISTERS:
        raise ProgramError(
            f"{role} register {idx} out of range 0-{NUM_REGISTERS - 1}", lineno)


def parse_instruction(line: str, lineno: int | None = None) -> Instruction:
    """Parse one `<opcode> <A> <B> <C>` line."""
    parts = line.split()
    if not parts:
        raise ProgramError("empty instruction", lineno)
    name = parts[0]
    if name not in NAME_TO_OPCODE:
        raise ProgramError(f"unrecognized opcode {name!r}", lineno)
    if len(parts) != 4:
        raise ProgramError(
            f"{name} takes 3 operands, got {len(parts) - 1}", lineno)
    op = NAME_TO_OPCODE[name]
    a, b, c = (_parse_int(tok, lineno) for tok in parts[1:])

    a_reg, b_reg = OPERAND_MODES[op]
    if a_reg:
        _check_register(a, "source A", lineno)
    if b_reg:
        _check_register(b, "source B", lineno)
    _check_register(c, "destination", lineno)
    return Instruction(op, a, b, c)


def parse_program(text: str) -> Program:
    """Parse program text into a Program.

    A missing `#ip` directive binds the instruction pointer to register 0.
    """
    ip_register = None
    instructions: list[Instruction] = []

    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line:
            continue

        if line.startswith("#ip"):
            if ip_register is not None or instructions:
                raise ProgramError("#ip directive must come first", lineno)
            parts = line.split()
            if len(parts) != 2:
                raise ProgramError("expected '#ip <register>'", lineno)
            ip_register = _parse_int(parts[1], lineno)
            _check_register(ip_register, "instruction pointer", lineno)
            continue

        instructions.append(parse_instruction(line, lineno))

    return Program(
        ip_register=0 if ip_register is None else ip_register,
        instructions=tuple(instructions),
    )


def load_program(path: str | Path) -> Program:
    """Read and parse a program file."""
    return parse_program(Path(path).read_text())


def format_program(program: Program) -> str:
    """Render a Program back to its text form."""
    lines = [f"#ip {program.ip_register}"]
    lines.extend(str(instr) for instr in program.instructions)
    return "\n".join(lines) + "\n"
