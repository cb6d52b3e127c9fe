"""
Command-line driver for the register machine.

Usage:
    python -m regmachine.cli run programs/trace.txt
    python -m regmachine.cli run programs/divisors.txt --r0 1 --stats
    python -m regmachine.cli bounds programs/chronal.txt --strategy reduced
    python -m regmachine.cli bounds programs/tripler.txt --strategy direct
    python -m regmachine.cli divisors programs/divisors.txt --checkpoint 3 --target 1
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

from .cycle import CycleDriver, CycleNotFound, SIGNAL_SAFETY_CAP
from .machine import RegisterMachine, DEFAULT_MAX_STEPS
from .program import Program, load_program
from .reduced import ChronalHash, divisor_sum_shortcut


EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NO_HALT = 2


def _load(path: str) -> Program:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"File not found: {p}")
    program = load_program(p)
    print(f"Loaded {p}: ip bound to r{program.ip_register}, "
          f"{len(program)} instructions", file=sys.stderr)
    return program


def cmd_run(args) -> int:
    program = _load(args.file)
    machine = RegisterMachine(program, args.r0)
    t0 = time.time()
    result = machine.run(args.max_steps)
    elapsed = time.time() - t0

    if result.halted:
        print(f"Halted after {result.steps} steps: {result.registers}")
        print(f"Register 0: {result.register0}")
    else:
        print(f"Did not halt within {args.max_steps} steps "
              f"(ip {machine.ip}): {result.registers}")
    if args.stats:
        print(machine.stats_summary())
        print(f"Time: {elapsed:.2f}s")
    return EXIT_OK if result.halted else EXIT_NO_HALT


def cmd_bounds(args) -> int:
    program = _load(args.file)
    step_fn = None
    if args.strategy == "reduced":
        step_fn = ChronalHash.from_program(program)
    driver = CycleDriver(program, args.checkpoint, args.signal,
                         step_fn=step_fn,
                         max_signals=args.max_signals,
                         max_steps=args.max_steps)
    print(f"Sampling r{driver.signal_register} at instruction "
          f"{driver.checkpoint} ({driver.strategy})", file=sys.stderr)

    t0 = time.time()
    try:
        bounds = driver.find_bounds()
    except CycleNotFound as e:
        print(f"No repeat: {e}")
        return EXIT_NO_HALT
    elapsed = time.time() - t0

    print(f"Fewest instructions: r0 = {bounds.first}")
    print(f"Most instructions:   r0 = {bounds.last}")
    print(f"Distinct signals: {bounds.distinct} (repeat at {bounds.repeat})")
    print(f"Time: {elapsed:.2f}s", file=sys.stderr)
    return EXIT_OK


def cmd_divisors(args) -> int:
    program = _load(args.file)
    total = divisor_sum_shortcut(program, args.checkpoint, args.target,
                                 register0=args.r0, max_steps=args.max_steps)
    print(f"Register 0: {total}")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Six-register machine with a bound instruction pointer",
        prog="python -m regmachine.cli",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_run = sub.add_parser("run", help="Run a program until it halts")
    p_run.add_argument("file", help="Path to program file")
    p_run.add_argument("--r0", type=int, default=0,
                       help="Initial value of register 0")
    p_run.add_argument("--max-steps", type=int, default=DEFAULT_MAX_STEPS,
                       help="Step budget before giving up")
    p_run.add_argument("--stats", action="store_true",
                       help="Print machine counters")
    p_run.set_defaults(func=cmd_run)

    p_bounds = sub.add_parser(
        "bounds", help="Register 0 values halting in the fewest/most instructions")
    p_bounds.add_argument("file", help="Path to program file")
    p_bounds.add_argument("--checkpoint", type=int, default=None,
                          help="Instruction index where the signal is sampled")
    p_bounds.add_argument("--signal", type=int, default=None,
                          help="Register holding the signal")
    p_bounds.add_argument("--strategy", choices=("direct", "reduced"),
                          default="reduced",
                          help="Simulate the program or use its closed form")
    p_bounds.add_argument("--max-signals", type=int, default=SIGNAL_SAFETY_CAP,
                          help="Give up after this many distinct signals")
    p_bounds.add_argument("--max-steps", type=int, default=None,
                          help="Step budget for the direct strategy")
    p_bounds.set_defaults(func=cmd_bounds)

    p_div = sub.add_parser(
        "divisors", help="Shortcut a program that sums the divisors of a target")
    p_div.add_argument("file", help="Path to program file")
    p_div.add_argument("--checkpoint", type=int, required=True,
                       help="Instruction index where the divisor loop starts")
    p_div.add_argument("--target", type=int, required=True,
                       help="Register holding the target at the checkpoint")
    p_div.add_argument("--r0", type=int, default=0,
                       help="Initial value of register 0")
    p_div.add_argument("--max-steps", type=int, default=DEFAULT_MAX_STEPS,
                       help="Step budget for the setup code")
    p_div.set_defaults(func=cmd_divisors)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
