"""
Tests for the closed-form reductions.
"""

from __future__ import annotations

import sys
import os
from pathlib import Path

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from regmachine.machine import run_program
from regmachine.program import load_program, parse_program
from regmachine.reduced import (
    ChronalHash, ReductionError, divisor_sum, divisor_sum_shortcut,
)

PROGRAMS = Path(__file__).resolve().parent.parent / "programs"


def test_chronal_constants_from_program():
    h = ChronalHash.from_program(load_program(PROGRAMS / "chronal.txt"))
    assert h == ChronalHash(seed=14906355, multiplier=65899, mask=16777215,
                            spread=65536, byte_mask=255, signal_register=3)
    assert h.base == 256


def test_chronal_first_signal():
    h = ChronalHash(seed=14906355, multiplier=65899, mask=16777215,
                    spread=65536)
    assert h(0) == 3173684


def test_chronal_stays_in_mask():
    h = ChronalHash(seed=14906355, multiplier=65899, mask=16777215,
                    spread=65536)
    signal = 0
    for _ in range(200):
        signal = h(signal)
        assert 0 <= signal <= 16777215


@pytest.mark.parametrize("text, fragment", [
    ("#ip 0\nseti 5 0 1\n", "no bori"),
    ("#ip 5\nbori 3 65536 1\nmuli 3 7 3\n", "no seti"),
    ("#ip 5\nbori 3 65536 1\nseti 9 0 3\nbani 3 255 3\nbani 1 255 4\n", "no muli"),
    ("#ip 5\nbori 3 65536 1\nseti 9 0 3\nmuli 3 7 3\nbani 1 255 4\n", "no bani masking"),
    ("#ip 5\nbori 3 65536 1\nseti 9 0 3\nmuli 3 7 3\nbani 3 255 3\n", "low byte"),
])
def test_chronal_shape_errors(text, fragment):
    with pytest.raises(ReductionError, match=fragment):
        ChronalHash.from_program(parse_program(text))


@pytest.mark.parametrize("n, expected", [
    (0, 0), (1, 1), (12, 28), (16, 31), (28, 56), (30, 72), (97, 98),
    (10551311, 1 + 431 + 24481 + 10551311),
])
def test_divisor_sum(n, expected):
    assert divisor_sum(n) == expected


@pytest.mark.parametrize("n", [12, 30])
def test_divisor_shortcut_matches_full_run(n):
    text = (PROGRAMS / "divisors.txt").read_text()
    program = parse_program(text.replace("seti 12 0 1", f"seti {n} 0 1"))
    full = run_program(program)
    assert full.halted
    assert divisor_sum_shortcut(program, checkpoint=3, target_register=1) \
        == full.register0 == divisor_sum(n)


def test_divisor_shortcut_checkpoint_not_reached():
    program = load_program(PROGRAMS / "trace.txt")
    with pytest.raises(ReductionError, match="not reached"):
        divisor_sum_shortcut(program, checkpoint=3, target_register=1)
