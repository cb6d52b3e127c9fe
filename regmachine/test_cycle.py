"""
Tests for the cycle driver: signal sampling, repeat detection, and the
fewest/most-instruction answers.
"""

from __future__ import annotations

import sys
import os
from itertools import islice
from pathlib import Path

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from regmachine.cycle import (
    CheckpointError, CycleDriver, CycleNotFound, find_bounds, find_checkpoint,
    halting_steps,
)
from regmachine.program import load_program
from regmachine.reduced import ChronalHash

PROGRAMS = Path(__file__).resolve().parent.parent / "programs"

# Signals of programs/tripler.txt: s -> (3s + 1) & 15 starting from 0.
TRIPLER_SIGNALS = [1, 4, 13, 8, 9, 12, 5, 0]


def tripler_step(signal: int) -> int:
    return (signal * 3 + 1) & 15


@pytest.fixture(scope="module")
def tripler():
    return load_program(PROGRAMS / "tripler.txt")


@pytest.fixture(scope="module")
def chronal():
    return load_program(PROGRAMS / "chronal.txt")


def test_find_checkpoint(tripler, chronal):
    assert find_checkpoint(tripler) == (4, 3)
    assert find_checkpoint(chronal) == (28, 3)


def test_find_checkpoint_requires_one_comparison():
    with pytest.raises(CheckpointError):
        find_checkpoint(load_program(PROGRAMS / "trace.txt"))


def test_direct_bounds(tripler):
    driver = CycleDriver(tripler)
    assert driver.strategy == "direct"
    bounds = driver.find_bounds()
    assert bounds.first == 1
    assert bounds.last == 0
    assert bounds.repeat == 1
    assert bounds.sequence == TRIPLER_SIGNALS
    assert bounds.distinct == 8


def test_reduced_bounds(tripler):
    bounds = find_bounds(tripler, 4, 3, step_fn=tripler_step)
    assert bounds.sequence == TRIPLER_SIGNALS
    assert (bounds.first, bounds.last) == (1, 0)


def test_sequence_invariant(tripler):
    bounds = find_bounds(tripler)
    assert len(set(bounds.sequence)) == len(bounds.sequence)
    assert bounds.repeat in bounds.sequence
    assert bounds.first == bounds.sequence[0]
    assert bounds.last == bounds.sequence[-1]


def test_bounds_give_fewest_and_most_steps(tripler):
    """Seeding r0 with first/last halts in the fewest/most instructions."""
    bounds = find_bounds(tripler)
    steps = halting_steps(tripler, range(20), max_steps=500)

    halting = {seed: n for seed, n in steps.items() if n is not None}
    assert set(halting) == set(TRIPLER_SIGNALS)
    assert min(halting, key=halting.get) == bounds.first
    assert max(halting, key=halting.get) == bounds.last
    assert halting[bounds.first] == 6
    assert halting[bounds.last] == 48
    # Seeds that are never offered as a signal never halt.
    assert steps[2] is None
    assert steps[19] is None


def test_safety_cap(tripler):
    with pytest.raises(CycleNotFound):
        find_bounds(tripler, step_fn=tripler_step, max_signals=3)


def test_direct_machine_halts_before_repeat(tripler):
    with pytest.raises(CycleNotFound, match="halted"):
        find_bounds(tripler, sentinel=5)


def test_direct_step_budget(tripler):
    with pytest.raises(CycleNotFound, match="ran out of steps"):
        find_bounds(tripler, max_steps=20)


def test_chronal_reduced(chronal):
    step_fn = ChronalHash.from_program(chronal)
    bounds = find_bounds(chronal, step_fn=step_fn)
    assert bounds.first == 3173684
    assert bounds.last == 12464363
    assert bounds.distinct == 10371
    assert len(set(bounds.sequence)) == bounds.distinct
    assert bounds.repeat in bounds.sequence
    assert all(0 <= s < (1 << 24) for s in bounds.sequence)


def test_chronal_direct_matches_reduced(chronal):
    direct = CycleDriver(chronal)
    reduced = CycleDriver(chronal, step_fn=ChronalHash.from_program(chronal))
    prefix = list(islice(direct.iter_signals(), 3))
    assert prefix == list(islice(reduced.iter_signals(), 3))
    assert prefix[0] == 3173684
    # The sentinel never matches, so the direct machine is still running.
    assert not direct.machine.halted
