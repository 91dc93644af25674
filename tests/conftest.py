"""Shared pytest fixtures for the CHIP-8 core tests."""

import pytest

from chip8 import Chip8Config, Chip8CPU


def assemble(*words: int) -> bytes:
    return b"".join(w.to_bytes(2, "big") for w in words)


@pytest.fixture
def cpu():
    c = Chip8CPU()
    c.load_font()
    return c


@pytest.fixture
def make_cpu():
    def _make(**options):
        c = Chip8CPU(Chip8Config(**options))
        c.load_font()
        return c
    return _make


@pytest.fixture
def run():
    """Load the given opcodes at 0x200 and execute exactly that many cycles."""

    def _run(cpu, *words, cycles=None):
        cpu.load(assemble(*words))
        for _ in range(len(words) if cycles is None else cycles):
            cpu.cycle()
        return cpu

    return _run
