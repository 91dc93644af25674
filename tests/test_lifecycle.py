"""Run-state transitions, frame stepping, key latch and reset."""

import numpy as np
import pytest

from chip8 import (
    Chip8Config, Chip8CPU, FONTSET, MAX_PROGRAM_SIZE, ProgramTooLargeError,
    RunState, StackUnderflowError,
)


def snapshot(cpu):
    s = cpu.state
    return (
        bytes(s.memory), list(s.V), s.I, s.PC, s.SP, list(s.stack),
        s.delay_timer, s.sound_timer, s.key, s.display.tobytes(),
        cpu.run_state, cpu.frame_count, cpu.last_error,
    )


def test_initial_state():
    cpu = Chip8CPU()
    assert cpu.run_state is RunState.NO_ROM
    assert cpu.state.PC == 0x200
    assert cpu.state.key is None
    assert cpu.cycles_per_frame == 10


def test_load_font_places_glyphs():
    cpu = Chip8CPU()
    cpu.load_font()
    assert bytes(cpu.state.memory[0x050:0x0A0]) == FONTSET


def test_load_copies_program_and_runs(cpu):
    cpu.state.V[3] = 9
    cpu.load(b"\x12\x34\x56")
    assert cpu.run_state is RunState.RUNNING
    assert bytes(cpu.state.memory[0x200:0x203]) == b"\x12\x34\x56"
    assert cpu.state.V[3] == 9


def test_load_accepts_full_program_region(cpu):
    cpu.load(bytes([0xAA]) * MAX_PROGRAM_SIZE)
    assert cpu.state.memory[0xFFF] == 0xAA


def test_load_rejects_oversized_program(cpu):
    with pytest.raises(ProgramTooLargeError) as excinfo:
        cpu.load(bytes(MAX_PROGRAM_SIZE + 1))
    assert excinfo.value.capacity == 3584
    assert cpu.run_state is RunState.NO_ROM


def test_pause_and_resume():
    cpu = Chip8CPU()
    cpu.resume()
    assert cpu.run_state is RunState.NO_ROM

    cpu.pause()
    assert cpu.run_state is RunState.PAUSED
    cpu.resume()
    assert cpu.run_state is RunState.RUNNING
    cpu.resume()
    assert cpu.run_state is RunState.RUNNING


def test_reset_restores_power_on_state(cpu, run):
    run(cpu, 0x6105, 0xA123, 0x2300, cycles=3)
    cpu.press_key(4)
    cpu.state.delay_timer = 9
    cpu.framebuffer[3, 3] = 1

    cpu.reset()
    assert snapshot(cpu) == snapshot(Chip8CPU())
    assert bytes(cpu.state.memory[0x050:0x0A0]) == bytes(80)


def test_reset_is_idempotent(cpu, run):
    run(cpu, 0x6105, 0x6F01)
    cpu.reset()
    once = snapshot(cpu)
    cpu.reset()
    assert snapshot(cpu) == once


def test_reset_keeps_framebuffer_reference(cpu):
    fb = cpu.framebuffer
    fb[0, 0] = 1
    cpu.reset()
    assert cpu.framebuffer is fb
    assert fb[0, 0] == 0


def test_step_ticks_timers_once_per_frame(cpu):
    cpu.load(bytes([0x12, 0x00]))
    cpu.state.delay_timer = 2
    cpu.state.sound_timer = 1

    cpu.step()
    assert (cpu.state.delay_timer, cpu.state.sound_timer) == (1, 0)
    cpu.step()
    cpu.step()
    assert (cpu.state.delay_timer, cpu.state.sound_timer) == (0, 0)
    assert cpu.frame_count == 3


def test_step_runs_cycles_per_frame_instructions(make_cpu):
    cpu = make_cpu(cycles_per_frame=10)
    cpu.load(bytes([0x70, 0x01, 0x12, 0x00]))
    cpu.step()
    assert cpu.state.V[0] == 5

    cpu.cycles_per_frame = 4
    cpu.step()
    assert cpu.state.V[0] == 7


def test_cycles_per_frame_must_be_positive(cpu):
    with pytest.raises(ValueError):
        cpu.cycles_per_frame = 0
    with pytest.raises(ValueError):
        Chip8Config(cycles_per_frame=0)
    assert cpu.cycles_per_frame == 10


def test_key_wait_during_frame(cpu):
    cpu.load(bytes([0xF1, 0x0A]))
    cpu.state.delay_timer = 5
    cpu.step()
    assert cpu.state.PC == 0x200
    assert cpu.state.delay_timer == 4


def test_fault_stops_the_frame(cpu):
    cpu.load(bytes([0x61, 0x01, 0x00, 0xEE, 0x61, 0x02]))
    with pytest.raises(StackUnderflowError):
        cpu.step()
    assert cpu.state.V[1] == 1
    assert cpu.state.PC == 0x202
    assert cpu.frame_count == 0
    assert cpu.run_state is RunState.PAUSED


def test_stepping_without_rom_is_not_refused():
    cpu = Chip8CPU(Chip8Config(cycles_per_frame=3))
    cpu.step()
    assert cpu.state.PC == 0x206
    assert cpu.unimplemented_count == 3
    assert cpu.run_state is RunState.NO_ROM


def test_key_latch_holds_one_key(cpu):
    cpu.press_key(0x3)
    cpu.press_key(0xA)
    assert cpu.state.key == 0xA
    cpu.release_key()
    assert cpu.state.key is None


@pytest.mark.parametrize("key", [-1, 16, True, "1"])
def test_press_key_rejects_bad_values(cpu, key):
    with pytest.raises(ValueError):
        cpu.press_key(key)


def test_peek_instruction(cpu):
    cpu.load(bytes([0xA2, 0xF0]))
    assert cpu.peek_instruction() == 0xA2F0
    cpu.state.PC = 4095
    assert cpu.peek_instruction() is None


def test_framebuffer_is_numpy_grid(cpu):
    assert isinstance(cpu.framebuffer, np.ndarray)
    assert cpu.framebuffer.shape == (32, 64)
    assert cpu.framebuffer.dtype == np.uint8
