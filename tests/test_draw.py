"""Sprite drawing: wrapping start position, edge clipping, XOR collisions."""

import numpy as np
import pytest

from chip8 import AddressOutOfRangeError

DRAW_GLYPH_0 = (0x6000, 0x6100, 0xF029, 0xD015)


def lit(cpu):
    return int(cpu.framebuffer.sum())


def test_draws_glyph_at_origin(cpu, run):
    run(cpu, *DRAW_GLYPH_0)
    fb = cpu.framebuffer
    assert fb[0, :4].tolist() == [1, 1, 1, 1]
    assert fb[1, :4].tolist() == [1, 0, 0, 1]
    assert fb[0, 4:8].sum() == 0
    assert lit(cpu) == 14
    assert cpu.state.V[0xF] == 0


def test_redraw_restores_framebuffer_and_flags_collision(cpu, run):
    cpu.framebuffer[10, 10] = 1
    before = cpu.framebuffer.copy()
    run(cpu, *DRAW_GLYPH_0, 0xD015)
    assert np.array_equal(cpu.framebuffer, before)
    assert cpu.state.V[0xF] == 1


def test_start_position_wraps(cpu, run):
    run(cpu, 0x6042, 0x6121, 0xF029, 0xD015)
    fb = cpu.framebuffer
    assert fb[1, 2:6].tolist() == [1, 1, 1, 1]
    assert fb[0].sum() == 0


def test_bottom_rows_are_clipped_not_wrapped(cpu, run):
    run(cpu, 0x6000, 0x611E, 0xF029, 0xD015)
    fb = cpu.framebuffer
    assert fb[30, :4].tolist() == [1, 1, 1, 1]
    assert fb[31, :4].tolist() == [1, 0, 0, 1]
    assert fb[:30].sum() == 0
    assert lit(cpu) == 6


def test_right_columns_are_clipped_not_wrapped(cpu, run):
    cpu.state.memory[0x300] = 0xFF
    run(cpu, 0x603E, 0x6100, 0xA300, 0xD011)
    fb = cpu.framebuffer
    assert fb[0, 62:].tolist() == [1, 1]
    assert lit(cpu) == 2


def test_clipped_rows_are_not_read(cpu, run):
    # Only memory[0xFFF] is in range, and only one row is visible
    cpu.state.memory[0xFFF] = 0x80
    run(cpu, 0x6000, 0x611F, 0xAFFF, 0xD015)
    assert cpu.framebuffer[31, 0] == 1
    assert lit(cpu) == 1


def test_sprite_read_past_memory_is_fatal(cpu, run):
    with pytest.raises(AddressOutOfRangeError):
        run(cpu, 0x6000, 0x6100, 0xAFFE, 0xD013)
    assert lit(cpu) == 0


def test_faulting_draw_leaves_flag_untouched(cpu, run):
    with pytest.raises(AddressOutOfRangeError):
        run(cpu, 0x6F07, 0x6000, 0x6100, 0xAFFE, 0xD013)
    assert cpu.state.V[0xF] == 7


def test_collision_flag_is_sticky_within_a_draw(cpu, run):
    cpu.state.memory[0x300:0x302] = bytes([0x80, 0x40])
    cpu.framebuffer[0, 0] = 1
    run(cpu, 0x6000, 0x6100, 0xA300, 0xD012)
    assert cpu.state.V[0xF] == 1
    assert cpu.framebuffer[0, 0] == 0
    assert cpu.framebuffer[1, 1] == 1


def test_zero_height_draw_only_clears_flag(cpu, run):
    run(cpu, 0x6F01, 0xD010)
    assert cpu.state.V[0xF] == 0
    assert lit(cpu) == 0


def test_clear_screen(cpu, run):
    cpu.framebuffer[:, ::3] = 1
    run(cpu, 0x00E0)
    assert cpu.framebuffer.shape == (32, 64)
    assert lit(cpu) == 0
