"""
CHIP-8 interpreter core.

Owns the machine state and exposes a synchronous API: ``cycle()`` runs a
single instruction, ``step()`` runs one rendered frame (timer tick followed by
``cycles_per_frame`` instructions). Pacing, input polling and presentation are
left to the caller.
"""

import logging
import random
from typing import Optional

import numpy as np

from .config import Chip8Config, check_positive
from .constants import (
    DISPLAY_H, DISPLAY_W, FLAG_REGISTER, FONT_GLYPH_SIZE, FONT_START, FONTSET,
    MAX_PROGRAM_SIZE, MEMORY_SIZE, NUM_KEYS, PROGRAM_START, STACK_SIZE,
)
from .decoder import Instruction, decode, fetch_word
from .errors import (
    AddressOutOfRangeError, Chip8Fault, ProgramTooLargeError,
    StackOverflowError, StackUnderflowError, UnimplementedInstructionError,
)
from .state import CPUState, RunState

logger = logging.getLogger(__name__)


class Chip8CPU:
    """Base CHIP-8 CPU: 35 opcodes, 64x32 display, two 60Hz-style timers"""

    def __init__(self, config: Optional[Chip8Config] = None):
        self.config = config or Chip8Config()
        self.state = CPUState()
        self.run_state = RunState.NO_ROM
        self.frame_count = 0
        self.unimplemented_count = 0
        self.last_error: Optional[Chip8Fault] = None
        self.rng = random.Random()

        # Primary opcode nibble -> handler
        self._ops = {
            0x0: self._op_system,
            0x1: self._op_jp,
            0x2: self._op_call,
            0x3: self._op_se_byte,
            0x4: self._op_sne_byte,
            0x5: self._op_se_reg,
            0x6: self._op_ld_byte,
            0x7: self._op_add_byte,
            0x8: self._op_alu,
            0x9: self._op_sne_reg,
            0xA: self._op_ld_i,
            0xB: self._op_jp_offset,
            0xC: self._op_rnd,
            0xD: self._op_drw,
            0xE: self._op_key,
            0xF: self._op_misc,
        }
        # Second level, keyed on the low nibble (8XYN) or low byte (0NNN, EXNN, FXNN)
        self._system_ops = {
            0xE0: self._op_cls,
            0xEE: self._op_ret,
        }
        self._alu_ops = {
            0x0: self._op_ld_reg,
            0x1: self._op_or,
            0x2: self._op_and,
            0x3: self._op_xor,
            0x4: self._op_add_reg,
            0x5: self._op_sub,
            0x6: self._op_shr,
            0x7: self._op_subn,
            0xE: self._op_shl,
        }
        self._key_ops = {
            0x9E: self._op_skp,
            0xA1: self._op_sknp,
        }
        self._misc_ops = {
            0x07: self._op_ld_vx_dt,
            0x0A: self._op_ld_vx_key,
            0x15: self._op_ld_dt_vx,
            0x18: self._op_ld_st_vx,
            0x1E: self._op_add_i,
            0x29: self._op_ld_font,
            0x33: self._op_bcd,
            0x55: self._op_store,
            0x65: self._op_load,
        }

    # ═══════════════════════════════════════════════════════════════════════════
    # LIFECYCLE
    # ═══════════════════════════════════════════════════════════════════════════

    def load_font(self):
        """Copy the built-in glyph table to 0x050"""
        self.state.memory[FONT_START:FONT_START + len(FONTSET)] = FONTSET

    def load(self, program: bytes):
        """Copy a program to 0x200 and start running. Nothing else is reset."""
        data = bytes(program)
        if len(data) > MAX_PROGRAM_SIZE:
            raise ProgramTooLargeError(len(data), MAX_PROGRAM_SIZE)

        self.state.memory[PROGRAM_START:PROGRAM_START + len(data)] = data
        self.run_state = RunState.RUNNING
        logger.info("Loaded %d byte program at $%03X", len(data), PROGRAM_START)

    def reset(self):
        """Return every piece of machine state to power-on values, glyphs included"""
        display = self.state.display
        display.fill(0)
        # The renderer keeps a reference to the framebuffer, so it survives reset
        self.state = CPUState(display=display)
        self.run_state = RunState.NO_ROM
        self.frame_count = 0
        self.unimplemented_count = 0
        self.last_error = None
        logger.debug("CPU reset")

    def pause(self):
        if self.run_state is not RunState.PAUSED:
            logger.debug("Paused from %s", self.run_state.value)
        self.run_state = RunState.PAUSED

    def resume(self):
        if self.run_state is RunState.PAUSED:
            self.run_state = RunState.RUNNING
            logger.debug("Resumed")

    # ═══════════════════════════════════════════════════════════════════════════
    # INPUT / INSPECTION
    # ═══════════════════════════════════════════════════════════════════════════

    def press_key(self, key: int):
        """Latch a key. A second press overwrites the first."""
        if isinstance(key, bool) or not isinstance(key, int) or not 0 <= key < NUM_KEYS:
            raise ValueError(f"Key must be 0x0-0xF, got {key!r}")
        self.state.key = key

    def release_key(self):
        """Clear the latch, whichever key was let go"""
        self.state.key = None

    @property
    def framebuffer(self) -> np.ndarray:
        """The 64x32 pixel grid, [row, col]. Treat as read-only."""
        return self.state.display

    @property
    def cycles_per_frame(self) -> int:
        return self.config.cycles_per_frame

    @cycles_per_frame.setter
    def cycles_per_frame(self, value: int):
        self.config.cycles_per_frame = check_positive("cycles_per_frame", value)

    @property
    def sound_active(self) -> bool:
        return self.state.sound_timer > 0

    def peek_instruction(self) -> Optional[int]:
        """Opcode at PC without executing it, or None if PC is outside memory"""
        pc = self.state.PC
        if 0 <= pc < MEMORY_SIZE - 1:
            return fetch_word(self.state.memory, pc)
        return None

    # ═══════════════════════════════════════════════════════════════════════════
    # EXECUTION
    # ═══════════════════════════════════════════════════════════════════════════

    def step(self):
        """Run one frame: tick both timers, then cycles_per_frame instructions"""
        s = self.state
        if s.delay_timer > 0:
            s.delay_timer -= 1

        if s.sound_timer > 0:
            s.sound_timer -= 1

        for _ in range(self.config.cycles_per_frame):
            self.cycle()

        self.frame_count += 1

    def cycle(self):
        """Fetch, decode and execute a single instruction"""
        s = self.state
        pc = s.PC
        try:
            ins = decode(fetch_word(s.memory, pc))
            s.PC += 2
            self._ops[ins.op](ins)
        except UnimplementedInstructionError as exc:
            self.unimplemented_count += 1
            logger.warning("%s", exc)
        except Chip8Fault as exc:
            if exc.pc is None:
                exc.pc = pc
            s.PC = pc
            self._fault(exc)
            raise

    def _fault(self, exc: Chip8Fault):
        self.last_error = exc
        self.run_state = RunState.PAUSED
        logger.error("Halted at $%03X: %s", exc.pc, exc)

    def _unimplemented(self, ins: Instruction) -> UnimplementedInstructionError:
        return UnimplementedInstructionError(ins.word, self.state.PC - 2)

    # ─── Bounds-checked memory access ───

    @staticmethod
    def _check_range(address: int, count: int = 1):
        if address < 0 or address + count > MEMORY_SIZE:
            bad = address if address < 0 or address >= MEMORY_SIZE else MEMORY_SIZE
            raise AddressOutOfRangeError(bad)

    def _jump(self, address: int):
        if not 0 <= address < MEMORY_SIZE:
            raise AddressOutOfRangeError(address)
        self.state.PC = address

    def _skip_if(self, condition: bool):
        if condition:
            self.state.PC += 2

    # ═══════════════════════════════════════════════════════════════════════════
    # OPCODE HANDLERS
    # ═══════════════════════════════════════════════════════════════════════════

    # ─── 0x0XXX ───
    def _op_system(self, ins: Instruction):
        # 0NNN machine-code calls are not supported
        handler = self._system_ops.get(ins.nnn)
        if handler is None:
            raise self._unimplemented(ins)
        handler(ins)

    def _op_cls(self, ins: Instruction):
        # 00E0: CLS
        self.state.display.fill(0)

    def _op_ret(self, ins: Instruction):
        # 00EE: RET
        s = self.state
        if s.SP == 0:
            raise StackUnderflowError()
        self._jump(s.stack[s.SP - 1])
        s.SP -= 1

    # ─── 1NNN / 2NNN ───
    def _op_jp(self, ins: Instruction):
        self._jump(ins.nnn)

    def _op_call(self, ins: Instruction):
        s = self.state
        if s.SP >= STACK_SIZE:
            raise StackOverflowError(s.SP)
        s.stack[s.SP] = s.PC
        s.SP += 1
        s.PC = ins.nnn

    # ─── 3XNN / 4XNN / 5XY0 / 9XY0: conditional skips ───
    def _op_se_byte(self, ins: Instruction):
        self._skip_if(self.state.V[ins.x] == ins.nn)

    def _op_sne_byte(self, ins: Instruction):
        self._skip_if(self.state.V[ins.x] != ins.nn)

    def _op_se_reg(self, ins: Instruction):
        V = self.state.V
        self._skip_if(V[ins.x] == V[ins.y])

    def _op_sne_reg(self, ins: Instruction):
        V = self.state.V
        self._skip_if(V[ins.x] != V[ins.y])

    # ─── 6XNN / 7XNN ───
    def _op_ld_byte(self, ins: Instruction):
        self.state.V[ins.x] = ins.nn

    def _op_add_byte(self, ins: Instruction):
        # No carry flag for the immediate add
        V = self.state.V
        V[ins.x] = (V[ins.x] + ins.nn) & 0xFF

    # ─── 8XYN: ALU operations ───
    def _op_alu(self, ins: Instruction):
        handler = self._alu_ops.get(ins.n)
        if handler is None:
            raise self._unimplemented(ins)
        handler(ins.x, ins.y)

    def _op_ld_reg(self, x: int, y: int):
        V = self.state.V
        V[x] = V[y]

    def _op_or(self, x: int, y: int):
        V = self.state.V
        V[x] |= V[y]

    def _op_and(self, x: int, y: int):
        V = self.state.V
        V[x] &= V[y]

    def _op_xor(self, x: int, y: int):
        V = self.state.V
        V[x] ^= V[y]

    def _op_add_reg(self, x: int, y: int):
        V = self.state.V
        result = V[x] + V[y]
        V[x] = result & 0xFF
        V[FLAG_REGISTER] = 1 if result > 0xFF else 0

    def _op_sub(self, x: int, y: int):
        # VF = NOT borrow
        V = self.state.V
        borrow = V[x] < V[y]
        V[x] = (V[x] - V[y]) & 0xFF
        V[FLAG_REGISTER] = 0 if borrow else 1

    def _op_subn(self, x: int, y: int):
        # VX = VY - VX, but VX is left alone when that would underflow
        V = self.state.V
        if V[x] > V[y]:
            V[FLAG_REGISTER] = 1
        else:
            V[x] = V[y] - V[x]
            V[FLAG_REGISTER] = 0

    def _op_shr(self, x: int, y: int):
        V = self.state.V
        if self.config.shift_swap:
            V[x] = V[y]
        V[FLAG_REGISTER] = V[x] & 0x1
        V[x] >>= 1

    def _op_shl(self, x: int, y: int):
        V = self.state.V
        if self.config.shift_swap:
            V[x] = V[y]
        V[FLAG_REGISTER] = (V[x] >> 7) & 0x1
        V[x] = (V[x] << 1) & 0xFF

    # ─── ANNN / BNNN / CXNN ───
    def _op_ld_i(self, ins: Instruction):
        self.state.I = ins.nnn

    def _op_jp_offset(self, ins: Instruction):
        reg = ins.x if self.config.complex_jump else 0
        self._jump(ins.nnn + self.state.V[reg])

    def _op_rnd(self, ins: Instruction):
        self.state.V[ins.x] = self.rng.randrange(256) & ins.nn

    # ─── DXYN: DRW Vx, Vy, nibble ───
    def _op_drw(self, ins: Instruction):
        V = self.state.V
        self._draw_sprite(V[ins.x], V[ins.y], ins.n)

    def _draw_sprite(self, x: int, y: int, height: int):
        """XOR an 8-pixel-wide sprite from memory[I] onto the display.

        Only the start position wraps. Rows past the bottom edge and columns
        past the right edge are clipped. VF is 1 if any lit pixel was turned
        off.
        """
        s = self.state
        x %= DISPLAY_W
        y %= DISPLAY_H
        rows = min(height, DISPLAY_H - y)
        cols = min(8, DISPLAY_W - x)

        # Clipped rows are never read from memory; a fault leaves VF as it was
        if rows:
            self._check_range(s.I, rows)
        s.V[FLAG_REGISTER] = 0
        if rows == 0:
            return

        sprite_bytes = np.frombuffer(s.memory, dtype=np.uint8, count=rows, offset=s.I)
        sprite = np.unpackbits(sprite_bytes.reshape(rows, 1), axis=1)[:, :cols]

        region = s.display[y:y + rows, x:x + cols]
        if np.any(region & sprite):
            s.V[FLAG_REGISTER] = 1
        region ^= sprite

    # ─── EX9E / EXA1: Key operations ───
    def _op_key(self, ins: Instruction):
        handler = self._key_ops.get(ins.nn)
        if handler is None:
            raise self._unimplemented(ins)
        handler(ins.x)

    def _op_skp(self, x: int):
        key = self.state.key
        self._skip_if(key is not None and key == self.state.V[x])

    def _op_sknp(self, x: int):
        key = self.state.key
        self._skip_if(key is None or key != self.state.V[x])

    # ─── FX07-FX65: Misc operations ───
    def _op_misc(self, ins: Instruction):
        handler = self._misc_ops.get(ins.nn)
        if handler is None:
            raise self._unimplemented(ins)
        handler(ins.x)

    def _op_ld_vx_dt(self, x: int):
        self.state.V[x] = self.state.delay_timer

    def _op_ld_vx_key(self, x: int):
        # Poll: without a key, rewind so this instruction runs again next cycle
        s = self.state
        if s.key is None:
            s.PC -= 2
        else:
            s.V[x] = s.key

    def _op_ld_dt_vx(self, x: int):
        self.state.delay_timer = self.state.V[x]

    def _op_ld_st_vx(self, x: int):
        self.state.sound_timer = self.state.V[x]

    def _op_add_i(self, x: int):
        # I keeps 16 bits, not 12; VF is set on overflow but never cleared here
        s = self.state
        s.I = (s.I + s.V[x]) & 0xFFFF
        if s.I > 0x1000:
            s.V[FLAG_REGISTER] = 1

    def _op_ld_font(self, x: int):
        self.state.I = FONT_START + (self.state.V[x] & 0xF) * FONT_GLYPH_SIZE

    def _op_bcd(self, x: int):
        s = self.state
        self._check_range(s.I, 3)
        value = s.V[x]
        s.memory[s.I] = value // 100
        s.memory[s.I + 1] = (value // 10) % 10
        s.memory[s.I + 2] = value % 10

    def _op_store(self, x: int):
        s = self.state
        self._check_range(s.I, x + 1)
        s.memory[s.I:s.I + x + 1] = bytes(s.V[:x + 1])

    def _op_load(self, x: int):
        s = self.state
        self._check_range(s.I, x + 1)
        s.V[:x + 1] = s.memory[s.I:s.I + x + 1]
