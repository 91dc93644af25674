#!/usr/bin/env python3
"""
pygame front end for the CHIP-8 core.

Window, keyboard mapping, ROM file loading and the debug overlay live here;
all interpreter logic stays in chip8.cpu.

Controls:
  CHIP-8 Keypad: 1234 / QWER / ASDF / ZXCV
  P  = Pause/Resume        N  = Step one frame (while paused)
  F5 = Reset and reload    F1 = Toggle debug overlay
  F2 = Toggle memory view  +/- = Cycles per frame
  ESC = Exit
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import pygame

from .config import Chip8Config
from .constants import (
    DEFAULT_CYCLES_PER_FRAME, DEFAULT_MAX_FPS, DISPLAY_H, DISPLAY_W, MEMORY_SIZE,
)
from .cpu import Chip8CPU
from .disasm import disassemble, disassemble_program
from .errors import Chip8Error
from .state import RunState

logger = logging.getLogger(__name__)

SCALE = 12                              # Display scale factor
STATUS_H = 25
WINDOW_W = DISPLAY_W * SCALE            # 768
WINDOW_H = DISPLAY_H * SCALE + STATUS_H

# Colors (RGB)
COLORS = {
    'bg_dark': (15, 15, 25),
    'fg_green': (0, 255, 128),
    'status_bg': (20, 20, 35),
    'text': (200, 200, 200),
    'text_dim': (120, 120, 140),
    'error': (255, 100, 150),
}

# Keyboard mapping (QWERTY -> CHIP-8 hex keypad)
# CHIP-8 Keypad:    Keyboard:
# 1 2 3 C          1 2 3 4
# 4 5 6 D          Q W E R
# 7 8 9 E          A S D F
# A 0 B F          Z X C V
KEY_MAP = {
    pygame.K_1: 0x1, pygame.K_2: 0x2, pygame.K_3: 0x3, pygame.K_4: 0xC,
    pygame.K_q: 0x4, pygame.K_w: 0x5, pygame.K_e: 0x6, pygame.K_r: 0xD,
    pygame.K_a: 0x7, pygame.K_s: 0x8, pygame.K_d: 0x9, pygame.K_f: 0xE,
    pygame.K_z: 0xA, pygame.K_x: 0x0, pygame.K_c: 0xB, pygame.K_v: 0xF,
}


def read_rom(path) -> bytes:
    """Raw ROM bytes; there is no header to parse"""
    return Path(path).read_bytes()


class KeypadInput:
    """Feeds pygame key events into the CPU's single-slot key latch.

    Only one key is tracked: a new press replaces the held one and any
    release clears it, even if another keypad key is still down.
    """

    def __init__(self, cpu: Chip8CPU):
        self.cpu = cpu

    def key_down(self, pg_key: int) -> bool:
        mapped = KEY_MAP.get(pg_key)
        if mapped is None:
            return False
        self.cpu.press_key(mapped)
        return True

    def key_up(self, pg_key: int):
        self.cpu.release_key()


def memory_rows(memory, pc: int, radius: int = 8) -> List[Tuple[int, str, bool]]:
    """2-byte words around PC for the memory view.

    Returns (address, text, is_pc) rows; the window is clamped to memory and
    starts on an even address.
    """
    count = 2 * radius + 1
    start = (pc & ~1) - 2 * radius
    start = max(0, min(start, MEMORY_SIZE - 2 * count))

    rows = []
    for addr in range(start, start + 2 * count, 2):
        text = f"{addr:04X}  0x{memory[addr]:02X}{memory[addr + 1]:02X}"
        rows.append((addr, text, addr == pc))
    return rows


class FramebufferRenderer:
    """Upscales the 1-bit framebuffer into a pygame surface"""

    def __init__(self, scale: int = SCALE,
                 fg_color: Tuple[int, int, int] = COLORS['fg_green'],
                 bg_color: Tuple[int, int, int] = COLORS['bg_dark']):
        self.scale = scale
        self.fg_color = np.array(fg_color, dtype=np.uint8)
        self.bg_color = np.array(bg_color, dtype=np.uint8)
        self.final_size = (DISPLAY_W * scale, DISPLAY_H * scale)

    def to_rgb(self, framebuffer: np.ndarray) -> np.ndarray:
        """(height, width) 0/1 array -> (width, height, 3) array for surfarray"""
        rgb = np.where(framebuffer[..., None].astype(bool), self.fg_color, self.bg_color)
        return np.ascontiguousarray(rgb.transpose(1, 0, 2).astype(np.uint8))

    def render(self, framebuffer: np.ndarray) -> pygame.Surface:
        small = pygame.surfarray.make_surface(self.to_rgb(framebuffer))
        return pygame.transform.scale(small, self.final_size)


# ═══════════════════════════════════════════════════════════════════════════════
# MAIN EMULATOR APPLICATION
# ═══════════════════════════════════════════════════════════════════════════════

class Chip8App:
    """Window and event loop driving one Chip8CPU"""

    def __init__(self, cpu: Chip8CPU):
        pygame.init()
        pygame.display.set_caption("CHIP-8")

        self.screen = pygame.display.set_mode((WINDOW_W, WINDOW_H))
        self.clock = pygame.time.Clock()
        self.font = pygame.font.Font(None, 20)

        self.cpu = cpu
        self.keypad = KeypadInput(cpu)
        self.renderer = FramebufferRenderer()

        self.running = True
        self.show_debug = False
        self.show_memory = False
        self.frame_ms = 0
        self.status = "Ready - pass a .ch8 file to begin"
        self.rom_path: Optional[Path] = None

    def load_rom(self, path):
        """Reset, reload the glyph table and load a ROM from disk"""
        try:
            data = read_rom(path)
        except OSError as e:
            logger.error("Failed to read ROM %s: %s", path, e)
            self.status = f"Failed to read ROM: {e}"
            return

        self.cpu.reset()
        self.cpu.load_font()
        try:
            self.cpu.load(data)
        except Chip8Error as e:
            logger.error("Failed to load ROM %s: %s", path, e)
            self.status = str(e)
            return

        self.rom_path = Path(path)
        self.status = f"Loaded: {self.rom_path.stem}"

    def _toggle_pause(self):
        # Nothing to pause or resume until a ROM is loaded
        if self.cpu.run_state is RunState.NO_ROM:
            return
        if self.cpu.run_state is RunState.PAUSED:
            self.cpu.resume()
        else:
            self.cpu.pause()
        self.status = self.cpu.run_state.value.replace("_", " ").capitalize()

    def _step_frame(self):
        if self.cpu.run_state is RunState.PAUSED:
            self._run_frame()
            self.status = f"Step - PC: ${self.cpu.state.PC:03X}"

    def _reset(self):
        if self.rom_path:
            self.load_rom(self.rom_path)
        else:
            self.cpu.reset()
            self.cpu.load_font()
            self.status = "Reset"

    def _adjust_speed(self, delta: int):
        self.cpu.cycles_per_frame = max(1, self.cpu.cycles_per_frame + delta)
        self.status = f"Cycles/frame: {self.cpu.cycles_per_frame}"

    def handle_events(self):
        """Process input events"""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False

            elif event.type == pygame.KEYDOWN:
                if self.keypad.key_down(event.key):
                    continue
                if event.key == pygame.K_ESCAPE:
                    self.running = False
                elif event.key == pygame.K_p:
                    self._toggle_pause()
                elif event.key == pygame.K_n:
                    self._step_frame()
                elif event.key == pygame.K_F1:
                    self.show_debug = not self.show_debug
                elif event.key == pygame.K_F2:
                    self.show_memory = not self.show_memory
                elif event.key == pygame.K_F5:
                    self._reset()
                elif event.key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
                    self._adjust_speed(1)
                elif event.key in (pygame.K_MINUS, pygame.K_KP_MINUS):
                    self._adjust_speed(-1)

            elif event.type == pygame.KEYUP:
                self.keypad.key_up(event.key)

    def _run_frame(self):
        try:
            self.cpu.step()
        except Chip8Error as e:
            # The core has already paused itself
            self.status = f"Halted: {e}"

    def update(self):
        if self.cpu.run_state is RunState.RUNNING:
            self._run_frame()

    def render(self):
        self.screen.fill(COLORS['bg_dark'])
        self.screen.blit(self.renderer.render(self.cpu.framebuffer), (0, 0))

        if self.show_debug:
            self._render_debug()
        if self.show_memory:
            self._render_memory()

        status_rect = pygame.Rect(0, WINDOW_H - STATUS_H, WINDOW_W, STATUS_H)
        pygame.draw.rect(self.screen, COLORS['status_bg'], status_rect)
        color = COLORS['error'] if self.cpu.last_error else COLORS['text_dim']
        status = f"{self.status}  |  {self.frame_ms} ms"
        text_surf = self.font.render(status, True, color)
        self.screen.blit(text_surf, (10, status_rect.y + 5))

        pygame.display.flip()

    def _render_debug(self):
        """Render register/timer overlay"""
        s = self.cpu.state

        overlay = pygame.Surface((230, 130), pygame.SRCALPHA)
        overlay.fill((0, 0, 0, 180))
        self.screen.blit(overlay, (WINDOW_W - 240, 5))

        lines = [
            f"PC: ${s.PC:03X}  I: ${s.I:03X}  SP: {s.SP}",
            f"DT: {s.delay_timer:02X}  ST: {s.sound_timer:02X}  F: {self.cpu.frame_count}",
            "V0-V7: " + " ".join(f"{v:02X}" for v in s.V[:8]),
            "V8-VF: " + " ".join(f"{v:02X}" for v in s.V[8:]),
            f"Key: {'-' if s.key is None else f'{s.key:X}'}  CPF: {self.cpu.cycles_per_frame}",
        ]

        opcode = self.cpu.peek_instruction()
        if opcode is not None:
            mnemonic = disassemble(opcode, self.cpu.config.complex_jump)
            lines.append(f"OP: ${opcode:04X} {mnemonic}")

        for i, line in enumerate(lines):
            text = self.font.render(line, True, COLORS['fg_green'])
            self.screen.blit(text, (WINDOW_W - 235, 10 + i * 18))

    def _render_memory(self):
        """Render memory words around PC, PC row highlighted"""
        rows = memory_rows(self.cpu.state.memory, self.cpu.state.PC)

        overlay = pygame.Surface((130, 10 + len(rows) * 18), pygame.SRCALPHA)
        overlay.fill((0, 0, 0, 180))
        self.screen.blit(overlay, (5, 5))

        for i, (_, line, is_pc) in enumerate(rows):
            y = 10 + i * 18
            if is_pc:
                pygame.draw.rect(self.screen, (0, 90, 45), pygame.Rect(5, y - 2, 130, 18))
            text = self.font.render(line, True, COLORS['fg_green'] if is_pc else COLORS['text'])
            self.screen.blit(text, (10, y))

    def run(self):
        """Main loop; frame cadence is set here, not in the core"""
        while self.running:
            self.handle_events()
            self.update()
            self.render()
            self.frame_ms = self.clock.tick(self.cpu.config.max_fps)

        pygame.quit()


# ═══════════════════════════════════════════════════════════════════════════════
# ENTRY POINT
# ═══════════════════════════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="CHIP-8 interpreter")
    parser.add_argument("rom", nargs="?", help="Path to a .ch8 ROM")
    parser.add_argument("--cpf", type=int, default=DEFAULT_CYCLES_PER_FRAME,
                        help="Instructions executed per frame")
    parser.add_argument("--fps", type=int, default=DEFAULT_MAX_FPS,
                        help="Target frames per second")
    parser.add_argument("--shift-swap", action="store_true",
                        help="8XY6/8XYE copy VY into VX before shifting")
    parser.add_argument("--complex-jump", action="store_true",
                        help="BNNN jumps to NNN + VX instead of NNN + V0")
    parser.add_argument("--disasm", action="store_true",
                        help="Print a listing of the ROM and exit")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level,
                        format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    try:
        config = Chip8Config.from_args(args)
    except ValueError as e:
        parser.error(str(e))

    if args.disasm:
        if not args.rom:
            parser.error("--disasm needs a ROM path")
        try:
            data = read_rom(args.rom)
        except OSError as e:
            logger.error("Failed to read ROM %s: %s", args.rom, e)
            return 1
        print("\n".join(disassemble_program(data)))
        return 0

    app = Chip8App(Chip8CPU(config))
    if args.rom:
        app.load_rom(args.rom)
    app.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
