"""Machine state owned by the interpreter"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import numpy as np

from .constants import (
    DISPLAY_H, DISPLAY_W, MEMORY_SIZE, NUM_REGISTERS, PROGRAM_START, STACK_SIZE,
)


class RunState(Enum):
    NO_ROM = "no_rom"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass
class CPUState:
    """CHIP-8 CPU state container"""
    # Memory
    memory: bytearray = field(default_factory=lambda: bytearray(MEMORY_SIZE))

    # Registers
    V: List[int] = field(default_factory=lambda: [0] * NUM_REGISTERS)  # V0-VF
    I: int = 0              # Index register
    PC: int = PROGRAM_START # Program counter
    SP: int = 0             # Stack depth

    # Stack
    stack: List[int] = field(default_factory=lambda: [0] * STACK_SIZE)

    # Timers (one tick per frame)
    delay_timer: int = 0
    sound_timer: int = 0

    # Display (64x32), indexed [row, col]
    display: np.ndarray = field(default_factory=lambda: np.zeros((DISPLAY_H, DISPLAY_W), dtype=np.uint8))

    # Single-slot key latch: last pressed key, or None
    key: Optional[int] = None

    def return_addresses(self) -> List[int]:
        """Live part of the call stack, oldest first"""
        return self.stack[:self.SP]
