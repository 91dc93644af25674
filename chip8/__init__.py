"""CHIP-8 interpreter core"""

from .config import Chip8Config
from .constants import (
    DISPLAY_H, DISPLAY_W, FONT_START, FONTSET, MAX_PROGRAM_SIZE, MEMORY_SIZE,
    PROGRAM_START, STACK_SIZE,
)
from .cpu import Chip8CPU
from .decoder import Instruction, decode, fetch_word
from .disasm import disassemble, disassemble_program
from .errors import (
    AddressOutOfRangeError, Chip8Error, Chip8Fault, ProgramTooLargeError,
    StackOverflowError, StackUnderflowError, UnimplementedInstructionError,
)
from .state import CPUState, RunState

__version__ = "0.1.0"
