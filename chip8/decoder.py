"""Instruction fetch and field extraction"""

from typing import NamedTuple

from .constants import MEMORY_SIZE
from .errors import AddressOutOfRangeError


class Instruction(NamedTuple):
    word: int   # raw 16-bit opcode
    op: int     # first nibble
    x: int      # 4-bit register index
    y: int      # 4-bit register index
    n: int      # 4-bit constant
    nn: int     # 8-bit constant
    nnn: int    # 12-bit address


def fetch_word(memory, pc: int) -> int:
    """Read the big-endian 16-bit word at pc"""
    if pc < 0 or pc + 1 >= MEMORY_SIZE:
        bad = pc if pc < 0 or pc >= MEMORY_SIZE else pc + 1
        raise AddressOutOfRangeError(bad, pc)
    return (memory[pc] << 8) | memory[pc + 1]


def decode(word: int) -> Instruction:
    """Split an opcode into its fixed bit fields"""
    return Instruction(
        word=word,
        op=(word >> 12) & 0xF,
        x=(word >> 8) & 0x0F,
        y=(word >> 4) & 0x0F,
        n=word & 0x000F,
        nn=word & 0x00FF,
        nnn=word & 0x0FFF,
    )
