"""Mnemonics for the debug overlay and ROM listings"""

from typing import List

from .constants import PROGRAM_START
from .decoder import decode

ALU_MNEMONICS = {0x0: "LD", 0x1: "OR", 0x2: "AND", 0x3: "XOR", 0x4: "ADD",
                 0x5: "SUB", 0x6: "SHR", 0x7: "SUBN", 0xE: "SHL"}

# {x} is replaced with the register index
MISC_MNEMONICS = {0x07: "LD V{x}, DT", 0x0A: "LD V{x}, K", 0x15: "LD DT, V{x}",
                  0x18: "LD ST, V{x}", 0x1E: "ADD I, V{x}", 0x29: "LD F, V{x}",
                  0x33: "LD B, V{x}", 0x55: "LD [I], V{x}", 0x65: "LD V{x}, [I]"}


def disassemble(word: int, complex_jump: bool = False) -> str:
    """Disassemble one opcode to a human-readable string"""
    ins = decode(word)
    x, y = f"{ins.x:X}", f"{ins.y:X}"
    op = ins.op

    if word == 0x00E0:
        return "CLS"
    if word == 0x00EE:
        return "RET"
    if op == 0x1:
        return f"JP ${ins.nnn:03X}"
    if op == 0x2:
        return f"CALL ${ins.nnn:03X}"
    if op == 0x3:
        return f"SE V{x}, ${ins.nn:02X}"
    if op == 0x4:
        return f"SNE V{x}, ${ins.nn:02X}"
    if op == 0x5:
        return f"SE V{x}, V{y}"
    if op == 0x6:
        return f"LD V{x}, ${ins.nn:02X}"
    if op == 0x7:
        return f"ADD V{x}, ${ins.nn:02X}"
    if op == 0x8 and ins.n in ALU_MNEMONICS:
        return f"{ALU_MNEMONICS[ins.n]} V{x}, V{y}"
    if op == 0x9:
        return f"SNE V{x}, V{y}"
    if op == 0xA:
        return f"LD I, ${ins.nnn:03X}"
    if op == 0xB:
        return f"JP V{x if complex_jump else 0}, ${ins.nnn:03X}"
    if op == 0xC:
        return f"RND V{x}, ${ins.nn:02X}"
    if op == 0xD:
        return f"DRW V{x}, V{y}, {ins.n}"
    if op == 0xE and ins.nn == 0x9E:
        return f"SKP V{x}"
    if op == 0xE and ins.nn == 0xA1:
        return f"SKNP V{x}"
    if op == 0xF and ins.nn in MISC_MNEMONICS:
        return MISC_MNEMONICS[ins.nn].format(x=x)

    return f"??? ${word:04X}"


def disassemble_program(data: bytes, start: int = PROGRAM_START) -> List[str]:
    """
    Convert a raw ROM image into listing lines.
    Each line: "ADDR:  MNEMONIC". A trailing odd byte is shown as data.
    """
    lines = []
    addr = start
    for i in range(0, len(data) - 1, 2):
        word = (data[i] << 8) | data[i + 1]
        lines.append(f"{addr:04X}:  {disassemble(word)}")
        addr += 2

    if len(data) % 2:
        lines.append(f"{addr:04X}:  .byte ${data[-1]:02X}")
    return lines
