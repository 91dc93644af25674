"""Exceptions raised by the CHIP-8 core"""

from typing import Optional


class Chip8Error(Exception):
    """Base class for every interpreter error"""


class UnimplementedInstructionError(Chip8Error):
    """Instruction word with no handler. Non-fatal: the cycle logs it and moves on."""

    def __init__(self, word: int, address: int):
        self.word = word
        self.address = address
        super().__init__(f"Instruction ${word:04X} at ${address:03X} not implemented")


class Chip8Fault(Chip8Error):
    """Fatal condition; execution must stop before the next cycle"""

    def __init__(self, message: str, pc: Optional[int] = None):
        self.pc = pc
        super().__init__(message)


class StackUnderflowError(Chip8Fault):
    """RET with an empty call stack"""

    def __init__(self, pc: Optional[int] = None):
        super().__init__("Return with empty call stack", pc)


class StackOverflowError(Chip8Fault):
    """CALL with every stack frame in use"""

    def __init__(self, depth: int, pc: Optional[int] = None):
        self.depth = depth
        super().__init__(f"Call stack overflow ({depth} frames)", pc)


class AddressOutOfRangeError(Chip8Fault):
    """Memory access or jump target outside the 4KB address space"""

    def __init__(self, address: int, pc: Optional[int] = None):
        self.address = address
        super().__init__(f"Address ${address:X} outside memory", pc)


class ProgramTooLargeError(Chip8Error):
    """Program does not fit between 0x200 and the end of memory"""

    def __init__(self, size: int, capacity: int):
        self.size = size
        self.capacity = capacity
        super().__init__(f"Program is {size} bytes, capacity is {capacity}")
