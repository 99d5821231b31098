"""
CHIP-8 Emulator Error Hierarchy
===============================

This module defines the exception hierarchy for the whole package.
All exceptions inherit from Chip8Error, allowing callers to catch every
emulator-related error with a single except clause if desired.

Exception Hierarchy
-------------------
Chip8Error (base)
├── RomError (ROM image handling)
│   └── RomTooLargeError - ROM does not fit in program memory
├── CPUFaultError (processor faults, carry the faulting address)
│   ├── StackOverflowError - CALL with every stack slot in use
│   ├── StackUnderflowError - RET with an empty stack
│   └── MemoryAccessError - access outside memory or into the font table
└── DisplayBoundsError - sprite does not fit in the framebuffer

Design Philosophy
-----------------
The reference machine leaves stack and memory overruns undefined. This
package treats both as hard faults: the processor halts and raises a typed
error that names the instruction and the address it was fetched from.

Error messages follow this format:
    fault at $0ABC (opcode $2345): description

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class Chip8Error(Exception):
    """
    Base exception for all CHIP-8 emulator errors.

    All exceptions in the package inherit from this class, allowing callers
    to catch all emulator errors with a single except clause:

        try:
            emu.run()
        except Chip8Error as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# ROM Exceptions
# =============================================================================

class RomError(Chip8Error):
    """Base exception for ROM image problems detected at load time."""
    pass


class RomTooLargeError(RomError):
    """
    Raised when a ROM image does not fit between $200 and the end of memory.

    Attributes:
        size: Size of the rejected ROM in bytes
        limit: Largest ROM that fits in program memory
    """

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"ROM is {size} bytes but only {limit} bytes of program memory are available"
        )


# =============================================================================
# Processor Faults
# =============================================================================

class CPUFaultError(Chip8Error):
    """
    Base exception for faults raised while executing an instruction.

    The processor is halted before one of these is raised, so the driver
    loop can stop cleanly and report where the program went wrong.

    Attributes:
        message: The fault description
        address: Address the faulting instruction was fetched from (optional)
        opcode: The faulting 16-bit instruction word (optional)
    """

    def __init__(
        self,
        message: str,
        address: Optional[int] = None,
        opcode: Optional[int] = None,
    ):
        self.message = message
        self.address = address
        self.opcode = opcode
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the fault with its location.

        Example output:
            fault at $0208 (opcode $2300): call stack overflow (24 entries)
        """
        if self.address is None:
            return f"fault: {self.message}"
        if self.opcode is None:
            return f"fault at ${self.address:04X}: {self.message}"
        return f"fault at ${self.address:04X} (opcode ${self.opcode:04X}): {self.message}"


class StackOverflowError(CPUFaultError):
    """Raised when CALL is executed with the call stack already full."""
    pass


class StackUnderflowError(CPUFaultError):
    """Raised when RET is executed with an empty call stack."""
    pass


class MemoryAccessError(CPUFaultError):
    """
    Raised for memory accesses the machine cannot honour.

    This covers I-indexed reads and writes past $FFF, instruction fetches
    past the last word of memory, and writes into the built-in font table.
    """
    pass


# =============================================================================
# Display Exceptions
# =============================================================================

class DisplayBoundsError(Chip8Error):
    """
    Raised when a sprite would be composited outside the framebuffer.

    The framebuffer does not wrap; sprites that run past the right or
    bottom edge are a ROM bug.

    Attributes:
        x: Horizontal pixel coordinate of the sprite
        y: Vertical pixel coordinate of the sprite
        height: Number of sprite rows
    """

    def __init__(self, x: int, y: int, height: int):
        self.x = x
        self.y = y
        self.height = height
        super().__init__(
            f"sprite at ({x}, {y}) with {height} rows does not fit in the 64x32 framebuffer"
        )
