"""
chip8-emu - A CHIP-8 Virtual Machine
====================================

This package emulates the CHIP-8, the interpreted 8-bit platform of the
COSMAC VIP and its descendants. Programs are raw byte images loaded at $200
and executed one 16-bit instruction per frame.

Main Components
---------------
- **emulator**: Processor, memory, framebuffer, timers and keypad
    The `Emulator` class runs a ROM; `Chip8CPU` executes single instructions

- **emulator.decode**: Opcode table and disassembler

- **cli**: Command-line tools
    `chip8run` runs a ROM headless, `chip8disasm` lists one

Quick Start
-----------
Run a ROM:
    >>> from chip8_emu import Emulator, EmulatorConfig
    >>> emu = Emulator(EmulatorConfig(rom_path=Path("maze.ch8")))
    >>> event = emu.run(max_instructions=5000)
    >>> print(emu.display_text)

Disassemble:
    >>> from chip8_emu import disassemble_bytes
    >>> for line in disassemble_bytes(Path("maze.ch8").read_bytes()):
    ...     print(line)

Or use the command-line tools:
    $ chip8run maze.ch8 --max-instructions 5000 --show
    $ chip8disasm maze.ch8 -o maze.lst

Version History
---------------
1.0.0 - Initial release with processor, framebuffer and CLI tools
"""

__version__ = "1.0.0"
__author__ = "Hugo José Pinto & Contributors"

# =============================================================================
# Public API Exports
# =============================================================================

from chip8_emu.errors import (
    Chip8Error,
    RomError,
    RomTooLargeError,
    CPUFaultError,
    StackOverflowError,
    StackUnderflowError,
    MemoryAccessError,
    DisplayBoundsError,
)

from chip8_emu.emulator import (
    Emulator,
    EmulatorConfig,
    StopEvent,
    StopReason,
    Chip8CPU,
    InstructionSet,
    FrameBuffer,
    Memory,
    Keyboard,
    disassemble,
    disassemble_bytes,
)

__all__ = [
    # Version info
    "__version__",
    "__author__",
    # Emulator
    "Emulator",
    "EmulatorConfig",
    "StopEvent",
    "StopReason",
    "Chip8CPU",
    "InstructionSet",
    "FrameBuffer",
    "Memory",
    "Keyboard",
    # Disassembly
    "disassemble",
    "disassemble_bytes",
    # Errors
    "Chip8Error",
    "RomError",
    "RomTooLargeError",
    "CPUFaultError",
    "StackOverflowError",
    "StackUnderflowError",
    "MemoryAccessError",
    "DisplayBoundsError",
]
