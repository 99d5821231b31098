"""
Memory Subsystem for the CHIP-8 Emulator
========================================

Memory Map:
    $000-$04F  Built-in hex font (16 glyphs x 5 bytes), read-only
    $050-$1FF  Interpreter area (unused, zeroed)
    $200-$FFF  Program memory (ROM image loaded here)

The font region is written once at initialization/reset and is protected
from program writes afterwards. Every other byte is plain RAM.

Accesses outside $000-$FFF are faults, not wraparound. The processor
translates them into MemoryAccessError with the faulting instruction's
address attached.

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

import logging
from typing import Optional

from chip8_emu.errors import MemoryAccessError, RomTooLargeError

logger = logging.getLogger(__name__)


MEMORY_SIZE = 0x1000
PROGRAM_START = 0x200
MAX_ROM_SIZE = MEMORY_SIZE - PROGRAM_START

GLYPH_SIZE = 5
FONT_START = 0x000
FONT_END = FONT_START + 16 * GLYPH_SIZE  # $050

# =============================================================================
# FONT BITMAP DATA
# =============================================================================
# 4x5 hex digit glyphs, one byte per row, pixels in the high nibble.

FONT_SET = bytes([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
])


def glyph_address(digit: int) -> int:
    """Address of the font glyph for a hex digit value."""
    return FONT_START + digit * GLYPH_SIZE


class Memory:
    """
    4 KiB byte-addressable CHIP-8 memory.

    Example:
        >>> mem = Memory()
        >>> mem.load_rom(bytes([0x60, 0x08]))
        >>> hex(mem.read_word(0x200))
        '0x6008'
    """

    def __init__(self, size: int = MEMORY_SIZE):
        """
        Initialize memory with the font table in place.

        Args:
            size: Memory size in bytes (4096 on real hardware)
        """
        self.size = size
        self._data = bytearray(size)
        self.reset()

    def reset(self) -> None:
        """Zero all memory and reinstall the font table."""
        self._data[:] = bytes(self.size)
        self._data[FONT_START:FONT_END] = FONT_SET

    # =========================================================================
    # Byte Access
    # =========================================================================

    def _check(self, address: int, length: int = 1) -> None:
        if address < 0 or address + length > self.size:
            raise MemoryAccessError(
                f"access of {length} byte(s) at ${address:04X} is outside memory"
            )

    def read(self, address: int) -> int:
        """
        Read a byte.

        Raises:
            MemoryAccessError: If the address is outside memory
        """
        self._check(address)
        return self._data[address]

    def write(self, address: int, value: int) -> None:
        """
        Write a byte.

        Raises:
            MemoryAccessError: If the address is outside memory or inside
                the protected font table
        """
        self._check(address)
        if FONT_START <= address < FONT_END:
            raise MemoryAccessError(f"write to font table at ${address:04X}")
        self._data[address] = value & 0xFF

    def read_word(self, address: int) -> int:
        """Read a big-endian 16-bit word."""
        self._check(address, 2)
        return (self._data[address] << 8) | self._data[address + 1]

    def read_block(self, address: int, length: int) -> bytes:
        """Read `length` consecutive bytes starting at `address`."""
        self._check(address, length)
        return bytes(self._data[address:address + length])

    def write_block(self, address: int, data: bytes) -> None:
        """Write consecutive bytes, with the same checks as write()."""
        self._check(address, len(data))
        if data and address < FONT_END and address + len(data) > FONT_START:
            raise MemoryAccessError(f"write to font table at ${address:04X}")
        self._data[address:address + len(data)] = data

    # =========================================================================
    # ROM Loading
    # =========================================================================

    def load_rom(self, rom: bytes, address: Optional[int] = None) -> None:
        """
        Copy a ROM image verbatim into program memory.

        Args:
            rom: Raw ROM bytes
            address: Load address (defaults to $200)

        Raises:
            RomTooLargeError: If the image does not fit before the end of memory
        """
        start = PROGRAM_START if address is None else address
        limit = self.size - start
        if len(rom) > limit:
            raise RomTooLargeError(len(rom), limit)
        self._data[start:start + len(rom)] = rom
        logger.debug(f"Loaded {len(rom)} ROM bytes at ${start:04X}")

    def dump(self) -> bytes:
        """Return a copy of the whole memory image."""
        return bytes(self._data)
