"""
chip8-emu Command-Line Interface
================================

This package provides command-line tools for chip8-emu:

- **chip8run**: Run a ROM headless and report how it stopped
- **chip8disasm**: Disassemble a ROM image

Each tool is implemented as a Click-based CLI application with
comprehensive help and error reporting.
"""

__all__ = ["chip8run", "chip8disasm"]
