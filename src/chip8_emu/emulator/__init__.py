"""
CHIP-8 Emulator
===============

A CHIP-8 virtual machine: processor, 4 KiB memory, packed 64x32
framebuffer, 60 Hz delay and sound timers, and a 16-key keypad.

Quick Start
-----------

Run the built-in demo::

    >>> from chip8_emu.emulator import Emulator
    >>> emu = Emulator()
    >>> event = emu.run(max_instructions=1000)
    >>> print(emu.display_text)

Run a ROM with the legacy instruction set at 500 instructions/s::

    >>> from chip8_emu.emulator import Emulator, EmulatorConfig, InstructionSet
    >>> config = EmulatorConfig(
    ...     rom_path=Path("invaders.ch8"),
    ...     max_fps=500,
    ...     variant=InstructionSet.LEGACY,
    ... )
    >>> event = Emulator(config).run()

Drive the processor directly::

    >>> from chip8_emu.emulator import Chip8CPU
    >>> cpu = Chip8CPU()
    >>> cpu.load_rom(bytes([0x60, 0x08]))
    >>> cpu.process_instruction(cpu.fetch())
    >>> cpu.end_frame()

Host Interfaces
---------------

The machine talks to the host through three protocols:

- `DisplayOutput.present(buffer)`: a changed 256-byte packed frame
- `AudioOutput.play_tone()` / `stop_tone()`: the sound timer's buzzer
- `InputSource.is_key_down(key)` / `any_key_down()` / `should_quit()`

`TerminalDisplay`, `SilentAudio` and `Keyboard` implement them without a
window or sound device.

Module Structure
----------------

- `emulator.py`: Emulator driver loop and EmulatorConfig
- `cpu.py`: Chip8CPU, registers, timers and instruction handlers
- `decode.py`: Opcode table, field decoding and disassembly
- `memory.py`: Memory with the font table and ROM loading
- `display.py`: FrameBuffer sprite compositing and rendering
- `audio.py`: Sound timer
- `keyboard.py`: Keypad
- `host.py`: Console DisplayOutput and AudioOutput

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

# Main entry point
from .emulator import (
    DEMO_ROM,
    Emulator,
    EmulatorConfig,
    StopEvent,
    StopReason,
)

# Processor
from .cpu import (
    Chip8CPU,
    CPUState,
    InstructionSet,
    STACK_DEPTH,
    TICK_PERIOD_NS,
)

# Decoding and disassembly
from .decode import (
    OPCODE_TABLE,
    DisassembledInstruction,
    OpcodeSpec,
    disassemble,
    disassemble_bytes,
    match_opcode,
)

# Memory subsystem
from .memory import FONT_SET, MAX_ROM_SIZE, PROGRAM_START, Memory

# I/O
from .display import (
    BUFFER_SIZE,
    SCREEN_HEIGHT,
    SCREEN_WIDTH,
    DisplayOutput,
    FrameBuffer,
    render_image,
    render_text,
)
from .audio import AudioOutput, AudioTimer
from .keyboard import InputSource, Keyboard, parse_key
from .host import SilentAudio, TerminalDisplay

__all__ = [
    # Main API
    "Emulator",
    "EmulatorConfig",
    "StopEvent",
    "StopReason",
    "DEMO_ROM",

    # Processor
    "Chip8CPU",
    "CPUState",
    "InstructionSet",
    "STACK_DEPTH",
    "TICK_PERIOD_NS",

    # Decoding
    "OPCODE_TABLE",
    "OpcodeSpec",
    "DisassembledInstruction",
    "disassemble",
    "disassemble_bytes",
    "match_opcode",

    # Memory
    "Memory",
    "FONT_SET",
    "MAX_ROM_SIZE",
    "PROGRAM_START",

    # Display
    "FrameBuffer",
    "DisplayOutput",
    "render_text",
    "render_image",
    "SCREEN_WIDTH",
    "SCREEN_HEIGHT",
    "BUFFER_SIZE",

    # Audio
    "AudioTimer",
    "AudioOutput",

    # Keypad
    "Keyboard",
    "InputSource",
    "parse_key",

    # Console host
    "TerminalDisplay",
    "SilentAudio",
]
