"""
CHIP-8 Emulator - Main Orchestrator
===================================

This module provides the `Emulator` class that wires the processor to its
memory, framebuffer, sound timer and keypad, and runs the frame loop.

One frame executes one instruction:

    1. fetch the word at PC
    2. execute it
    3. measure elapsed wall time (sleeping first if an FPS cap is set)
       and feed it to the 60 Hz timers
    4. advance PC

The loop ends when the processor halts, the input source asks to quit,
PC runs past the last instruction word, or an instruction limit is hit.
Processor faults propagate as exceptions.

Example usage:
    >>> from chip8_emu.emulator import Emulator, EmulatorConfig
    >>> emu = Emulator(EmulatorConfig(rom_path=Path("pong.ch8"), max_fps=500))
    >>> event = emu.run(max_instructions=10_000)
    >>> print(event)
    Instruction limit reached at $0246 after 10000 instructions

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

import logging
import random
import time
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from chip8_emu.errors import RomTooLargeError
from chip8_emu.emulator.audio import AudioOutput, AudioTimer
from chip8_emu.emulator.cpu import Chip8CPU, InstructionSet
from chip8_emu.emulator.decode import DisassembledInstruction, disassemble_bytes
from chip8_emu.emulator.display import DisplayOutput, FrameBuffer
from chip8_emu.emulator.host import SilentAudio, TerminalDisplay
from chip8_emu.emulator.keyboard import InputSource, Keyboard
from chip8_emu.emulator.memory import Memory, PROGRAM_START

logger = logging.getLogger(__name__)


# =============================================================================
# DEMO PROGRAM
# =============================================================================
# Redraws the font glyph "E" once a frame for ten seconds of delay-timer
# time, then halts on an invalid opcode.

DEMO_ROM = bytes([
    0x65, 0x0A,  # $200 LD V5, 10        seconds to run
    0x60, 0x0E,  # $202 LD V0, $0E
    0xF0, 0x29,  # $204 LD F, V0         I = glyph "E"
    0x60, 0x3C,  # $206 LD V0, 60        outer loop: one second
    0xF0, 0x15,  # $208 LD DT, V0
    0x00, 0xE0,  # $20A CLS              inner loop
    0x60, 0x00,  # $20C LD V0, 0
    0x61, 0x00,  # $20E LD V1, 0
    0xD0, 0x15,  # $210 DRW V0, V1, 5
    0xF0, 0x07,  # $212 LD V0, DT
    0x30, 0x00,  # $214 SE V0, 0
    0x12, 0x0A,  # $216 JP $20A
    0x68, 0x01,  # $218 LD V8, 1
    0x85, 0x85,  # $21A SUB V5, V8
    0x35, 0x00,  # $21C SE V5, 0
    0x12, 0x06,  # $21E JP $206
    0xFF, 0xFF,  # $220 invalid: halt
])


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class EmulatorConfig:
    """
    Configuration for emulator initialization.

    Attributes:
        rom_path: ROM image to load. If None, the built-in demo is loaded.
        max_fps: Cap on frames (instructions) per second. None runs flat out.
        variant: Instruction set variant for 8xy6/8xyE/Fx55/Fx65.

    Example:
        >>> config = EmulatorConfig(rom_path=Path("tetris.ch8"), max_fps=700)
        >>> config = EmulatorConfig(variant=InstructionSet.LEGACY)
    """
    rom_path: Optional[Path] = None
    max_fps: Optional[int] = None
    variant: InstructionSet = InstructionSet.COWGOD

    def __post_init__(self) -> None:
        if self.max_fps is not None and self.max_fps <= 0:
            raise ValueError(f"max_fps must be positive, got {self.max_fps}")

    @property
    def min_frame_ns(self) -> int:
        """Shortest frame the FPS cap allows, in nanoseconds (0 = uncapped)."""
        if self.max_fps is None:
            return 0
        return 1_000_000_000 // self.max_fps


# =============================================================================
# STOP EVENTS
# =============================================================================

class StopReason(Enum):
    """Why Emulator.run() returned."""
    HALTED = auto()            # Processor halted (invalid opcode)
    QUIT = auto()              # Input source requested quit
    END_OF_MEMORY = auto()     # PC past the last instruction word
    MAX_INSTRUCTIONS = auto()  # Instruction limit reached


@dataclass
class StopEvent:
    """
    Information about why execution stopped.

    Attributes:
        reason: Why execution stopped
        address: PC when the loop stopped
        instructions: Instructions executed by this run() call
        message: Human-readable description (overrides the default)
    """
    reason: StopReason
    address: int
    instructions: int = 0
    message: str = ""

    def __str__(self) -> str:
        if self.message:
            return self.message
        match self.reason:
            case StopReason.HALTED:
                return f"Halted at ${self.address:04X} after {self.instructions} instructions"
            case StopReason.QUIT:
                return f"Quit at ${self.address:04X} after {self.instructions} instructions"
            case StopReason.END_OF_MEMORY:
                return f"Ran off the end of memory after {self.instructions} instructions"
            case StopReason.MAX_INSTRUCTIONS:
                return (
                    f"Instruction limit reached at ${self.address:04X} "
                    f"after {self.instructions} instructions"
                )
        return self.reason.name


# =============================================================================
# EMULATOR
# =============================================================================

class Emulator:
    """
    CHIP-8 emulator: processor, memory, framebuffer, timers and keypad.

    Host collaborators are injected; the defaults are console-only
    (TerminalDisplay, SilentAudio, Keyboard). The wall clock and sleep
    function are injectable so frame timing can be driven by tests.

    Attributes:
        config: The EmulatorConfig used to initialize this instance
        cpu: The Chip8CPU instance
        memory: 4 KiB memory
        framebuffer: Packed 64x32 framebuffer
        display: DisplayOutput receiving framebuffer changes
        audio: AudioOutput driven by the sound timer
        keyboard: InputSource polled by the processor and the loop

    Example:
        >>> emu = Emulator()
        >>> event = emu.run(max_instructions=9)
        >>> print(emu.display_text.splitlines()[0][:8])
        ####....
    """

    def __init__(
        self,
        config: Optional[EmulatorConfig] = None,
        display: Optional[DisplayOutput] = None,
        audio: Optional[AudioOutput] = None,
        keyboard: Optional[InputSource] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], int]] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        """
        Initialize the emulator and load its program.

        Args:
            config: EmulatorConfig. If None, the demo ROM runs uncapped with
                    the default instruction set.
            display: Frame consumer (TerminalDisplay if None)
            audio: Tone generator (SilentAudio if None)
            keyboard: Keypad and quit source (Keyboard if None)
            rng: Random source for RND
            clock: Monotonic nanosecond clock (time.perf_counter_ns if None)
            sleep: Sleep function taking seconds (time.sleep if None)

        Raises:
            FileNotFoundError: If config.rom_path does not exist
            RomTooLargeError: If the ROM does not fit in program memory
        """
        self.config = config or EmulatorConfig()

        self.display = display if display is not None else TerminalDisplay()
        self.audio = audio if audio is not None else SilentAudio()
        self.keyboard = keyboard if keyboard is not None else Keyboard()

        self.memory = Memory()
        self.framebuffer = FrameBuffer(self.display)
        self.audio_timer = AudioTimer(self.audio)
        self.cpu = Chip8CPU(
            self.memory,
            self.framebuffer,
            self.audio_timer,
            self.keyboard,
            variant=self.config.variant,
            rng=rng,
        )

        self._clock = clock or time.perf_counter_ns
        self._sleep = sleep or time.sleep
        self._last_frame_ns: Optional[int] = None
        self._instructions_executed = 0
        self._rom = b""

        if self.config.rom_path is not None:
            self.load_rom(self.config.rom_path)
        else:
            self.load_rom(DEMO_ROM)

    # =========================================================================
    # Program Loading
    # =========================================================================

    def load_rom(self, rom: Union[str, Path, bytes]) -> None:
        """
        Reset the machine and load a ROM image at $200.

        Args:
            rom: Path to a ROM file, or the raw image bytes

        Raises:
            FileNotFoundError: If the ROM file doesn't exist
            RomTooLargeError: If the ROM does not fit in program memory
        """
        if isinstance(rom, (str, Path)):
            path = Path(rom)
            if not path.exists():
                raise FileNotFoundError(f"ROM file not found: {path}")
            data = path.read_bytes()
            logger.info(f"Loading ROM {path} ({len(data)} bytes)")
        else:
            data = bytes(rom)

        # Checked before reset: a rejected ROM leaves the current program loaded
        limit = self.memory.size - PROGRAM_START
        if len(data) > limit:
            raise RomTooLargeError(len(data), limit)

        self.cpu.reset()
        self.cpu.load_rom(data)
        self._rom = data
        self._instructions_executed = 0
        self._last_frame_ns = None

    def reset(self) -> None:
        """Restore the power-on state and reload the current ROM."""
        self.cpu.reset()
        self.cpu.load_rom(self._rom)
        self._instructions_executed = 0
        self._last_frame_ns = None

    # =========================================================================
    # Execution
    # =========================================================================

    def step(self, elapsed_ns: Optional[int] = None) -> None:
        """
        Run one frame: fetch, execute, tick the timers, advance PC.

        Args:
            elapsed_ns: Wall time to feed the timers. If None it is measured
                        from the clock, enforcing the FPS cap.

        Raises:
            CPUFaultError: If the instruction faults
        """
        instruction = self.cpu.fetch()
        self.cpu.process_instruction(instruction)
        self._instructions_executed += 1

        if elapsed_ns is None:
            elapsed_ns = self._frame_time()
        self.cpu.tick(elapsed_ns)
        self.cpu.end_frame()

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"End of frame: {self.cpu!r}")

    def _frame_time(self) -> int:
        now = self._clock()
        if self._last_frame_ns is None:
            self._last_frame_ns = now

        elapsed = now - self._last_frame_ns
        min_frame_ns = self.config.min_frame_ns
        if elapsed < min_frame_ns:
            self._sleep((min_frame_ns - elapsed) / 1e9)
            now = self._clock()
            elapsed = now - self._last_frame_ns

        self._last_frame_ns = now
        return elapsed

    def run(self, max_instructions: Optional[int] = None) -> StopEvent:
        """
        Run frames until something stops the loop.

        Args:
            max_instructions: Stop after this many instructions (None = no limit)

        Returns:
            StopEvent describing why execution stopped

        Raises:
            CPUFaultError: If an instruction faults
        """
        executed = 0
        while True:
            if self.cpu.halted:
                reason = StopReason.HALTED
                break
            if self.keyboard.should_quit():
                reason = StopReason.QUIT
                break
            if self.cpu.pc + 2 > self.memory.size:
                reason = StopReason.END_OF_MEMORY
                break
            if max_instructions is not None and executed >= max_instructions:
                reason = StopReason.MAX_INSTRUCTIONS
                break

            self.step()
            executed += 1

        event = StopEvent(reason, self.cpu.pc, executed)
        logger.debug(str(event))
        return event

    # =========================================================================
    # Inspection
    # =========================================================================

    @property
    def instructions_executed(self) -> int:
        """Instructions executed since the last load or reset."""
        return self._instructions_executed

    @property
    def registers(self) -> Dict[str, int]:
        """Register values by name (pc, i, sp, dt, st, v0-vf)."""
        return self.cpu.registers_snapshot()

    @property
    def display_text(self) -> str:
        """The framebuffer rendered as text, '#' for set pixels."""
        return self.framebuffer.render_text()

    def disassemble_at(
        self, address: Optional[int] = None, count: int = 10
    ) -> List[DisassembledInstruction]:
        """
        Disassemble instructions from memory.

        Args:
            address: Start address (defaults to PC)
            count: Number of instructions

        Returns:
            List of DisassembledInstruction objects
        """
        start = self.cpu.pc if address is None else address
        end = min(start + count * 2, self.memory.size)
        return disassemble_bytes(self.memory.read_block(start, end - start), start, count)
