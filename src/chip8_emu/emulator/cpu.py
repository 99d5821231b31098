"""
CHIP-8 Processor
================

Register, stack and timer machine that executes one CHIP-8 instruction per
call. The driver loop owns fetching and PC advancement:

    op = cpu.fetch()
    cpu.process_instruction(op)
    cpu.tick(elapsed_ns)
    cpu.end_frame()

Machine state:
- V0-VF: 8-bit general registers; VF doubles as the carry/borrow/collision flag
- I: 16-bit address pointer
- PC: program counter, starts at $200
- Stack: 24 return addresses
- DT: delay timer, counted down at 60 Hz
- ST: sound timer, owned by the AudioTimer collaborator

Jumps, calls and an unsatisfied key wait set a "do not advance" flag so
end_frame() leaves PC where the instruction put it. Skips add 2 to PC and
let end_frame() add the other 2.

Two instruction set variants differ in 8xy6, 8xyE, Fx55 and Fx65. The
variant is fixed at construction: the dispatch table is bound once with
the variant's handlers for those four opcodes.

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from chip8_emu.errors import (
    CPUFaultError,
    DisplayBoundsError,
    MemoryAccessError,
    StackOverflowError,
    StackUnderflowError,
)
from chip8_emu.emulator.audio import AudioTimer
from chip8_emu.emulator.decode import OperandDecoder, group_by_high_nibble
from chip8_emu.emulator.display import FrameBuffer, SCREEN_HEIGHT, SCREEN_WIDTH
from chip8_emu.emulator.keyboard import InputSource, Keyboard
from chip8_emu.emulator.memory import Memory, PROGRAM_START, glyph_address

logger = logging.getLogger(__name__)


NUM_REGISTERS = 16
STACK_DEPTH = 24
FLAG = 0xF

# 1/60 s, rounded up
TICK_PERIOD_NS = 16_666_667


class InstructionSet(Enum):
    """
    Instruction set variant.

    COWGOD: shifts act on Vx; Fx55/Fx65 leave I unchanged.
    LEGACY: shifts read Vy, write the result to Vy and copy it to Vx;
            Fx55/Fx65 advance I by x + 1.
    """
    COWGOD = "cowgod"
    LEGACY = "legacy"


# Handler substitutions per variant, applied when the dispatch table is bound
VARIANT_HANDLERS: Dict[InstructionSet, Dict[str, str]] = {
    InstructionSet.COWGOD: {},
    InstructionSet.LEGACY: {
        "right_shift_register": "right_shift_register_legacy",
        "left_shift_register": "left_shift_register_legacy",
        "save_registers": "save_registers_legacy",
        "restore_registers": "restore_registers_legacy",
    },
}


@dataclass
class CPUState:
    """
    Complete processor state.

    registers holds V0-VF as unsigned bytes. stack holds return addresses;
    only stack[:sp] is live.
    """
    pc: int = PROGRAM_START
    registers: bytearray = field(default_factory=lambda: bytearray(NUM_REGISTERS))
    i: int = 0
    stack: List[int] = field(default_factory=lambda: [0] * STACK_DEPTH)
    sp: int = 0
    delay_timer: int = 0
    tick_accumulator_ns: int = 0
    halted: bool = False


BoundHandler = Tuple[int, int, Callable[..., None], OperandDecoder]


class Chip8CPU:
    """
    CHIP-8 processor.

    Example:
        >>> cpu = Chip8CPU()
        >>> cpu.load_rom(bytes([0x60, 0xFF, 0x61, 0x01, 0x80, 0x14]))
        >>> for _ in range(3):
        ...     cpu.process_instruction(cpu.fetch())
        ...     cpu.end_frame()
        >>> cpu.v[0], cpu.v[0xF]
        (0, 1)
    """

    def __init__(
        self,
        memory: Optional[Memory] = None,
        framebuffer: Optional[FrameBuffer] = None,
        audio_timer: Optional[AudioTimer] = None,
        keyboard: Optional[InputSource] = None,
        variant: InstructionSet = InstructionSet.COWGOD,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the processor in its power-on state.

        Args:
            memory: Memory with the font table installed (new one if None)
            framebuffer: Target of CLS and DRW (new one if None)
            audio_timer: Sound timer stepped by tick() (new one if None)
            keyboard: Keypad polled by SKP, SKNP and LD Vx, K
            variant: Instruction set variant, fixed for the CPU's lifetime
            rng: Source for RND (seed it for reproducible runs)
        """
        self.memory = memory if memory is not None else Memory()
        self.framebuffer = framebuffer if framebuffer is not None else FrameBuffer()
        self.audio_timer = audio_timer if audio_timer is not None else AudioTimer()
        self.keyboard = keyboard if keyboard is not None else Keyboard()
        self.variant = variant
        self.rng = rng if rng is not None else random.Random()

        self.state = CPUState()
        self._hold_pc = False

        # Location of the instruction being executed, for fault reports
        self._current_address = self.state.pc
        self._current_opcode = 0

        self._dispatch = self._bind_dispatch(variant)

    def _bind_dispatch(self, variant: InstructionSet) -> Dict[int, List[BoundHandler]]:
        overrides = VARIANT_HANDLERS[variant]
        dispatch: Dict[int, List[BoundHandler]] = {}
        for high_nibble, specs in group_by_high_nibble().items():
            dispatch[high_nibble] = [
                (
                    spec.mask,
                    spec.pattern,
                    getattr(self, overrides.get(spec.handler, spec.handler)),
                    spec.operands,
                )
                for spec in specs
            ]
        return dispatch

    # ========================================
    # Register Access
    # ========================================

    @property
    def pc(self) -> int:
        return self.state.pc

    @pc.setter
    def pc(self, value: int) -> None:
        self.state.pc = value & 0xFFFF

    @property
    def i(self) -> int:
        """Address pointer."""
        return self.state.i

    @i.setter
    def i(self, value: int) -> None:
        self.state.i = value & 0xFFFF

    @property
    def v(self) -> bytearray:
        """V0-VF. Writes go straight to the processor's registers."""
        return self.state.registers

    @property
    def sp(self) -> int:
        return self.state.sp

    @property
    def stack(self) -> List[int]:
        """Live return addresses, oldest first."""
        return self.state.stack[:self.state.sp]

    @property
    def delay_timer(self) -> int:
        return self.state.delay_timer

    @delay_timer.setter
    def delay_timer(self, value: int) -> None:
        self.state.delay_timer = value & 0xFF

    @property
    def sound_timer(self) -> int:
        return self.audio_timer.value

    @property
    def halted(self) -> bool:
        return self.state.halted

    def halt(self) -> None:
        """Stop the processor. Later instructions are ignored until reset()."""
        self.state.halted = True

    # ========================================
    # Lifecycle
    # ========================================

    def reset(self) -> None:
        """
        Restore the power-on state.

        Registers, timers and stack are zeroed, memory is cleared apart from
        the font table, the framebuffer is cleared and PC returns to $200.
        The loaded ROM is gone; call load_rom() again.
        """
        self.state = CPUState()
        self._hold_pc = False
        self._current_address = self.state.pc
        self._current_opcode = 0
        self.memory.reset()
        self.framebuffer.clear()
        self.audio_timer.reset()

    def load_rom(self, rom: bytes) -> None:
        """
        Copy a ROM image to $200.

        Raises:
            RomTooLargeError: If the image is larger than program memory
        """
        self.memory.load_rom(rom)

    # ========================================
    # Driver Interface
    # ========================================

    def fetch(self) -> int:
        """
        Read the instruction word at PC.

        Raises:
            MemoryAccessError: If PC does not point at a complete word
        """
        pc = self.state.pc
        if pc + 2 > self.memory.size:
            self.halt()
            raise MemoryAccessError("instruction fetch past end of memory", pc)
        return self.memory.read_word(pc)

    def process_instruction(self, instruction: int) -> None:
        """
        Execute one instruction word.

        Does not fetch and does not advance PC. An invalid opcode is logged
        and halts the processor without raising.

        Raises:
            CPUFaultError: On stack overflow/underflow, out-of-range memory
                access or an off-screen sprite. The processor is halted first.
        """
        if self.state.halted:
            logger.warning(f"Processor halted, ignoring ${instruction:04X}")
            return

        self._current_address = self.state.pc
        self._current_opcode = instruction

        for mask, pattern, handler, operands in self._dispatch[(instruction >> 12) & 0xF]:
            if instruction & mask == pattern:
                if logger.isEnabledFor(logging.DEBUG):
                    logger.debug(f"${self.state.pc:04X}: {instruction:04X} {handler.__name__}")
                self._execute(handler, operands(instruction))
                return

        logger.error(f"Invalid opcode ${instruction:04X} at ${self.state.pc:04X}, halting")
        self.halt()

    def _execute(self, handler: Callable[..., None], operands: Tuple[int, ...]) -> None:
        try:
            handler(*operands)
        except CPUFaultError as e:
            self.halt()
            if e.address is None:
                raise type(e)(e.message, self._current_address, self._current_opcode) from e
            raise
        except DisplayBoundsError as e:
            self.halt()
            raise CPUFaultError(str(e), self._current_address, self._current_opcode) from e

    def tick(self, elapsed_ns: int) -> None:
        """
        Advance the 60 Hz timers by elapsed wall time.

        Time is accumulated, and every full period decrements the delay
        timer and steps the sound timer, however many periods have passed.
        """
        if elapsed_ns < 0:
            raise ValueError(f"elapsed time must not be negative, got {elapsed_ns}")

        state = self.state
        state.tick_accumulator_ns += elapsed_ns
        while state.tick_accumulator_ns >= TICK_PERIOD_NS:
            if state.delay_timer > 0:
                state.delay_timer -= 1
            self.audio_timer.tick()
            state.tick_accumulator_ns -= TICK_PERIOD_NS

    def end_frame(self) -> None:
        """Move PC to the next instruction unless the last one set it."""
        if self._hold_pc:
            self._hold_pc = False
            return
        if self.state.halted:
            return
        self.state.pc += 2

    # ========================================
    # Debug View
    # ========================================

    def registers_snapshot(self) -> Dict[str, int]:
        """
        Current register values by name.

        Keys: pc, i, sp, dt, st and v0-vf.
        """
        snapshot = {
            "pc": self.state.pc,
            "i": self.state.i,
            "sp": self.state.sp,
            "dt": self.state.delay_timer,
            "st": self.audio_timer.value,
        }
        for index, value in enumerate(self.state.registers):
            snapshot[f"v{index:x}"] = value
        return snapshot

    def __repr__(self) -> str:
        regs = " ".join(f"{value:02X}" for value in self.state.registers)
        return (
            f"Chip8CPU(PC=${self.state.pc:04X} I=${self.state.i:04X} V=[{regs}] "
            f"DT={self.state.delay_timer} ST={self.audio_timer.value} "
            f"SP={self.state.sp} acc={self.state.tick_accumulator_ns}ns"
            f"{' halted' if self.state.halted else ''})"
        )

    # ========================================
    # Instruction Handlers: Flow Control
    # ========================================

    def nop(self) -> None:
        pass

    def clear_screen(self) -> None:
        self.framebuffer.clear()

    def ret(self) -> None:
        if self.state.sp == 0:
            raise StackUnderflowError("return with empty call stack")
        self.state.sp -= 1
        # Resumes after the CALL once end_frame() advances
        self.state.pc = self.state.stack[self.state.sp]

    def _jump_to(self, target: int) -> None:
        if target & 1:
            logger.debug(f"Jump to odd address ${target:04X}")
        self.state.pc = target
        self._hold_pc = True

    def jump(self, address: int) -> None:
        self._jump_to(address)

    def call(self, address: int) -> None:
        state = self.state
        if state.sp >= STACK_DEPTH:
            raise StackOverflowError(f"call stack overflow ({STACK_DEPTH} entries)")
        state.stack[state.sp] = state.pc
        state.sp += 1
        self._jump_to(address)

    def add_jump_v0(self, address: int) -> None:
        self._jump_to(self.state.registers[0] + address)

    def skip_if_equal_const(self, x: int, kk: int) -> None:
        if self.state.registers[x] == kk:
            self.state.pc += 2

    def skip_if_unequal_const(self, x: int, kk: int) -> None:
        if self.state.registers[x] != kk:
            self.state.pc += 2

    def skip_if_equal_reg(self, x: int, y: int) -> None:
        if self.state.registers[x] == self.state.registers[y]:
            self.state.pc += 2

    def skip_if_unequal_reg(self, x: int, y: int) -> None:
        if self.state.registers[x] != self.state.registers[y]:
            self.state.pc += 2

    # ========================================
    # Instruction Handlers: Registers and ALU
    # ========================================
    # VF is always written last, so it holds the flag even when x or y is F.

    def load_const(self, x: int, kk: int) -> None:
        self.state.registers[x] = kk

    def add_const(self, x: int, kk: int) -> None:
        # No carry flag for 7xkk
        v = self.state.registers
        v[x] = (v[x] + kk) & 0xFF

    def load_register(self, x: int, y: int) -> None:
        self.state.registers[x] = self.state.registers[y]

    def or_register(self, x: int, y: int) -> None:
        self.state.registers[x] |= self.state.registers[y]

    def and_register(self, x: int, y: int) -> None:
        self.state.registers[x] &= self.state.registers[y]

    def xor_register(self, x: int, y: int) -> None:
        self.state.registers[x] ^= self.state.registers[y]

    def add_register(self, x: int, y: int) -> None:
        v = self.state.registers
        total = v[x] + v[y]
        v[x] = total & 0xFF
        v[FLAG] = 1 if total > 0xFF else 0

    def sub_register(self, x: int, y: int) -> None:
        v = self.state.registers
        vx, vy = v[x], v[y]
        v[x] = (vx - vy) & 0xFF
        v[FLAG] = 1 if vx >= vy else 0

    def rev_sub_register(self, x: int, y: int) -> None:
        v = self.state.registers
        vx, vy = v[x], v[y]
        v[x] = (vy - vx) & 0xFF
        v[FLAG] = 1 if vy >= vx else 0

    def right_shift_register(self, x: int, y: int) -> None:
        v = self.state.registers
        value = v[x]
        v[x] = value >> 1
        v[FLAG] = value & 0x01

    def left_shift_register(self, x: int, y: int) -> None:
        v = self.state.registers
        value = v[x]
        v[x] = (value << 1) & 0xFF
        v[FLAG] = value >> 7

    def right_shift_register_legacy(self, x: int, y: int) -> None:
        v = self.state.registers
        value = v[y]
        v[y] = value >> 1
        v[x] = v[y]
        v[FLAG] = value & 0x01

    def left_shift_register_legacy(self, x: int, y: int) -> None:
        v = self.state.registers
        value = v[y]
        v[y] = (value << 1) & 0xFF
        v[x] = v[y]
        v[FLAG] = value >> 7

    def randomize(self, x: int, kk: int) -> None:
        self.state.registers[x] = self.rng.getrandbits(8) & kk

    # ========================================
    # Instruction Handlers: Address Pointer and Memory
    # ========================================

    def load_addr_const(self, address: int) -> None:
        self.state.i = address

    def add_addr_reg(self, x: int) -> None:
        self.state.i = (self.state.i + self.state.registers[x]) & 0xFFFF

    def set_addr_to_char(self, x: int) -> None:
        self.state.i = glyph_address(self.state.registers[x])

    def store_digits(self, x: int) -> None:
        value = self.state.registers[x]
        self.memory.write_block(
            self.state.i, bytes([value // 100, value // 10 % 10, value % 10])
        )

    def save_registers(self, x: int) -> None:
        self.memory.write_block(self.state.i, bytes(self.state.registers[:x + 1]))

    def restore_registers(self, x: int) -> None:
        self.state.registers[:x + 1] = self.memory.read_block(self.state.i, x + 1)

    def save_registers_legacy(self, x: int) -> None:
        self.save_registers(x)
        self.state.i = (self.state.i + x + 1) & 0xFFFF

    def restore_registers_legacy(self, x: int) -> None:
        self.restore_registers(x)
        self.state.i = (self.state.i + x + 1) & 0xFFFF

    # ========================================
    # Instruction Handlers: Display
    # ========================================

    def draw_sprite(self, x: int, y: int, n: int) -> None:
        v = self.state.registers
        px, py = v[x], v[y]
        rows = self.memory.read_block(self.state.i, n)
        if px + 8 > SCREEN_WIDTH or py + n > SCREEN_HEIGHT:
            logger.error(f"Bad draw dims: sprite at ({px}, {py}) with {n} rows; {self!r}")
        v[FLAG] = 1 if self.framebuffer.composite(px, py, rows) else 0

    # ========================================
    # Instruction Handlers: Timers and Keypad
    # ========================================

    def load_timer(self, x: int) -> None:
        self.state.registers[x] = self.state.delay_timer

    def set_timer(self, x: int) -> None:
        self.state.delay_timer = self.state.registers[x]

    def set_audio(self, x: int) -> None:
        self.audio_timer.set(self.state.registers[x])

    def skip_if_key_pressed(self, x: int) -> None:
        if self.keyboard.is_key_down(self.state.registers[x] & 0xF):
            self.state.pc += 2

    def skip_if_key_not_pressed(self, x: int) -> None:
        if not self.keyboard.is_key_down(self.state.registers[x] & 0xF):
            self.state.pc += 2

    def wait_for_key(self, x: int) -> None:
        key = self.keyboard.any_key_down()
        if key is None:
            # Re-executed next frame
            self._hold_pc = True
            return
        self.state.registers[x] = key & 0xF
