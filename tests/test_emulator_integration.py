"""
Emulator Integration Tests
==========================

End-to-end tests for the Emulator driver: whole programs run through the
fetch/execute/tick/advance loop, stop conditions, frame pacing against a
fake clock, ROM loading and the built-in demo.

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

import pytest
from chip8_emu.emulator import (
    DEMO_ROM,
    Emulator,
    EmulatorConfig,
    InstructionSet,
    Keyboard,
    StopEvent,
    StopReason,
    TerminalDisplay,
)
from chip8_emu.errors import RomTooLargeError, StackUnderflowError


# =============================================================================
# Fake Clock
# =============================================================================

class FakeClock:
    """
    Nanosecond clock that advances by a fixed step per reading.

    sleep() advances the clock by the requested time and records it.
    """

    def __init__(self, step_ns: int = 0):
        self.now = 0
        self.step_ns = step_ns
        self.sleeps: list[float] = []

    def __call__(self) -> int:
        value = self.now
        self.now += self.step_ns
        return value

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += round(seconds * 1e9)


def make_emulator(rom: bytes, config: EmulatorConfig | None = None, **kwargs) -> Emulator:
    """Emulator running `rom`, with a frozen clock unless one is given."""
    clock = kwargs.pop("clock", None) or FakeClock()
    emu = Emulator(config, clock=clock, sleep=clock.sleep, **kwargs)
    emu.load_rom(rom)
    return emu


# =============================================================================
# Program Tests
# =============================================================================

class TestPrograms:
    """Run small programs to completion."""

    def test_skip_and_loop(self):
        """Conditional skip plus backward jump counts V1 to 10."""
        rom = bytes([
            0x62, 0x08,  # LD V2, 8
            0x12, 0x06,  # JP $206
            0x75, 0x01,  # ADD V5, 1    (jumped over)
            0x71, 0x01,  # ADD V1, 1
            0x31, 0x0A,  # SE V1, 10
            0x12, 0x02,  # JP $202
        ])
        emu = make_emulator(rom)

        event = emu.run()

        assert event.reason == StopReason.END_OF_MEMORY
        regs = emu.registers
        assert regs["v0"] == 0
        assert regs["v1"] == 10
        assert regs["v2"] == 8
        assert regs["v5"] == 0

    def test_simple_jump(self):
        rom = bytes([0x12, 0x08] + [0x70, 0x01] * 6)
        emu = make_emulator(rom)
        emu.run()
        assert emu.registers["v0"] == 3

    def test_jump_to_odd_address(self):
        """Execution continues from an odd jump target."""
        rom = bytes([0x12, 0x07, 0x01] + [0x70, 0x01] * 5)
        emu = make_emulator(rom)
        event = emu.run()
        assert event.reason == StopReason.END_OF_MEMORY
        assert emu.registers["v0"] == 3

    def test_subroutine(self):
        rom = bytes([
            0x22, 0x06,  # CALL $206
            0x22, 0x06,  # CALL $206
            0xFF, 0xFF,  # halt
            0x70, 0x05,  # ADD V0, 5
            0x00, 0xEE,  # RET
        ])
        emu = make_emulator(rom)
        event = emu.run()
        assert event.reason == StopReason.HALTED
        assert event.address == 0x204
        assert emu.registers["v0"] == 10
        assert emu.registers["sp"] == 0

    def test_legacy_variant_from_config(self):
        rom = bytes([0x62, 0x05, 0x81, 0x26, 0xFF, 0xFF])
        emu = make_emulator(rom, EmulatorConfig(variant=InstructionSet.LEGACY))
        emu.run()
        assert emu.registers["v1"] == 2
        assert emu.registers["v2"] == 2

    def test_fault_propagates(self):
        emu = make_emulator(bytes([0x00, 0xEE]))
        with pytest.raises(StackUnderflowError):
            emu.run()
        assert emu.cpu.halted is True


# =============================================================================
# Stop Condition Tests
# =============================================================================

class TestStopConditions:
    """Test why run() returns."""

    def test_max_instructions(self):
        emu = make_emulator(bytes([0x12, 0x00]))
        event = emu.run(max_instructions=25)
        assert event.reason == StopReason.MAX_INSTRUCTIONS
        assert event.instructions == 25
        assert emu.instructions_executed == 25

    def test_quit(self):
        keyboard = Keyboard()
        emu = make_emulator(bytes([0x12, 0x00]), keyboard=keyboard)
        keyboard.request_quit()
        event = emu.run()
        assert event.reason == StopReason.QUIT
        assert event.instructions == 0

    def test_halted_stays_halted(self):
        emu = make_emulator(bytes([0xFF, 0xFF]))
        assert emu.run().reason == StopReason.HALTED
        event = emu.run()
        assert event.reason == StopReason.HALTED
        assert event.instructions == 0

    def test_wait_for_key_across_runs(self):
        """Fx0A holds PC until a key arrives, then the program continues."""
        keyboard = Keyboard()
        emu = make_emulator(bytes([0xF3, 0x0A, 0xFF, 0xFF]), keyboard=keyboard)

        event = emu.run(max_instructions=50)
        assert event.reason == StopReason.MAX_INSTRUCTIONS
        assert emu.cpu.pc == 0x200

        keyboard.tap(9)
        event = emu.run(max_instructions=50)
        assert event.reason == StopReason.HALTED
        assert emu.registers["v3"] == 9

    def test_stop_event_str(self):
        assert "$0220" in str(StopEvent(StopReason.HALTED, 0x220, 7))
        assert "7 instructions" in str(StopEvent(StopReason.HALTED, 0x220, 7))
        assert str(StopEvent(StopReason.QUIT, 0, message="bye")) == "bye"


# =============================================================================
# Frame Pacing Tests
# =============================================================================

class TestFramePacing:
    """Test the FPS cap and the elapsed time fed to the timers."""

    def test_cap_sleeps_remaining_frame_time(self):
        clock = FakeClock(step_ns=0)
        emu = make_emulator(bytes([0x12, 0x00]), EmulatorConfig(max_fps=100), clock=clock)

        emu.run(max_instructions=3)

        assert len(clock.sleeps) == 3
        for seconds in clock.sleeps:
            assert seconds == pytest.approx(0.01)

    def test_slow_frames_do_not_sleep(self):
        clock = FakeClock(step_ns=20_000_000)
        emu = make_emulator(bytes([0x12, 0x00]), EmulatorConfig(max_fps=100), clock=clock)
        emu.run(max_instructions=5)
        assert clock.sleeps[:1] == [pytest.approx(0.01)]
        assert len(clock.sleeps) == 1

    def test_uncapped_never_sleeps(self):
        clock = FakeClock(step_ns=1000)
        emu = make_emulator(bytes([0x12, 0x00]), clock=clock)
        emu.run(max_instructions=100)
        assert clock.sleeps == []

    def test_elapsed_time_drives_delay_timer(self):
        """Each capped 60 FPS frame is about one timer tick."""
        clock = FakeClock()
        rom = bytes([0x60, 0x3C, 0xF0, 0x15, 0x12, 0x04])
        emu = make_emulator(rom, EmulatorConfig(max_fps=60), clock=clock)
        emu.run(max_instructions=32)
        assert 28 <= emu.registers["dt"] <= 31

    def test_explicit_elapsed(self):
        emu = make_emulator(bytes([0x60, 0x05, 0xF0, 0x15, 0x12, 0x04]))
        emu.step(0)
        emu.step(0)
        emu.step(2 * 16_666_667)
        assert emu.registers["dt"] == 3

    def test_invalid_fps(self):
        with pytest.raises(ValueError):
            EmulatorConfig(max_fps=0)


# =============================================================================
# Loading Tests
# =============================================================================

class TestLoading:
    """Test ROM loading, reset and the demo ROM."""

    def test_rom_path(self, tmp_path):
        rom_file = tmp_path / "prog.ch8"
        rom_file.write_bytes(bytes([0x6A, 0x2B, 0xFF, 0xFF]))
        emu = Emulator(EmulatorConfig(rom_path=rom_file))
        emu.run()
        assert emu.registers["va"] == 0x2B

    def test_missing_rom(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Emulator(EmulatorConfig(rom_path=tmp_path / "missing.ch8"))

    def test_rom_too_large(self):
        emu = Emulator()
        with pytest.raises(RomTooLargeError):
            emu.load_rom(bytes(3585))

    def test_rejected_rom_keeps_current_program(self):
        """A ROM that does not fit leaves the loaded program runnable."""
        emu = make_emulator(bytes([0x6A, 0x2B, 0xFF, 0xFF]))
        with pytest.raises(RomTooLargeError):
            emu.load_rom(bytes(4000))

        assert emu.memory.read_block(0x200, 4) == bytes([0x6A, 0x2B, 0xFF, 0xFF])
        emu.run()
        assert emu.registers["va"] == 0x2B

        emu.reset()
        assert emu.memory.read_block(0x200, 4) == bytes([0x6A, 0x2B, 0xFF, 0xFF])

    def test_rejected_rom_keeps_demo(self):
        emu = Emulator()
        with pytest.raises(RomTooLargeError):
            emu.load_rom(bytes(3585))
        assert emu.memory.read_block(0x200, len(DEMO_ROM)) == DEMO_ROM

    def test_reset_reloads_rom(self):
        emu = make_emulator(bytes([0x70, 0x01, 0x12, 0x00]))
        emu.run(max_instructions=11)
        assert emu.registers["v0"] == 6

        emu.reset()
        assert emu.registers["v0"] == 0
        assert emu.instructions_executed == 0
        assert emu.cpu.fetch() == 0x7001

    def test_disassemble_at_pc(self):
        emu = make_emulator(bytes([0x60, 0x08, 0xD0, 0x15]))
        lines = emu.disassemble_at(count=2)
        assert [line.text for line in lines] == ["LD V0, $08", "DRW V0, V1, 5"]
        assert lines[1].address == 0x202

    def test_disassemble_at_end_of_memory(self):
        emu = make_emulator(bytes([0x00, 0xE0]))
        lines = emu.disassemble_at(0xFFC, count=10)
        assert len(lines) == 2

    def test_display_collaborator(self):
        display = TerminalDisplay()
        emu = make_emulator(bytes([0xA0, 0x00, 0xD0, 0x05, 0xFF, 0xFF]), display=display)
        before = display.present_count
        emu.run()
        assert display.present_count == before + 1
        assert display.text == emu.display_text


class TestDemoRom:
    """Test the built-in demo program."""

    def test_default_loads_demo(self):
        emu = Emulator()
        assert emu.memory.read_block(0x200, len(DEMO_ROM)) == DEMO_ROM

    def test_demo_runs_to_halt(self):
        """Ten seconds of timer time, then the invalid opcode at $220."""
        clock = FakeClock(step_ns=17_000_000)
        emu = Emulator(clock=clock, sleep=clock.sleep)

        event = emu.run(max_instructions=100_000)

        assert event.reason == StopReason.HALTED
        assert event.address == 0x220
        assert emu.registers["v5"] == 0

        lines = emu.display_text.splitlines()
        assert [line[:4] for line in lines[:5]] == ["####", "#...", "####", "#...", "####"]
