"""
chip8run - CHIP-8 ROM Runner Command-Line Interface
===================================================

This module implements the command-line interface for running a CHIP-8 ROM
without a window. The ROM runs until it halts, runs off the end of memory or
reaches an instruction limit; the final screen is then printed as text and
can be saved as a PNG.

Usage Examples
--------------
Run the built-in demo:
    $ chip8run --max-instructions 100

Run a ROM at 500 instructions per second:
    $ chip8run pong.ch8 --fps 500 --max-instructions 5000

Legacy shift and load/store behaviour:
    $ chip8run blitz.ch8 --legacy

Hold keypad keys for the whole run:
    $ chip8run keypad.ch8 --hold 5 --hold A

Save the final screen:
    $ chip8run maze.ch8 -n 2000 --screenshot maze.png --scale 10

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

from pathlib import Path
from typing import Optional, Tuple

import click

from chip8_emu import __version__
from chip8_emu.cli.errors import handle_cli_exception, setup_logging
from chip8_emu.emulator import Emulator, EmulatorConfig, InstructionSet, Keyboard


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "rom_file",
    required=False,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--fps",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum instructions per second (default: unlimited)",
)
@click.option(
    "--legacy",
    is_flag=True,
    help="Use the legacy instruction set (shifts through Vy, I advances on save/load)",
)
@click.option(
    "-n", "--max-instructions",
    type=click.IntRange(min=0),
    default=None,
    help="Stop after this many instructions (default: run until halt)",
)
@click.option(
    "--hold",
    "held_keys",
    multiple=True,
    metavar="KEY",
    help="Keypad key held down for the whole run (0-F, or KEY_<host key>). Repeatable.",
)
@click.option(
    "--show/--no-show",
    default=True,
    help="Print the final screen (default: enabled)",
)
@click.option(
    "--screenshot",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Save the final screen as a PNG file",
)
@click.option(
    "--scale",
    type=click.IntRange(min=1),
    default=8,
    help="Pixel scale for --screenshot (default: 8)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output (per-instruction trace)",
)
@click.version_option(version=__version__, prog_name="chip8run")
def main(
    rom_file: Optional[Path],
    fps: Optional[int],
    legacy: bool,
    max_instructions: Optional[int],
    held_keys: Tuple[str, ...],
    show: bool,
    screenshot: Optional[Path],
    scale: int,
    verbose: bool,
) -> None:
    """
    Run a CHIP-8 ROM headless.

    ROM_FILE is the raw program image, loaded at $200. Without it the
    built-in demo runs.

    Examples:

        # Run the demo for 100 instructions
        chip8run -n 100

        # Run a game capped at 500 instructions per second
        chip8run pong.ch8 --fps 500 -n 5000 --screenshot pong.png
    """
    setup_logging(verbose)

    try:
        keyboard = Keyboard()
        for key in held_keys:
            try:
                keyboard.key_down(key)
            except ValueError as e:
                raise click.BadParameter(str(e), param_hint="--hold")

        config = EmulatorConfig(
            rom_path=rom_file,
            max_fps=fps,
            variant=InstructionSet.LEGACY if legacy else InstructionSet.COWGOD,
        )

        if verbose:
            click.echo(f"ROM: {rom_file if rom_file else 'built-in demo'}", err=True)
            click.echo(f"Instruction set: {config.variant.value}", err=True)

        emu = Emulator(config, keyboard=keyboard)
        event = emu.run(max_instructions=max_instructions)

        if show:
            click.echo(emu.display_text)
        click.echo(str(event))

        if screenshot:
            screenshot.write_bytes(emu.framebuffer.render_image(scale=scale))
            click.echo(f"Screenshot written to {screenshot}")

        if verbose:
            regs = emu.registers
            click.echo(
                " ".join(f"V{n:X}={regs[f'v{n:x}']:02X}" for n in range(16)),
                err=True,
            )
            click.echo(
                f"PC=${regs['pc']:04X} I=${regs['i']:04X} DT={regs['dt']} ST={regs['st']}",
                err=True,
            )

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Emulation")


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    main()
