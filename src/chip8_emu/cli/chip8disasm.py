"""
chip8disasm - CHIP-8 Disassembler Command-Line Interface
========================================================

This module implements the command-line interface for the CHIP-8
disassembler. Each 16-bit word is listed with its address, raw bytes and
mnemonic; words that are not valid instructions are listed as DW
directives, and a trailing odd byte as DB.

Usage Examples
--------------
Disassemble a ROM (addresses start at $200):
    $ chip8disasm pong.ch8

Limit number of instructions:
    $ chip8disasm pong.ch8 --count 20

Start listing at another address:
    $ chip8disasm overlay.bin --address 0x600

Output to file:
    $ chip8disasm pong.ch8 -o pong.lst

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

from pathlib import Path
from typing import Optional

import click

from chip8_emu import __version__
from chip8_emu.cli.errors import ExitCode, handle_cli_exception
from chip8_emu.emulator.decode import disassemble_bytes
from chip8_emu.emulator.memory import MEMORY_SIZE


def parse_address(text: str) -> int:
    """Parse an address given as 0x hex, $ hex or decimal."""
    try:
        if text.lower().startswith("0x"):
            value = int(text, 16)
        elif text.startswith("$"):
            value = int(text[1:], 16)
        else:
            value = int(text)
    except ValueError:
        raise click.BadParameter(f"Invalid address '{text}'", param_hint="--address")

    if not 0 <= value < MEMORY_SIZE:
        raise click.BadParameter(
            f"Address must be 0-{MEMORY_SIZE - 1} (0x000-0x{MEMORY_SIZE - 1:03X})",
            param_hint="--address",
        )
    return value


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file (default: stdout)",
)
@click.option(
    "-a", "--address",
    type=str,
    default="0x200",
    help="Address of the first byte (hex with 0x prefix or decimal). Default: 0x200",
)
@click.option(
    "-c", "--count",
    type=click.IntRange(min=0),
    default=None,
    help="Maximum number of instructions to disassemble (default: all)",
)
@click.option(
    "--no-bytes",
    is_flag=True,
    help="Omit raw bytes from output (show only mnemonic and operands)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="chip8disasm")
def main(
    input_file: Path,
    output: Optional[Path],
    address: str,
    count: Optional[int],
    no_bytes: bool,
    verbose: bool,
) -> None:
    """
    Disassemble a CHIP-8 ROM image.

    INPUT_FILE is the raw program image.

    Examples:

        # Disassemble a whole ROM
        chip8disasm pong.ch8

        # First 20 instructions to a file
        chip8disasm pong.ch8 --count 20 -o pong.lst
    """
    try:
        base_address = parse_address(address)
        data = input_file.read_bytes()
    except Exception as e:
        handle_cli_exception(e, verbose=verbose)

    if len(data) == 0:
        click.echo(f"Error: {input_file} is empty", err=True)
        raise SystemExit(ExitCode.EMULATION_ERROR)

    if verbose:
        click.echo(f"Input file: {input_file} ({len(data)} bytes)", err=True)
        click.echo(f"Base address: ${base_address:04X}", err=True)

    # Header
    output_lines = [
        f"; Disassembly of {input_file.name}",
        f"; Size: {len(data)} bytes",
        f"; Base address: ${base_address:04X}",
        "",
    ]

    instructions = disassemble_bytes(data, start_address=base_address, count=count)
    for instr in instructions:
        if no_bytes:
            output_lines.append(f"${instr.address:04X}: {instr.text}")
        else:
            output_lines.append(str(instr))

    result = "\n".join(output_lines) + "\n"

    if output:
        try:
            output.write_text(result, encoding="utf-8")
        except Exception as e:
            handle_cli_exception(e, verbose=verbose)
        if verbose:
            click.echo(f"Output written to: {output}", err=True)
    else:
        click.echo(result, nl=False)

    if verbose:
        invalid = sum(1 for instr in instructions if not instr.valid)
        click.echo(
            f"Instructions disassembled: {len(instructions)} ({invalid} invalid)",
            err=True,
        )


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    main()
