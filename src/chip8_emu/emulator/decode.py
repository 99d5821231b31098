"""
CHIP-8 Instruction Decoding
===========================

Field extraction, the ordered opcode table, and a small disassembler.

Every CHIP-8 instruction is one big-endian 16-bit word. The operand fields
sit at fixed positions regardless of the instruction:

    15   12 11    8 7     4 3     0
    +------+-------+-------+-------+
    | op   |   x   |   y   |   n   |
    +------+-------+-------+-------+
            |_____________________|  addr (nnn, 12 bits)
                    |_____________|  kk   (immediate byte)

The opcode table is ordered: the first entry whose masked pattern matches
wins. Entries are grouped by high nibble so the processor can bind them
into per-nibble buckets once at construction.

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple


# =============================================================================
# Field Extraction
# =============================================================================

def addr(instruction: int) -> int:
    """Low 12 bits: a memory address (nnn)."""
    return instruction & 0x0FFF


def acc(instruction: int) -> int:
    """Bits 8-11: the accumulator (destination) register index (x)."""
    return (instruction & 0x0F00) >> 8


def reg(instruction: int) -> int:
    """Bits 4-7: the second register operand index (y)."""
    return (instruction & 0x00F0) >> 4


def imm(instruction: int) -> int:
    """Low 8 bits: an immediate byte (kk)."""
    return instruction & 0x00FF


def nibble(instruction: int) -> int:
    """Low 4 bits (n), used as the sprite height by DRW."""
    return instruction & 0x000F


# Operand decoders turn an instruction word into the positional arguments
# of its handler.

def _no_operands(op: int) -> Tuple[int, ...]:
    return ()


def _addr_operand(op: int) -> Tuple[int, ...]:
    return (addr(op),)


def _x_operand(op: int) -> Tuple[int, ...]:
    return (acc(op),)


def _x_kk_operands(op: int) -> Tuple[int, ...]:
    return (acc(op), imm(op))


def _x_y_operands(op: int) -> Tuple[int, ...]:
    return (acc(op), reg(op))


def _x_y_n_operands(op: int) -> Tuple[int, ...]:
    return (acc(op), reg(op), nibble(op))


OperandDecoder = Callable[[int], Tuple[int, ...]]


# =============================================================================
# Opcode Table
# =============================================================================

class OpcodeSpec(NamedTuple):
    """
    One row of the opcode table.

    Attributes:
        mask: Bits that identify the instruction
        pattern: Required value of the masked bits
        handler: Name of the processor method that executes it
        operands: Decoder producing the handler's arguments
        template: Mnemonic format string (fields: addr, x, y, kk, n)
    """
    mask: int
    pattern: int
    handler: str
    operands: OperandDecoder
    template: str

    def matches(self, instruction: int) -> bool:
        return instruction & self.mask == self.pattern


OPCODE_TABLE: Tuple[OpcodeSpec, ...] = (
    # 0x0 group: full 16-bit matches
    OpcodeSpec(0xFFFF, 0x0000, "nop", _no_operands, "NOP"),
    OpcodeSpec(0xFFFF, 0x00E0, "clear_screen", _no_operands, "CLS"),
    OpcodeSpec(0xFFFF, 0x00EE, "ret", _no_operands, "RET"),

    # Flow control
    OpcodeSpec(0xF000, 0x1000, "jump", _addr_operand, "JP ${addr:03X}"),
    OpcodeSpec(0xF000, 0x2000, "call", _addr_operand, "CALL ${addr:03X}"),
    OpcodeSpec(0xF000, 0x3000, "skip_if_equal_const", _x_kk_operands, "SE V{x:X}, ${kk:02X}"),
    OpcodeSpec(0xF000, 0x4000, "skip_if_unequal_const", _x_kk_operands, "SNE V{x:X}, ${kk:02X}"),
    OpcodeSpec(0xF00F, 0x5000, "skip_if_equal_reg", _x_y_operands, "SE V{x:X}, V{y:X}"),

    # Immediate loads
    OpcodeSpec(0xF000, 0x6000, "load_const", _x_kk_operands, "LD V{x:X}, ${kk:02X}"),
    OpcodeSpec(0xF000, 0x7000, "add_const", _x_kk_operands, "ADD V{x:X}, ${kk:02X}"),

    # 0x8 group: register ALU, matched on the low nibble
    OpcodeSpec(0xF00F, 0x8000, "load_register", _x_y_operands, "LD V{x:X}, V{y:X}"),
    OpcodeSpec(0xF00F, 0x8001, "or_register", _x_y_operands, "OR V{x:X}, V{y:X}"),
    OpcodeSpec(0xF00F, 0x8002, "and_register", _x_y_operands, "AND V{x:X}, V{y:X}"),
    OpcodeSpec(0xF00F, 0x8003, "xor_register", _x_y_operands, "XOR V{x:X}, V{y:X}"),
    OpcodeSpec(0xF00F, 0x8004, "add_register", _x_y_operands, "ADD V{x:X}, V{y:X}"),
    OpcodeSpec(0xF00F, 0x8005, "sub_register", _x_y_operands, "SUB V{x:X}, V{y:X}"),
    OpcodeSpec(0xF00F, 0x8006, "right_shift_register", _x_y_operands, "SHR V{x:X}, V{y:X}"),
    OpcodeSpec(0xF00F, 0x8007, "rev_sub_register", _x_y_operands, "SUBN V{x:X}, V{y:X}"),
    OpcodeSpec(0xF00F, 0x800E, "left_shift_register", _x_y_operands, "SHL V{x:X}, V{y:X}"),

    OpcodeSpec(0xF00F, 0x9000, "skip_if_unequal_reg", _x_y_operands, "SNE V{x:X}, V{y:X}"),

    # Address pointer, computed jump, random, draw
    OpcodeSpec(0xF000, 0xA000, "load_addr_const", _addr_operand, "LD I, ${addr:03X}"),
    OpcodeSpec(0xF000, 0xB000, "add_jump_v0", _addr_operand, "JP V0, ${addr:03X}"),
    OpcodeSpec(0xF000, 0xC000, "randomize", _x_kk_operands, "RND V{x:X}, ${kk:02X}"),
    OpcodeSpec(0xF000, 0xD000, "draw_sprite", _x_y_n_operands, "DRW V{x:X}, V{y:X}, {n}"),

    # 0xE group: keypad, matched on the low byte
    OpcodeSpec(0xF0FF, 0xE09E, "skip_if_key_pressed", _x_operand, "SKP V{x:X}"),
    OpcodeSpec(0xF0FF, 0xE0A1, "skip_if_key_not_pressed", _x_operand, "SKNP V{x:X}"),

    # 0xF group: timers, keypad wait, memory transfers
    OpcodeSpec(0xF0FF, 0xF007, "load_timer", _x_operand, "LD V{x:X}, DT"),
    OpcodeSpec(0xF0FF, 0xF00A, "wait_for_key", _x_operand, "LD V{x:X}, K"),
    OpcodeSpec(0xF0FF, 0xF015, "set_timer", _x_operand, "LD DT, V{x:X}"),
    OpcodeSpec(0xF0FF, 0xF018, "set_audio", _x_operand, "LD ST, V{x:X}"),
    OpcodeSpec(0xF0FF, 0xF01E, "add_addr_reg", _x_operand, "ADD I, V{x:X}"),
    OpcodeSpec(0xF0FF, 0xF029, "set_addr_to_char", _x_operand, "LD F, V{x:X}"),
    OpcodeSpec(0xF0FF, 0xF033, "store_digits", _x_operand, "LD B, V{x:X}"),
    OpcodeSpec(0xF0FF, 0xF055, "save_registers", _x_operand, "LD [I], V{x:X}"),
    OpcodeSpec(0xF0FF, 0xF065, "restore_registers", _x_operand, "LD V{x:X}, [I]"),
)


def group_by_high_nibble(
    table: Tuple[OpcodeSpec, ...] = OPCODE_TABLE,
) -> Dict[int, List[OpcodeSpec]]:
    """
    Split the table into buckets keyed by the instruction's high nibble.

    Order inside each bucket is preserved, so first-match-wins still holds.
    """
    buckets: Dict[int, List[OpcodeSpec]] = {n: [] for n in range(16)}
    for spec in table:
        buckets[spec.pattern >> 12].append(spec)
    return buckets


_BUCKETS = group_by_high_nibble()


def match_opcode(instruction: int) -> Optional[OpcodeSpec]:
    """
    Find the table entry for an instruction word.

    Returns:
        The first matching OpcodeSpec, or None for an invalid opcode
    """
    for spec in _BUCKETS[(instruction >> 12) & 0xF]:
        if spec.matches(instruction):
            return spec
    return None


# =============================================================================
# Disassembly
# =============================================================================

@dataclass
class DisassembledInstruction:
    """
    A single disassembled CHIP-8 instruction.

    Attributes:
        address: Memory address of the instruction
        opcode: The 16-bit instruction word
        text: Mnemonic and operands, or a DW directive for invalid words
        valid: False when no table entry matched
        size: Bytes covered (1 only for a trailing odd byte)
    """
    address: int
    opcode: int
    text: str
    valid: bool = True
    size: int = 2

    def __str__(self) -> str:
        """Format as listing line: ADDRESS: BYTES  MNEMONIC OPERANDS"""
        if self.size == 1:
            hex_bytes = f"{self.opcode:02X}   "
        else:
            hex_bytes = f"{self.opcode >> 8:02X} {self.opcode & 0xFF:02X}"
        return f"${self.address:04X}: {hex_bytes}  {self.text}"


def disassemble(instruction: int) -> str:
    """
    Render one instruction word as a mnemonic.

    Example:
        >>> disassemble(0xD015)
        'DRW V0, V1, 5'
        >>> disassemble(0xFFFF)
        'DW $FFFF'
    """
    spec = match_opcode(instruction)
    if spec is None:
        return f"DW ${instruction:04X}"
    return spec.template.format(
        addr=addr(instruction),
        x=acc(instruction),
        y=reg(instruction),
        kk=imm(instruction),
        n=nibble(instruction),
    )


def disassemble_bytes(
    data: bytes,
    start_address: int = 0x200,
    count: Optional[int] = None,
) -> List[DisassembledInstruction]:
    """
    Disassemble a buffer of big-endian instruction words.

    A trailing odd byte is reported as a one-byte DB directive.

    Args:
        data: Raw program bytes
        start_address: Memory address of the first byte
        count: Maximum number of instructions (None = all)

    Returns:
        List of DisassembledInstruction objects
    """
    result: List[DisassembledInstruction] = []
    for offset in range(0, len(data), 2):
        if count is not None and len(result) >= count:
            break
        address = start_address + offset
        if offset + 1 >= len(data):
            result.append(DisassembledInstruction(
                address, data[offset], f"DB ${data[offset]:02X}", valid=False, size=1
            ))
            break
        word = (data[offset] << 8) | data[offset + 1]
        result.append(DisassembledInstruction(
            address, word, disassemble(word), valid=match_opcode(word) is not None
        ))
    return result
