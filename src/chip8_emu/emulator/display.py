"""
Monochrome Framebuffer for the CHIP-8 Emulator
==============================================

The CHIP-8 display is 64 x 32 pixels, one bit per pixel. The buffer is
stored packed: 8 bytes per row, 32 rows, row-major. Within a byte the most
significant bit is the leftmost pixel.

    byte index = y * 8 + x // 8
    bit mask   = 0x80 >> (x % 8)

Sprites are 8 pixels wide and 1-15 rows tall. They are XORed into the
buffer; a pixel that goes from set to clear is a collision, which the
processor reports in VF.

Sprites at byte-aligned x positions touch one byte per row. Sprites at
any other x straddle two adjacent bytes, so each sprite row is compared
against an 8-bit window assembled from the right part of the left byte
and the left part of the right byte:

    offset = 3
    left byte   [ . . . a b c d e ]   <- low_mask  keeps a..e
    right byte  [ f g h . . . . . ]   <- high_mask keeps f..h
    window      [ a b c d e f g h ]

The sprite row is XORed with the window, and the result is split back
across the two bytes, leaving the untouched outer bits in place.

The buffer never wraps. A sprite that runs past the right or bottom edge
raises DisplayBoundsError before anything is modified.

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

import io
import logging
from typing import Iterable, List, Optional, Protocol, Tuple

from PIL import Image

from chip8_emu.errors import DisplayBoundsError

logger = logging.getLogger(__name__)


SCREEN_WIDTH = 64
SCREEN_HEIGHT = 32
BYTES_PER_ROW = SCREEN_WIDTH // 8
BUFFER_SIZE = BYTES_PER_ROW * SCREEN_HEIGHT


class DisplayOutput(Protocol):
    """
    Protocol for whatever shows the framebuffer to the user.

    present() receives an immutable copy of the packed buffer every time
    its content changes.
    """

    def present(self, buffer: bytes) -> None:
        """Show a packed 64x32 frame (256 bytes)."""
        ...


def unpack_pixels(buffer: bytes) -> List[List[bool]]:
    """
    Expand a packed buffer into rows of booleans.

    Returns:
        SCREEN_HEIGHT rows of SCREEN_WIDTH pixels each
    """
    rows = []
    for y in range(SCREEN_HEIGHT):
        row = []
        for col in range(BYTES_PER_ROW):
            packed = buffer[y * BYTES_PER_ROW + col]
            for bit in range(8):
                row.append(bool(packed & (0x80 >> bit)))
        rows.append(row)
    return rows


def render_text(buffer: bytes, on: str = "#", off: str = ".") -> str:
    """
    Render a packed buffer as text, one line per pixel row.

    Example:
        >>> print(render_text(fb.pixels, on="1", off="0").splitlines()[0])
        1111000000000000000000000000000000000000000000000000000000000000
    """
    return "\n".join(
        "".join(on if pixel else off for pixel in row)
        for row in unpack_pixels(buffer)
    )


def render_image(
    buffer: bytes,
    scale: int = 8,
    ink: int = 255,
    paper: int = 0,
) -> bytes:
    """
    Render a packed buffer as a PNG image.

    Args:
        buffer: Packed 256-byte frame
        scale: Pixel scale factor (default 8, giving 512x256)
        ink: Grayscale value for set pixels
        paper: Grayscale value for clear pixels

    Returns:
        PNG image bytes
    """
    if scale < 1:
        raise ValueError(f"scale must be at least 1, got {scale}")

    # 1-bit image straight from the packed buffer (MSB = leftmost pixel)
    mono = Image.frombytes("1", (SCREEN_WIDTH, SCREEN_HEIGHT), bytes(buffer))
    img = mono.convert("L").point(lambda v: ink if v else paper)
    if scale != 1:
        img = img.resize(
            (SCREEN_WIDTH * scale, SCREEN_HEIGHT * scale), Image.Resampling.NEAREST
        )

    out = io.BytesIO()
    img.save(out, format="PNG")
    return out.getvalue()


class FrameBuffer:
    """
    Packed 64x32 monochrome framebuffer with XOR sprite compositing.

    The processor's draw instruction is the only caller of composite().
    Every change is forwarded to the display collaborator.

    Example:
        >>> fb = FrameBuffer()
        >>> fb.composite(0, 0, [0xF0, 0x10, 0x20, 0x40, 0x40])
        False
        >>> fb.composite(0, 0, [0xF0, 0x10, 0x20, 0x40, 0x40])
        True
    """

    def __init__(self, display: Optional[DisplayOutput] = None):
        """
        Initialize an all-clear framebuffer.

        Args:
            display: Collaborator notified with the buffer on every change
        """
        self._display = display
        self._pixels = bytearray(BUFFER_SIZE)

    @property
    def pixels(self) -> bytes:
        """Copy of the packed buffer."""
        return bytes(self._pixels)

    def pixel(self, x: int, y: int) -> bool:
        """State of the pixel at (x, y)."""
        return bool(self._pixels[y * BYTES_PER_ROW + x // 8] & (0x80 >> (x % 8)))

    def _present(self) -> None:
        if self._display is not None:
            self._display.present(bytes(self._pixels))

    # =========================================================================
    # Drawing
    # =========================================================================

    def clear(self) -> None:
        """Clear every pixel and redraw."""
        self._pixels[:] = bytes(BUFFER_SIZE)
        self._present()

    def composite(self, x: int, y: int, sprite_rows: Iterable[int]) -> bool:
        """
        XOR a sprite into the buffer.

        Args:
            x: Left pixel column (0-63)
            y: Top pixel row (0-31)
            sprite_rows: One byte per sprite row, MSB leftmost

        Returns:
            True if any pixel went from set to clear

        Raises:
            DisplayBoundsError: If the sprite does not fit inside the buffer
        """
        rows = bytes(sprite_rows)
        offset = x % 8

        # An unaligned sprite also needs the byte to the right of x//8
        if x < 0 or y < 0 or x + 8 > SCREEN_WIDTH or y + len(rows) > SCREEN_HEIGHT:
            raise DisplayBoundsError(x, y, len(rows))

        logger.debug(f"Sprite at ({x}, {y}) with {len(rows)} rows")

        if offset == 0:
            collided, changed = self._composite_aligned(x, y, rows)
        else:
            collided, changed = self._composite_unaligned(x, y, rows, offset)

        if changed:
            self._present()
        return collided

    def _composite_aligned(self, x: int, y: int, rows: bytes) -> Tuple[bool, bool]:
        collided = False
        changed = False
        column = x // 8
        for row_index, row_pixels in enumerate(rows):
            pos = (y + row_index) * BYTES_PER_ROW + column

            cur_pixels = self._pixels[pos]
            next_pixels = cur_pixels ^ row_pixels

            if cur_pixels != next_pixels:
                self._pixels[pos] = next_pixels
                collided = collided or (cur_pixels & ~next_pixels & 0xFF) != 0
                changed = True
        return collided, changed

    def _composite_unaligned(self, x: int, y: int, rows: bytes, offset: int) -> Tuple[bool, bool]:
        collided = False
        changed = False
        column = x // 8
        high_mask = (0xFF << (8 - offset)) & 0xFF
        low_mask = ~high_mask & 0xFF
        for row_index, row_pixels in enumerate(rows):
            pos = (y + row_index) * BYTES_PER_ROW + column

            left_packet = self._pixels[pos]
            right_packet = self._pixels[pos + 1]

            top_bits = ((left_packet & low_mask) << offset) & 0xFF
            bottom_bits = (right_packet & high_mask) >> (8 - offset)
            cur_pixels = top_bits | bottom_bits

            next_pixels = cur_pixels ^ row_pixels

            if cur_pixels != next_pixels:
                self._pixels[pos] = (next_pixels >> offset) | (left_packet & high_mask)
                self._pixels[pos + 1] = (
                    ((next_pixels << (8 - offset)) & 0xFF) | (right_packet & low_mask)
                )
                collided = collided or (cur_pixels & ~next_pixels & 0xFF) != 0
                changed = True
        return collided, changed

    # =========================================================================
    # Rendering
    # =========================================================================

    def render_text(self, on: str = "#", off: str = ".") -> str:
        """Render the current frame as text."""
        return render_text(self._pixels, on=on, off=off)

    def render_image(self, scale: int = 8) -> bytes:
        """Render the current frame as PNG bytes."""
        return render_image(self._pixels, scale=scale)

    def __repr__(self) -> str:
        lit = sum(bin(b).count("1") for b in self._pixels)
        return f"FrameBuffer({SCREEN_WIDTH}x{SCREEN_HEIGHT}, lit={lit})"
