"""
Console Host Implementations
============================

Minimal DisplayOutput and AudioOutput implementations for running without
a window or sound device: the CLI and the test suite use these.

TerminalDisplay keeps the latest frame and can echo it as text.
SilentAudio only counts tone events.

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

import logging
from typing import Optional

import click

from chip8_emu.emulator.display import BUFFER_SIZE, render_text

logger = logging.getLogger(__name__)


class TerminalDisplay:
    """
    DisplayOutput that records frames and optionally prints them.

    Attributes:
        frame: Last presented packed buffer (all clear before the first)
        present_count: Number of present() calls received
    """

    def __init__(self, echo: bool = False, on: str = "#", off: str = "."):
        """
        Args:
            echo: Print every presented frame to stdout
            on: Character for set pixels
            off: Character for clear pixels
        """
        self.echo = echo
        self.on = on
        self.off = off
        self.frame = bytes(BUFFER_SIZE)
        self.present_count = 0

    def present(self, buffer: bytes) -> None:
        self.frame = bytes(buffer)
        self.present_count += 1
        if self.echo:
            click.echo(self.text)
            click.echo()

    @property
    def text(self) -> str:
        """The last frame rendered as text."""
        return render_text(self.frame, on=self.on, off=self.off)


class SilentAudio:
    """AudioOutput that produces no sound."""

    def __init__(self) -> None:
        self.tones_played = 0
        self.tones_stopped = 0
        self._last_event: Optional[str] = None

    @property
    def is_playing(self) -> bool:
        return self._last_event == "play"

    def play_tone(self) -> None:
        if self._last_event != "play":
            logger.debug("Tone on")
        self.tones_played += 1
        self._last_event = "play"

    def stop_tone(self) -> None:
        logger.debug("Tone off")
        self.tones_stopped += 1
        self._last_event = "stop"
