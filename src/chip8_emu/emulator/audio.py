"""
Sound Timer for the CHIP-8 Emulator
===================================

The CHIP-8 has a single buzzer controlled by an 8-bit sound timer. While
the timer is non-zero the tone plays; the processor's 60 Hz tick counts it
down. The tone itself is produced by an AudioOutput collaborator.

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

import logging
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class AudioOutput(Protocol):
    """Protocol for the host's tone generator."""

    def play_tone(self) -> None:
        """Called once per 60 Hz tick while the sound timer is running."""
        ...

    def stop_tone(self) -> None:
        """Called on the tick the sound timer reaches zero."""
        ...


class AudioTimer:
    """
    Sound timer driving an AudioOutput.

    Example:
        >>> timer = AudioTimer(output)
        >>> timer.set(2)
        >>> timer.tick()   # play_tone()
        >>> timer.tick()   # play_tone(), stop_tone()
        >>> timer.value
        0
    """

    def __init__(self, output: Optional[AudioOutput] = None):
        self._output = output
        self._time = 0

    @property
    def value(self) -> int:
        """Remaining ticks (0-255)."""
        return self._time

    @property
    def is_playing(self) -> bool:
        return self._time != 0

    def set(self, value: int) -> None:
        """
        Load the timer with an 8-bit tick count.

        Loading zero while the tone is playing stops it immediately.
        """
        was_playing = self._time != 0
        self._time = value & 0xFF
        if was_playing and self._time == 0:
            logger.debug("Sound timer cleared")
            if self._output is not None:
                self._output.stop_tone()

    def tick(self) -> None:
        """Advance one 60 Hz step."""
        if self._time == 0:
            return
        if self._output is not None:
            self._output.play_tone()
        self._time -= 1
        if self._time == 0:
            logger.debug("Sound timer expired")
            if self._output is not None:
                self._output.stop_tone()

    def reset(self) -> None:
        """Silence the buzzer and zero the timer."""
        was_playing = self._time != 0
        self._time = 0
        if was_playing and self._output is not None:
            self._output.stop_tone()
