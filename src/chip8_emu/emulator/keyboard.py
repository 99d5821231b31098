"""
Keypad for the CHIP-8 Emulator
==============================

The CHIP-8 has a 16-key hexadecimal keypad:

    1 2 3 C
    4 5 6 D
    7 8 9 E
    A 0 B F

The processor polls it through the InputSource protocol. Keyboard is an
in-memory implementation: callers press and release keys, and request a
quit, and the processor sees the result on its next poll.

Keys can be named three ways:
- by value (0-15)
- by hex digit ("0"-"9", "A"-"F")
- by host key, using the conventional QWERTY layout

    Host keys          Keypad
    1 2 3 4            1 2 3 C
    Q W E R     ->     4 5 6 D
    A S D F            7 8 9 E
    Z X C V            A 0 B F

Hex digit names take priority over host key names, so host keys are given
with a "KEY_" prefix ("KEY_Q" is keypad 4, "A" is keypad A).

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

from typing import Dict, Optional, Protocol, Set, Union

NUM_KEYS = 16

# =============================================================================
# HOST KEY MAPPING
# =============================================================================
# Keypad value -> host key, in keypad order 0-F.

DEFAULT_HOST_KEYS = (
    "X",
    "1", "2", "3",
    "Q", "W", "E",
    "A", "S", "D",
    "Z", "C",
    "4", "R", "F", "V",
)

HOST_KEY_TO_KEYPAD: Dict[str, int] = {
    f"KEY_{name}": value for value, name in enumerate(DEFAULT_HOST_KEYS)
}

KeyName = Union[int, str]


class InputSource(Protocol):
    """Protocol for the host's keypad and quit signal. Polled, not pushed."""

    def is_key_down(self, key: int) -> bool:
        """True if keypad key `key` (0-15) is held."""
        ...

    def any_key_down(self) -> Optional[int]:
        """A held keypad key, or None if nothing is held."""
        ...

    def should_quit(self) -> bool:
        """True once the host wants the emulator to stop."""
        ...


def parse_key(key: KeyName) -> int:
    """
    Resolve a key name to a keypad value.

    Args:
        key: Keypad value, hex digit, or "KEY_<host key>"

    Returns:
        Keypad value 0-15

    Raises:
        ValueError: If the name does not identify a keypad key
    """
    if isinstance(key, int):
        if 0 <= key < NUM_KEYS:
            return key
        raise ValueError(f"Keypad key must be 0-15, got {key}")

    name = key.strip().upper()
    if len(name) == 1 and name in "0123456789ABCDEF":
        return int(name, 16)
    if name.startswith("0X"):
        return parse_key(int(name, 16))
    if name in HOST_KEY_TO_KEYPAD:
        return HOST_KEY_TO_KEYPAD[name]
    raise ValueError(f"Unknown key: {key!r}")


class Keyboard:
    """
    In-memory keypad implementing InputSource.

    Example:
        >>> kb = Keyboard()
        >>> kb.key_down("A")
        >>> kb.is_key_down(0xA)
        True
        >>> kb.any_key_down()
        10
        >>> kb.key_up(0xA)
        >>> kb.any_key_down() is None
        True
    """

    def __init__(self) -> None:
        self._pressed: Set[int] = set()
        self._tapped: Set[int] = set()
        self._quit_requested = False

    # =========================================================================
    # Host side
    # =========================================================================

    def key_down(self, key: KeyName) -> None:
        """Press a key. It stays down until key_up() or release_all()."""
        self._pressed.add(parse_key(key))

    def key_up(self, key: KeyName) -> None:
        """Release a key. Releasing a key that is not down is a no-op."""
        self._pressed.discard(parse_key(key))

    def tap(self, key: KeyName) -> None:
        """
        Press a key for a single poll.

        The key reads as down until the processor first observes it
        through is_key_down() or any_key_down(), then it is released.
        """
        self._tapped.add(parse_key(key))

    def release_all(self) -> None:
        self._pressed.clear()
        self._tapped.clear()

    def request_quit(self) -> None:
        """Ask the driver loop to stop at the end of the current frame."""
        self._quit_requested = True

    @property
    def pressed_keys(self) -> Set[int]:
        return self._pressed | self._tapped

    # =========================================================================
    # InputSource
    # =========================================================================

    def is_key_down(self, key: int) -> bool:
        if key in self._tapped:
            self._tapped.discard(key)
            return True
        return key in self._pressed

    def any_key_down(self) -> Optional[int]:
        """Lowest-valued held key, or None."""
        held = self._pressed | self._tapped
        if not held:
            return None
        key = min(held)
        self._tapped.discard(key)
        return key

    def should_quit(self) -> bool:
        return self._quit_requested

    def reset(self) -> None:
        """Release every key and clear any pending quit request."""
        self.release_all()
        self._quit_requested = False
