"""
Keypad Unit Tests
=================

Tests for key name parsing and the in-memory Keyboard InputSource.

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

import pytest
from chip8_emu.emulator import Keyboard, parse_key
from chip8_emu.emulator.keyboard import DEFAULT_HOST_KEYS, HOST_KEY_TO_KEYPAD


# =============================================================================
# Key Name Tests
# =============================================================================

class TestParseKey:
    """Test key name resolution."""

    @pytest.mark.parametrize("name,value", [
        (0, 0),
        (15, 15),
        ("0", 0),
        ("9", 9),
        ("a", 10),
        ("F", 15),
        ("0xC", 12),
        ("KEY_X", 0),
        ("KEY_1", 1),
        ("KEY_Q", 4),
        ("key_w", 5),
        ("KEY_4", 0xC),
        ("KEY_V", 0xF),
    ])
    def test_valid(self, name, value):
        assert parse_key(name) == value

    @pytest.mark.parametrize("name", [16, -1, "G", "KEY_P", "", "0x10", "AB"])
    def test_invalid(self, name):
        with pytest.raises(ValueError):
            parse_key(name)

    def test_host_layout_covers_keypad(self):
        assert len(DEFAULT_HOST_KEYS) == 16
        assert sorted(HOST_KEY_TO_KEYPAD.values()) == list(range(16))


# =============================================================================
# Keyboard Tests
# =============================================================================

class TestKeyboard:
    """Test pressing, releasing and polling keys."""

    def test_initially_idle(self):
        kb = Keyboard()
        assert kb.any_key_down() is None
        assert kb.is_key_down(0) is False
        assert kb.should_quit() is False

    def test_key_down_and_up(self):
        kb = Keyboard()
        kb.key_down("B")
        assert kb.is_key_down(0xB) is True
        assert kb.is_key_down(0xB) is True
        kb.key_up(0xB)
        assert kb.is_key_down(0xB) is False

    def test_key_up_when_not_down(self):
        kb = Keyboard()
        kb.key_up(3)
        assert kb.pressed_keys == set()

    def test_any_key_down_is_lowest(self):
        kb = Keyboard()
        kb.key_down(9)
        kb.key_down(4)
        kb.key_down("KEY_V")
        assert kb.any_key_down() == 4

    def test_tap_is_seen_once(self):
        """A tapped key reads as down for a single poll."""
        kb = Keyboard()
        kb.tap(6)
        assert kb.pressed_keys == {6}
        assert kb.any_key_down() == 6
        assert kb.any_key_down() is None

        kb.tap(2)
        assert kb.is_key_down(2) is True
        assert kb.is_key_down(2) is False

    def test_release_all(self):
        kb = Keyboard()
        kb.key_down(1)
        kb.tap(2)
        kb.release_all()
        assert kb.any_key_down() is None

    def test_quit(self):
        kb = Keyboard()
        kb.request_quit()
        assert kb.should_quit() is True

    def test_reset(self):
        kb = Keyboard()
        kb.key_down(1)
        kb.request_quit()
        kb.reset()
        assert kb.pressed_keys == set()
        assert kb.should_quit() is False

    def test_invalid_key_rejected(self):
        kb = Keyboard()
        with pytest.raises(ValueError):
            kb.key_down(16)
        with pytest.raises(ValueError):
            kb.tap("Z")
