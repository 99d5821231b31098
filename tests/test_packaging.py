"""
Packaging Tests
===============

Checks on the installed package: every module compiles cleanly with
warnings treated as errors, and the project metadata points at real
entry points.

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

import importlib
import warnings
from pathlib import Path

import pytest

import chip8_emu

PACKAGE_DIR = Path(chip8_emu.__file__).parent
PYPROJECT = Path(__file__).parent.parent / "pyproject.toml"


def package_modules():
    return sorted(PACKAGE_DIR.rglob("*.py"))


# =============================================================================
# Source Tests
# =============================================================================

class TestModuleSource:
    """Compile every module with warnings as errors."""

    @pytest.mark.parametrize("path", package_modules(), ids=lambda p: p.name)
    def test_compiles_without_warnings(self, path):
        source = path.read_text(encoding="utf-8")
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            compile(source, str(path), "exec")


# =============================================================================
# Metadata Tests
# =============================================================================

@pytest.mark.skipif(not PYPROJECT.exists(), reason="source checkout only")
class TestProjectMetadata:
    """Check pyproject.toml against the package."""

    def test_console_scripts_resolve(self):
        scripts = [
            line.split("=", 1)[1].strip().strip('"')
            for line in PYPROJECT.read_text(encoding="utf-8").splitlines()
            if line.startswith("chip8")
        ]
        assert len(scripts) == 2
        for target in scripts:
            module_name, func_name = target.split(":")
            module = importlib.import_module(module_name)
            assert callable(getattr(module, func_name))

    def test_no_long_description_file(self):
        """The package ships without a readme; none is declared."""
        lines = PYPROJECT.read_text(encoding="utf-8").splitlines()
        assert not any(line.startswith("readme") for line in lines)
