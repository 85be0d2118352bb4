# tests/conftest.py
import sys
from pathlib import Path

import pytest

# Add project root to sys.path so the top-level modules can be imported in tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from board import Board  # noqa: E402


@pytest.fixture
def board4():
    """4x4 board with the standard 2x2 boxes."""
    return Board(4)


@pytest.fixture
def open_board4():
    """4x4 board with rows and columns only."""
    return Board(4, regions=[])
