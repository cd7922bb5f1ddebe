"""
Shared pytest fixtures for Drive Cleaner tests.

Contains:
- PYTHONPATH setup (repo root, so `agents.*`, `config.*`, `tests.helpers.*` import)
- In-memory store and configuration fixtures
"""

import sys
from pathlib import Path

import pytest

# ==========================================
# PYTHONPATH Setup
# ==========================================

repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from agents.src.agents.drive_cleaner.budget import ExecutionBudget  # noqa: E402
from agents.src.agents.drive_cleaner.models import CleanerConfig  # noqa: E402
from tests.helpers.fake_drive_store import FakeDriveStore, at  # noqa: E402


# ==========================================
# Store / config fixtures
# ==========================================


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def store():
    """Empty in-memory store."""
    return FakeDriveStore()


@pytest.fixture
def make_config():
    """Factory: live-mode config with a single root, overridable."""

    def _make(**overrides) -> CleanerConfig:
        settings = {"root_folder_ids": ["root"], "dry_run": False}
        settings.update(overrides)
        return CleanerConfig(**settings)

    return _make


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def budget(fake_clock):
    """Generous budget on a frozen clock."""
    return ExecutionBudget(300, monotonic=fake_clock)


@pytest.fixture
def wall_clock():
    """Wall clock pinned 10 days after T0."""
    return lambda: at(24 * 10)
