"""Shared pytest configuration for the Alfred test suite."""

import sys
from pathlib import Path

import pytest


def pytest_configure(config: pytest.Config) -> None:
    """Register platform markers."""
    config.addinivalue_line(
        "markers", "windows_mock: mocks Windows process handling (runs everywhere)"
    )
    config.addinivalue_line("markers", "unix_only: needs real Unix processes or a pty")


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Skip unix_only tests on Windows."""
    if sys.platform != "win32":
        return
    skip_unix = pytest.mark.skip(reason="Unix-only test")
    for item in items:
        if "unix_only" in item.keywords:
            item.add_marker(skip_unix)


@pytest.fixture(autouse=True)
def isolated_alfred_home(
    tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
) -> Path:
    """Keep every test away from the real ~/.alfred and the caller's env."""
    home = tmp_path_factory.mktemp("alfred-home")
    monkeypatch.setenv("ALFRED_HOME", str(home))
    for name in (
        "ALFRED_SYSTEM_MD",
        "ALFRED_MODEL",
        "ALFRED_MAX_TOKENS",
        "ALFRED_MAX_TURNS",
        "ALFRED_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return home
