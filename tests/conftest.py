"""Pytest configuration and fixtures."""

import io
import os
import sys

import pytest
import structlog

from podmod.BUILDERS.cli_builder import CliParts
from podmod.RUNNERS.run_context import RunContext

FIXTURES_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "fixtures")
FAKE_PODMAN = os.path.join(FIXTURES_DIR, "fake_podman.py")


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any structlog configuration a test (or the CLI) applied."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def manifest_path():
    """Resolve a manifest under tests/fixtures/manifests."""
    def _path(name):
        return os.path.join(FIXTURES_DIR, "manifests", name)
    return _path


@pytest.fixture
def fake_runtime():
    """Builder defaults that run the fake runtime through this interpreter."""
    return CliParts(path=sys.executable, cmd=FAKE_PODMAN)


@pytest.fixture
def run_ctx():
    return RunContext(out=io.StringIO(), err=io.StringIO())
