import os
import sys

import pytest

# Ensure src/ is on sys.path so 'pipepool' is importable without installing
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
SRC = os.path.join(ROOT, 'src')
if SRC not in sys.path:
    sys.path.insert(0, SRC)

PROC_FD_DIR = '/proc/self/fd'


def open_fd_count() -> int:
    return len(os.listdir(PROC_FD_DIR))


@pytest.fixture
def fd_counter():
    """Returns a callable giving the number of open descriptors of this process."""
    if not os.path.isdir(PROC_FD_DIR):
        pytest.skip("descriptor counting needs /proc/self/fd")
    return open_fd_count


@pytest.fixture
def py():
    """Build an argv running a Python snippet in a fresh interpreter."""
    def _argv(code: str):
        return [sys.executable, '-c', code]
    return _argv


@pytest.fixture(autouse=True)
def clean_pipepool_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith('PIPEPOOL_'):
            monkeypatch.delenv(name, raising=False)
