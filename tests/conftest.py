import itertools

import pytest

from luaguard.core.config import GuardConfig


@pytest.fixture
def config():
    return GuardConfig()


@pytest.fixture
def clock():
    """Deterministic timestamps: 1000.0, 1001.0, ..."""
    counter = itertools.count(1000)
    return lambda: float(next(counter))


@pytest.fixture
def workspace(tmp_path):
    (tmp_path / "main.lua").write_text(
        "local function greet(name)\n"
        "  print(\"hello \" .. name)\n"
        "end\n",
        encoding="utf-8",
    )
    return tmp_path
