"""Pytest configuration for test isolation.

The database client keeps a process-wide engine bound to one URL, and both
the settings loader and the CLI read ``DEDUP_*``/``DATABASE_URL`` from the
environment (and from a ``.env`` in the working directory). To keep tests
hermetic, every test starts with no bound engine, a scrubbed environment and
its own temporary working directory.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

import pytest
from db.client import reset_engine

from transaction_dedup import logging_setup


@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Drop dedup settings from the environment and run inside ``tmp_path``."""

    for name in list(os.environ):
        if name.startswith("DEDUP_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.chdir(tmp_path)

    # The CLI configures package logging process-wide; undo it per test.
    pkg_logger = logging.getLogger("transaction_dedup")
    saved_logger = (list(pkg_logger.handlers), pkg_logger.level, pkg_logger.propagate)
    monkeypatch.setattr(logging_setup, "_CONFIGURED", logging_setup._CONFIGURED)

    reset_engine()
    yield
    reset_engine()

    pkg_logger.handlers[:] = saved_logger[0]
    pkg_logger.setLevel(saved_logger[1])
    pkg_logger.propagate = saved_logger[2]


@pytest.fixture()
def db_url(tmp_path: Path) -> str:
    """A freshly created SQLite database with the ledger schema."""

    from tests.helpers.db import bootstrap_sqlite_db

    return bootstrap_sqlite_db(tmp_path / "dedup.db")
