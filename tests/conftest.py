"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages.
"""

import logging
import sys
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog

# Insert local src directory at the beginning of sys.path
# This ensures that the local sqlshaman package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from sqlshaman.core.logging import ListShamanLogger  # noqa: E402


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Scratch directory for database files."""
    return tmp_path


@pytest.fixture
def sqlite_url(temp_dir: Path) -> str:
    """URL of a not-yet-created SQLite file database."""
    return f"sqlite:///{temp_dir / 'shaman.db'}"


@pytest.fixture
def sink() -> ListShamanLogger:
    return ListShamanLogger()


@pytest.fixture(autouse=True)
def _reset_structlog() -> Generator[None, None, None]:
    yield
    structlog.reset_defaults()


@pytest.fixture
def restore_logging() -> Generator[None, None, None]:
    """Undo root handler and level changes made by configure_logging."""
    root = logging.getLogger()
    engine_logger = logging.getLogger("sqlalchemy.engine")
    handlers, level, engine_level = root.handlers[:], root.level, engine_logger.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    engine_logger.setLevel(engine_level)
