"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages.
"""

import shutil
import sys
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local les package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from les.index.models import Entry  # noqa: E402
from les.index.ops import Index  # noqa: E402


@pytest.fixture
def sample_entries() -> list[Entry]:
    """Three-entry index used by the query scenarios."""
    return [
        Entry(path="/a/b.txt", is_dir=False, size=100, mtime=1000),
        Entry(path="/a/c.log", is_dir=False, size=50, mtime=2000),
        Entry(path="/a", is_dir=True, size=0, mtime=500),
    ]


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    """Small directory tree under tmp_path/root.

    root/
        docs/
            readme.md   ("hello index")
            notes.txt   ("todo: nothing")
        src/
            main.py     ("print('hello')")
        empty/
    """
    root = tmp_path / "root"
    (root / "docs").mkdir(parents=True)
    (root / "src").mkdir()
    (root / "empty").mkdir()
    (root / "docs" / "readme.md").write_text("hello index")
    (root / "docs" / "notes.txt").write_text("todo: nothing")
    (root / "src" / "main.py").write_text("print('hello')")
    return root


@pytest.fixture
def index(tmp_path: Path) -> Generator[Index, None, None]:
    """Empty index whose store lives in tmp_path.

    The built-in skip list covers /tmp, where pytest puts tmp_path, so it is
    disabled here.
    """
    idx = Index.open(tmp_path / "db", skip_prefixes=(), map_size=64 * 1024 * 1024)
    yield idx
    idx.close()


@pytest.fixture
def socket_path() -> Generator[str, None, None]:
    """Short socket path; AF_UNIX paths are limited to about 108 bytes."""
    short_dir = tempfile.mkdtemp(prefix="les-")
    yield str(Path(short_dir) / "d.sock")
    shutil.rmtree(short_dir, ignore_errors=True)
