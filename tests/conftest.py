"""
Pytest fixtures for webserver tests.
"""

import gzip
import sys
import tempfile
from pathlib import Path
from typing import Generator

import pytest

# Add project root to path for webserver imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def web_root(temp_dir: Path) -> Path:
    """
    Create a web root with an index page, a plain file with a .gz
    sibling, and a plain file without one.
    """
    root = temp_dir / "web"
    root.mkdir()
    (root / "index.html").write_text("<h1>index</h1>")
    (root / "index.html.gz").write_bytes(gzip.compress(b"<h1>gzipped index</h1>"))
    (root / "foo.txt").write_text("plain foo")
    (root / "foo.txt.gz").write_bytes(gzip.compress(b"gzipped foo"))
    (root / "bar.txt").write_text("plain bar")
    (root / "css").mkdir()
    (root / "css" / "site.css").write_text("body { color: red; }")
    return root


@pytest.fixture
def make_config(web_root: Path):
    """Factory for ServerConfig rooted at the test web root."""
    from webserver.configs import ServerConfig

    def _make(**overrides) -> ServerConfig:
        values = {"web_root": str(web_root)}
        values.update(overrides)
        return ServerConfig(**values)

    return _make
