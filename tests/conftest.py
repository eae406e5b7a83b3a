import io
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture(autouse=True)
def isolated_log_dir(tmp_path, monkeypatch):
    """Keep log files written during tests out of the project tree."""

    monkeypatch.setenv("MEOWTION_LOG_DIR", str(tmp_path / "logs"))
    yield tmp_path / "logs"


@pytest.fixture
def png_bytes():
    """Return a factory producing small in-memory PNG images."""

    from PIL import Image

    def _make(colour=(200, 120, 40), size=(16, 16)) -> bytes:
        buffer = io.BytesIO()
        Image.new("RGB", size, colour).save(buffer, format="PNG")
        return buffer.getvalue()

    return _make


@pytest.fixture
def jpeg_bytes():
    from PIL import Image

    def _make(colour=(30, 30, 30), size=(16, 16)) -> bytes:
        buffer = io.BytesIO()
        Image.new("RGB", size, colour).save(buffer, format="JPEG")
        return buffer.getvalue()

    return _make
