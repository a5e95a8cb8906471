"""Shared test fixtures and utilities."""

from pathlib import Path
import pytest

from mnemos.repository import Repository


class FakeClock:
    """Deterministic nanosecond clock; each call advances by one second."""

    def __init__(self, start_ns: int = 1_700_000_000_000_000_000):
        self.now = start_ns

    def __call__(self) -> int:
        value = self.now
        self.now += 1_000_000_000
        return value


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def repo(tmp_path, monkeypatch, clock):
    """An initialized repository in tmp_path, with cwd set to it."""
    monkeypatch.chdir(tmp_path)
    return Repository.init(tmp_path, clock=clock)


@pytest.fixture
def write_file(tmp_path):
    """Factory fixture to write files relative to tmp_path."""
    def _write(path: str, content="test content"):
        file_path = tmp_path / path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            file_path.write_bytes(content)
        else:
            file_path.write_text(content)
        return file_path
    return _write


@pytest.fixture
def test_files(write_file):
    """Create common test files in tmp_path."""
    def make_files():
        return {
            "file1.txt": write_file("file1.txt", "content1"),
            "file2.txt": write_file("file2.txt", "content2"),
            "src/main.py": write_file("src/main.py", "print('hello')"),
            "data/data.csv": write_file("data/data.csv", "a,b,c\n1,2,3"),
        }
    return make_files


def read(path: Path) -> str:
    return Path(path).read_text()
