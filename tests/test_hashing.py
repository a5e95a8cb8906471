"""Tests for hashing module."""

import hashlib

import pytest

from mnemos.hashing import (
    compute_file_digest,
    digest_bytes,
    digest_chunks,
    is_valid_digest,
    validate_digest,
)


class TestDigests:
    """Test byte and chunk digests."""

    def test_digest_format(self):
        digest = digest_bytes(b"hello\n")
        assert digest == "sha256:" + hashlib.sha256(b"hello\n").hexdigest()
        assert len(digest) == 71  # "sha256:" (7) + 64 hex chars

    def test_identical_content_identical_digest(self):
        assert digest_bytes(b"same") == digest_bytes(b"same")
        assert digest_bytes(b"same") != digest_bytes(b"Same")

    def test_chunk_boundaries_do_not_matter(self):
        """Folding chunks must equal hashing the concatenation."""
        data = b"abcdefghijklmnopqrstuvwxyz" * 100
        whole = digest_bytes(data)
        assert digest_chunks([data]) == whole
        assert digest_chunks([data[:1], data[1:7], data[7:]]) == whole
        assert digest_chunks(data[i:i + 3] for i in range(0, len(data), 3)) == whole

    def test_empty_input(self):
        assert digest_chunks([]) == digest_bytes(b"")


class TestFileHashing:
    """Test file-based hashing."""

    def test_file_hash_detects_changes(self, tmp_path):
        """File hash should detect any byte changes."""
        f = tmp_path / "test.py"
        f.write_text("def foo():\n    return 42")
        hash1 = compute_file_digest(f)

        f.write_text("def foo():\n    return 43")
        hash2 = compute_file_digest(f)

        assert hash1 != hash2

    def test_file_hash_matches_bytes(self, tmp_path):
        f = tmp_path / "data.bin"
        f.write_bytes(b"\x00\x01\x02" * 5000)
        assert compute_file_digest(f) == digest_bytes(b"\x00\x01\x02" * 5000)
        assert compute_file_digest(f, chunk_size=7) == compute_file_digest(f)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            compute_file_digest(tmp_path / "nope")


class TestValidation:
    """Digest validation guards object names."""

    def test_valid(self):
        hex_part = "a" * 64
        assert validate_digest(f"sha256:{hex_part}") == hex_part
        assert is_valid_digest(f"sha256:{hex_part}")

    @pytest.mark.parametrize("bad", [
        "md5:" + "a" * 64,
        "sha256:" + "a" * 63,
        "sha256:" + "g" * 64,
        "sha256:../../etc/passwd",
        "a" * 64,
        "",
    ])
    def test_invalid(self, bad):
        with pytest.raises(ValueError):
            validate_digest(bad)
        assert not is_valid_digest(bad)
