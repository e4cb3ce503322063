"""Tests for chunking and text extraction helpers."""

from __future__ import annotations

import pytest

from course_backend.chunking import chunk_text
from course_backend.text_extraction import extract_text, file_extension


class TestChunkText:
    def test_short_text_single_chunk(self):
        assert chunk_text("hello world", chunk_size=100, overlap=10) == ["hello world"]

    def test_overlap(self):
        text = "abcdefghij" * 3  # 30 chars
        chunks = chunk_text(text, chunk_size=12, overlap=4)
        assert chunks[0] == text[:12]
        assert chunks[1] == text[8:20]
        assert chunks[-1].endswith(text[-4:])
        assert "".join(c[:8] for c in chunks[:-1]) + chunks[-1] == text

    def test_blank(self):
        assert chunk_text("  \n ") == []

    def test_bad_overlap(self):
        with pytest.raises(ValueError):
            chunk_text("abc", chunk_size=10, overlap=10)


class TestExtractText:
    def test_extension_case_insensitive(self):
        assert file_extension("Notes.PDF") == ".pdf"

    def test_plain_text(self):
        assert extract_text("a.txt", "Δv = a·t".encode()) == "Δv = a·t"

    def test_unsupported(self):
        with pytest.raises(ValueError):
            extract_text("a.pptx", b"")
