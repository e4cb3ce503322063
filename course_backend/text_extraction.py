"""Plain-text extraction for uploaded course materials."""

from __future__ import annotations

import io
from pathlib import PurePath

SUPPORTED_EXTENSIONS = frozenset({".docx", ".md", ".pdf", ".html", ".htm", ".txt"})


def file_extension(file_name: str) -> str:
    return PurePath(file_name).suffix.lower()


def extract_text(file_name: str, data: bytes) -> str:
    """Extract plain text from an uploaded file's bytes.

    Supports: PDF, DOCX, HTML, TXT, MD.
    """
    ext = file_extension(file_name)

    if ext == ".docx":
        from docx import Document
        doc = Document(io.BytesIO(data))
        return "\n".join(p.text for p in doc.paragraphs if p.text.strip())

    elif ext == ".pdf":
        import fitz  # PyMuPDF
        with fitz.open(stream=data, filetype="pdf") as pdf:
            return "\n".join(page.get_text() for page in pdf)

    elif ext in (".html", ".htm"):
        from bs4 import BeautifulSoup
        soup = BeautifulSoup(data, "html.parser")
        return soup.get_text(separator="\n", strip=True)

    elif ext in (".txt", ".md"):
        return data.decode("utf-8", errors="ignore")

    else:
        raise ValueError(f"Unsupported file type for text extraction: {ext or file_name}")
