# src/portfolio_chat/ingest/loaders.py
import re
from pathlib import Path
from typing import List, Optional

PARA_SPLIT = re.compile(r"\n\s*\n")  # blank-line paragraph breaks
MIN_CHUNK_CHARS = 50
SUPPORTED = {".txt", ".md", ".pdf"}


def read_text(path: Path) -> Optional[str]:
    """Raw text of a document, or None if the type is unsupported."""
    suf = path.suffix.lower()
    if suf in {".txt", ".md"}:
        return path.read_text(encoding="utf-8", errors="ignore")
    if suf == ".pdf":
        from pypdf import PdfReader
        reader = PdfReader(str(path))
        # text PDFs only; scans come back empty
        return "\n\n".join(page.extract_text() or "" for page in reader.pages)
    return None


def split_chunks(text: str, min_chars: int = MIN_CHUNK_CHARS) -> List[str]:
    """
    Paragraph chunks longer than `min_chars`; drops page numbers, headers and
    other short noise. If nothing survives, the whole text is one chunk (when long enough).
    """
    text = text or ""
    chunks = [c.strip() for c in PARA_SPLIT.split(text) if len(c.strip()) > min_chars]
    if not chunks and len(text.strip()) > min_chars:
        chunks = [text.strip()]
    return chunks
