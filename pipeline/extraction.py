"""
Plain-text extraction for uploaded files

Thin adapter in front of the ingestion pipeline: text-like formats are
read as UTF-8, JSON is pretty-printed, PDFs go through PyMuPDF.
"""

import json
from pathlib import Path

import fitz  # PyMuPDF

from localbot.exceptions import ExtractionFailed
from localbot.logging_config import get_logger

logger = get_logger(__name__)

TEXT_EXTENSIONS = {".txt", ".md", ".markdown", ".csv", ".xml", ".log", ".rst"}
SUPPORTED_EXTENSIONS = TEXT_EXTENSIONS | {".json", ".pdf"}


def extract_text(file_path: str) -> str:
    """
    Extract plain text from a file.

    Raises:
        ExtractionFailed: If the file is missing, unsupported, unreadable,
            or contains no text.
    """
    path = Path(file_path)
    if not path.is_file():
        raise ExtractionFailed("File not found", path=str(path))

    ext = path.suffix.lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise ExtractionFailed(f"Unsupported file type '{ext}'", path=str(path))

    logger.info("Parsing file: %s (%s)", path.name, ext)
    try:
        if ext == ".pdf":
            text = _extract_pdf(path)
        elif ext == ".json":
            text = _extract_json(path)
        else:
            text = path.read_text(encoding="utf-8", errors="replace")
    except ExtractionFailed:
        raise
    except Exception as e:
        raise ExtractionFailed("Could not read file", path=str(path), details=str(e)) from e

    if not text.strip():
        raise ExtractionFailed(path=str(path))
    return text


def _extract_pdf(path: Path) -> str:
    with fitz.open(path) as doc:
        return "\n\n".join(page.get_text() for page in doc)


def _extract_json(path: Path) -> str:
    raw = path.read_text(encoding="utf-8")
    try:
        return json.dumps(json.loads(raw), ensure_ascii=False, indent=2)
    except json.JSONDecodeError:
        return raw
