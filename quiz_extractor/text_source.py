"""
Text Source
===========
Loads document text for the extractor. PDF files are read page by page
with PyMuPDF (fitz) and joined with page sentinel lines; anything else is
read as UTF-8 text.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)

PAGE_SENTINEL = "=== Page {number} ==="


def page_sentinel(number: int) -> str:
    return PAGE_SENTINEL.format(number=number)


def extract_pdf_text(pdf_path: Union[str, Path]) -> str:
    """
    Read every page of a PDF as plain text.

    Pages are emitted in order, each preceded by its sentinel line so
    that page numbers survive into the extracted questions.
    """
    parts: list[str] = []
    with fitz.open(str(pdf_path)) as doc:
        logger.info(f"Reading {doc.page_count} pages from {Path(pdf_path).name}")
        for page_num, page in enumerate(doc, start=1):
            parts.append(page_sentinel(page_num))
            parts.append(page.get_text("text").rstrip("\n"))
    return "\n".join(parts) + "\n"


def extract_text(path: Union[str, Path]) -> str:
    """
    Return the text of a question or answer document.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Document not found: {path}")

    if path.suffix.lower() == ".pdf":
        return extract_pdf_text(path)

    logger.debug(f"Reading text file {path.name}")
    return path.read_text(encoding="utf-8")
