# portfolio_bot/memory/loader.py

"""
Source document loader.

Architecture contract:
loader → chunker → embedder → vector_store

Supports the three fixed portfolio sources:
- plain text (.txt)  → one document
- JSON (.json)       → one document per string value
- PDF (.pdf)         → one document per page with text

A missing or unreadable file never aborts the build: it is logged
and skipped, and a placeholder document stands in when nothing loads.
"""

import json
import logging
import os
from typing import Any, Callable, Dict, Iterator, List, Optional

from pypdf import PdfReader

from portfolio_bot.config import (
    DOCUMENTS_DIR,
    PLACEHOLDER_TEXT,
    SOURCE_FILES,
)
from portfolio_bot.memory.document import Document

logger = logging.getLogger(__name__)


# ============================================================
# TEXT LOADER
# ============================================================

def load_text_file(file_path: str) -> List[Document]:

    with open(file_path, "r", encoding="utf-8") as f:
        text = f.read()

    return [Document(page_content=text, metadata={"source": file_path})]


# ============================================================
# JSON LOADER
# ============================================================

def _iter_strings(value: Any) -> Iterator[str]:
    """Depth-first walk yielding every string value in a JSON tree."""

    if isinstance(value, str):
        yield value

    elif isinstance(value, dict):
        for item in value.values():
            yield from _iter_strings(item)

    elif isinstance(value, list):
        for item in value:
            yield from _iter_strings(item)


def load_json_file(file_path: str) -> List[Document]:

    with open(file_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    return [
        Document(
            page_content=text,
            metadata={"source": file_path, "line": i},
        )
        for i, text in enumerate(_iter_strings(data), start=1)
    ]


# ============================================================
# PDF LOADER
# ============================================================

def load_pdf_file(file_path: str) -> List[Document]:

    reader = PdfReader(file_path)

    documents = []

    for page_number, page in enumerate(reader.pages, start=1):

        text = page.extract_text()

        if text and text.strip():
            documents.append(
                Document(
                    page_content=text,
                    metadata={"source": file_path, "page": page_number},
                )
            )

    return documents


LOADERS: Dict[str, Callable[[str], List[Document]]] = {
    ".txt": load_text_file,
    ".json": load_json_file,
    ".pdf": load_pdf_file,
}


# ============================================================
# MAIN ENTRY POINT (ARCHITECTURE CONTRACT)
# ============================================================

def load_source_documents(
    documents_dir: str = DOCUMENTS_DIR,
    file_names: Optional[List[str]] = None,
) -> List[Document]:
    """
    Load every known source file found in ``documents_dir``.

    Always returns at least one document.
    """

    if file_names is None:
        file_names = SOURCE_FILES

    documents: List[Document] = []

    for name in file_names:

        file_path = os.path.join(documents_dir, name)

        if not os.path.exists(file_path):

            logger.warning(
                "Source document not found",
                extra={"file": name, "documents_dir": documents_dir},
            )

            continue

        loader = LOADERS.get(os.path.splitext(name)[1].lower())

        if loader is None:

            logger.warning(
                "Unsupported source document type",
                extra={"file": name},
            )

            continue

        logger.info("Loading source document", extra={"file": name})

        try:

            loaded = loader(file_path)

        except Exception as e:

            logger.error(
                "Source document load failed",
                extra={
                    "file": name,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )

            continue

        documents.extend(loaded)

    if not documents:

        logger.warning(
            "No documents found, initializing with a placeholder document",
            extra={"documents_dir": documents_dir},
        )

        documents.append(Document(page_content=PLACEHOLDER_TEXT, metadata={}))

    return documents
