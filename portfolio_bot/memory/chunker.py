# portfolio_bot/memory/chunker.py

import logging
from typing import List, Optional

from langchain_text_splitters import RecursiveCharacterTextSplitter

from portfolio_bot.config import (
    CHUNK_SIZE,
    CHUNK_OVERLAP,
)
from portfolio_bot.memory.document import Document

logger = logging.getLogger(__name__)

DEFAULT_SEPARATORS = ["\n\n", "\n", " ", ""]


def _validate(size: int, overlap: int):

    if size <= 0:
        raise ValueError(f"Invalid chunk size: {size}")

    if overlap < 0:
        raise ValueError(f"Invalid chunk overlap: {overlap}")

    if overlap >= size:
        raise ValueError(
            f"Overlap must be smaller than chunk size "
            f"(overlap={overlap}, size={size})"
        )


def _splitter(
    size: int,
    overlap: int,
    separators: Optional[List[str]] = None,
) -> RecursiveCharacterTextSplitter:

    separators = list(separators or DEFAULT_SEPARATORS)

    # character-level fallback keeps every chunk within size
    if separators[-1] != "":
        separators.append("")

    return RecursiveCharacterTextSplitter(
        chunk_size=size,
        chunk_overlap=overlap,
        separators=separators,
    )


def chunk_text(
    text: str,
    size: int = CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
    separators: Optional[List[str]] = None,
) -> List[str]:
    """
    Recursive character chunker.

    Splits on paragraph breaks first, then lines, then words, then
    single characters, until every chunk fits in ``size`` characters.
    Neighbouring chunks share up to ``overlap`` characters.

    Guarantees:
    • no chunk longer than ``size``
    • no empty chunks
    • deterministic output
    """

    _validate(size, overlap)

    if not text or not text.strip():
        logger.warning("Chunking skipped: empty text")
        return []

    chunks = _splitter(size, overlap, separators).split_text(text)

    return [chunk for chunk in chunks if chunk.strip()]


def split_documents(
    documents: List[Document],
    size: int = CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
) -> List[Document]:
    """Chunk each document, carrying its metadata onto every chunk."""

    _validate(size, overlap)

    chunks: List[Document] = []

    for document in documents:

        for i, text in enumerate(chunk_text(document.page_content, size, overlap)):

            metadata = dict(document.metadata)
            metadata["chunk_index"] = i

            chunks.append(Document(page_content=text, metadata=metadata))

    logger.info(
        "Chunking completed",
        extra={
            "documents": len(documents),
            "chunk_size": size,
            "overlap": overlap,
            "chunks_created": len(chunks),
        },
    )

    return chunks
