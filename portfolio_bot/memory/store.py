import faiss
import numpy as np
import logging
import os
import json

from typing import List, Optional, Tuple

from portfolio_bot.config import (
    DOCSTORE_FILENAME,
    DOCUMENTS_DIR,
    INDEX_FILENAME,
    TOP_K,
    VECTOR_DIR,
)
from portfolio_bot.memory.chunker import split_documents
from portfolio_bot.memory.document import Document
from portfolio_bot.memory.loader import load_source_documents


logger = logging.getLogger(__name__)


def index_exists(directory: str) -> bool:
    return os.path.exists(os.path.join(directory, INDEX_FILENAME))


class VectorStore:
    """
    Flat inner-product FAISS index over normalized embeddings,
    with a parallel list of documents (row i ↔ vector i).
    """

    def __init__(self, embedder, index=None, documents: Optional[List[Document]] = None):

        dim = embedder.get_dimension()

        if dim <= 0:
            raise ValueError("Embedding dimension must be positive")

        self._embedder = embedder
        self._dim = dim
        self._index = index if index is not None else faiss.IndexFlatIP(dim)
        self._documents: List[Document] = list(documents or [])

        if self._index.d != dim:
            raise ValueError(
                f"Index dimension ({self._index.d}) does not match "
                f"embedding dimension ({dim})"
            )

        if self._index.ntotal != len(self._documents):
            raise ValueError(
                f"Index holds {self._index.ntotal} vectors but "
                f"{len(self._documents)} documents were provided"
            )

    # ============================================================
    # CONSTRUCTION
    # ============================================================

    @classmethod
    def from_documents(cls, documents: List[Document], embedder) -> "VectorStore":

        store = cls(embedder)
        store.add_documents(documents)

        return store

    @classmethod
    def load(cls, directory: str, embedder) -> "VectorStore":

        index = faiss.read_index(os.path.join(directory, INDEX_FILENAME))

        with open(os.path.join(directory, DOCSTORE_FILENAME), "r", encoding="utf-8") as f:
            data = json.load(f)

        documents = [Document.from_dict(item) for item in data.get("documents", [])]

        store = cls(embedder, index=index, documents=documents)

        logger.info(
            "Vector store loaded",
            extra={"directory": directory, "vectors": index.ntotal},
        )

        return store

    def save(self, directory: str):

        os.makedirs(directory, exist_ok=True)

        index_path = os.path.join(directory, INDEX_FILENAME)
        docstore_path = os.path.join(directory, DOCSTORE_FILENAME)

        # write to temp names, then move the docstore before the index:
        # index_exists() must only see a complete store
        faiss.write_index(self._index, index_path + ".tmp")

        with open(docstore_path + ".tmp", "w", encoding="utf-8") as f:

            json.dump(
                {
                    "embedding_dimension": self._dim,
                    "documents": [doc.to_dict() for doc in self._documents],
                },
                f,
                ensure_ascii=False,
            )

        os.replace(docstore_path + ".tmp", docstore_path)
        os.replace(index_path + ".tmp", index_path)

        logger.info(
            "Vector store saved",
            extra={"directory": directory, "vectors": self._index.ntotal},
        )

    # ============================================================
    # HELPERS
    # ============================================================

    def _ensure_numpy(self, embeddings) -> np.ndarray:

        embeddings = np.asarray(embeddings, dtype="float32")

        if embeddings.ndim == 1:

            embeddings = embeddings.reshape(1, -1)

        return np.ascontiguousarray(embeddings)

    def _normalize(self, vectors: np.ndarray):

        norms = np.linalg.norm(
            vectors,
            axis=1,
            keepdims=True,
        )

        return vectors / np.clip(norms, 1e-10, None)

    # ============================================================
    # PUBLIC API
    # ============================================================

    def add_documents(self, documents: List[Document]) -> int:

        if not documents:
            return 0

        embeddings = self._embedder.embed([doc.page_content for doc in documents])
        embeddings = self._normalize(self._ensure_numpy(embeddings))

        self._index.add(embeddings)
        self._documents.extend(documents)

        return len(documents)

    def similarity_search(self, query: str, k: int = TOP_K) -> List[Tuple[Document, float]]:

        if k <= 0:
            raise ValueError(f"k must be positive, got {k}")

        if self._index.ntotal == 0:
            return []

        embedding = self._normalize(self._ensure_numpy(self._embedder.embed([query])))

        scores, indices = self._index.search(embedding, min(k, self._index.ntotal))

        results = []

        for idx, score in zip(indices[0], scores[0]):

            # faiss pads missing neighbours with -1
            if idx < 0:
                continue

            results.append((self._documents[idx], float(score)))

        return results

    def __len__(self) -> int:
        return len(self._documents)


def build_vector_store(
    embedder,
    vector_dir: str = VECTOR_DIR,
    documents_dir: str = DOCUMENTS_DIR,
) -> VectorStore:
    """Load, chunk, embed and persist the source documents."""

    logger.info(
        "Creating new vector store",
        extra={"documents_dir": documents_dir, "vector_dir": vector_dir},
    )

    documents = load_source_documents(documents_dir)

    chunks = split_documents(documents)

    store = VectorStore.from_documents(chunks, embedder)
    store.save(vector_dir)

    logger.info(
        "Vector store created and saved",
        extra={"chunks": len(chunks), "vector_dir": vector_dir},
    )

    return store


def get_vector_store(
    embedder,
    vector_dir: str = VECTOR_DIR,
    documents_dir: str = DOCUMENTS_DIR,
) -> VectorStore:
    """
    Open the saved index when there is one; the documents directory
    is only read when the index has to be built.
    """

    if index_exists(vector_dir):

        logger.info("Loading existing vector store", extra={"vector_dir": vector_dir})

        return VectorStore.load(vector_dir, embedder)

    return build_vector_store(embedder, vector_dir, documents_dir)
