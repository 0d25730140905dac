# portfolio_bot/memory/embedder.py

"""
Local embedding wrapper.

Architecture contract:
chunker → embedder → vector_store

Guarantees:
• Always returns numpy float32 array
• Always normalized (cosine-ready for an inner-product index)
• Batched encoding
• No API key required (model runs in-process)
"""

import logging
from typing import List

import numpy as np
from sentence_transformers import SentenceTransformer

from portfolio_bot.config import EMBEDDING_MODEL

logger = logging.getLogger(__name__)

DEFAULT_EMBED_BATCH_SIZE = 32


class Embedder:
    """
    Sentence-transformers embedding generator.

    Loads the model once; encoding is CPU-bound and synchronous.
    """

    def __init__(self, model_name: str = EMBEDDING_MODEL):

        logger.info(
            "Initializing embedding model",
            extra={"model": model_name}
        )

        try:

            self._model = SentenceTransformer(model_name)

            self._dimension = self._model.get_sentence_embedding_dimension()

        except Exception as e:

            logger.critical(
                "Embedding model initialization failed",
                extra={"model": model_name, "error": str(e)}
            )

            raise RuntimeError(
                f"Failed to initialize embedding model: {e}"
            ) from e

        self.model_name = model_name

        logger.info(
            "Embedding model initialized",
            extra={
                "model": model_name,
                "dimension": self._dimension,
            }
        )

    def embed(
        self,
        texts: List[str],
        batch_size: int = DEFAULT_EMBED_BATCH_SIZE
    ) -> np.ndarray:

        if not texts:

            return np.empty(
                (0, self._dimension),
                dtype="float32"
            )

        try:

            embeddings = self._model.encode(
                texts,
                batch_size=batch_size,
                convert_to_numpy=True,
                normalize_embeddings=True,
                show_progress_bar=False,
            )

        except Exception as e:

            logger.error(
                "Embedding generation failed",
                extra={"chunks": len(texts), "error": str(e)}
            )

            raise RuntimeError(
                f"Embedding generation failed: {e}"
            ) from e

        return np.asarray(embeddings, dtype="float32")

    def get_dimension(self) -> int:
        """
        Required by VectorStore initialization.
        """
        return self._dimension
