# portfolio_bot/workflow/chat_pipeline.py

"""
Retrieval-augmented chat pipeline.

Flow per question:
    1. Rephrase the question into a standalone query (only when
       there is chat history to resolve references against).
    2. Retrieve the top-k chunks for that query.
    3. Answer the ORIGINAL question with the chunks stuffed into
       the system prompt, chat history in between.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional

from portfolio_bot.config import DOCUMENTS_DIR, TOP_K, VECTOR_DIR, get_api_key
from portfolio_bot.llm.client import ChatClient
from portfolio_bot.memory.embedder import Embedder
from portfolio_bot.memory.retriever import retrieve
from portfolio_bot.memory.store import get_vector_store
from portfolio_bot.prompts.prompt_builder import (
    build_answer_messages,
    build_rephrase_messages,
)

logger = logging.getLogger(__name__)


class RetrievalChatPipeline:

    def __init__(self, llm_client, store, top_k: int = TOP_K):

        if top_k <= 0:
            raise ValueError(f"top_k must be positive, got {top_k}")

        self.llm_client = llm_client
        self.store = store
        self.top_k = top_k

    def rephrase_question(self, question: str, history: List[Dict[str, str]]) -> str:
        """
        Turn a follow-up into a standalone question.

        Without history there is nothing to resolve, so the model
        is not called.
        """

        if not history:
            return question

        standalone = self.llm_client.generate(
            build_rephrase_messages(question, history)
        ).strip()

        logger.info(
            "Question rephrased",
            extra={"history_messages": len(history), "standalone_question": standalone},
        )

        return standalone or question

    def invoke(self, question: str, history: Optional[List[Dict[str, str]]] = None) -> Dict:

        history = list(history or [])

        search_query = self.rephrase_question(question, history)

        documents = retrieve(search_query, self.store, top_k=self.top_k)

        logger.info(
            "Context retrieved",
            extra={
                "chunks_retrieved": len(documents),
                "top_score": documents[0].metadata.get("score") if documents else None,
            },
        )

        answer = self.llm_client.generate(
            build_answer_messages(question, history, documents)
        )

        return {
            "input": question,
            "chat_history": history,
            "context": documents,
            "answer": answer,
        }


def build_pipeline(
    vector_dir: str = VECTOR_DIR,
    documents_dir: str = DOCUMENTS_DIR,
) -> Optional[RetrievalChatPipeline]:
    """
    Wire client, embedder and index together.

    Returns None (after logging) when the completion API key is missing.
    """

    api_key = get_api_key()

    if not api_key:

        logger.error(
            "missing_api_key",
            extra={"error": "GROQ_API_KEY is not set in environment variables."},
        )

        return None

    llm_client = ChatClient(api_key=api_key)

    embedder = Embedder()

    store = get_vector_store(embedder, vector_dir, documents_dir)

    logger.info("Chain initialized successfully", extra={"vectors": len(store)})

    return RetrievalChatPipeline(llm_client=llm_client, store=store)


class PipelineProvider:
    """
    Holds the single shared pipeline.

    Initialization runs at most one attempt at a time; a failed
    attempt leaves the pipeline unset so the next request retries.
    Requests never wait on an attempt already in progress.
    """

    def __init__(self, factory: Callable[[], Optional[RetrievalChatPipeline]] = build_pipeline):

        self._factory = factory
        self._pipeline: Optional[RetrievalChatPipeline] = None
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    @property
    def ready(self) -> bool:
        return self._pipeline is not None

    def initialize(self, blocking: bool = True) -> Optional[RetrievalChatPipeline]:
        """
        Build the pipeline unless it already exists.

        With ``blocking=False`` returns None right away when another
        attempt holds the lock.
        """

        if not self._lock.acquire(blocking=blocking):

            logger.info("Chain initialization already in progress")

            return None

        try:

            if self._pipeline is not None:
                return self._pipeline

            try:

                self._pipeline = self._factory()

            except Exception as e:

                logger.error(
                    "Failed to initialize chain",
                    extra={"error": str(e), "error_type": type(e).__name__},
                    exc_info=True,
                )

            return self._pipeline

        finally:
            self._lock.release()

    def initialize_in_background(self) -> threading.Thread:
        """Start an initialization attempt on a daemon thread."""

        thread = threading.Thread(
            target=self.initialize,
            name="pipeline-init",
            daemon=True,
        )

        self._thread = thread
        thread.start()

        return thread

    def wait_until_initialized(self, timeout: Optional[float] = None) -> bool:
        """Join the background attempt, if any, and report readiness."""

        if self._thread is not None:
            self._thread.join(timeout)

        return self.ready

    def get(self) -> Optional[RetrievalChatPipeline]:

        if self._pipeline is not None:
            return self._pipeline

        return self.initialize(blocking=False)
