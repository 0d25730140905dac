# portfolio_bot/memory/retriever.py
from typing import List

from portfolio_bot.config import TOP_K
from portfolio_bot.memory.document import Document


def retrieve(
    question: str,
    store,
    top_k: int = TOP_K,
) -> List[Document]:
    """
    Retrieve the top-k most similar chunks for a question.

    Args:
        question: Standalone question used as the search query
        store: VectorStore instance to search
        top_k: Number of results to return

    Returns:
        Documents ordered best first; each carries its similarity
        score in ``metadata["score"]``
    """
    results = store.similarity_search(question, k=top_k)

    documents = []
    for document, score in results:
        metadata = dict(document.metadata)
        metadata["score"] = score
        documents.append(Document(page_content=document.page_content, metadata=metadata))

    return documents
