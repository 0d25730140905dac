# portfolio_bot/prompts/prompt_builder.py

from typing import Dict, List

from portfolio_bot.memory.document import Document
from portfolio_bot.prompts.system_prompts import (
    ASSISTANT_SYSTEM_PROMPT,
    CONTEXTUALIZE_QUESTION_SYSTEM_PROMPT,
)


def format_documents(documents: List[Document]) -> str:
    """Stuff retrieved chunks into one context block."""

    return "\n\n".join(doc.page_content for doc in documents)


def _with_history(
    system_prompt: str,
    history: List[Dict[str, str]],
    question: str,
) -> List[Dict[str, str]]:

    messages = [{"role": "system", "content": system_prompt}]

    messages.extend(
        {"role": message["role"], "content": message["content"]}
        for message in history
    )

    messages.append({"role": "user", "content": question})

    return messages


def build_rephrase_messages(
    question: str,
    history: List[Dict[str, str]],
) -> List[Dict[str, str]]:
    """
    Messages asking the model to turn a follow-up into a
    standalone question.
    """

    return _with_history(CONTEXTUALIZE_QUESTION_SYSTEM_PROMPT, history, question)


def build_answer_messages(
    question: str,
    history: List[Dict[str, str]],
    documents: List[Document],
) -> List[Dict[str, str]]:
    """
    Messages for the final answer, retrieved context in the
    system prompt.
    """

    system_prompt = ASSISTANT_SYSTEM_PROMPT.replace(
        "{context}", format_documents(documents)
    )

    return _with_history(system_prompt, history, question)
