# tests/conftest.py
import os
import re
import sys
import zlib
from contextlib import contextmanager

import numpy as np
import pytest

# Add project root to Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Console logging only while testing
os.environ["LOG_FILE"] = ""

from fastapi.testclient import TestClient

from portfolio_bot.main import create_app
from portfolio_bot.memory.chunker import split_documents
from portfolio_bot.memory.document import Document
from portfolio_bot.memory.history import ChatHistoryStore
from portfolio_bot.memory.store import VectorStore
from portfolio_bot.prompts.system_prompts import CONTEXTUALIZE_QUESTION_SYSTEM_PROMPT
from portfolio_bot.workflow.chat_pipeline import PipelineProvider, RetrievalChatPipeline


# three paragraphs of roughly 300 characters, so each becomes its own chunk
PORTFOLIO_TEXT = (
    "Arunabha builds backend services with Python and FastAPI. Most of his "
    "APIs run in containers, talk to Postgres, and ship with a test suite "
    "written in pytest. He likes small, readable services with clear "
    "boundaries, typed request models, and structured JSON logs that make "
    "production issues easy to trace back.\n\n"
    "He created a portfolio chatbot that answers questions about his projects "
    "using retrieval augmented generation. The chatbot splits his resume and "
    "project notes into chunks, embeds them locally, and stuffs the closest "
    "matches into the prompt so the answers stay grounded in what he has "
    "actually worked on.\n\n"
    "Outside of work he enjoys hiking in the mountains and photography. On "
    "weekends he usually heads out on a trail with a camera, looking for "
    "sunrise views over the ridges, and later spends the evening editing the "
    "photos and writing short notes about the route, the weather, and the light."
)


class FakeEmbedder:
    """
    Deterministic bag-of-words embedder.

    Words are hashed into a fixed number of buckets, so texts that
    share words get similar vectors. No model download needed.
    """

    def __init__(self, dimension=256):
        self.dimension = dimension
        self.calls = []

    def get_dimension(self):
        return self.dimension

    def embed(self, texts):
        self.calls.append(list(texts))
        vectors = np.zeros((len(texts), self.dimension), dtype="float32")
        for row, text in enumerate(texts):
            for word in re.findall(r"\w+", text.lower()):
                vectors[row, zlib.crc32(word.encode("utf-8")) % self.dimension] += 1.0
        return vectors


class FakeChatClient:
    """
    Records every message list it receives.

    Rephrase requests are answered with ``standalone`` (or the
    question itself); everything else gets ``reply``.
    """

    def __init__(self, reply="Arunabha works mostly with Python.", standalone=None):
        self.reply = reply
        self.standalone = standalone
        self.calls = []

    def generate(self, messages):
        self.calls.append(messages)
        if messages[0]["content"] == CONTEXTUALIZE_QUESTION_SYSTEM_PROMPT:
            if self.standalone is not None:
                return self.standalone
            return messages[-1]["content"]
        return self.reply

    @property
    def rephrase_calls(self):
        return [
            m for m in self.calls
            if m[0]["content"] == CONTEXTUALIZE_QUESTION_SYSTEM_PROMPT
        ]

    @property
    def answer_calls(self):
        return [
            m for m in self.calls
            if m[0]["content"] != CONTEXTUALIZE_QUESTION_SYSTEM_PROMPT
        ]


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def fake_llm():
    return FakeChatClient()


@pytest.fixture
def documents_dir(tmp_path):
    """A documents directory holding only the plain-text source."""
    path = tmp_path / "documents"
    path.mkdir()
    (path / "arunabha.txt").write_text(PORTFOLIO_TEXT, encoding="utf-8")
    return path


@pytest.fixture
def vector_store(fake_embedder):
    chunks = split_documents([Document(PORTFOLIO_TEXT, {"source": "arunabha.txt"})])
    return VectorStore.from_documents(chunks, fake_embedder)


@pytest.fixture
def pipeline(fake_llm, vector_store):
    return RetrievalChatPipeline(llm_client=fake_llm, store=vector_store)


class CountingFactory:
    """Pipeline factory that replays a scripted list of outcomes."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        outcome = self.outcomes[min(self.calls, len(self.outcomes)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def history_store():
    return ChatHistoryStore()


@pytest.fixture
def make_app(history_store):
    """
    Build an app around a scripted pipeline factory.

    Returns (app, factory) so tests can count initialization attempts.
    """
    def _make(*outcomes):
        factory = CountingFactory(*outcomes)
        app = create_app(provider=PipelineProvider(factory), history_store=history_store)
        return app, factory

    return _make


@contextmanager
def running(app, timeout=5):
    """
    Enter the app's lifespan and wait for the background
    initialization attempt started at startup.
    """
    with TestClient(app) as test_client:
        app.state.pipeline_provider.wait_until_initialized(timeout)
        yield test_client


@pytest.fixture
def client(make_app, pipeline):
    """FastAPI test client with a working, initialized pipeline."""
    app, _ = make_app(pipeline)
    with running(app) as test_client:
        yield test_client
