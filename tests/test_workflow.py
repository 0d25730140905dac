# tests/test_workflow.py
import threading
from unittest.mock import MagicMock

import pytest

from portfolio_bot.llm.client import ChatClient
from portfolio_bot.memory.document import Document
from portfolio_bot.prompts.prompt_builder import (
    build_answer_messages,
    build_rephrase_messages,
    format_documents,
)
from portfolio_bot.prompts.system_prompts import CONTEXTUALIZE_QUESTION_SYSTEM_PROMPT
from portfolio_bot.workflow import chat_pipeline
from portfolio_bot.workflow.chat_pipeline import PipelineProvider, RetrievalChatPipeline

from conftest import FakeChatClient


HISTORY = [
    {"role": "user", "content": "What does Arunabha build?"},
    {"role": "assistant", "content": "Backend services with FastAPI."},
]


class TestPromptBuilding:
    """Test prompt construction."""

    def test_format_documents(self):
        docs = [Document("first chunk"), Document("second chunk")]
        assert format_documents(docs) == "first chunk\n\nsecond chunk"

    def test_rephrase_messages(self):
        """System prompt, then history, then the new question."""
        messages = build_rephrase_messages("Which language?", HISTORY)

        assert messages[0] == {"role": "system", "content": CONTEXTUALIZE_QUESTION_SYSTEM_PROMPT}
        assert messages[1:3] == HISTORY
        assert messages[-1] == {"role": "user", "content": "Which language?"}

    def test_answer_messages_stuff_context(self):
        """Retrieved chunks end up inside the system prompt's context block."""
        docs = [Document("He uses Python daily."), Document("He hikes on weekends.")]

        messages = build_answer_messages("What language?", HISTORY, docs)

        system = messages[0]["content"]
        assert "<context>\nHe uses Python daily.\n\nHe hikes on weekends.\n</context>" in system
        assert "{context}" not in system
        assert "Arunabha AI" in system
        assert messages[1:3] == HISTORY
        assert messages[-1]["content"] == "What language?"


class TestRephrasing:
    """Test the history-aware rephrasing step."""

    def test_no_history_skips_model(self, pipeline, fake_llm):
        """Without history the question is used as is."""
        assert pipeline.rephrase_question("What does he build?", []) == "What does he build?"
        assert fake_llm.calls == []

    def test_history_triggers_rephrase(self, vector_store):
        llm = FakeChatClient(standalone="Which language does Arunabha use for backend work?")
        pipeline = RetrievalChatPipeline(llm_client=llm, store=vector_store)

        standalone = pipeline.rephrase_question("Which language does he use?", HISTORY)

        assert standalone == "Which language does Arunabha use for backend work?"
        assert len(llm.rephrase_calls) == 1

    def test_blank_rephrase_falls_back(self, vector_store):
        """An empty model reply keeps the original question."""
        llm = FakeChatClient(standalone="   ")
        pipeline = RetrievalChatPipeline(llm_client=llm, store=vector_store)

        assert pipeline.rephrase_question("And then?", HISTORY) == "And then?"


class TestInvoke:
    """Test the full retrieve-then-answer flow."""

    def test_result_shape(self, pipeline, fake_llm):
        result = pipeline.invoke("What does Arunabha build?", [])

        assert set(result) == {"input", "chat_history", "context", "answer"}
        assert result["input"] == "What does Arunabha build?"
        assert result["answer"] == fake_llm.reply
        assert 0 < len(result["context"]) <= 3

    def test_first_turn_makes_one_call(self, pipeline, fake_llm):
        """First question: no rephrase, one answer call."""
        pipeline.invoke("What does Arunabha build?", [])

        assert len(fake_llm.calls) == 1
        assert fake_llm.rephrase_calls == []

    def test_retrieval_uses_standalone_question(self, vector_store):
        """The rephrased question drives retrieval, the original is answered."""
        llm = FakeChatClient(standalone="hiking mountains photography weekends trail")
        pipeline = RetrievalChatPipeline(llm_client=llm, store=vector_store, top_k=1)

        result = pipeline.invoke("What else does he do?", HISTORY)

        assert "hiking" in result["context"][0].page_content
        answer_messages = llm.answer_calls[0]
        assert answer_messages[-1]["content"] == "What else does he do?"
        assert "hiking" in answer_messages[0]["content"]

    def test_history_not_mutated(self, pipeline):
        history = list(HISTORY)

        pipeline.invoke("Anything else?", history)

        assert history == HISTORY

    def test_invalid_top_k(self, vector_store, fake_llm):
        with pytest.raises(ValueError):
            RetrievalChatPipeline(llm_client=fake_llm, store=vector_store, top_k=0)

    def test_llm_error_propagates(self, vector_store):
        """Completion failures surface to the caller (the route turns them into 500s)."""
        llm = MagicMock()
        llm.generate.side_effect = RuntimeError("Completion API call failed: boom")
        pipeline = RetrievalChatPipeline(llm_client=llm, store=vector_store)

        with pytest.raises(RuntimeError):
            pipeline.invoke("Hello", [])


class TestBuildPipeline:
    """Test pipeline construction from configuration."""

    def test_missing_api_key_returns_none(self, monkeypatch):
        """No key → logged, nothing else is built."""
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        embedder = MagicMock(side_effect=AssertionError("embedder must not load"))
        monkeypatch.setattr(chat_pipeline, "Embedder", embedder)

        assert chat_pipeline.build_pipeline() is None
        embedder.assert_not_called()

    def test_builds_with_key(self, monkeypatch, tmp_path, documents_dir, fake_embedder):
        monkeypatch.setenv("GROQ_API_KEY", "gsk-test")
        monkeypatch.setattr(chat_pipeline, "Embedder", lambda: fake_embedder)

        pipeline = chat_pipeline.build_pipeline(
            vector_dir=str(tmp_path / "vector_store"),
            documents_dir=str(documents_dir),
        )

        assert isinstance(pipeline, RetrievalChatPipeline)
        assert isinstance(pipeline.llm_client, ChatClient)
        assert len(pipeline.store) > 0


class TestPipelineProvider:
    """Test shared-pipeline initialization."""

    def test_failure_is_swallowed(self):
        def factory():
            raise RuntimeError("model download failed")

        provider = PipelineProvider(factory)

        assert provider.initialize() is None
        assert provider.ready is False

    def test_get_retries_until_ready(self, pipeline):
        outcomes = [None, pipeline]
        calls = []

        def factory():
            calls.append(1)
            return outcomes[len(calls) - 1]

        provider = PipelineProvider(factory)

        assert provider.get() is None
        assert provider.get() is pipeline
        assert provider.get() is pipeline
        assert len(calls) == 2
        assert provider.ready

    def test_get_does_not_wait_for_running_attempt(self, pipeline):
        started = threading.Event()
        release = threading.Event()
        calls = []

        def factory():
            calls.append(1)
            started.set()
            release.wait(5)
            return pipeline

        provider = PipelineProvider(factory)
        provider.initialize_in_background()
        assert started.wait(5)

        assert provider.get() is None
        assert provider.ready is False

        release.set()
        assert provider.wait_until_initialized(5) is True
        assert provider.get() is pipeline
        assert len(calls) == 1

    def test_wait_without_background_attempt(self):
        provider = PipelineProvider(lambda: None)

        assert provider.wait_until_initialized(0) is False


class TestChatClient:
    """Test the completion client wrapper."""

    def test_requires_api_key(self, monkeypatch):
        monkeypatch.delenv("GROQ_API_KEY", raising=False)

        with pytest.raises(ValueError):
            ChatClient()

    def test_generate_returns_content(self):
        client = ChatClient(api_key="gsk-test")
        response = MagicMock()
        response.choices[0].message.content = "Hi there"
        client.client = MagicMock()
        client.client.chat.completions.create.return_value = response

        assert client.generate([{"role": "user", "content": "Hi"}]) == "Hi there"
        kwargs = client.client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "openai/gpt-oss-120b"
        assert kwargs["temperature"] == 0.7

    def test_api_failure_wrapped(self):
        client = ChatClient(api_key="gsk-test")
        client.client = MagicMock()
        client.client.chat.completions.create.side_effect = ConnectionError("down")

        with pytest.raises(RuntimeError, match="Completion API call failed"):
            client.generate([{"role": "user", "content": "Hi"}])
