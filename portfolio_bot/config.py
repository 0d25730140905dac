# portfolio_bot/config.py
"""
Configuration for the portfolio chatbot.

This file centralizes all tunable parameters for the RAG pipeline.
Secrets and deployment-specific values come from the environment
(or a local .env file); everything else is a plain constant.
"""

import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


# ========== SERVER ==========

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))


# ========== LOGGING ==========

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "logs/app.log")  # empty string → console only


# ========== LLM CONFIGURATION ==========

# Groq exposes an OpenAI-compatible endpoint
API_KEY_ENV_VAR = "GROQ_API_KEY"
LLM_BASE_URL = os.getenv("LLM_BASE_URL", "https://api.groq.com/openai/v1")
LLM_MODEL = os.getenv("LLM_MODEL", "openai/gpt-oss-120b")
LLM_TEMPERATURE = 0.7


def get_api_key() -> Optional[str]:
    """
    Read the completion API key at call time so a key added after
    startup is picked up by the next lazy initialization attempt.
    """
    return os.getenv(API_KEY_ENV_VAR) or None


# ========== EMBEDDING CONFIGURATION ==========

EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "BAAI/bge-small-en-v1.5")  # 384 dimensions


# ========== DOCUMENT PROCESSING ==========

CHUNK_SIZE = 500  # characters per chunk
CHUNK_OVERLAP = 100  # characters carried into the next chunk

DOCUMENTS_DIR = os.getenv("DOCUMENTS_DIR", "documents")

SOURCE_FILES = [
    "arunabha.txt",
    "arunabha.json",
    "portfolio-chatbot.pdf",
]

PLACEHOLDER_TEXT = (
    "This is a placeholder document because no source files were found."
)


# ========== VECTOR INDEX ==========

VECTOR_DIR = os.getenv("VECTOR_DIR", "vector_store")
INDEX_FILENAME = "faiss.index"
DOCSTORE_FILENAME = "docstore.json"


# ========== RETRIEVAL CONFIGURATION ==========

TOP_K = 3  # chunks stuffed into the answer prompt


# ========== CHAT HISTORY ==========

MAX_HISTORY_MESSAGES = 20  # user + assistant messages kept per session
DEFAULT_SESSION_ID = "default"
