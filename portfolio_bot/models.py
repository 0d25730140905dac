# portfolio_bot/models.py
from pydantic import BaseModel, Field, validator
from typing import Optional

from portfolio_bot.config import DEFAULT_SESSION_ID


class ChatRequest(BaseModel):
    """Request to ask the chatbot something."""
    message: Optional[str] = None
    session_id: str = Field(DEFAULT_SESSION_ID, min_length=1, max_length=100)

    @validator('session_id')
    def validate_session_id(cls, v):
        """Ensure session_id is not just whitespace."""
        if not v.strip():
            raise ValueError("Session ID cannot be empty")
        return v.strip()


class ChatResponse(BaseModel):
    """Chatbot reply. Error responses reuse the same shape."""
    answer: str


class StatusResponse(BaseModel):
    """Liveness response for the root endpoint."""
    status: str
    message: Optional[str] = None
