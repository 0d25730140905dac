from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
import logging

from portfolio_bot.memory.history import ChatHistoryStore
from portfolio_bot.models import ChatRequest, ChatResponse, StatusResponse
from portfolio_bot.workflow.chat_pipeline import PipelineProvider


# ============================================================
# LOGGER
# ============================================================

logger = logging.getLogger(__name__)

router = APIRouter()


MESSAGE_REQUIRED = "Message is required."
NOT_READY = "System is initializing or failed to initialize, please try again in a moment."


# ============================================================
# DEPENDENCIES (state lives on app.state, set by create_app)
# ============================================================

def get_pipeline_provider(request: Request) -> PipelineProvider:
    return request.app.state.pipeline_provider


def get_history_store(request: Request) -> ChatHistoryStore:
    return request.app.state.history_store


def answer_response(status_code: int, answer: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"answer": answer})


# ============================================================
# LIVENESS
# ============================================================

@router.get("/", response_model=StatusResponse, response_model_exclude_none=True)
def root():

    return StatusResponse(status="active", message="Arunabha Chatbot is Awake! 🚀")


@router.head("/", response_model=StatusResponse, response_model_exclude_none=True)
def root_head():

    return StatusResponse(status="active")


# ============================================================
# CHATBOT
# ============================================================

@router.post("/chatbot", response_model=ChatResponse)
def chatbot(
    payload: ChatRequest,
    request: Request,
    provider: PipelineProvider = Depends(get_pipeline_provider),
    history_store: ChatHistoryStore = Depends(get_history_store),
):

    request_id = getattr(request.state, "request_id", "unknown")

    message = (payload.message or "").strip()

    if not message:
        return answer_response(status.HTTP_400_BAD_REQUEST, MESSAGE_REQUIRED)

    try:

        pipeline = provider.get()

        if pipeline is None:

            logger.warning(
                "chatbot_unavailable",
                extra={"request_id": request_id},
            )

            return answer_response(status.HTTP_503_SERVICE_UNAVAILABLE, NOT_READY)

        result = pipeline.invoke(message, history_store.get(payload.session_id))

        answer = result["answer"]

        history_store.append_exchange(payload.session_id, message, answer)

        logger.info(
            "chatbot_answered",
            extra={
                "request_id": request_id,
                "session_id": payload.session_id,
                "sources_used": len(result.get("context", [])),
            },
        )

        return ChatResponse(answer=answer)

    except Exception as e:

        logger.error(
            "chatbot_failed",
            extra={
                "request_id": request_id,
                "error": str(e),
                "error_type": type(e).__name__,
            },
            exc_info=True,
        )

        return answer_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            f"Sorry, something went wrong: {e}",
        )
