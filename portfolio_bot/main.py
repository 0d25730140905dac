# portfolio_bot/main.py
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from typing import Optional
import time
import uuid

import uvicorn

from portfolio_bot.api.routes import router
from portfolio_bot.config import HOST, LOG_FILE, LOG_LEVEL, PORT
from portfolio_bot.memory.history import ChatHistoryStore
from portfolio_bot.observability.logger import setup_logging, get_logger
from portfolio_bot.workflow.chat_pipeline import PipelineProvider

# Initialize logging FIRST
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)

VERSION = "1.0.0"


def create_app(
    provider: Optional[PipelineProvider] = None,
    history_store: Optional[ChatHistoryStore] = None,
) -> FastAPI:
    """
    Build the API.

    The pipeline provider and history store are injected so tests
    (and additional instances) get their own state.
    """

    app = FastAPI(
        title="Arunabha Portfolio Chatbot API",
        description="Retrieval-augmented portfolio chatbot",
        version=VERSION,
    )

    app.state.pipeline_provider = provider or PipelineProvider()
    app.state.history_store = history_store or ChatHistoryStore()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "HEAD"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Middleware to log all HTTP requests with latency tracking.
        """

        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        logger.info(
            "request_started",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "client_ip": request.client.host if request.client else None
            }
        )

        start_time = time.time()

        try:

            response = await call_next(request)

        except Exception as e:

            logger.error(
                "request_failed",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "latency_seconds": round(time.time() - start_time, 3),
                    "error": str(e),
                    "error_type": type(e).__name__
                },
                exc_info=True
            )

            raise

        logger.info(
            "request_completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "latency_seconds": round(time.time() - start_time, 3)
            }
        )

        return response

    app.include_router(router)

    @app.on_event("startup")
    async def startup_event():

        logger.info("application_startup", extra={"version": VERSION})

        # POST /chatbot answers 503 until the background attempt finishes
        app.state.pipeline_provider.initialize_in_background()

    @app.on_event("shutdown")
    async def shutdown_event():

        logger.info("application_shutdown")

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):

        logger.warning(
            "invalid_request_body",
            extra={
                "request_id": getattr(request.state, "request_id", "unknown"),
                "path": request.url.path,
                "errors": str(exc.errors()),
            }
        )

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"answer": "Invalid request body."}
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):

        request_id = getattr(request.state, "request_id", "unknown")

        logger.error(
            "unhandled_exception",
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "error": str(exc),
                "error_type": type(exc).__name__
            },
            exc_info=True
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "answer": f"Sorry, something went wrong: {exc}",
                "request_id": request_id,
            }
        )

    return app


app = create_app()


def run(host: str = HOST, port: int = PORT):

    logger.info("server_starting", extra={"host": host, "port": port})

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run()
