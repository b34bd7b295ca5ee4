"""
FastAPI service layer for the Databank question-answering service.

Exposes:
    GET  /api/chat    remaining daily quota
    POST /api/chat    grounded answer for {"message": ...}
    GET  /api/topics  registered topic identifiers
    GET  /metrics     aggregated service metrics

Run with:
    uvicorn databank.api_server:app --host 0.0.0.0 --port 8000
"""
from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .config import API_THREAD_POOL_WORKERS
from .errors import ConfigurationError, QuotaExceededError, ValidationError
from .metrics import (
    OUTCOME_ANSWERED,
    OUTCOME_FAILED,
    OUTCOME_INVALID,
    OUTCOME_MISCONFIGURED,
    OUTCOME_QUOTA_EXCEEDED,
    metrics_collector,
)
from .observability import get_logger
from .service import QUOTA_EXHAUSTED_MESSAGE, QuestionAnsweringService

logger = get_logger(__name__)

MESSAGE_REQUIRED = "Message is required"


# ---------------------------------------------------------------------------
# Pydantic request / response models
# ---------------------------------------------------------------------------

class ChatRequest(BaseModel):
    # Optional here so a missing message is reported as 400 by the service.
    message: str | None = Field(default=None, description="Question to answer")


class ChatResponse(BaseModel):
    reply: str
    remaining: int
    limit: int


class QuotaResponse(BaseModel):
    remaining: int
    limit: int
    used: int


class TopicsResponse(BaseModel):
    topics: list[str]


# ---------------------------------------------------------------------------
# Application state populated at startup
# ---------------------------------------------------------------------------

_state: dict[str, Any] = {}

# Thread pool for running the synchronous pipeline off the event loop.
_executor = ThreadPoolExecutor(max_workers=API_THREAD_POOL_WORKERS)


def _get_service() -> QuestionAnsweringService:
    service = _state.get("service")
    if service is None:
        service = QuestionAnsweringService()
        _state["service"] = service
    return service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the service once at startup; release the worker pool on shutdown."""
    service = _get_service()
    logger.info("api_startup", quota_limit=service.quota.limit, topic_count=len(service.topics()))

    yield  # Application is running.

    _executor.shutdown(wait=False)
    _state.clear()


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Databank API",
    description="Topic-grounded question answering with a daily quota",
    version="1.0.0",
    lifespan=lifespan,
)


def _error(status_code: int, **content: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content)


def _record(start: float, outcome: str, strategy: str = "") -> None:
    latency_ms = (time.perf_counter() - start) * 1000.0
    metrics_collector.record_request(latency_ms, outcome=outcome, strategy=strategy)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Malformed JSON or a non-string message never reaches the pipeline.
    start = time.perf_counter()
    logger.warning("request_validation_failed", path=request.url.path, errors=str(exc.errors())[:500])
    _record(start, OUTCOME_INVALID)
    return _error(400, error=MESSAGE_REQUIRED)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/api/chat", response_model=QuotaResponse)
async def quota_endpoint():
    """Return today's remaining quota without side effects."""
    status = _get_service().status()
    return QuotaResponse(remaining=status.remaining, limit=status.limit, used=status.used)


@app.post("/api/chat", response_model=ChatResponse)
async def chat_endpoint(request: ChatRequest):
    """Answer a question grounded in the topic corpus."""
    service = _get_service()
    start = time.perf_counter()

    try:
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(_executor, service.ask, request.message)
    except QuotaExceededError as exc:
        _record(start, OUTCOME_QUOTA_EXCEEDED)
        return _error(429, error=QUOTA_EXHAUSTED_MESSAGE, allowed=False, remaining=0, limit=exc.limit)
    except ValidationError as exc:
        _record(start, OUTCOME_INVALID)
        return _error(400, error=str(exc) or MESSAGE_REQUIRED)
    except ConfigurationError as exc:
        _record(start, OUTCOME_MISCONFIGURED)
        logger.error("backend_misconfigured", error=str(exc))
        return _error(500, error=str(exc))
    except Exception as exc:
        _record(start, OUTCOME_FAILED)
        logger.error("chat_request_failed", error=str(exc), error_type=type(exc).__name__)
        return _error(500, error="Internal Server Error", details=str(exc))

    _record(start, OUTCOME_ANSWERED, result.strategy)
    return ChatResponse(reply=result.reply, remaining=result.remaining, limit=result.limit)


@app.get("/api/topics", response_model=TopicsResponse)
async def topics_endpoint():
    """List registered topic identifiers."""
    return TopicsResponse(topics=_get_service().topics())


@app.get("/metrics")
async def metrics_endpoint():
    """Return aggregated service metrics."""
    return metrics_collector.get_summary()
