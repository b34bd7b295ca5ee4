"""
Generative backend adapters.

The pipeline only depends on ``TextBackend.generate(prompt) -> str``. The
default implementation wraps a LangChain model (Groq API or local Ollama) and
bounds each call with a timeout.
"""
from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Protocol

from langchain_groq import ChatGroq
from langchain_ollama import OllamaLLM

from .config import (
    API_KEY_ENV_VAR,
    API_MODEL_NAME,
    API_THREAD_POOL_WORKERS,
    BACKEND_TIMEOUT_S,
    LLM_MAX_TOKENS,
    LLM_TEMPERATURE,
    LOCAL_MODEL_NAME,
    USE_API_LLM,
)
from .errors import BackendError, ConfigurationError
from .observability import get_logger

logger = get_logger(__name__)

# Backend calls run here so a stalled request can be abandoned after the timeout.
_executor = ThreadPoolExecutor(max_workers=API_THREAD_POOL_WORKERS, thread_name_prefix="llm-backend")


class TextBackend(Protocol):
    def generate(self, prompt: str) -> str:
        ...


def _coerce_text(raw: Any) -> str:
    """Extracts plain text from LLM strings, chat messages and content blocks."""
    content = getattr(raw, "content", raw)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts)
    return str(content)


class LangChainBackend:
    """Single-shot ``generate`` over any LangChain runnable model."""

    def __init__(self, model: Any, *, timeout_s: float = BACKEND_TIMEOUT_S, name: str = ""):
        self._model = model
        self._timeout_s = float(timeout_s)
        self.name = name or type(model).__name__

    def generate(self, prompt: str) -> str:
        future = _executor.submit(self._model.invoke, prompt)
        try:
            raw = future.result(timeout=self._timeout_s)
        except FutureTimeoutError as exc:
            future.cancel()
            logger.error("backend_timeout", backend=self.name, timeout_s=self._timeout_s)
            raise BackendError(f"{self.name} did not respond within {self._timeout_s:.0f}s") from exc
        except Exception as exc:
            logger.error("backend_call_failed", backend=self.name, error=str(exc))
            raise BackendError(f"{self.name} call failed: {exc}") from exc
        return _coerce_text(raw)


def build_backend() -> LangChainBackend:
    """Builds the configured backend; the API path requires a credential."""
    if USE_API_LLM:
        api_key = os.getenv(API_KEY_ENV_VAR)
        if not api_key:
            raise ConfigurationError(f"{API_KEY_ENV_VAR} is not set")
        model = ChatGroq(
            model_name=API_MODEL_NAME,
            temperature=LLM_TEMPERATURE,
            max_tokens=LLM_MAX_TOKENS,
            groq_api_key=api_key,
        )
        return LangChainBackend(model, name=f"groq:{API_MODEL_NAME}")

    model = OllamaLLM(
        model=LOCAL_MODEL_NAME,
        temperature=LLM_TEMPERATURE,
        num_predict=LLM_MAX_TOKENS,
    )
    return LangChainBackend(model, name=f"ollama:{LOCAL_MODEL_NAME}")
