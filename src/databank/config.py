# /databank/config.py
"""
Centralized configuration for the Databank question-answering service.
Includes model names, corpus paths, quota and selection tuning.
"""
import os
from pathlib import Path
from dotenv import load_dotenv
from rich.console import Console
from .observability import configure_logging

# ==============================================================================
# CONSOLE & ENVIRONMENT
# ==============================================================================
console = Console()
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return bool(default)
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None:
        return int(default)
    try:
        value = int(raw)
    except ValueError:
        return int(default)
    return max(minimum, value)


def _env_float(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.getenv(name)
    if raw is None:
        return float(default)
    try:
        value = float(raw)
    except ValueError:
        return float(default)
    return max(float(minimum), value)


def _env_suffixes(name: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(name, default)
    suffixes = []
    for item in str(raw).split(","):
        item = item.strip().lower()
        if not item:
            continue
        suffixes.append(item if item.startswith(".") else f".{item}")
    return tuple(suffixes)


# ==============================================================================
# GLOBAL CONFIGURATION
# ==============================================================================
# --- Backend Selection ---
USE_API_LLM = _env_bool("USE_API_LLM", True)              # True for Groq API, False for local Ollama
API_MODEL_NAME = os.getenv("API_MODEL_NAME", "llama-3.3-70b-versatile")
LOCAL_MODEL_NAME = os.getenv("LOCAL_MODEL_NAME", "granite3.3:2b")
API_KEY_ENV_VAR = "GROQ_API_KEY"
LLM_TEMPERATURE = _env_float("LLM_TEMPERATURE", 0.4, minimum=0.0)
LLM_MAX_TOKENS = _env_int("LLM_MAX_TOKENS", 1200, minimum=64)
# Upper bound on a single backend call; expiry surfaces as a generation error.
BACKEND_TIMEOUT_S = _env_float("BACKEND_TIMEOUT_S", 60.0, minimum=1.0)

# --- Quota ---
DAILY_QUOTA_LIMIT = _env_int("DAILY_QUOTA_LIMIT", 100, minimum=1)

# --- Path Configuration ---
# Data directory is at ../../data relative to this file (src/databank/config.py)
_BASE_DIR = Path(__file__).resolve().parent.parent.parent
_DATA_DIR = _BASE_DIR / "data"

CORPUS_DIR = Path(os.getenv("CORPUS_DIR", str(_DATA_DIR / "topics")))
CORPUS_EXTENSIONS = _env_suffixes("CORPUS_EXTENSIONS", ".md,.txt")
RUNTIME_DIR = Path(os.getenv("RUNTIME_DIR", str(_DATA_DIR / "runtime")))
METRICS_DIR = Path(os.getenv("METRICS_DIR", str(RUNTIME_DIR / "metrics")))

# --- Topic Selection ---
# At most TOPIC_CAP topics ground one answer; a corpus larger than the small
# threshold always goes through classification.
TOPIC_CAP = 3
MAX_SELECTED_TOPICS = min(_env_int("MAX_SELECTED_TOPICS", 3, minimum=1), TOPIC_CAP)
SMALL_CORPUS_MAX_TOPICS = min(_env_int("SMALL_CORPUS_MAX_TOPICS", 2, minimum=0), TOPIC_CAP - 1)
FALLBACK_PREFIX_CHARS = _env_int("FALLBACK_PREFIX_CHARS", 500, minimum=1)

# --- API Server ---
API_THREAD_POOL_WORKERS = _env_int("API_THREAD_POOL_WORKERS", 8, minimum=1)
API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = _env_int("API_PORT", 8000, minimum=1)

# --- Create necessary directories ---
RUNTIME_DIR.mkdir(parents=True, exist_ok=True)
LOG_PATH = Path(os.getenv("LOG_PATH", str(RUNTIME_DIR / "app.log")))
LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
configure_logging(LOG_PATH)
