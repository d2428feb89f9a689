# config.py

import os
from dotenv import load_dotenv

load_dotenv()

# --- helpers ---
def _get_bool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")

def _get_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except Exception:
        return default

def _get_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except Exception:
        return default

# --- Auth ---
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")

# --- Models ---
MODEL_QUESTIONS = os.getenv("MODEL_QUESTIONS", "gpt-5")
MODEL_EMBEDDING = os.getenv("MODEL_EMBEDDING", "text-embedding-3-small")

# --- Reasoning / verbosity controls (GPT-5: minimal | low | medium | high) ---
REASONING_QUESTIONS_EFFORT = os.getenv("REASONING_QUESTIONS_EFFORT", "minimal")
VERBOSITY_QUESTIONS        = os.getenv("VERBOSITY_QUESTIONS", "low")
QUESTIONS_MAX_OUTPUT_TOKENS = _get_int("QUESTIONS_MAX_OUTPUT_TOKENS", 6000)

# --- Client retries (tenacity) ---
LLM_RETRY_ATTEMPTS = _get_int("LLM_RETRY_ATTEMPTS", 3)
EMBED_RETRY_ATTEMPTS = _get_int("EMBED_RETRY_ATTEMPTS", 2)

# --- Generation config (versioned; see schema_models.GenerationConfig) ---
GENERATION_CONFIG_VERSION = _get_int("GENERATION_CONFIG_VERSION", 2)

# Sampling
SAMPLING_PERIODIC_INTERVAL  = _get_int("SAMPLING_PERIODIC_INTERVAL", 10)
SAMPLING_MAX_SAMPLES        = _get_int("SAMPLING_MAX_SAMPLES", 28)
SAMPLING_DIVERSITY_THRESHOLD = _get_float("SAMPLING_DIVERSITY_THRESHOLD", 0.88)
SAMPLING_TOKEN_BUDGET       = _get_int("SAMPLING_TOKEN_BUDGET", 3200)
SAMPLING_TOPIC_COVERAGE     = _get_bool("SAMPLING_TOPIC_COVERAGE", True)
SAMPLING_ANCHOR_PAGES       = _get_bool("SAMPLING_ANCHOR_PAGES", True)
SAMPLING_MINIMUM_SNIPPETS   = _get_int("SAMPLING_MINIMUM_SNIPPETS", 6)

# Compression
COMPRESSION_MAX_SENTENCES       = _get_int("COMPRESSION_MAX_SENTENCES", 4)
COMPRESSION_MAX_CHARACTERS      = _get_int("COMPRESSION_MAX_CHARACTERS", 600)
COMPRESSION_MIN_SENTENCE_LENGTH = _get_int("COMPRESSION_MIN_SENTENCE_LENGTH", 40)
COMPRESSION_MAX_SENTENCE_LENGTH = _get_int("COMPRESSION_MAX_SENTENCE_LENGTH", 260)

# --- Snippet shape ---
MIN_SNIPPET_CHARS = _get_int("MIN_SNIPPET_CHARS", 120)
CHARS_PER_TOKEN   = _get_float("CHARS_PER_TOKEN", 4.2)

# --- Aggregation fallback (document scope, no sampled content) ---
AGGREGATION_MAX_TOPICS = _get_int("AGGREGATION_MAX_TOPICS", 8)
AGGREGATION_TOPIC_CHARS = _get_int("AGGREGATION_TOPIC_CHARS", 400)

# --- Evaluator thresholds ---
LITERAL_MIN_TOKENS          = _get_int("LITERAL_MIN_TOKENS", 8)
LITERAL_OVERLAP_THRESHOLD   = _get_float("LITERAL_OVERLAP_THRESHOLD", 0.85)
REDUNDANCY_THRESHOLD        = _get_float("REDUNDANCY_THRESHOLD", 0.70)
CONCEPTUAL_MIN_TOKENS       = _get_int("CONCEPTUAL_MIN_TOKENS", 10)
MIN_COVERAGE_RATIO          = _get_float("MIN_COVERAGE_RATIO", 0.6)
MIN_APPLICATION_RATIO       = _get_float("MIN_APPLICATION_RATIO", 0.4)

# --- Regeneration loop ---
DOCUMENT_MAX_ATTEMPTS = _get_int("DOCUMENT_MAX_ATTEMPTS", 2)
SCOPED_MAX_ATTEMPTS   = _get_int("SCOPED_MAX_ATTEMPTS", 1)   # topic / subtopic

# --- Logging ---
LOG_LEVEL     = os.getenv("LOG_LEVEL", "INFO")
LOG_TIMESTAMP = _get_bool("LOG_TIMESTAMP", False)
