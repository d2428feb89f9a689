# llm_client.py

import json
import logging
import re
from typing import Any, Dict, List, Optional

from openai import OpenAI
from tenacity import retry, stop_after_attempt, wait_exponential

from config import (
    OPENAI_API_KEY,
    MODEL_QUESTIONS,
    MODEL_EMBEDDING,
    QUESTIONS_MAX_OUTPUT_TOKENS,
    REASONING_QUESTIONS_EFFORT,
    VERBOSITY_QUESTIONS,
    LLM_RETRY_ATTEMPTS,
    EMBED_RETRY_ATTEMPTS,
)
from prompts import QUIZ_SYSTEM
from schema_models import GeneratedQuiz

log = logging.getLogger("llm")

GENERATED_QUIZ_SCHEMA = GeneratedQuiz.model_json_schema()

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def _response_text_or_first_json(r) -> str:
    """
    Prefer the SDK convenience field output_text when present.
    If missing, serialize the first json/object content block.
    Returns a JSON string (not parsed); "{}" when nothing usable exists.
    """
    if getattr(r, "output_text", None):
        return r.output_text

    for item in (getattr(r, "output", None) or []):
        for c in (getattr(item, "content", None) or []):
            ctype = (getattr(c, "type", "") or "").lower()
            if ctype in ("json", "object") and getattr(c, "json", None) is not None:
                return json.dumps(c.json, ensure_ascii=False)
    return "{}"


def _strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text.strip())


def _carve_largest_object(text: str) -> Optional[str]:
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def parse_json_payload(text: str) -> Dict[str, Any]:
    """
    Tolerant JSON extraction: plain JSON, fenced JSON, or the largest
    {...} span inside surrounding prose. Raises ValueError if none parse.
    """
    candidates = [text, _strip_code_fences(text)]
    carved = _carve_largest_object(text)
    if carved:
        candidates.append(carved)
    for cand in candidates:
        try:
            obj = json.loads(cand)
        except json.JSONDecodeError:
            continue
        if isinstance(obj, dict):
            return obj
    raise ValueError(f"Model output is not a JSON object: {text[:200]!r}")


def _schema_name(schema: Dict[str, Any]) -> str:
    return re.sub(r"[^A-Za-z0-9_-]", "_", schema.get("title") or "quiz_payload")


class OpenAIQuizGenerator:
    """Generation collaborator backed by the Responses API."""

    def __init__(self, client: Optional[OpenAI] = None, model: str = MODEL_QUESTIONS):
        self.client = client or OpenAI(api_key=OPENAI_API_KEY)
        self.model = model

    @retry(stop=stop_after_attempt(LLM_RETRY_ATTEMPTS), wait=wait_exponential(min=1, max=8), reraise=True)
    def __call__(self, prompt: str, response_schema: Optional[Dict[str, Any]] = None,
                 system_prompt: str = QUIZ_SYSTEM) -> Dict[str, Any]:
        schema = response_schema or GENERATED_QUIZ_SCHEMA
        kwargs = {
            "model": self.model,
            "input": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": _schema_name(schema),
                    "schema": schema,
                    "strict": False,
                },
                "verbosity": VERBOSITY_QUESTIONS,
            },
            "max_output_tokens": QUESTIONS_MAX_OUTPUT_TOKENS,
            "reasoning": {"effort": REASONING_QUESTIONS_EFFORT},
            # NOTE: Do not pass temperature/top_p for GPT-5 reasoning models.
        }
        r = self.client.responses.create(**kwargs)
        payload = parse_json_payload(_response_text_or_first_json(r))
        log.debug(f"[llm] Received payload with keys {sorted(payload)}")
        return payload


class OpenAIEmbedder:
    """Embedding collaborator; raises on failure so the sampler can degrade."""

    def __init__(self, client: Optional[OpenAI] = None, model: str = MODEL_EMBEDDING):
        self.client = client or OpenAI(api_key=OPENAI_API_KEY)
        self.model = model

    @retry(stop=stop_after_attempt(EMBED_RETRY_ATTEMPTS), wait=wait_exponential(min=1, max=4), reraise=True)
    def __call__(self, text: str) -> List[float]:
        r = self.client.embeddings.create(model=self.model, input=text)
        return list(r.data[0].embedding)
