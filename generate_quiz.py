# generate_quiz.py

import logging
import random
import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import BaseModel

from assemble import assemble_context
from config import DOCUMENT_MAX_ATTEMPTS, SCOPED_MAX_ATTEMPTS
from errors import ContentNotFoundError, QuizGenerationError
from evaluate import evaluate_questions, normalize_question
from heuristics import DEFAULT_HEURISTICS, QuestionHeuristics
from llm_client import GENERATED_QUIZ_SCHEMA
from prompts import QUIZ_SYSTEM, append_regeneration_note, build_quiz_prompt
from sampling import Embedder
from schema_models import (
    Chunk,
    DocumentQuizContext,
    DocumentQuizDiagnostics,
    GenerationConfig,
    QuizQuestion,
    QuizResult,
    SubtopicQuizContext,
    TopicQuizContext,
    merge_diagnostics,
)

log = logging.getLogger("generate")

# generator(prompt, response_schema, system_prompt) -> parsed JSON object
QuizGenerator = Callable[[str, Dict[str, Any], str], Any]


class GenerationOutcome(BaseModel):
    questions: List[QuizQuestion]
    diagnostics: Optional[DocumentQuizDiagnostics] = None
    attempts: int = 0
    should_regenerate: bool = False
    reason: str = ""


def extract_candidates(payload: Any) -> List[Dict[str, Any]]:
    """Flatten a generator payload into a list of raw question dicts."""
    if isinstance(payload, dict) and isinstance(payload.get("questions"), list):
        return [d for d in payload["questions"] if isinstance(d, dict)]
    if isinstance(payload, list):
        return [d for d in payload if isinstance(d, dict)]
    if isinstance(payload, dict):
        log.warning(f"[extract] Payload dict doesn't match quiz shape. Keys={list(payload.keys())[:10]}")
    else:
        log.warning(f"[extract] Unsupported payload type: {type(payload).__name__}")
    return []


def max_attempts_for(context) -> int:
    return DOCUMENT_MAX_ATTEMPTS if isinstance(context, DocumentQuizContext) else SCOPED_MAX_ATTEMPTS


def finalize_questions(questions: List[QuizQuestion], count: int) -> List[QuizQuestion]:
    """Clamp to `count` and give every question a unique id (q1, q2, ... when missing)."""
    seen = set()
    out: List[QuizQuestion] = []
    for n, q in enumerate(questions[:count], start=1):
        qid = q.id or f"q{n}"
        while qid in seen:
            qid = f"q{n}-{uuid.uuid4().hex[:6]}"
        seen.add(qid)
        out.append(q if qid == q.id else q.model_copy(update={"id": qid}))
    return out


def generate_questions(
    context,
    prompt: str,
    generator: QuizGenerator,
    heuristics: QuestionHeuristics = DEFAULT_HEURISTICS,
    system_prompt: str = QUIZ_SYSTEM,
    response_schema: Optional[Dict[str, Any]] = None,
) -> GenerationOutcome:
    """
    Bounded generate -> normalize -> evaluate loop.

    Document scope gets the evaluator and one regeneration with a note
    appended to the base prompt; other scopes take the first response as-is.
    Generator exceptions propagate.
    """
    schema = response_schema or GENERATED_QUIZ_SCHEMA
    is_document = isinstance(context, DocumentQuizContext)
    max_attempts = max_attempts_for(context)
    count = context.question_count

    diagnostics = context.diagnostics if is_document else None
    chosen: List[QuizQuestion] = []
    should_regenerate, reason = False, ""
    current_prompt = prompt
    attempt = 0

    while attempt < max_attempts:
        attempt += 1
        payload = generator(current_prompt, schema, system_prompt)
        candidates = extract_candidates(payload)
        log.info(f"[generate] Attempt {attempt}/{max_attempts} ({context.scope}): {len(candidates)} candidate(s)")

        if not is_document:
            chosen = [normalize_question(c, context.difficulty) for c in candidates]
            break

        result = evaluate_questions(candidates, context, heuristics)
        diagnostics = merge_diagnostics(diagnostics, result.diagnostics, DocumentQuizDiagnostics(attempts=attempt))
        should_regenerate, reason = result.should_regenerate, result.reason

        if result.should_regenerate and attempt < max_attempts:
            log.warning(f"[regenerate] Attempt {attempt} rejected: {result.reason}")
            current_prompt = append_regeneration_note(prompt, attempt + 1, result.reason, count)
            continue

        chosen = result.accepted or result.fallback[:count]
        if not result.accepted and chosen:
            log.warning(f"[generate] No question passed quality checks; using {len(chosen)} unfiltered question(s).")
        break

    final = finalize_questions(chosen, count)
    if not final:
        log.warning(f"[generate] No questions after {attempt} attempt(s); returning an empty quiz.")
    return GenerationOutcome(
        questions=final,
        diagnostics=diagnostics,
        attempts=attempt,
        should_regenerate=should_regenerate,
        reason=reason,
    )


def quiz_title(context) -> str:
    if isinstance(context, SubtopicQuizContext):
        return f"Quiz: {context.subtopic_name}"
    if isinstance(context, TopicQuizContext):
        return f"Quiz: {context.topic_name}"
    return f"Quiz: {context.document_title}"


def new_quiz_id() -> str:
    return f"quiz-{uuid.uuid4().hex[:12]}"


def generate_quiz(
    context,
    chunks: Iterable[Chunk],
    generator: QuizGenerator,
    embed: Optional[Embedder] = None,
    config: Optional[GenerationConfig] = None,
    quiz_id: Optional[str] = None,
    rng: Optional[random.Random] = None,
    heuristics: QuestionHeuristics = DEFAULT_HEURISTICS,
) -> QuizResult:
    """
    Full request flow: assemble context, build prompt, run the generation
    loop, wrap the result. Missing content raises ContentNotFoundError;
    any generator failure is reported as QuizGenerationError.
    """
    enriched, raw = assemble_context(context, chunks, config=config, embed=embed, rng=rng)
    prompt = build_quiz_prompt(enriched)
    log.info(f"[generate] {enriched.scope} prompt ready: {len(prompt)} chars ({len(raw)} chars of source)")

    try:
        outcome = generate_questions(enriched, prompt, generator, heuristics)
    except ContentNotFoundError:
        raise
    except Exception as e:
        log.error(f"[generate] Quiz generation failed for {enriched.scope} scope: {e}")
        raise QuizGenerationError() from e

    if isinstance(enriched, DocumentQuizContext):
        enriched = enriched.model_copy(update={"diagnostics": outcome.diagnostics})

    return QuizResult(
        quiz_id=quiz_id or new_quiz_id(),
        questions=outcome.questions,
        title=quiz_title(enriched),
        scope=enriched.scope,
        context=enriched,
        diagnostics=outcome.diagnostics,
    )
