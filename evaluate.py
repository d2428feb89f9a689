# evaluate.py

import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel

from heuristics import DEFAULT_HEURISTICS, QuestionHeuristics, jaccard, token_set, tokenize
from schema_models import (
    DIFFICULTIES,
    OPTION_LABELS,
    DocumentQuizContext,
    DocumentQuizDiagnostics,
    IntentCounts,
    QuizOptions,
    QuizQuestion,
)
from taxonomy import outline_vocabulary

log = logging.getLogger("evaluate")

_LETTER_RE = re.compile(r"^\s*([A-Da-d])\s*(?:[\.\):\-]|$)")


class EvaluationResult(BaseModel):
    accepted: List[QuizQuestion]
    fallback: List[QuizQuestion]
    diagnostics: DocumentQuizDiagnostics
    should_regenerate: bool
    reason: str = ""


# -----------------------
# Normalization
# -----------------------
def _option_text(value: Any) -> str:
    if isinstance(value, dict):
        value = value.get("text") or value.get("label") or ""
    return str(value if value is not None else "").strip()


def _normalize_options(raw: Any) -> List[str]:
    """Exactly four option texts, in label order; pad with placeholders, trim extras."""
    if isinstance(raw, dict):
        keys = sorted(raw.keys(), key=lambda k: str(k).strip().upper())
        texts = [_option_text(raw[k]) for k in keys]
    elif isinstance(raw, list):
        texts = [_option_text(v) for v in raw]
    else:
        texts = []
    while len(texts) < len(OPTION_LABELS):
        texts.append(f"Option {OPTION_LABELS[len(texts)]}")
    return texts[: len(OPTION_LABELS)]


def _normalize_correct(raw: Any, options: Sequence[str]) -> str:
    if isinstance(raw, int) and not isinstance(raw, bool) and 0 <= raw < len(OPTION_LABELS):
        return OPTION_LABELS[raw]
    if isinstance(raw, str):
        m = _LETTER_RE.match(raw)
        if m:
            return m.group(1).upper()
        wanted = raw.strip().lower()
        for label, text in zip(OPTION_LABELS, options):
            if wanted and text.lower() == wanted:
                return label
    return "A"


def _normalize_pages(raw: Any) -> List[int]:
    if not isinstance(raw, list):
        return []
    pages = []
    for p in raw:
        if isinstance(p, bool):
            continue
        if isinstance(p, (int, float)):
            pages.append(int(p))
        elif isinstance(p, str) and p.strip().isdigit():
            pages.append(int(p.strip()))
    return pages


def normalize_question(raw: Dict[str, Any], default_difficulty: str = "medium") -> QuizQuestion:
    """
    Coerce one generator item into a QuizQuestion. Never drops an item:
    options are relabeled to A-D, an invalid `correct` becomes "A",
    non-list `sourcePages` become [].
    """
    options = _normalize_options(raw.get("options", raw.get("choices")))
    difficulty = str(raw.get("difficulty") or "").strip().lower()
    qtype = raw.get("type")
    return QuizQuestion(
        id=str(raw.get("id") or "").strip(),
        prompt=str(raw.get("prompt") or raw.get("question") or "").strip(),
        options=QuizOptions(**dict(zip(OPTION_LABELS, options))),
        correct=_normalize_correct(raw.get("correct", raw.get("answer")), options),
        explanation=str(raw.get("explanation") or "").strip(),
        difficulty=difficulty if difficulty in DIFFICULTIES else default_difficulty,
        sourcePages=_normalize_pages(raw.get("sourcePages")),
        type=qtype if qtype in ("scenario", "multiple_choice") else None,
    )


def option_texts(question: QuizQuestion) -> List[str]:
    return [getattr(question.options, label) for label in OPTION_LABELS]


# -----------------------
# Evaluation
# -----------------------
def _coverage_ratio(matched: int, total_topic_tokens: int, accepted: int) -> Optional[float]:
    if total_topic_tokens == 0:
        return None
    # TODO: the denominator shrinks with the accepted count, so tiny batches clear the
    # bar easily; revisit once enough diagnostics exist to pick a fairer baseline.
    return min(1.0, matched / max(1, min(total_topic_tokens, accepted)))


def evaluate_questions(
    candidates: Sequence[Dict[str, Any]],
    context: DocumentQuizContext,
    heuristics: QuestionHeuristics = DEFAULT_HEURISTICS,
) -> EvaluationResult:
    """
    Filter document-scope candidates in order. For each item the first
    matching rule wins: structural, literal copy, redundant. Survivors are
    classified (scenario vs multiple_choice; conceptual vs recall) and
    checked for outline coverage.
    """
    h = heuristics
    target = context.question_count
    snippet_sets = [token_set(s.content, h.stopwords) for s in context.sampled_snippets]
    topic_tokens = set(outline_vocabulary(context.all_topics, h.stopwords))

    accepted: List[QuizQuestion] = []
    fallback: List[QuizQuestion] = []
    accepted_sets = []
    structural = literal = redundant = 0
    intents = IntentCounts()
    matched = set()

    for raw in candidates:
        q = normalize_question(raw, context.difficulty)
        fallback.append(q)

        if h.is_structural(q.prompt, q.explanation, option_texts(q)):
            structural += 1
            log.debug(f"[structural] Dropped: {q.prompt[:120]}")
            continue

        tokens = tokenize(q.prompt)
        prompt_set = token_set(q.prompt, h.stopwords)
        if len(tokens) >= h.literal_min_tokens and any(
            jaccard(prompt_set, s) >= h.literal_overlap_threshold for s in snippet_sets
        ):
            literal += 1
            log.debug(f"[literal] Dropped near-verbatim prompt: {q.prompt[:120]}")
            continue

        if any(jaccard(prompt_set, s) >= h.redundancy_threshold for s in accepted_sets):
            redundant += 1
            log.debug(f"[redundant] Dropped: {q.prompt[:120]}")
            continue

        if h.is_scenario(q.prompt):
            q = q.model_copy(update={"type": "scenario"})
            intents.scenario += 1
        else:
            q = q.model_copy(update={"type": "multiple_choice"})
            if h.is_conceptual(q.prompt):
                intents.conceptual += 1
            else:
                intents.recall += 1

        matched |= topic_tokens.intersection(tokens)
        accepted.append(q)
        accepted_sets.append(prompt_set)

    coverage = _coverage_ratio(len(matched), len(topic_tokens), len(accepted))
    application = intents.scenario / len(accepted) if accepted else 0.0

    reasons = []
    if structural > 0:
        reasons.append(f"{structural} question(s) tested document structure instead of content")
    if coverage is not None and coverage < h.min_coverage_ratio:
        reasons.append(f"topic coverage {coverage:.2f} is below {h.min_coverage_ratio:.2f}")
    if len(accepted) >= target and application < h.min_application_ratio:
        reasons.append(f"only {application:.0%} applied scenario questions (need {h.min_application_ratio:.0%})")
    if len(accepted) < target:
        reasons.append(f"only {len(accepted)} of {target} questions passed quality checks")

    diagnostics = DocumentQuizDiagnostics(
        structural_question_count=structural,
        redundant_question_count=redundant,
        literal_question_count=literal,
        intent_counts=intents,
        coverage_ratio=coverage,
        application_ratio=application,
        heuristics_version=h.version,
    )
    log.info(
        f"[evaluate] accepted={len(accepted)}/{len(fallback)} target={target} "
        f"structural={structural} literal={literal} redundant={redundant} "
        f"intents={intents.model_dump()} coverage={coverage} application={application:.2f}"
    )
    return EvaluationResult(
        accepted=accepted,
        fallback=fallback,
        diagnostics=diagnostics,
        should_regenerate=bool(reasons),
        reason="; ".join(reasons),
    )
