# heuristics.py
"""
Vocabulary and thresholds used to judge generated questions.

Everything the evaluator matches against lives here as plain word lists,
compiled once into a versioned QuestionHeuristics value. Tuning a heuristic
means editing a list (and bumping HEURISTICS_VERSION), not hunting for
inline regex literals.
"""

import re
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Pattern, Sequence, Set

from config import (
    LITERAL_MIN_TOKENS,
    LITERAL_OVERLAP_THRESHOLD,
    REDUNDANCY_THRESHOLD,
    CONCEPTUAL_MIN_TOKENS,
    MIN_COVERAGE_RATIO,
    MIN_APPLICATION_RATIO,
)

HEURISTICS_VERSION = "2"

# Questions about document layout/navigation rather than content.
STRUCTURAL_VOCABULARY = (
    "section", "sections", "subsection",
    "chapter", "chapters",
    "heading", "headings", "subheading", "subheadings",
    "table of contents", "which section", "which chapter",
    "paragraph", "paragraphs",
    "appendix", "page number", "bullet point",
    "title of the document", "in which part of the document",
)

# Catch-all distractors that make an item trivially gameable.
CATCH_ALL_OPTION_VOCABULARY = (
    "all of the above",
    "none of the above",
)

# Applied / situational framing.
SCENARIO_VOCABULARY = (
    "scenario", "suppose", "imagine", "consider a", "in practice",
    "real-world", "real world", "case study", "situation",
    "a company", "an organization", "a team", "a student", "a patient",
    "a researcher", "a manager", "a farmer", "an engineer",
    "would you", "should you", "what should", "best course of action",
    "apply", "applying",
)

# "If ... ?" construction, e.g. "What happens to yield if light is removed?"
CONDITIONAL_PATTERN = r"\bif\b[^?]*\?"

# Causal / comparative / explanatory / recommendation framing.
CONCEPTUAL_VOCABULARY = (
    "why", "how", "because", "cause", "causes", "caused",
    "effect", "effects", "impact", "leads to", "result in", "results in",
    "compare", "compared", "comparison", "contrast", "difference",
    "differ", "differs", "versus", "vs", "relationship",
    "recommend", "recommended", "best explains", "most likely",
    "consequence", "advantage", "disadvantage", "trade-off", "tradeoff",
)

STOPWORDS = frozenset("""
a an and are as at be been being but by can could did do does doing for from had has have
having he her his how i if in into is it its itself may might more most of on or our
out over own she should so some such than that the their them then there these they
this those through to too under until up very was we were what when where which while
who whom why will with would you your
""".split())

_TOKEN_RE = re.compile(r"[^\W_]+", re.UNICODE)


def tokenize(text: str) -> List[str]:
    return _TOKEN_RE.findall((text or "").lower())


def token_set(text: str, stopwords: FrozenSet[str] = STOPWORDS) -> Set[str]:
    """Content-bearing tokens used for overlap comparisons."""
    return {t for t in tokenize(text) if len(t) > 2 and t not in stopwords}


def jaccard(a: Set[str], b: Set[str]) -> float:
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def _vocabulary_pattern(terms: Iterable[str]) -> Pattern:
    # Longest first so multi-word phrases win over their prefixes.
    parts = sorted({t.strip().lower() for t in terms if t and t.strip()}, key=len, reverse=True)
    body = "|".join(re.escape(p).replace(r"\ ", r"\s+") for p in parts)
    return re.compile(rf"\b(?:{body})\b", re.IGNORECASE)


@dataclass(frozen=True)
class QuestionHeuristics:
    version: str
    structural: Pattern
    catch_all_options: Pattern
    scenario: Pattern
    conditional: Pattern
    conceptual: Pattern
    stopwords: FrozenSet[str] = STOPWORDS
    literal_min_tokens: int = LITERAL_MIN_TOKENS
    literal_overlap_threshold: float = LITERAL_OVERLAP_THRESHOLD
    redundancy_threshold: float = REDUNDANCY_THRESHOLD
    conceptual_min_tokens: int = CONCEPTUAL_MIN_TOKENS
    min_coverage_ratio: float = MIN_COVERAGE_RATIO
    min_application_ratio: float = MIN_APPLICATION_RATIO

    def is_structural(self, prompt: str, explanation: str, options: Sequence[str]) -> bool:
        if self.structural.search(prompt or "") or self.structural.search(explanation or ""):
            return True
        return any(self.catch_all_options.search(o or "") for o in options)

    def is_scenario(self, prompt: str) -> bool:
        return bool(self.scenario.search(prompt or "") or self.conditional.search(prompt or ""))

    def is_conceptual(self, prompt: str) -> bool:
        if self.conceptual.search(prompt or ""):
            return True
        return len(tokenize(prompt)) >= self.conceptual_min_tokens


def build_heuristics(
    version: str = HEURISTICS_VERSION,
    structural: Iterable[str] = STRUCTURAL_VOCABULARY,
    catch_all_options: Iterable[str] = CATCH_ALL_OPTION_VOCABULARY,
    scenario: Iterable[str] = SCENARIO_VOCABULARY,
    conceptual: Iterable[str] = CONCEPTUAL_VOCABULARY,
    conditional: str = CONDITIONAL_PATTERN,
    **thresholds,
) -> QuestionHeuristics:
    return QuestionHeuristics(
        version=version,
        structural=_vocabulary_pattern(structural),
        catch_all_options=_vocabulary_pattern(catch_all_options),
        scenario=_vocabulary_pattern(scenario),
        conditional=re.compile(conditional, re.IGNORECASE),
        conceptual=_vocabulary_pattern(conceptual),
        **thresholds,
    )


DEFAULT_HEURISTICS = build_heuristics()
