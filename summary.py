# summary.py

import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence

from chunking import normalize_whitespace, split_sentences
from schema_models import Chunk, CompressedSummary, CompressionConfig, OutlineTopic
from taxonomy import topic_id

log = logging.getLogger("summary")

# -----------------------------------------------------------------------------
# Sentence scoring vocabulary
# -----------------------------------------------------------------------------
_DEFINITION_RE = re.compile(r"[A-Z][a-z]+\s(is|are|was|were)\s")
_EXAMPLE_RE = re.compile(r"\b(for example|for instance|such as|including)\b", re.IGNORECASE)
_CAUSAL_RE = re.compile(r"\b(because|therefore|as a result|leads to)\b", re.IGNORECASE)
_DIGIT_RE = re.compile(r"\d")
_PROCESS_RE = re.compile(r"\b(step|process|method|approach)\b", re.IGNORECASE)

# Cut at a sentence end only if it keeps at least this share of the budget.
_BOUNDARY_MIN_SHARE = 0.6


def score_sentence(sentence: str, index: int, compression: CompressionConfig) -> float:
    score = 0.0
    length = len(sentence)
    if compression.min_sentence_length <= length <= compression.max_sentence_length:
        score += 2
    else:
        score -= 1
    if _DEFINITION_RE.search(sentence):
        score += 2
    if _EXAMPLE_RE.search(sentence):
        score += 1.5
    if _CAUSAL_RE.search(sentence):
        score += 1.5
    if _DIGIT_RE.search(sentence):
        score += 1
    if _PROCESS_RE.search(sentence):
        score += 1
    # earlier sentences tend to carry the framing
    score += max(0.0, 1.2 - index * 0.05)
    return score


def truncate_summary(summary: str, max_characters: int) -> str:
    if len(summary) <= max_characters:
        return summary
    cut = summary[:max_characters]
    last_stop = cut.rfind(".")
    if last_stop > max_characters * _BOUNDARY_MIN_SHARE:
        cut = cut[: last_stop + 1]
    return cut.rstrip()


def compress_text(text: str, compression: CompressionConfig) -> str:
    """Extractive digest: top-scoring sentences, joined, capped at max_characters."""
    sentences = split_sentences(normalize_whitespace(text))
    scored = [
        (sentence, score_sentence(sentence, i, compression))
        for i, sentence in enumerate(sentences)
        if len(sentence) >= compression.min_sentence_length
    ]
    scored.sort(key=lambda e: e[1], reverse=True)
    picked = [s for s, _ in scored[: compression.max_sentences]]
    return truncate_summary(" ".join(picked), compression.max_characters)


def _first_chunk_per_page(chunks: Iterable[Chunk]) -> Dict[int, str]:
    by_page: Dict[int, str] = {}
    for ch in chunks:
        by_page.setdefault(ch.page, ch.content)
    return by_page


class _Compressor:
    def __init__(self, chunks: Iterable[Chunk], compression: CompressionConfig):
        self.by_page = _first_chunk_per_page(chunks)
        self.compression = compression
        self.summaries: List[CompressedSummary] = []

    def build(self, pages: Sequence[int], title: str, kind: str,
              parent_title: Optional[str] = None) -> Optional[CompressedSummary]:
        text = " ".join(self.by_page[p] for p in pages if self.by_page.get(p))
        if not text:
            return None
        summary = compress_text(text, self.compression)
        if not summary:
            return None
        entry = CompressedSummary(
            topic_id=topic_id(title, parent_title),
            title=title,
            summary=summary,
            pages=list(pages),
            kind=kind,
            parent_topic_id=topic_id(parent_title) if parent_title else None,
        )
        self.summaries.append(entry)
        return entry


def compress_topics(
    chunks: Iterable[Chunk],
    outline: Sequence[OutlineTopic],
    compression: CompressionConfig,
    document_title: str = "",
    all_pages: Sequence[int] = (),
) -> List[CompressedSummary]:
    """
    One digest per outline topic and subtopic that has backing pages.
    Falls back to a single document-wide digest when none could be built.
    """
    comp = _Compressor(chunks, compression)
    for topic in outline:
        comp.build(topic.pages, topic.topic, "topic")
        for sub in topic.subtopics:
            comp.build(sub.pages, sub.subtopic, "subtopic", parent_title=topic.topic)

    if not comp.summaries:
        pages = list(all_pages) or sorted(comp.by_page)
        if comp.build(pages, document_title or "Document", "topic") is None:
            log.warning("[compress] No summaries could be built (no backing text).")
            return []
        log.info("[compress] No topic-level digests; built a document-level fallback digest.")
        return comp.summaries

    log.info(f"[compress] Built {len(comp.summaries)} digest(s) for {len(outline)} topic(s).")
    return comp.summaries
