# sampling.py

import logging
from collections import Counter
from typing import Callable, Iterable, List, Optional, Sequence, Set

import numpy as np

from chunking import approx_token_count, normalize_whitespace, sort_chunks
from config import MIN_SNIPPET_CHARS
from schema_models import Chunk, OutlineTopic, SampledSnippet, SamplingConfig

log = logging.getLogger("sampling")

Embedder = Callable[[str], Sequence[float]]


def cosine_similarity(a, b) -> float:
    va = np.asarray(a, dtype=np.float32)
    vb = np.asarray(b, dtype=np.float32)
    if va.size == 0 or va.shape != vb.shape:
        return 0.0
    na = np.linalg.norm(va)
    nb = np.linalg.norm(vb)
    if na == 0 or nb == 0:
        return 0.0
    return float(np.dot(va, vb) / (na * nb))


class SnippetSampler:
    """
    Picks a diverse, token-budgeted subset of page-sorted chunks.

    Passes, in order:
      1) anchor   - first / middle / last chunk, forced in
      2) periodic - every `periodic_interval`-th chunk
      3) topic    - first chunk backing each outline topic and subtopic
      4) fallback - forced chunks in document order until `minimum_snippets`

    Non-forced candidates must fit the remaining budget, come from a page
    not yet sampled, and be less similar than `diversity_threshold` to every
    embedding collected so far. The embedder is optional; when it fails the
    candidate is treated as dissimilar and the failure is counted.
    """

    def __init__(self, sampling: SamplingConfig, embed: Optional[Embedder] = None,
                 min_chars: int = MIN_SNIPPET_CHARS):
        self.sampling = sampling
        self.embed = embed
        self.min_chars = min_chars
        self._reset()

    def _reset(self):
        self.selected: List[SampledSnippet] = []
        self.embedding_failures = 0
        self._embeddings: List[np.ndarray] = []
        self._seen_pages: Set[int] = set()
        self._taken: Set[int] = set()

    # ------------------------------------------------------------------
    @property
    def total_tokens(self) -> int:
        return sum(s.approx_token_count for s in self.selected)

    @property
    def diversity_guard_degraded(self) -> bool:
        return self.embed is None or self.embedding_failures > 0

    def _embed(self, content: str) -> Optional[np.ndarray]:
        if self.embed is None:
            return None
        try:
            vec = np.asarray(self.embed(content), dtype=np.float32)
        except Exception as e:
            self.embedding_failures += 1
            log.warning(f"[diversity] Embedding failed, admitting without diversity check: {e}")
            return None
        return vec if vec.size else None

    def _too_similar(self, vec: np.ndarray) -> bool:
        threshold = self.sampling.diversity_threshold
        return any(cosine_similarity(prev, vec) >= threshold for prev in self._embeddings)

    def _admit(self, index: int, chunk: Chunk, reason: str, force: bool = False) -> bool:
        content = normalize_whitespace(chunk.content)
        if len(content) < self.min_chars or index in self._taken:
            return False

        tokens = approx_token_count(content)
        if not force:
            if len(self.selected) >= self.sampling.max_samples:
                return False
            if self.total_tokens + tokens > self.sampling.token_budget:
                return False
            if chunk.page in self._seen_pages:
                return False

        # Forced snippets skip the guard but still seed an empty embedding set.
        if not force or not self._embeddings:
            vec = self._embed(content)
            if vec is not None:
                if not force and self._too_similar(vec):
                    log.debug(f"[diversity] Rejected page {chunk.page} ({reason}): too similar to a sampled snippet")
                    return False
                self._embeddings.append(vec)

        self.selected.append(
            SampledSnippet(page=chunk.page, content=content, reason=reason, approx_token_count=tokens)
        )
        self._seen_pages.add(chunk.page)
        self._taken.add(index)
        return True

    # ------------------------------------------------------------------
    def _anchor_pass(self, chunks: Sequence[Chunk]):
        first_idx, mid_idx, last_idx = 0, len(chunks) // 2, len(chunks) - 1
        first, middle, last = chunks[first_idx], chunks[mid_idx], chunks[last_idx]
        self._admit(first_idx, first, "anchor", force=True)
        if middle.page != first.page and middle.page != last.page:
            self._admit(mid_idx, middle, "anchor", force=True)
        if last.page not in self._seen_pages:
            self._admit(last_idx, last, "anchor", force=True)

    def _periodic_pass(self, chunks: Sequence[Chunk]):
        interval = max(1, self.sampling.periodic_interval)
        for index in range(0, len(chunks), interval):
            if len(self.selected) >= self.sampling.max_samples:
                break
            self._admit(index, chunks[index], "periodic")

    def _admit_first_on_pages(self, chunks: Sequence[Chunk], pages: Iterable[int]):
        page_set = set(pages)
        for index, chunk in enumerate(chunks):
            if chunk.page in page_set:
                self._admit(index, chunk, "topic")
                return

    def _topic_pass(self, chunks: Sequence[Chunk], outline: Sequence[OutlineTopic]):
        cfg = self.sampling
        for topic_index, topic in enumerate(outline):
            self._admit_first_on_pages(chunks, topic.pages)
            for sub in topic.subtopics:
                self._admit_first_on_pages(chunks, sub.pages)

            if len(self.selected) >= cfg.max_samples:
                break
            # Saturated: floor met and budget spent, further topics cannot fit.
            if (topic_index >= 1
                    and len(self.selected) >= cfg.minimum_snippets
                    and self.total_tokens >= cfg.token_budget):
                log.debug(f"[topics] Budget saturated after {topic_index + 1} topic(s); stopping early")
                break

    def _fallback_pass(self, chunks: Sequence[Chunk]):
        for index, chunk in enumerate(chunks):
            if len(self.selected) >= self.sampling.minimum_snippets:
                break
            self._admit(index, chunk, "fallback", force=True)

    # ------------------------------------------------------------------
    def sample(self, chunks: Sequence[Chunk], outline: Sequence[OutlineTopic] = ()) -> List[SampledSnippet]:
        """Run all passes over `chunks` (already page-sorted)."""
        self._reset()
        if not chunks:
            log.warning("[sampling] No chunks provided.")
            return []

        cfg = self.sampling
        if cfg.anchor_pages:
            self._anchor_pass(chunks)
        self._periodic_pass(chunks)
        if cfg.topic_coverage and outline:
            self._topic_pass(chunks, outline)
        if len(self.selected) < cfg.minimum_snippets:
            self._fallback_pass(chunks)

        self.selected = self.selected[: cfg.max_samples]
        mix = Counter(s.reason for s in self.selected)
        log.info(
            f"[sampling] Selected {len(self.selected)} snippet(s) from {len(chunks)} chunk(s), "
            f"~{self.total_tokens} tokens (budget={cfg.token_budget}); by reason: {dict(sorted(mix.items()))}"
        )
        if self.embedding_failures:
            log.warning(f"[sampling] Diversity guard degraded: {self.embedding_failures} embedding failure(s)")
        return list(self.selected)


def select_snippets(chunks: Iterable[Chunk], sampling: SamplingConfig,
                    outline: Sequence[OutlineTopic] = (), embed: Optional[Embedder] = None) -> List[SampledSnippet]:
    return SnippetSampler(sampling, embed).sample(sort_chunks(chunks), outline)
