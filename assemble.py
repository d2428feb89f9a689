# assemble.py

import logging
import random
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel

from chunking import chunk_preview, chunks_for_pages, format_page_blocks, sort_chunks
from config import AGGREGATION_MAX_TOPICS, AGGREGATION_TOPIC_CHARS
from errors import ContentNotFoundError
from sampling import Embedder, SnippetSampler
from schema_models import (
    Chunk,
    CompressedSummary,
    DocumentQuizContext,
    DocumentQuizDiagnostics,
    GenerationConfig,
    SampledSnippet,
    SubtopicQuizContext,
    TopicQuizContext,
    merge_diagnostics,
)
from summary import compress_topics

log = logging.getLogger("assemble")


class DocumentContextExtras(BaseModel):
    config: GenerationConfig
    sampled_snippets: List[SampledSnippet]
    compressed_summaries: List[CompressedSummary]
    total_approx_tokens: int
    embedding_failures: int = 0
    diversity_guard_degraded: bool = False


def build_document_extras(
    chunks: Iterable[Chunk],
    context: DocumentQuizContext,
    config: Optional[GenerationConfig] = None,
    embed: Optional[Embedder] = None,
) -> DocumentContextExtras:
    """Sample snippets and compress topics for a document-scope request."""
    resolved = GenerationConfig.resolve(config)
    ordered = sort_chunks(chunks)
    if context.all_pages:
        ordered = chunks_for_pages(ordered, context.all_pages)
    log.debug(f"[document] Candidate chunks: {chunk_preview(ordered[:5], head_chars=60)}")

    sampler = SnippetSampler(resolved.sampling, embed)
    snippets = sampler.sample(ordered, context.all_topics)
    summaries = compress_topics(
        ordered,
        context.all_topics,
        resolved.compression,
        document_title=context.document_title,
        all_pages=context.all_pages,
    )
    return DocumentContextExtras(
        config=resolved,
        sampled_snippets=snippets,
        compressed_summaries=summaries,
        total_approx_tokens=sampler.total_tokens,
        embedding_failures=sampler.embedding_failures,
        diversity_guard_degraded=sampler.diversity_guard_degraded,
    )


def snippets_to_raw_content(snippets: Sequence[SampledSnippet]) -> str:
    return "\n\n".join(f"Page {s.page}: {s.content}" for s in snippets)


def aggregate_topics(
    context: DocumentQuizContext,
    rng: Optional[random.Random] = None,
    max_topics: int = AGGREGATION_MAX_TOPICS,
    max_chars: int = AGGREGATION_TOPIC_CHARS,
) -> str:
    """
    Last-resort prompt content built from the outline itself: up to
    `max_topics` topics (random subsample, document order kept), each entry
    clamped to `max_chars`. Falls back to the document summary.
    """
    topics = list(context.all_topics)
    if len(topics) > max_topics:
        rng = rng or random.Random()
        keep = sorted(rng.sample(range(len(topics)), max_topics))
        topics = [topics[i] for i in keep]

    parts = []
    for t in topics:
        entry = f"{t.topic}: {t.description.strip()}" if t.description.strip() else t.topic
        parts.append(entry[:max_chars])
    aggregated = "\n\n".join(p for p in parts if p.strip())
    return aggregated or context.document_summary.strip()


def _assemble_scoped(context, chunks: Iterable[Chunk], pages: Sequence[int],
                     fallback_content: str, label: str):
    if context.raw_content:
        return context, context.raw_content

    relevant = chunks_for_pages(sort_chunks(chunks), pages)
    log.info(f"[{label}] {len(relevant)} chunk(s) match pages {list(pages)}")
    raw = format_page_blocks(relevant)
    if not raw:
        raw = fallback_content.strip()
        if not raw:
            raise ContentNotFoundError(f"No content found for {label} pages {list(pages)}")
        log.warning(f"[{label}] No raw chunks for the requested pages; using processed {label} content instead.")
    return context.model_copy(update={"raw_content": raw}), raw


def _assemble_document(context: DocumentQuizContext, chunks: Iterable[Chunk],
                       config: Optional[GenerationConfig], embed: Optional[Embedder],
                       rng: Optional[random.Random]):
    resolved = config or context.generation_config
    extras = build_document_extras(chunks, context, resolved, embed)

    raw = snippets_to_raw_content(extras.sampled_snippets)
    if not raw:
        raw = aggregate_topics(context, rng=rng)
        if not raw:
            raise ContentNotFoundError(f"No content found for document '{context.document_title}'")
        log.warning("[document] Sampling produced no content; using outline aggregation instead.")

    seed = DocumentQuizDiagnostics(
        approx_token_count=extras.total_approx_tokens,
        snippet_count=len(extras.sampled_snippets),
        diversity_guard_degraded=extras.diversity_guard_degraded,
        embedding_failures=extras.embedding_failures,
        config_version=extras.config.version,
    )
    enriched = context.model_copy(update={
        "raw_content": raw,
        "sampled_snippets": extras.sampled_snippets,
        "compressed_summaries": extras.compressed_summaries,
        "generation_config": extras.config,
        "diagnostics": merge_diagnostics(context.diagnostics, seed),
    })
    log.info(
        f"[document] Context ready: {len(extras.sampled_snippets)} snippet(s), "
        f"{len(extras.compressed_summaries)} digest(s), ~{extras.total_approx_tokens} tokens, "
        f"config v{extras.config.version}"
    )
    return enriched, raw


def assemble_context(
    context: Union[SubtopicQuizContext, TopicQuizContext, DocumentQuizContext],
    chunks: Iterable[Chunk],
    config: Optional[GenerationConfig] = None,
    embed: Optional[Embedder] = None,
    rng: Optional[random.Random] = None,
) -> Tuple[Union[SubtopicQuizContext, TopicQuizContext, DocumentQuizContext], str]:
    """
    Return (enriched context, raw content used for prompting).

    Subtopic/topic contexts that already carry raw content pass through
    untouched. Document contexts are always re-sampled.
    """
    chunks = list(chunks)
    if isinstance(context, SubtopicQuizContext):
        return _assemble_scoped(context, chunks, context.subtopic_pages, context.subtopic_content, "subtopic")
    if isinstance(context, TopicQuizContext):
        return _assemble_scoped(context, chunks, context.topic_pages, context.topic_content, "topic")
    if isinstance(context, DocumentQuizContext):
        return _assemble_document(context, chunks, config, embed, rng)
    raise ValueError(f"Unsupported quiz scope: {getattr(context, 'scope', type(context).__name__)}")
