"""
Unit tests for context assembly across the three quiz scopes.
"""
import random

import pytest

from assemble import aggregate_topics, assemble_context, build_document_extras
from conftest import BIOLOGY_OUTLINE
from errors import ContentNotFoundError
from schema_models import (
    DocumentQuizContext,
    DocumentQuizDiagnostics,
    GenerationConfig,
    OutlineSubtopic,
    OutlineTopic,
    SamplingConfig,
    SubtopicQuizContext,
    TopicQuizContext,
)


class TestScopedAssembly:
    """Subtopic and topic scopes."""

    def test_existing_raw_content_passes_through(self, chunks):
        ctx = SubtopicQuizContext(subtopic_name="Chlorophyll", subtopic_pages=[1], raw_content="Already here.")
        enriched, raw = assemble_context(ctx, chunks)

        assert enriched is ctx
        assert raw == "Already here."

    def test_subtopic_page_blocks(self, chunks):
        ctx = SubtopicQuizContext(subtopic_name="Chlorophyll", subtopic_pages=[3, 2])
        enriched, raw = assemble_context(ctx, list(reversed(chunks)))

        assert raw.startswith("Page 2: Page 2 covers")
        assert "\n\nPage 3: " in raw
        assert "Page 4:" not in raw
        assert enriched.raw_content == raw
        assert ctx.raw_content == ""

    def test_topic_falls_back_to_processed_content(self, chunks):
        ctx = TopicQuizContext(
            topic_name="Genetics",
            topic_pages=[42],
            all_subtopics=[OutlineSubtopic(subtopic="Alleles", pages=[42])],
            topic_content="Genes come in variants called alleles.",
        )
        _, raw = assemble_context(ctx, chunks)
        assert raw == "Genes come in variants called alleles."

    def test_missing_content_raises(self, chunks):
        ctx = SubtopicQuizContext(subtopic_name="Ghost", subtopic_pages=[404])
        with pytest.raises(ContentNotFoundError):
            assemble_context(ctx, chunks)


class TestDocumentAssembly:
    """Document scope: sampling, compression, diagnostics seed."""

    def test_context_is_enriched(self, chunks, embedder, document_context):
        enriched, raw = assemble_context(document_context, chunks, embed=embedder)

        assert len(enriched.sampled_snippets) == 6
        assert len(enriched.compressed_summaries) == 3
        assert enriched.generation_config == GenerationConfig()
        assert raw.startswith("Page 1: ")
        assert raw.count("Page ") >= 6

        diag = enriched.diagnostics
        assert diag.snippet_count == 6
        assert diag.approx_token_count == sum(s.approx_token_count for s in enriched.sampled_snippets)
        assert diag.config_version == 2
        assert diag.diversity_guard_degraded is False
        assert diag.embedding_failures == 0

        # the input context is left untouched
        assert document_context.sampled_snippets == []
        assert document_context.diagnostics is None

    def test_prior_diagnostics_survive_the_merge(self, chunks, document_context):
        prior = DocumentQuizDiagnostics(structural_question_count=2, snippet_count=99)
        ctx = document_context.model_copy(update={"diagnostics": prior})

        enriched, _ = assemble_context(ctx, chunks)

        assert enriched.diagnostics.structural_question_count == 2
        assert enriched.diagnostics.snippet_count == 6
        assert enriched.diagnostics.diversity_guard_degraded is True

    def test_requested_config_is_used(self, chunks, document_context):
        cfg = GenerationConfig(version=3, sampling=SamplingConfig(minimum_snippets=1, anchor_pages=False))
        enriched, _ = assemble_context(document_context, chunks, config=cfg)

        assert enriched.generation_config.version == 3
        assert enriched.diagnostics.config_version == 3
        assert all(s.reason != "anchor" for s in enriched.sampled_snippets)

    def test_all_pages_restricts_sampling(self, chunks, document_context):
        ctx = document_context.model_copy(update={"all_pages": [1, 2, 3]})
        extras = build_document_extras(chunks, ctx)

        assert {s.page for s in extras.sampled_snippets} <= {1, 2, 3}

    def test_aggregation_fallback_without_chunks(self, document_context):
        enriched, raw = assemble_context(document_context, [])

        assert enriched.sampled_snippets == []
        assert raw.startswith("Photosynthesis: How plants capture light.")
        assert "Ecosystems: How organisms interact." in raw

    def test_nothing_to_assemble_raises(self):
        ctx = DocumentQuizContext(document_title="Empty")
        with pytest.raises(ContentNotFoundError):
            assemble_context(ctx, [])


class TestAggregation:
    def test_subsample_is_seedable_and_ordered(self):
        topics = [OutlineTopic(topic=f"Topic {i:02d}", description="d" * 500) for i in range(12)]
        ctx = DocumentQuizContext(document_title="Big", all_topics=topics)

        first = aggregate_topics(ctx, rng=random.Random(7))
        second = aggregate_topics(ctx, rng=random.Random(7))
        entries = first.split("\n\n")

        assert first == second
        assert len(entries) == 8
        assert entries == sorted(entries)
        assert all(len(e) <= 400 for e in entries)

    def test_falls_back_to_document_summary(self):
        ctx = DocumentQuizContext(document_title="Bare", document_summary="  A short overview.  ")
        assert aggregate_topics(ctx) == "A short overview."

    def test_all_topics_kept_when_few(self):
        ctx = DocumentQuizContext(document_title="Bio", all_topics=BIOLOGY_OUTLINE)
        assert aggregate_topics(ctx).count("\n\n") == 2
