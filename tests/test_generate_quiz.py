"""
Tests for the generation loop and the full request flow.
"""
import pytest

from conftest import GOOD_PROMPTS, ScriptedGenerator, question
from errors import ContentNotFoundError, QuizGenerationError
from generate_quiz import (
    extract_candidates,
    finalize_questions,
    generate_questions,
    generate_quiz,
    max_attempts_for,
    quiz_title,
)
from llm_client import GENERATED_QUIZ_SCHEMA
from prompts import QUIZ_SYSTEM
from schema_models import QuizOptions, QuizQuestion, SubtopicQuizContext, TopicQuizContext

STRUCTURAL_PROMPTS = [
    "Which section introduces photosynthesis?",
    "What is the heading of chapter two?",
    "Which paragraph describes respiration in detail?",
]


def _payload(prompts):
    return {"quizId": "x", "title": "t", "scope": "document", "questions": [question(p) for p in prompts]}


def _quiz_question(qid, prompt="Prompt?"):
    return QuizQuestion(id=qid, prompt=prompt, options=QuizOptions(A="a", B="b", C="c", D="d"), correct="A")


class TestEndToEnd:
    """Document scope from chunks to QuizResult."""

    def test_clean_generation_single_attempt(self, chunks, embedder, document_context):
        generator = ScriptedGenerator(_payload(GOOD_PROMPTS))

        result = generate_quiz(document_context, chunks, generator, embed=embedder, quiz_id="quiz-1")

        assert result.quiz_id == "quiz-1"
        assert result.title == "Quiz: Biology Basics"
        assert result.scope == "document"
        assert [q.id for q in result.questions] == ["q1", "q2", "q3", "q4", "q5"]
        assert [q.prompt for q in result.questions] == GOOD_PROMPTS
        assert len(generator.calls) == 1

        diag = result.diagnostics
        assert diag.application_ratio == pytest.approx(0.4)
        assert diag.coverage_ratio == pytest.approx(1.0)
        assert diag.attempts == 1
        assert diag.snippet_count == 6
        assert diag.config_version == 2
        assert result.context.diagnostics == diag
        assert len(result.context.sampled_snippets) == 6

    def test_generator_receives_schema_and_system_prompt(self, chunks, document_context):
        generator = ScriptedGenerator(_payload(GOOD_PROMPTS))
        generate_quiz(document_context, chunks, generator)

        prompt, schema, system = generator.calls[0]
        assert schema == GENERATED_QUIZ_SCHEMA
        assert system == QUIZ_SYSTEM
        assert "Biology Basics" in prompt
        assert "SOURCE EXCERPTS" in prompt
        assert "- Photosynthesis (pages 1, 2, 3)" in prompt

    def test_generated_quiz_id(self, chunks, document_context):
        result = generate_quiz(document_context, chunks, ScriptedGenerator(_payload(GOOD_PROMPTS)))
        assert result.quiz_id.startswith("quiz-")


class TestRegenerationLoop:
    """Bounded retry with a regeneration note."""

    def test_regenerates_once_with_note(self, chunks, document_context):
        generator = ScriptedGenerator(
            _payload(STRUCTURAL_PROMPTS + GOOD_PROMPTS[:2]),
            _payload(GOOD_PROMPTS),
        )
        result = generate_quiz(document_context, chunks, generator)

        assert len(generator.calls) == 2
        first, second = generator.prompts
        assert "REGENERATION NOTE" not in first
        assert second.startswith(first)
        assert "REGENERATION NOTE (attempt 2)" in second
        assert "document structure" in second
        assert [q.prompt for q in result.questions] == GOOD_PROMPTS
        assert result.diagnostics.attempts == 2
        assert result.diagnostics.structural_question_count == 0

    def test_exhausted_attempts_keep_accepted(self, chunks, document_context):
        bad = _payload(STRUCTURAL_PROMPTS + GOOD_PROMPTS[:2])
        generator = ScriptedGenerator(bad, bad)

        result = generate_quiz(document_context, chunks, generator)

        assert len(generator.calls) == 2
        assert [q.prompt for q in result.questions] == GOOD_PROMPTS[:2]
        assert result.diagnostics.structural_question_count == 3

    def test_fallback_when_nothing_accepted(self, chunks, document_context):
        prompts = [f"Which section covers item{i}?" for i in range(6)]
        generator = ScriptedGenerator(_payload(prompts))

        result = generate_quiz(document_context, chunks, generator)

        assert len(result.questions) == 5
        assert [q.id for q in result.questions] == ["q1", "q2", "q3", "q4", "q5"]

    def test_empty_on_every_attempt(self, chunks, document_context):
        generator = ScriptedGenerator({"questions": []}, {"questions": []})

        result = generate_quiz(document_context, chunks, generator)

        assert result.questions == []
        assert len(generator.calls) == 2
        assert result.diagnostics.attempts == 2

    def test_outcome_reports_last_decision(self, document_context):
        bad = _payload(STRUCTURAL_PROMPTS)
        outcome = generate_questions(document_context, "base prompt", ScriptedGenerator(bad, bad))

        assert outcome.attempts == 2
        assert outcome.should_regenerate is True
        assert "document structure" in outcome.reason


class TestScopedGeneration:
    """Subtopic and topic scopes skip the evaluator."""

    def test_subtopic_single_attempt_and_clamp(self, chunks):
        ctx = SubtopicQuizContext(subtopic_name="Chlorophyll", subtopic_pages=[1, 2], question_count=3)
        generator = ScriptedGenerator(_payload(STRUCTURAL_PROMPTS + GOOD_PROMPTS))

        result = generate_quiz(ctx, chunks, generator)

        assert len(generator.calls) == 1
        assert result.title == "Quiz: Chlorophyll"
        assert result.diagnostics is None
        assert [q.prompt for q in result.questions] == STRUCTURAL_PROMPTS
        assert result.context.raw_content.startswith("Page 1: ")

    def test_missing_content_is_not_wrapped(self, chunks):
        ctx = TopicQuizContext(topic_name="Ghost", topic_pages=[404])
        generator = ScriptedGenerator(_payload(GOOD_PROMPTS))

        with pytest.raises(ContentNotFoundError):
            generate_quiz(ctx, chunks, generator)
        assert generator.calls == []

    def test_generator_failure_is_coarse(self, chunks, document_context):
        boom = RuntimeError("rate limited")

        with pytest.raises(QuizGenerationError) as excinfo:
            generate_quiz(document_context, chunks, ScriptedGenerator(boom))

        assert str(excinfo.value) == "Failed to generate quiz questions"
        assert excinfo.value.__cause__ is boom

    def test_attempt_budget_per_scope(self, document_context):
        assert max_attempts_for(document_context) == 2
        assert max_attempts_for(SubtopicQuizContext(subtopic_name="s")) == 1
        assert max_attempts_for(TopicQuizContext(topic_name="t")) == 1

    def test_titles(self, document_context):
        assert quiz_title(TopicQuizContext(topic_name="Respiration")) == "Quiz: Respiration"
        assert quiz_title(document_context) == "Quiz: Biology Basics"


class TestHelpers:
    def test_extract_candidates_shapes(self):
        assert len(extract_candidates({"questions": [{"prompt": "a"}, "junk", {"prompt": "b"}]})) == 2
        assert len(extract_candidates([{"prompt": "a"}])) == 1
        assert extract_candidates({"unexpected": True}) == []
        assert extract_candidates("not json") == []

    def test_finalize_assigns_and_dedupes_ids(self):
        questions = [_quiz_question(""), _quiz_question("q1"), _quiz_question("custom"), _quiz_question("custom")]

        final = finalize_questions(questions, count=10)
        ids = [q.id for q in final]

        assert ids[0] == "q1"
        assert ids[1].startswith("q2-")
        assert ids[2] == "custom"
        assert ids[3].startswith("q4-")
        assert len(set(ids)) == 4

    def test_finalize_clamps_to_count(self):
        questions = [_quiz_question(f"id{i}") for i in range(7)]
        assert [q.id for q in finalize_questions(questions, count=3)] == ["id0", "id1", "id2"]
