# schema_models.py

from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

import config

QuizScope = Literal["subtopic", "topic", "document"]
QuizDifficulty = Literal["easy", "medium", "hard", "mixed", "easy-medium"]
SnippetReason = Literal["anchor", "periodic", "topic", "fallback"]
QuestionType = Literal["scenario", "multiple_choice"]

OPTION_LABELS = ("A", "B", "C", "D")
DIFFICULTIES = ("easy", "medium", "hard", "mixed", "easy-medium")

# --------------------------
# Source content
# --------------------------
class Chunk(BaseModel):
    model_config = ConfigDict(frozen=True)

    page: int
    content: str

class SampledSnippet(BaseModel):
    model_config = ConfigDict(frozen=True)

    page: int
    content: str  # whitespace-normalized
    reason: SnippetReason
    approx_token_count: int = Field(ge=0)

class CompressedSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    topic_id: str
    title: str
    summary: str
    pages: List[int]
    kind: Literal["topic", "subtopic"]
    parent_topic_id: Optional[str] = None

# --------------------------
# Outline (topic map supplied by the ingestion side)
# --------------------------
class OutlineSubtopic(BaseModel):
    subtopic: str
    pages: List[int] = []

class OutlineTopic(BaseModel):
    topic: str
    description: str = ""
    pages: List[int] = []
    subtopics: List[OutlineSubtopic] = []

# --------------------------
# Generation config (versioned)
# --------------------------
class SamplingConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    periodic_interval: int = config.SAMPLING_PERIODIC_INTERVAL
    max_samples: int = config.SAMPLING_MAX_SAMPLES
    diversity_threshold: float = config.SAMPLING_DIVERSITY_THRESHOLD
    token_budget: int = config.SAMPLING_TOKEN_BUDGET
    topic_coverage: bool = config.SAMPLING_TOPIC_COVERAGE
    anchor_pages: bool = config.SAMPLING_ANCHOR_PAGES
    minimum_snippets: int = config.SAMPLING_MINIMUM_SNIPPETS

    @model_validator(mode="after")
    def _check_ranges(self):
        assert self.max_samples >= 1, "max_samples must be at least 1"
        assert self.token_budget >= 0, "token_budget must not be negative"
        assert self.minimum_snippets >= 0, "minimum_snippets must not be negative"
        assert 0.0 < self.diversity_threshold <= 1.0, "diversity_threshold must be in (0, 1]"
        return self

class CompressionConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_sentences: int = config.COMPRESSION_MAX_SENTENCES
    max_characters: int = config.COMPRESSION_MAX_CHARACTERS
    min_sentence_length: int = config.COMPRESSION_MIN_SENTENCE_LENGTH
    max_sentence_length: int = config.COMPRESSION_MAX_SENTENCE_LENGTH

    @model_validator(mode="after")
    def _check_lengths(self):
        assert self.max_sentences >= 1, "max_sentences must be at least 1"
        assert self.max_characters >= 1, "max_characters must be at least 1"
        assert self.min_sentence_length <= self.max_sentence_length, "min_sentence_length exceeds max_sentence_length"
        return self

class GenerationConfig(BaseModel):
    """Per-request knobs. Partial dicts are filled from the defaults above."""
    model_config = ConfigDict(frozen=True)

    version: int = config.GENERATION_CONFIG_VERSION
    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    compression: CompressionConfig = Field(default_factory=CompressionConfig)

    @classmethod
    def resolve(cls, value: Union["GenerationConfig", Dict[str, Any], None] = None) -> "GenerationConfig":
        if isinstance(value, GenerationConfig):
            return value
        return cls.model_validate(value or {})

# --------------------------
# Diagnostics
# --------------------------
class IntentCounts(BaseModel):
    scenario: int = 0
    conceptual: int = 0
    recall: int = 0

class DocumentQuizDiagnostics(BaseModel):
    approx_token_count: Optional[int] = None
    snippet_count: Optional[int] = None
    structural_question_count: Optional[int] = None
    redundant_question_count: Optional[int] = None
    literal_question_count: Optional[int] = None
    intent_counts: Optional[IntentCounts] = None
    coverage_ratio: Optional[float] = None
    application_ratio: Optional[float] = None
    diversity_guard_degraded: Optional[bool] = None
    embedding_failures: Optional[int] = None
    attempts: Optional[int] = None
    config_version: Optional[int] = None
    heuristics_version: Optional[str] = None

def merge_diagnostics(*records: Optional[DocumentQuizDiagnostics]) -> DocumentQuizDiagnostics:
    """
    Fold diagnostics records oldest → newest. For every field the latest
    non-None value wins; earlier values only fill gaps.
    """
    merged: Dict[str, Any] = {}
    for rec in records:
        if rec is None:
            continue
        merged.update(rec.model_dump(exclude_none=True))
    return DocumentQuizDiagnostics.model_validate(merged)

# --------------------------
# Quiz contexts (tagged on scope)
# --------------------------
class _BaseQuizContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    question_count: int = Field(default=5, ge=1)
    difficulty: QuizDifficulty = "medium"
    document_ids: List[str] = []
    chat_id: Optional[str] = None

class SubtopicQuizContext(_BaseQuizContext):
    scope: Literal["subtopic"] = "subtopic"
    subtopic_name: str
    subtopic_pages: List[int] = []
    parent_topic_name: str = ""
    subtopic_content: str = ""
    raw_content: str = ""
    document_title: Optional[str] = None

class TopicQuizContext(_BaseQuizContext):
    scope: Literal["topic"] = "topic"
    topic_name: str
    topic_pages: List[int] = []
    all_subtopics: List[OutlineSubtopic] = []
    topic_content: str = ""
    raw_content: str = ""
    document_title: Optional[str] = None

class DocumentQuizContext(_BaseQuizContext):
    scope: Literal["document"] = "document"
    document_title: str
    all_topics: List[OutlineTopic] = []
    all_pages: List[int] = []
    document_summary: str = ""
    raw_content: str = ""
    sampled_snippets: List[SampledSnippet] = []
    compressed_summaries: List[CompressedSummary] = []
    generation_config: Optional[GenerationConfig] = None
    diagnostics: Optional[DocumentQuizDiagnostics] = None

QuizContext = Annotated[
    Union[SubtopicQuizContext, TopicQuizContext, DocumentQuizContext],
    Field(discriminator="scope"),
]

_QUIZ_CONTEXT_ADAPTER = TypeAdapter(QuizContext)

def parse_quiz_context(data: Dict[str, Any]):
    return _QUIZ_CONTEXT_ADAPTER.validate_python(data)

# --------------------------
# Question schema (wire names, as the generator emits them)
# --------------------------
class QuizOptions(BaseModel):
    A: str
    B: str
    C: str
    D: str

class GeneratedQuestion(BaseModel):
    id: str
    prompt: str
    options: QuizOptions
    correct: Literal["A", "B", "C", "D"]
    explanation: str
    difficulty: QuizDifficulty
    sourcePages: List[int]

class QuizQuestion(GeneratedQuestion):
    id: str = ""
    explanation: str = ""
    difficulty: QuizDifficulty = "medium"
    sourcePages: List[int] = []
    type: Optional[QuestionType] = None

class GeneratedQuizContext(BaseModel):
    scope: QuizScope
    questionCount: int
    difficulty: str

class GeneratedQuiz(BaseModel):
    """Response schema handed to the generation collaborator."""
    quizId: str
    questions: List[GeneratedQuestion]
    title: str
    scope: QuizScope
    context: GeneratedQuizContext

# --------------------------
# Final artifact
# --------------------------
class QuizResult(BaseModel):
    quiz_id: str
    questions: List[QuizQuestion]
    title: str
    scope: QuizScope
    context: QuizContext
    diagnostics: Optional[DocumentQuizDiagnostics] = None

    @model_validator(mode="after")
    def _check_consistency(self):
        assert self.scope == self.context.scope, "scope must match context.scope"
        ids = [q.id for q in self.questions]
        assert len(ids) == len(set(ids)), "question ids must be unique"
        return self
